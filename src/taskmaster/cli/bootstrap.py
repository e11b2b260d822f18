# src/taskmaster/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState (document store, identity, goals).
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..goals.service import GoalService
from ..identity.local import LocalIdentityProvider
from ..store.sqlite_store import SQLiteDocumentStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.identity_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = SQLiteDocumentStore(settings.store_db_path)
    identity = LocalIdentityProvider(
        settings.identity_db_path,
        min_password_length=settings.min_password_length,
        iterations=settings.password_iterations,
    )
    goals = GoalService(store, collection=settings.goals_collection)

    logger.debug("State wired: collection=%s", settings.goals_collection)
    return AppState(settings=settings, store=store, identity=identity, goals=goals)


def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    sub = state.subscription
    if sub is not None:
        try:
            sub.close()
        except Exception:
            logger.debug("Subscription close failed.", exc_info=True)
        state.subscription = None

    try:
        close = getattr(state.store, "close", None)
        if close is not None:
            close()
    except Exception:
        logger.debug("Store close failed.", exc_info=True)
