# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskmaster.cli.bootstrap import create_initial_state
from taskmaster.core.ports import Identity
from taskmaster.core.state import AppState
from taskmaster.goals.service import GoalService
from taskmaster.identity.local import LocalIdentityProvider
from taskmaster.store.sqlite_store import SQLiteDocumentStore

from .fakes import FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskmaster-test",
        log_level="DEBUG",
        console_live_updates=False,
        # Paths (tmp per test run)
        data_dir=tmp_path,
        store_db_path=tmp_path / "goals.sqlite3",
        identity_db_path=tmp_path / "users.sqlite3",
        goals_collection="goals",
        min_password_length=6,
        # Keep hashing fast in tests.
        password_iterations=1,
    )


@pytest.fixture()
def store(settings: SimpleNamespace) -> SQLiteDocumentStore:
    s = SQLiteDocumentStore(settings.store_db_path)
    yield s
    s.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def service(store: SQLiteDocumentStore, clock: FakeClock) -> GoalService:
    """
    NOTE: We keep the real SQLite store here because its correctness is part
    of what we want to test.
    """
    return GoalService(store, collection="goals", clock=clock)


@pytest.fixture()
def identity_provider(settings: SimpleNamespace) -> LocalIdentityProvider:
    return LocalIdentityProvider(
        settings.identity_db_path,
        min_password_length=settings.min_password_length,
        iterations=settings.password_iterations,
    )


@pytest.fixture()
def alice() -> Identity:
    return Identity(uid="uid-alice", email="alice@example.com")


@pytest.fixture()
def bob() -> Identity:
    return Identity(uid="uid-bob", email="bob@example.com")


@pytest.fixture()
def state(settings: SimpleNamespace) -> AppState:
    s = create_initial_state(settings=settings)
    yield s
    s.store.close()
