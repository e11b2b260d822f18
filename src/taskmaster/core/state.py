# src/taskmaster/core/state.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from ..goals.reactor import GoalBoard
from ..goals.service import GoalService
from .ports import DocumentStore, Identity, IdentityProvider, Subscription


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    store: DocumentStore
    identity: IdentityProvider
    goals: GoalService

    # Who is signed in on this console. Passed explicitly to every goal call.
    session: Identity | None = None

    # Live view of the signed-in user's goals (fed by the snapshot reactor).
    board: GoalBoard = field(default_factory=GoalBoard)
    subscription: Subscription | None = None
    reactor_task: asyncio.Task[None] | None = None
