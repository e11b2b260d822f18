# src/taskmaster/goals/reactor.py

from __future__ import annotations

"""
Snapshot reactor.

Consumes a store subscription and keeps a GoalBoard current:
- every event is a full snapshot of the owner's goals (never a diff),
- the board is rebuilt from it (goal list + summary),
- an optional callback renders the new board.

To stop the reactor, close the subscription or cancel the coroutine/task.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from ..core.ports import Snapshot, Subscription
from .lifecycle import GoalSummary, summarize
from .models import Goal

logger = logging.getLogger(__name__)

BoardCallback = Callable[["GoalBoard"], None]


@dataclass(slots=True)
class GoalBoard:
    """Rendering-ready view of one user's goals."""

    goals: list[Goal] = field(default_factory=list)
    summary: GoalSummary = field(default_factory=GoalSummary)
    version: int = 0
    last_seq: int = -1

    def apply(self, snapshot: Snapshot) -> bool:
        """Replace the board with `snapshot`. Stale snapshots are ignored."""
        if snapshot.seq <= self.last_seq:
            return False
        self.goals = [Goal.from_doc(doc_id, doc) for doc_id, doc in snapshot.docs]
        self.summary = summarize(self.goals)
        self.last_seq = snapshot.seq
        self.version += 1
        return True

    def find(self, goal_id: str) -> Goal | None:
        for goal in self.goals:
            if goal.id == goal_id:
                return goal
        return None


async def run_goal_reactor(
        subscription: Subscription,
        board: GoalBoard,
        *,
        on_update: BoardCallback | None = None,
) -> None:
    """Apply every snapshot from `subscription` to `board` until it is closed."""
    try:
        async for snapshot in subscription:
            try:
                changed = board.apply(snapshot)
            except Exception:
                logger.exception("Failed to apply snapshot seq=%s", snapshot.seq)
                continue

            if not changed:
                continue

            logger.debug(
                "Board v%s: total=%s completed=%s",
                board.version,
                board.summary.total,
                board.summary.completed,
            )

            if on_update is None:
                continue
            try:
                on_update(board)
            except Exception:
                logger.exception("Board update callback failed v%s", board.version)
    except asyncio.CancelledError:
        subscription.close()
        raise
    logger.debug("Reactor finished (subscription closed).")
