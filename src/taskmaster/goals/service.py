# src/taskmaster/goals/service.py

from __future__ import annotations

import logging
import time
from collections.abc import Callable

from ..core.ports import DocumentStore, Identity, Subscription
from ..store.errors import StoreError
from . import lifecycle
from .errors import GoalNotFoundError
from .models import Goal, Priority

logger = logging.getLogger(__name__)


class GoalService:
    """
    User intents -> lifecycle rules -> store mutations.

    Every call takes the acting Identity explicitly; a goal owned by someone
    else is reported as not found.

    Error policy:
    - LifecycleError (bad input, wrong transition, unknown goal) is raised
    - StoreError on a write is logged and swallowed; the call returns None/False
    """

    def __init__(
        self,
        store: DocumentStore,
        *,
        collection: str = "goals",
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._collection = collection
        self._clock = clock

    @property
    def collection(self) -> str:
        return self._collection

    # ---- reads ----

    def get_goal(self, identity: Identity, goal_id: str) -> Goal:
        doc = self._store.get(self._collection, goal_id)
        if doc is None or doc.get("owner_id") != identity.uid:
            raise GoalNotFoundError(goal_id)
        return Goal.from_doc(goal_id, doc)

    def list_goals(self, identity: Identity) -> list[Goal]:
        try:
            rows = self._store.query(self._collection, owner_id=identity.uid)
        except StoreError:
            logger.exception("Error listing goals owner=%s", identity.uid)
            return []
        return [Goal.from_doc(doc_id, doc) for doc_id, doc in rows]

    def summary(self, identity: Identity) -> lifecycle.GoalSummary:
        return lifecycle.summarize(self.list_goals(identity))

    def subscribe(self, identity: Identity) -> Subscription:
        return self._store.subscribe(self._collection, owner_id=identity.uid)

    # ---- writes ----

    def create_goal(
        self,
        identity: Identity,
        *,
        title: str,
        description: str | None = None,
        tag: str | None = None,
        custom_subject: str | None = None,
        priority: Priority | str = Priority.LOW,
    ) -> Goal | None:
        goal = lifecycle.new_goal(
            identity.uid,
            title=title,
            description=description,
            tag=tag,
            custom_subject=custom_subject,
            priority=priority,
            now=self._clock(),
        )
        try:
            goal_id = self._store.create(self._collection, goal.to_doc())
        except StoreError:
            logger.exception("Error creating goal owner=%s", identity.uid)
            return None
        logger.info("Goal created id=%s owner=%s subject=%s", goal_id, identity.uid, goal.subject)
        return Goal.from_doc(goal_id, goal.to_doc())

    def edit_goal(
        self,
        identity: Identity,
        goal_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        tag: str | None = None,
        custom_subject: str | None = None,
        priority: Priority | str | None = None,
        progress: int | str | None = None,
    ) -> Goal | None:
        before = self._load(identity, goal_id)
        if before is None:
            return None
        after = lifecycle.apply_edit(
            before,
            title=title,
            description=description,
            tag=tag,
            custom_subject=custom_subject,
            priority=priority,
            progress=progress,
        )
        return self._save(before, after, action="edit")

    def complete_goal(self, identity: Identity, goal_id: str) -> Goal | None:
        before = self._load(identity, goal_id)
        if before is None:
            return None
        return self._save(before, lifecycle.complete(before), action="complete")

    def undo_goal(self, identity: Identity, goal_id: str) -> Goal | None:
        before = self._load(identity, goal_id)
        if before is None:
            return None
        return self._save(before, lifecycle.undo(before), action="undo")

    def toggle_goal(self, identity: Identity, goal_id: str) -> Goal | None:
        """Complete an open goal, undo a completed one."""
        before = self._load(identity, goal_id)
        if before is None:
            return None
        action = "undo" if before.completed else "complete"
        return self._save(before, lifecycle.toggle(before), action=action)

    def delete_goal(self, identity: Identity, goal_id: str, *, confirmed: bool) -> bool:
        goal = self._load(identity, goal_id)
        if goal is None:
            return False
        if not confirmed:
            logger.debug("Delete of goal %s not confirmed; skipped", goal_id)
            return False
        try:
            self._store.delete(self._collection, goal.id)
        except StoreError:
            logger.exception("Error deleting goal id=%s", goal_id)
            return False
        logger.info("Goal deleted id=%s owner=%s", goal_id, identity.uid)
        return True

    def _load(self, identity: Identity, goal_id: str) -> Goal | None:
        """get_goal for the write paths: a failed read is logged, not raised."""
        try:
            return self.get_goal(identity, goal_id)
        except StoreError:
            logger.exception("Error fetching goal id=%s", goal_id)
            return None

    def _save(self, before: Goal, after: Goal, *, action: str) -> Goal | None:
        patch = lifecycle.goal_patch(before, after)
        if not patch:
            return after
        try:
            self._store.update(self._collection, before.id, patch)
        except StoreError:
            logger.exception("Error on goal %s id=%s", action, before.id)
            return None
        logger.info("Goal %s id=%s fields=%s", action, before.id, sorted(patch))
        return after
