# src/taskmaster/goals/errors.py

from __future__ import annotations


class LifecycleError(Exception):
    """A goal operation was called with its precondition violated."""


class InvalidGoalError(LifecycleError, ValueError):
    """Malformed goal or field value (blank title, progress out of range, ...)."""


class InvalidTransitionError(LifecycleError):
    """complete() on a completed goal, or undo() on an open one."""

    def __init__(self, goal_id: str, action: str, completed: bool) -> None:
        state = "completed" if completed else "not completed"
        super().__init__(f"Cannot {action} goal {goal_id}: it is {state}")
        self.goal_id = goal_id
        self.action = action


class GoalNotFoundError(LifecycleError, LookupError):
    """No goal with that id is visible to the caller."""

    def __init__(self, goal_id: str) -> None:
        super().__init__(f"Goal {goal_id} not found")
        self.goal_id = goal_id
