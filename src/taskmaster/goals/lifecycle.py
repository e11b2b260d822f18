# src/taskmaster/goals/lifecycle.py

from __future__ import annotations

"""
Goal lifecycle rules.

Two explicit transitions keep a goal's progress recoverable:
- complete: remember the current progress, jump to 100%
- undo:     restore the remembered progress, forget it

Everything here is pure: functions take a Goal and return a new one.
Persisting the result (see goal_patch) is the caller's job.
"""

from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any

from .errors import InvalidGoalError, InvalidTransitionError
from .models import OTHER_TAG, TAGS, Goal, Priority

PROGRESS_DONE = 100

# Stored fields that never change after creation.
IMMUTABLE_FIELDS = ("owner_id", "created_at")


@dataclass(frozen=True, slots=True)
class GoalSummary:
    by_subject: dict[str, int] = field(default_factory=dict)
    total: int = 0
    completed: int = 0

    @property
    def open(self) -> int:
        return self.total - self.completed


def _require_persisted(goal: Goal) -> None:
    if not goal.id or not goal.owner_id:
        raise InvalidGoalError("goal must have an id and an owner")


def _clean_title(title: str | None) -> str:
    cleaned = (title or "").strip()
    if not cleaned:
        raise InvalidGoalError("title is required")
    return cleaned


def _clean_description(description: str | None) -> str | None:
    return (description or "").strip() or None


def _coerce_progress(value: Any) -> int:
    if isinstance(value, bool):
        raise InvalidGoalError(f"progress must be an integer, got {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidGoalError(f"progress must be an integer, got {value!r}")
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise InvalidGoalError(f"progress must be an integer, got {value!r}") from None
    elif not isinstance(value, int):
        raise InvalidGoalError(f"progress must be an integer, got {value!r}")

    if not 0 <= value <= PROGRESS_DONE:
        raise InvalidGoalError(f"progress must be between 0 and 100, got {value}")
    return value


def _coerce_priority(value: Priority | str) -> Priority:
    try:
        return Priority(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(p.value for p in Priority)
        raise InvalidGoalError(f"priority must be one of {allowed}, got {value!r}") from None


def resolve_subject(tag: str | None, custom_subject: str | None = None) -> str:
    """
    Effective subject for a tag picked in a form.

    "Other" takes the trimmed custom value, or stays "Other" when that is empty.
    No tag at all also files the goal under "Other".
    """
    tag = (tag or "").strip()
    if tag == OTHER_TAG:
        return (custom_subject or "").strip() or OTHER_TAG
    return tag or OTHER_TAG


def split_subject(subject: str | None) -> tuple[str, str]:
    """Inverse of resolve_subject, for prefilling a form: (tag, custom value)."""
    if subject in TAGS:
        return subject, ""
    return OTHER_TAG, subject or ""


def new_goal(
    owner_id: str,
    *,
    title: str,
    now: float,
    description: str | None = None,
    tag: str | None = None,
    custom_subject: str | None = None,
    priority: Priority | str = Priority.LOW,
) -> Goal:
    """A fresh, not yet stored goal (empty id) at 0% progress."""
    if not owner_id:
        raise InvalidGoalError("owner_id is required")
    return Goal(
        id="",
        owner_id=owner_id,
        title=_clean_title(title),
        description=_clean_description(description),
        subject=resolve_subject(tag, custom_subject),
        priority=_coerce_priority(priority),
        progress=0,
        completed=False,
        previous_progress=None,
        created_at=float(now),
    )


def complete(goal: Goal) -> Goal:
    _require_persisted(goal)
    if goal.completed:
        raise InvalidTransitionError(goal.id, "complete", completed=True)
    return replace(
        goal,
        previous_progress=goal.progress or 0,
        progress=PROGRESS_DONE,
        completed=True,
    )


def undo(goal: Goal) -> Goal:
    _require_persisted(goal)
    if not goal.completed:
        raise InvalidTransitionError(goal.id, "undo", completed=False)
    return replace(
        goal,
        progress=goal.previous_progress or 0,
        completed=False,
        previous_progress=None,
    )


def toggle(goal: Goal) -> Goal:
    return undo(goal) if goal.completed else complete(goal)


def apply_edit(
    goal: Goal,
    *,
    title: str | None = None,
    description: str | None = None,
    tag: str | None = None,
    custom_subject: str | None = None,
    priority: Priority | str | None = None,
    progress: int | str | None = None,
) -> Goal:
    """
    Apply a partial edit. Arguments left as None keep the current value;
    description="" clears the description.

    A progress edit also sets completed = (progress == 100) and does not
    touch previous_progress.
    """
    _require_persisted(goal)
    changes: dict[str, Any] = {}

    if title is not None:
        changes["title"] = _clean_title(title)
    if description is not None:
        changes["description"] = _clean_description(description)
    if tag is not None:
        changes["subject"] = resolve_subject(tag, custom_subject)
    if priority is not None:
        changes["priority"] = _coerce_priority(priority)
    if progress is not None:
        value = _coerce_progress(progress)
        changes["progress"] = value
        changes["completed"] = value == PROGRESS_DONE

    return replace(goal, **changes) if changes else goal


def goal_patch(before: Goal, after: Goal) -> dict[str, Any]:
    """Partial document holding only the stored fields that differ."""
    old = before.to_doc()
    new = after.to_doc()
    for name in IMMUTABLE_FIELDS:
        if old[name] != new[name]:
            raise InvalidGoalError(f"{name} cannot change")
    return {k: v for k, v in new.items() if old.get(k) != v}


def summarize(goals: Iterable[Goal]) -> GoalSummary:
    """Per-subject counts plus total/completed, for the list header and dashboard."""
    by_subject: Counter[str] = Counter()
    total = 0
    completed = 0
    for goal in goals:
        total += 1
        if goal.completed:
            completed += 1
        by_subject[goal.subject or OTHER_TAG] += 1
    return GoalSummary(by_subject=dict(by_subject), total=total, completed=completed)
