# src/taskmaster/goals/models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any

TAGS: tuple[str, ...] = ("Work", "Personal", "Shopping", "Other")
OTHER_TAG = "Other"
UNTITLED = "Untitled Task"


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def from_doc(cls, raw: Any) -> Priority:
        if not raw:
            return cls.LOW
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            return cls.LOW


@dataclass(frozen=True, slots=True)
class Goal:
    """
    A user's task.

    Notes:
    - `previous_progress` is only written by complete and cleared by undo.
    - `completed` is also recomputed by a manual progress edit.
    """

    id: str
    owner_id: str
    title: str
    subject: str
    created_at: float

    description: str | None = None
    priority: Priority = Priority.LOW
    progress: int = 0
    completed: bool = False
    previous_progress: int | None = None

    @property
    def display_title(self) -> str:
        return self.title.strip() or UNTITLED

    def to_doc(self) -> dict[str, Any]:
        """Stored representation (the id lives outside the document)."""
        return {
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "subject": self.subject,
            "priority": self.priority.value,
            "progress": self.progress,
            "completed": self.completed,
            "previous_progress": self.previous_progress,
            "created_at": self.created_at,
        }

    @classmethod
    def from_doc(cls, doc_id: str, doc: dict[str, Any]) -> Goal:
        # Older documents stored the description under "notes".
        description = doc.get("description")
        if description is None:
            description = doc.get("notes")

        prev = doc.get("previous_progress")
        return cls(
            id=str(doc_id),
            owner_id=str(doc.get("owner_id") or ""),
            title=str(doc.get("title") or ""),
            description=str(description) if description else None,
            subject=str(doc.get("subject") or ""),
            priority=Priority.from_doc(doc.get("priority")),
            progress=_as_progress(doc.get("progress")),
            completed=bool(doc.get("completed", False)),
            previous_progress=_as_progress(prev) if prev is not None else None,
            created_at=float(doc.get("created_at") or 0.0),
        )


def _as_progress(raw: Any) -> int:
    try:
        value = int(round(float(raw)))
    except (TypeError, ValueError):
        return 0
    return max(0, min(100, value))
