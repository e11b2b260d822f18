# src/taskmaster/cli/render.py

from __future__ import annotations

from collections.abc import Sequence

from ..goals.lifecycle import GoalSummary
from ..goals.models import Goal

BAR_WIDTH = 20


def progress_bar(progress: int, width: int = BAR_WIDTH) -> str:
    progress = max(0, min(100, int(progress or 0)))
    filled = round(width * progress / 100)
    return "[" + "#" * filled + "-" * (width - filled) + "]"


def render_goal_line(index: int, goal: Goal) -> str:
    mark = "x" if goal.completed else " "
    return (
        f"{index}. [{mark}] {goal.display_title} ({goal.priority.value}) "
        f"{goal.progress}% #{goal.subject or 'Other'}  id={goal.id[:8]}"
    )


def render_goal_list(goals: Sequence[Goal]) -> str:
    if not goals:
        return "No tasks yet. Add one with /add <title>."
    return "\n".join(render_goal_line(i, g) for i, g in enumerate(goals, start=1))


def render_goal_detail(goal: Goal) -> str:
    lines = [
        f"{goal.display_title}",
        f"  id: {goal.id}",
        f"  priority: {goal.priority.value}",
        f"  tag: {goal.subject or 'Other'}",
        f"  progress: {goal.progress}% {progress_bar(goal.progress)}",
        f"  status: {'completed' if goal.completed else 'in progress'}",
    ]
    if goal.description:
        lines.append(f"  notes: {goal.description}")
    return "\n".join(lines)


def render_categories(summary: GoalSummary) -> str:
    if not summary.by_subject:
        return "Categories: none yet."
    parts = [f"{subject} ({count})" for subject, count in sorted(summary.by_subject.items())]
    return "Categories: " + ", ".join(parts)


def render_dashboard(summary: GoalSummary, *, email: str | None = None) -> str:
    head = f"Dashboard for {email}" if email else "Dashboard"
    return (
        f"{head}\n"
        f"  Total tasks: {summary.total}\n"
        f"  Completed:   {summary.completed}\n"
        f"  Open:        {summary.open}"
    )
