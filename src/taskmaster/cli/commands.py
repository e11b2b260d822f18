# src/taskmaster/cli/commands.py

from __future__ import annotations

import inspect
import logging
import shlex
from collections.abc import Awaitable, Callable

from ..core.ports import Identity
from ..core.state import AppState
from ..goals.errors import GoalNotFoundError, LifecycleError
from ..goals.lifecycle import split_subject
from ..goals.models import OTHER_TAG, TAGS, Goal
from ..identity.errors import AuthError
from .render import (
    render_categories,
    render_dashboard,
    render_goal_detail,
    render_goal_list,
)

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[
    [AppState, list[str], CommandEmitter | None], str | Awaitable[str]
]

logger = logging.getLogger(__name__)

NOT_SIGNED_IN = "You are not signed in. Use /login <email> <password> or /signup <email> <password>."
SAVE_FAILED = "Could not save the change. See the log for details."


class UsageError(ValueError):
    """Malformed command arguments."""


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Auth and goal precondition errors become the reply text.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Cannot parse command: {e}"
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            reply = handler(state, args, emit)
            if inspect.isawaitable(reply):
                reply = await reply
        except AuthError as e:
            return str(e)
        except LifecycleError as e:
            return str(e)
        except UsageError as e:
            return str(e)
        return reply

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def _parse_options(args: list[str], known: set[str]) -> tuple[list[str], dict[str, str]]:
    """
    Split ["Buy", "milk", "--tag", "Shopping"] into (["Buy", "milk"], {"tag": "Shopping"}).

    An option without a value gets "".
    """
    positional: list[str] = []
    options: dict[str, str] = {}
    i = 0
    while i < len(args):
        arg = args[i]
        if arg.startswith("--"):
            name = arg[2:].lower()
            if name not in known:
                raise UsageError(f"Unknown option {arg}. Known: {', '.join(sorted('--' + k for k in known))}")
            if i + 1 < len(args) and not args[i + 1].startswith("--"):
                options[name] = args[i + 1]
                i += 2
            else:
                options[name] = ""
                i += 1
            continue
        positional.append(arg)
        i += 1
    return positional, options


# Shortened ids shown by /list are this long; refs this long are ids, not positions.
SHORT_ID_LEN = 8

_TAG_BY_NAME = {t.lower(): t for t in TAGS}


def _resolve_goal(state: AppState, identity: Identity, ref: str) -> Goal:
    """
    A goal by 1-based /list position or by (unique) id prefix.

    Short all-digit refs are positions; anything SHORT_ID_LEN or longer is an id prefix.
    """
    goals = state.goals.list_goals(identity)
    if ref.isdigit() and len(ref) < SHORT_ID_LEN and 1 <= int(ref) <= len(goals):
        return goals[int(ref) - 1]

    matches = [g for g in goals if g.id.startswith(ref)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise UsageError(f"Task reference {ref!r} is ambiguous; use more of the id.")
    raise GoalNotFoundError(ref)


def _tag_and_custom(
    options: dict[str, str], *, current_subject: str | None = None
) -> tuple[str | None, str | None]:
    """
    (tag, custom value) from --tag/--custom.

    Tag names match case-insensitively; "--tag Gym" is shorthand for Other with
    a custom value. "--custom" alone keeps the tag the task already has, which
    must be Other (new tasks default to Other).
    """
    tag = options.get("tag")
    custom = options.get("custom")
    if tag is None:
        if custom is None:
            return None, None
        current_tag = OTHER_TAG
        if current_subject is not None:
            current_tag, _ = split_subject(current_subject)
        if current_tag != OTHER_TAG:
            raise UsageError(
                f"--custom only applies to tag {OTHER_TAG}; this task is tagged {current_tag}. "
                f"Use --tag {OTHER_TAG} --custom <value>."
            )
        return OTHER_TAG, custom

    name = tag.strip()
    known = _TAG_BY_NAME.get(name.lower())
    if known is not None:
        return known, custom
    if name:
        return OTHER_TAG, name
    return OTHER_TAG, custom


# ---- account commands ----


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


async def cmd_signup(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /signup <email> <password>"
    identity = await state.identity.sign_up(args[0], args[1])
    return f"Account created. Signed in as {identity.email}."


async def cmd_login(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if len(args) != 2:
        return "Usage: /login <email> <password>"
    identity = await state.identity.sign_in(args[0], args[1])
    return f"Welcome back, {identity.email}."


async def cmd_logout(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    if state.session is None:
        return "You are not signed in."
    await state.identity.sign_out()
    return "Signed out."


def cmd_whoami(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    identity = state.session
    if identity is None:
        return "Not signed in."
    return f"Signed in as {identity.email} (uid={identity.uid})."


# ---- goal commands ----


def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add <title> [--notes N] [--tag Work|Personal|Shopping|Other] [--custom C] [--priority low|medium|high]
    """
    identity = state.session
    if identity is None:
        return NOT_SIGNED_IN

    words, options = _parse_options(args, {"notes", "tag", "custom", "priority"})
    tag, custom = _tag_and_custom(options)
    goal = state.goals.create_goal(
        identity,
        title=" ".join(words),
        description=options.get("notes"),
        tag=tag,
        custom_subject=custom,
        priority=options.get("priority") or "low",
    )
    if goal is None:
        return SAVE_FAILED
    return f"Added {goal.display_title!r} #{goal.subject} ({goal.priority.value})."


def cmd_list(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    identity = state.session
    if identity is None:
        return NOT_SIGNED_IN
    goals = state.goals.list_goals(identity)
    return render_goal_list(goals)


def cmd_show(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    identity = state.session
    if identity is None:
        return NOT_SIGNED_IN
    if len(args) != 1:
        return "Usage: /show <n|id>"
    return render_goal_detail(_resolve_goal(state, identity, args[0]))


def cmd_edit(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /edit <n|id> [--title T] [--notes N] [--tag ...] [--custom C] [--priority P] [--progress 0-100]
    """
    identity = state.session
    if identity is None:
        return NOT_SIGNED_IN

    refs, options = _parse_options(
        args, {"title", "notes", "tag", "custom", "priority", "progress"}
    )
    if len(refs) != 1 or not options:
        return "Usage: /edit <n|id> [--title T] [--notes N] [--tag T] [--custom C] [--priority P] [--progress 0-100]"

    goal = _resolve_goal(state, identity, refs[0])
    tag, custom = _tag_and_custom(options, current_subject=goal.subject)
    updated = state.goals.edit_goal(
        identity,
        goal.id,
        title=options.get("title"),
        description=options.get("notes"),
        tag=tag,
        custom_subject=custom,
        priority=options.get("priority") or None,
        progress=options.get("progress") or None,
    )
    if updated is None:
        return SAVE_FAILED
    return "Updated.\n" + render_goal_detail(updated)


def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """Complete an open task, or undo a completed one."""
    identity = state.session
    if identity is None:
        return NOT_SIGNED_IN
    if len(args) != 1:
        return "Usage: /done <n|id>"

    goal = _resolve_goal(state, identity, args[0])
    updated = state.goals.toggle_goal(identity, goal.id)
    if updated is None:
        return SAVE_FAILED
    if updated.completed:
        return f"Completed {updated.display_title!r}."
    return f"Reopened {updated.display_title!r} at {updated.progress}%."


def cmd_undo(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    identity = state.session
    if identity is None:
        return NOT_SIGNED_IN
    if len(args) != 1:
        return "Usage: /undo <n|id>"

    goal = _resolve_goal(state, identity, args[0])
    updated = state.goals.undo_goal(identity, goal.id)
    if updated is None:
        return SAVE_FAILED
    return f"Reopened {updated.display_title!r} at {updated.progress}%."


def cmd_delete(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /delete <n|id>      -> ask for confirmation
    /delete <n|id> yes  -> delete
    """
    identity = state.session
    if identity is None:
        return NOT_SIGNED_IN
    if not args or len(args) > 2:
        return "Usage: /delete <n|id> [yes]"

    goal = _resolve_goal(state, identity, args[0])
    confirmed = len(args) == 2 and args[1].lower() in ("yes", "y")
    if not confirmed:
        return (
            f"Are you sure you want to delete {goal.display_title!r}? "
            f"Repeat with: /delete {goal.id[:8]} yes"
        )
    if not state.goals.delete_goal(identity, goal.id, confirmed=True):
        return SAVE_FAILED
    return f"Deleted {goal.display_title!r}."


def cmd_dashboard(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    identity = state.session
    if identity is None:
        return NOT_SIGNED_IN
    return render_dashboard(state.goals.summary(identity), email=identity.email)


def cmd_categories(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    identity = state.session
    if identity is None:
        return NOT_SIGNED_IN
    return render_categories(state.goals.summary(identity))


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("signup", cmd_signup, help_text="Create an account: /signup <email> <password>.")
registry.register("login", cmd_login, help_text="Sign in: /login <email> <password>.")
registry.register("logout", cmd_logout, help_text="Sign out.")
registry.register("whoami", cmd_whoami, help_text="Show the signed-in account.")
registry.register(
    "add",
    cmd_add,
    help_text='Add a task: /add "title" [--notes N] [--tag T] [--custom C] [--priority low|medium|high].',
)
registry.register("list", cmd_list, help_text="List your tasks.", aliases=["ls"])
registry.register("show", cmd_show, help_text="Show one task: /show <n|id>.")
registry.register(
    "edit",
    cmd_edit,
    help_text="Edit a task: /edit <n|id> [--title] [--notes] [--tag] [--custom] [--priority] [--progress].",
)
registry.register("done", cmd_done, help_text="Complete a task, or undo if already completed: /done <n|id>.")
registry.register("undo", cmd_undo, help_text="Reopen a completed task: /undo <n|id>.")
registry.register("delete", cmd_delete, help_text="Delete a task: /delete <n|id> yes.", aliases=["rm"])
registry.register("dashboard", cmd_dashboard, help_text="Total and completed task counts.")
registry.register("categories", cmd_categories, help_text="Task counts per tag.")
