# src/taskmaster/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..cli.render import render_categories
from ..core.ports import Identity
from ..core.state import AppState
from ..goals.reactor import GoalBoard, run_goal_reactor

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def _print_board(board: GoalBoard) -> None:
    s = board.summary
    _print_ts(f"[LIVE] {s.total} tasks, {s.completed} completed. {render_categories(s)}")


def stop_watch(state: AppState) -> None:
    """Close the live subscription; the reactor task ends with it."""
    if state.subscription is not None:
        state.subscription.close()
        state.subscription = None
    task = state.reactor_task
    if task is not None and not task.done():
        task.cancel()
    state.reactor_task = None


def start_watch(state: AppState, identity: Identity) -> None:
    """Subscribe to `identity`'s goals and keep state.board current."""
    stop_watch(state)
    live = bool(getattr(state.settings, "console_live_updates", True))

    state.board = GoalBoard()
    state.subscription = state.goals.subscribe(identity)
    state.reactor_task = asyncio.get_running_loop().create_task(
        run_goal_reactor(
            state.subscription,
            state.board,
            on_update=_print_board if live else None,
        )
    )
    logger.debug("Watching goals of uid=%s (live=%s)", identity.uid, live)


def on_auth_change(state: AppState, identity: Identity | None) -> None:
    """Auth listener: the console session follows the identity provider."""
    state.session = identity
    if identity is None:
        stop_watch(state)
        return
    start_watch(state, identity)


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Use /signup or /login to start, /help for commands, /exit to quit.\n")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    unsubscribe = state.identity.on_auth_change(lambda ident: on_auth_change(state, ident))

    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(input, ">>> ")).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            if not user_input.startswith("/"):
                _print_ts("Commands start with '/'. Use /help to list them.")
                continue

            try:
                reply = await command_registry.handle(state, user_input, emit=emit)
            except Exception:
                logger.exception("Command handler crashed.")
                reply = "Internal error while handling a command."

            if reply:
                _print_ts(reply)

            # Let the reactor render the snapshot pushed by this command before the next prompt.
            await asyncio.sleep(0)
    finally:
        unsubscribe()
        stop_watch(state)

    logger.info("Console connector finished.")
