# tests/test_commands.py

from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest
import pytest_asyncio

from taskmaster.cli.commands import CommandRegistry, _resolve_goal, registry
from taskmaster.connectors.console_connector import on_auth_change, stop_watch
from taskmaster.core.ports import Identity
from taskmaster.core.state import AppState
from taskmaster.goals.models import Goal


async def _settle() -> None:
    for _ in range(5):
        await asyncio.sleep(0)


@pytest_asyncio.fixture()
async def signed_in_listener(state: AppState):
    unsubscribe = state.identity.on_auth_change(lambda ident: on_auth_change(state, ident))
    yield state
    unsubscribe()
    stop_watch(state)
    await _settle()


@pytest.mark.asyncio
async def test_command_registry_routes_sync_and_async_handlers(state: AppState) -> None:
    reg = CommandRegistry()
    called = {"sync": 0, "async": 0}

    def h_sync(state, args, emit):
        called["sync"] += 1
        return "sync:" + ",".join(args)

    async def h_async(state, args, emit):
        called["async"] += 1
        if emit is not None:
            emit("note")
        return "async"

    reg.register("a", h_sync, "a")
    reg.register("b", h_async, "b", aliases=["bee"])

    assert await reg.handle(state, '/a x "y z"') == "sync:x,y z"
    assert await reg.handle(state, "/bee", emit=lambda _: None) == "async"
    assert called == {"sync": 1, "async": 1}


@pytest.mark.asyncio
async def test_command_registry_unknown_and_non_command(state: AppState) -> None:
    reg = CommandRegistry()
    assert await reg.handle(state, "hello") is None
    assert "Unknown command" in (await reg.handle(state, "/nope") or "")
    assert "Empty command" in (await reg.handle(state, "/") or "")


@pytest.mark.asyncio
async def test_goal_commands_require_sign_in(state: AppState) -> None:
    reply = await registry.handle(state, "/add Something")
    assert reply is not None and "not signed in" in reply


@pytest.mark.asyncio
async def test_auth_errors_are_shown_to_user(signed_in_listener: AppState) -> None:
    state = signed_in_listener
    reply = await registry.handle(state, "/signup bad-email secret1")
    assert reply == "The email address is badly formatted."

    await registry.handle(state, "/signup alice@example.com secret1")
    await registry.handle(state, "/logout")
    reply = await registry.handle(state, "/login alice@example.com wrong-pass")
    assert reply == "Invalid email or password."
    assert state.session is None


@pytest.mark.asyncio
async def test_console_session_flow(signed_in_listener: AppState) -> None:
    state = signed_in_listener

    reply = await registry.handle(state, "/signup alice@example.com secret1")
    assert reply is not None and "alice@example.com" in reply
    assert state.session is not None
    assert state.subscription is not None

    await registry.handle(state, '/add "Write report" --tag Work --priority high --notes "due friday"')
    await registry.handle(state, "/add Lift --tag Gym")
    await registry.handle(state, "/add Groceries --tag Shopping")

    listing = await registry.handle(state, "/list")
    assert listing is not None
    assert "1. [ ] Write report (high) 0% #Work" in listing
    assert "#Gym" in listing

    await registry.handle(state, "/edit 2 --progress 40")
    reply = await registry.handle(state, "/done 2")
    assert reply == "Completed 'Lift'."
    reply = await registry.handle(state, "/done 2")
    assert reply == "Reopened 'Lift' at 40%."

    reply = await registry.handle(state, "/undo 2")
    assert reply is not None and "not completed" in reply

    reply = await registry.handle(state, "/delete 3")
    assert reply is not None and reply.startswith("Are you sure")
    reply = await registry.handle(state, "/delete 3 yes")
    assert reply == "Deleted 'Groceries'."

    await registry.handle(state, "/done 1")
    dashboard = await registry.handle(state, "/dashboard")
    assert dashboard is not None
    assert "Total tasks: 2" in dashboard
    assert "Completed:   1" in dashboard

    categories = await registry.handle(state, "/categories")
    assert categories == "Categories: Gym (1), Work (1)"

    await _settle()
    assert state.board.summary.total == 2
    assert state.board.summary.completed == 1

    await registry.handle(state, "/logout")
    assert state.session is None
    assert state.subscription is None


@pytest.mark.asyncio
async def test_bad_arguments_become_messages(signed_in_listener: AppState) -> None:
    state = signed_in_listener
    await registry.handle(state, "/signup bob@example.com secret1")
    await registry.handle(state, "/add Task")

    assert "Unknown option" in (await registry.handle(state, "/add x --color red") or "")
    assert "between 0 and 100" in (await registry.handle(state, "/edit 1 --progress 120") or "")
    assert "title is required" in (await registry.handle(state, "/add --priority low") or "")
    assert "not found" in (await registry.handle(state, "/show zzz") or "")


@pytest.mark.asyncio
async def test_custom_subject_edit_keeps_other_tag(signed_in_listener: AppState) -> None:
    state = signed_in_listener
    await registry.handle(state, "/signup carol@example.com secret1")
    await registry.handle(state, "/add Lift --tag Gym")

    reply = await registry.handle(state, "/edit 1 --custom Yoga")
    assert reply is not None and reply.startswith("Updated.")
    assert state.goals.list_goals(state.session)[0].subject == "Yoga"


@pytest.mark.asyncio
async def test_custom_subject_without_tag(signed_in_listener: AppState) -> None:
    state = signed_in_listener
    await registry.handle(state, "/signup dave@example.com secret1")
    await registry.handle(state, "/add Novel --custom Reading")
    await registry.handle(state, "/add Report --tag Work")

    goals = state.goals.list_goals(state.session)
    assert goals[0].subject == "Reading"

    reply = await registry.handle(state, "/edit 2 --custom Writing")
    assert reply is not None and "only applies to tag Other" in reply
    assert state.goals.list_goals(state.session)[1].subject == "Work"


@pytest.mark.asyncio
async def test_tag_names_are_case_insensitive(signed_in_listener: AppState) -> None:
    state = signed_in_listener
    await registry.handle(state, "/signup erin@example.com secret1")
    await registry.handle(state, "/add Report --tag work")
    await registry.handle(state, "/add Milk --tag SHOPPING")
    await registry.handle(state, "/edit 1 --tag personal")

    subjects = [g.subject for g in state.goals.list_goals(state.session)]
    assert subjects == ["Personal", "Shopping"]


def test_long_numeric_ref_is_an_id_prefix() -> None:
    me = Identity(uid="u1", email="me@example.com")
    goals = [
        Goal(id="aa11bb22cc33", owner_id="u1", title="First", subject="Work", created_at=1.0),
        Goal(id="12345678ffee", owner_id="u1", title="Second", subject="Work", created_at=2.0),
    ]
    state = SimpleNamespace(goals=SimpleNamespace(list_goals=lambda identity: goals))

    assert _resolve_goal(state, me, "2").title == "Second"
    assert _resolve_goal(state, me, "1").title == "First"
    assert _resolve_goal(state, me, "12345678").title == "Second"
    assert _resolve_goal(state, me, "aa11").title == "First"
