# tests/test_identity.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskmaster.core.ports import Identity
from taskmaster.identity import errors
from taskmaster.identity.errors import AuthError
from taskmaster.identity.local import LocalIdentityProvider


@pytest.mark.asyncio
async def test_signup_signs_in_and_login_returns_same_uid(
    identity_provider: LocalIdentityProvider,
) -> None:
    created = await identity_provider.sign_up("  Alice@Example.com ", "secret1")
    assert created.email == "alice@example.com"
    assert identity_provider.current_user_id() == created.uid

    await identity_provider.sign_out()
    assert identity_provider.current_user_id() is None

    again = await identity_provider.sign_in("alice@example.com", "secret1")
    assert again == created


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "email, password, code",
    [
        ("not-an-email", "secret1", errors.INVALID_EMAIL),
        ("bob@example.com", "", errors.MISSING_PASSWORD),
        ("bob@example.com", "12345", errors.WEAK_PASSWORD),
    ],
)
async def test_signup_validation(
    identity_provider: LocalIdentityProvider, email: str, password: str, code: str
) -> None:
    with pytest.raises(AuthError) as exc:
        await identity_provider.sign_up(email, password)
    assert exc.value.code == code
    assert str(exc.value)
    assert identity_provider.current_user_id() is None


@pytest.mark.asyncio
async def test_duplicate_signup_rejected(identity_provider: LocalIdentityProvider) -> None:
    await identity_provider.sign_up("carol@example.com", "secret1")
    with pytest.raises(AuthError) as exc:
        await identity_provider.sign_up("CAROL@example.com", "other-secret")
    assert exc.value.code == errors.EMAIL_IN_USE


@pytest.mark.asyncio
async def test_bad_credentials_look_the_same(identity_provider: LocalIdentityProvider) -> None:
    await identity_provider.sign_up("dave@example.com", "secret1")
    await identity_provider.sign_out()

    with pytest.raises(AuthError) as wrong_pw:
        await identity_provider.sign_in("dave@example.com", "nope-nope")
    with pytest.raises(AuthError) as unknown:
        await identity_provider.sign_in("nobody@example.com", "secret1")

    assert wrong_pw.value.code == unknown.value.code == errors.INVALID_CREDENTIAL
    assert str(wrong_pw.value) == str(unknown.value)
    assert identity_provider.current_user_id() is None


@pytest.mark.asyncio
async def test_auth_listeners(identity_provider: LocalIdentityProvider) -> None:
    seen: list[Identity | None] = []
    unsubscribe = identity_provider.on_auth_change(seen.append)
    assert seen == [None]

    ident = await identity_provider.sign_up("erin@example.com", "secret1")
    await identity_provider.sign_out()
    assert seen == [None, ident, None]

    unsubscribe()
    await identity_provider.sign_in("erin@example.com", "secret1")
    assert seen == [None, ident, None]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_sign_in(
    identity_provider: LocalIdentityProvider,
) -> None:
    def broken(_: Identity | None) -> None:
        raise RuntimeError("boom")

    identity_provider.on_auth_change(broken)
    ident = await identity_provider.sign_up("frank@example.com", "secret1")
    assert identity_provider.current_user_id() == ident.uid


@pytest.mark.asyncio
async def test_accounts_persist_across_instances(tmp_path: Path) -> None:
    path = tmp_path / "users.sqlite3"
    first = LocalIdentityProvider(path, iterations=1)
    created = await first.sign_up("gina@example.com", "secret1")

    second = LocalIdentityProvider(path, iterations=1)
    assert second.current_user_id() is None
    assert await second.sign_in("gina@example.com", "secret1") == created
    assert second.count_users() == 1
