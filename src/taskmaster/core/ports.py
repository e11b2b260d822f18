# src/taskmaster/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the document store and identity provider swappable (local SQLite,
a hosted backend, in-memory fakes in tests) and makes testing easier.
"""

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any, Protocol

Document = dict[str, Any]
# Plain JSON-compatible mapping as stored in a collection (without its id).


@dataclass(frozen=True, slots=True)
class Identity:
    """An authenticated user. Passed explicitly into every goal operation."""

    uid: str
    email: str


AuthListener = Callable[[Identity | None], None]


@dataclass(frozen=True, slots=True)
class Snapshot:
    """Full result set of a subscribed query at one point in time."""

    collection: str
    owner_id: str
    docs: list[tuple[str, Document]]
    seq: int


class Subscription(Protocol):
    """
    A channel of sequential full snapshots.

    The first snapshot is the current result set; every write that touches
    the filtered set pushes a new one. close() ends the iteration.
    """

    @property
    def closed(self) -> bool: ...

    def close(self) -> None: ...

    def __aiter__(self) -> AsyncIterator[Snapshot]: ...


class DocumentStore(Protocol):
    def create(self, collection: str, doc: Document) -> str: ...

    def get(self, collection: str, doc_id: str) -> Document | None: ...

    def update(self, collection: str, doc_id: str, fields: Document) -> None: ...

    def delete(self, collection: str, doc_id: str) -> None: ...

    def query(self, collection: str, *, owner_id: str) -> list[tuple[str, Document]]: ...

    def subscribe(self, collection: str, *, owner_id: str) -> Subscription: ...


class IdentityProvider(Protocol):
    """
    Login/signup/logout against some user directory.

    Failures raise AuthError (see identity.errors) with a user-presentable message.
    """

    def current_user_id(self) -> str | None: ...

    def on_auth_change(self, callback: AuthListener) -> Callable[[], None]: ...

    async def sign_in(self, email: str, password: str) -> Identity: ...

    async def sign_up(self, email: str, password: str) -> Identity: ...

    async def sign_out(self) -> None: ...
