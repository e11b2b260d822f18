# src/taskmaster/identity/local.py

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import hmac
import logging
import re
import secrets
import sqlite3
import time
import uuid
from collections.abc import Callable
from pathlib import Path

from ..core.ports import AuthListener, Identity
from .errors import (
    EMAIL_IN_USE,
    INVALID_CREDENTIAL,
    INVALID_EMAIL,
    MISSING_PASSWORD,
    UNAVAILABLE,
    WEAK_PASSWORD,
    AuthError,
)

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class LocalIdentityProvider:
    """
    Email/password accounts in a local SQLite file.

    One provider instance is one session: it remembers who signed in through
    it and notifies auth listeners on every change. Nothing here is global;
    callers pass the returned Identity on to the goal service.

    Passwords are stored as PBKDF2-HMAC-SHA256 with a per-user salt. Hashing
    and SQLite calls run in a worker thread so the event loop stays free.
    """

    def __init__(
        self,
        db_path: str | Path = "users.sqlite3",
        *,
        min_password_length: int = 6,
        iterations: int = 240_000,
    ) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._min_password_length = max(1, int(min_password_length))
        self._iterations = max(1, int(iterations))
        self._current: Identity | None = None
        self._listeners: list[AuthListener] = []
        self._ensure_schema()
        logger.info("IdentityProvider ready db=%s", self._db_path)

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    uid TEXT PRIMARY KEY,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    salt TEXT NOT NULL,
                    iterations INTEGER NOT NULL,
                    created_at REAL NOT NULL
                )
                """
            )
            conn.commit()
        finally:
            conn.close()

    @staticmethod
    def _hash(password: str, salt: bytes, iterations: int) -> str:
        return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations).hex()

    @staticmethod
    def _normalize_email(email: str) -> str:
        normalized = (email or "").strip().lower()
        if not EMAIL_REGEX.match(normalized):
            raise AuthError(INVALID_EMAIL, "The email address is badly formatted.")
        return normalized

    @staticmethod
    def _require_password(password: str) -> None:
        if not password:
            raise AuthError(MISSING_PASSWORD, "A password is required.")

    def _insert_user(self, email: str, password: str) -> Identity:
        salt = secrets.token_bytes(16)
        uid = uuid.uuid4().hex
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO users(uid, email, password_hash, salt, iterations, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    uid,
                    email,
                    self._hash(password, salt, self._iterations),
                    salt.hex(),
                    self._iterations,
                    time.time(),
                ),
            )
            conn.commit()
        except sqlite3.IntegrityError:
            raise AuthError(EMAIL_IN_USE, "The email address is already in use by another account.") from None
        except sqlite3.Error as e:
            raise AuthError(UNAVAILABLE, "Account service is unavailable, try again later.") from e
        finally:
            conn.close()
        return Identity(uid=uid, email=email)

    def _check_user(self, email: str, password: str) -> Identity:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT uid, email, password_hash, salt, iterations FROM users WHERE email = ?",
                (email,),
            ).fetchone()
        except sqlite3.Error as e:
            raise AuthError(UNAVAILABLE, "Account service is unavailable, try again later.") from e
        finally:
            conn.close()

        if row is not None:
            expected = str(row["password_hash"])
            actual = self._hash(password, bytes.fromhex(row["salt"]), int(row["iterations"]))
            if hmac.compare_digest(expected, actual):
                return Identity(uid=str(row["uid"]), email=str(row["email"]))
        # Same answer for unknown email and wrong password.
        raise AuthError(INVALID_CREDENTIAL, "Invalid email or password.")

    def _set_current(self, identity: Identity | None) -> None:
        self._current = identity
        for listener in list(self._listeners):
            try:
                listener(identity)
            except Exception:
                logger.exception("Auth listener failed")

    # ---- public API ----

    def current_user_id(self) -> str | None:
        return self._current.uid if self._current else None

    def on_auth_change(self, callback: AuthListener) -> Callable[[], None]:
        """
        Register `callback`; it is called right away with the current identity
        and again after every sign-in/sign-out. Returns an unsubscribe function.
        """
        self._listeners.append(callback)
        try:
            callback(self._current)
        except Exception:
            logger.exception("Auth listener failed")

        def unsubscribe() -> None:
            with contextlib.suppress(ValueError):
                self._listeners.remove(callback)

        return unsubscribe

    def count_users(self) -> int:
        conn = self._get_conn()
        try:
            (n,) = conn.execute("SELECT COUNT(*) FROM users").fetchone()
            return int(n)
        finally:
            conn.close()

    async def sign_up(self, email: str, password: str) -> Identity:
        """Create an account and sign it in."""
        normalized = self._normalize_email(email)
        self._require_password(password)
        if len(password) < self._min_password_length:
            raise AuthError(
                WEAK_PASSWORD,
                f"Password should be at least {self._min_password_length} characters.",
            )

        identity = await asyncio.to_thread(self._insert_user, normalized, password)
        logger.info("Account created uid=%s", identity.uid)
        self._set_current(identity)
        return identity

    async def sign_in(self, email: str, password: str) -> Identity:
        normalized = self._normalize_email(email)
        self._require_password(password)

        try:
            identity = await asyncio.to_thread(self._check_user, normalized, password)
        except AuthError as e:
            logger.info("Sign-in failed email=%s code=%s", normalized, e.code)
            raise
        logger.info("Signed in uid=%s", identity.uid)
        self._set_current(identity)
        return identity

    async def sign_out(self) -> None:
        if self._current is None:
            return
        logger.info("Signed out uid=%s", self._current.uid)
        self._set_current(None)
