# src/taskmaster/identity/errors.py

from __future__ import annotations

INVALID_EMAIL = "auth/invalid-email"
MISSING_PASSWORD = "auth/missing-password"
WEAK_PASSWORD = "auth/weak-password"
EMAIL_IN_USE = "auth/email-already-in-use"
INVALID_CREDENTIAL = "auth/invalid-credential"
UNAVAILABLE = "auth/unavailable"


class AuthError(Exception):
    """
    Login/signup failure. str(err) is meant to be shown to the user as-is;
    `code` is stable for programmatic checks.
    """

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code

    def __repr__(self) -> str:
        return f"AuthError(code={self.code!r}, message={str(self)!r})"
