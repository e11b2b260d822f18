# src/taskmaster/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (normal "settings layer").
- No secrets required at import time.
- Everything below the CLI receives settings by injection.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "TASKMASTER"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


_load_dotenv_if_available()


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Console ----
    console_live_updates: bool

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    store_db_path: Path
    identity_db_path: Path

    # ---- Goals ----
    goals_collection: str

    # ---- Identity ----
    min_password_length: int
    password_iterations: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskmaster").strip() or "taskmaster"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        console_live_updates = _env_bool(_k("CONSOLE_LIVE_UPDATES"), True)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskmaster"))
        store_db_path = _env_path(_k("STORE_DB_PATH"), data_dir / "goals.sqlite3")
        identity_db_path = _env_path(_k("IDENTITY_DB_PATH"), data_dir / "users.sqlite3")

        goals_collection = _env(_k("GOALS_COLLECTION"), "goals").strip() or "goals"

        # Firebase-compatible floor: anything shorter is rejected as a weak password.
        min_password_length = max(1, _env_int(_k("MIN_PASSWORD_LENGTH"), 6))
        password_iterations = max(1, _env_int(_k("PASSWORD_ITERATIONS"), 240_000))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            console_live_updates=console_live_updates,
            data_dir=data_dir,
            store_db_path=store_db_path,
            identity_db_path=identity_db_path,
            goals_collection=goals_collection,
            min_password_length=min_password_length,
            password_iterations=password_iterations,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Process settings, read from the environment on first use."""
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
