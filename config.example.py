# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real data paths or accounts. Use:
- .env (local, gitignored)

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TASKMASTER_APP_NAME": "App display name (default: taskmaster).",
    "TASKMASTER_LOG_LEVEL": "Console logging level (default: INFO). The log file always gets DEBUG.",
    # Console
    "TASKMASTER_CONSOLE_LIVE_UPDATES": "Print task totals after every change (true/false, default: true).",
    # Paths (gitignored)
    "TASKMASTER_DATA_DIR": "Local data directory (default: .local/taskmaster).",
    "TASKMASTER_STORE_DB_PATH": "Document store SQLite path (default: <data_dir>/goals.sqlite3).",
    "TASKMASTER_IDENTITY_DB_PATH": "Accounts SQLite path (default: <data_dir>/users.sqlite3).",
    # Goals
    "TASKMASTER_GOALS_COLLECTION": "Collection holding the goals (default: goals).",
    # Identity
    "TASKMASTER_MIN_PASSWORD_LENGTH": "Shorter passwords are rejected at sign-up (default: 6).",
    "TASKMASTER_PASSWORD_ITERATIONS": "PBKDF2 iterations for new accounts (default: 240000).",
}
