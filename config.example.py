# config.example.py

"""
Documentation-only module (safe to commit).

The real configuration is loaded from environment variables (optionally via a local .env file).
Do NOT commit real secrets; keep them in .env (local, gitignored).

This file exists to make the repo self-documenting even without opening .env.example.
"""

ENV_VARS = {
    # App / logging
    "TICKLER_APP_NAME": "App display name (default: tickler).",
    "TICKLER_LOG_LEVEL": "Logging level (default: INFO).",
    # Reminders
    "TICKLER_TIMEZONE": "IANA zone every time is read and shown in (default: Asia/Bangkok).",
    "TICKLER_ESCALATION_INTERVAL_SECONDS": "Gap between follow-up reminders (default: 3600).",
    "TICKLER_MIN_YEAR": "Earliest year accepted in absolute dates (default: 2024).",
    "TICKLER_PERSIST_TASKS": "Keep pending tasks in SQLite across restarts (true/false, default: true).",
    # Connectors
    "TICKLER_CONSOLE_ENABLED": "Enable console connector (true/false).",
    "TICKLER_CONSOLE_OWNER_ID": "Owner id used for console commands (default: console).",
    "TICKLER_MATRIX_ENABLED": "Enable Matrix connector (true/false).",
    # Matrix
    "TICKLER_MATRIX_HOMESERVER": "Matrix homeserver URL.",
    "TICKLER_MATRIX_USER_ID": "Matrix user ID (bot).",
    "TICKLER_MATRIX_PASSWORD": "Password for first login (session stored locally).",
    "TICKLER_MATRIX_ROOMS": "Optional allowlist of room IDs (empty => all rooms).",
    "TICKLER_MATRIX_DEVICE_NAME": "Optional device display name for the first login.",
    # Paths (gitignored)
    "TICKLER_DATA_DIR": "Local data directory (default: .local/tickler).",
    "TICKLER_MATRIX_STORE_PATH": "Matrix E2EE store path (default: <data_dir>/matrix_store).",
    "TICKLER_TASKS_DB_PATH": "TaskStore SQLite path (default: <data_dir>/tasks.sqlite3).",
}
