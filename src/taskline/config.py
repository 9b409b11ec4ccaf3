# src/taskline/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No secrets required at import time (the remote store key is only needed when
  that backend is selected).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKLINE"

STORE_BACKENDS = ("sqlite", "apps_script")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


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
    timezone: str

    # ---- Local data paths (ignored by git) ----
    data_dir: Path
    tasks_db_path: Path

    # ---- Record store ----
    store_backend: str
    apps_script_url: str
    apps_script_key: str
    store_timeout_seconds: float

    # ---- Connectors ----
    console_enabled: bool
    console_user_id: str

    matrix_enabled: bool
    matrix_homeserver: str
    matrix_user_id: str
    matrix_password: str
    matrix_rooms: list[str]
    matrix_store_path: Path

    # ---- Digests ----
    digests_enabled: bool
    morning_digest_at: str
    evening_digest_at: str
    admin_digest_at: str

    @staticmethod
    def from_env() -> Settings:
        load_dotenv(override=False)

        app_name = _env(_k("APP_NAME"), "taskline")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskline"))

        store_backend = _env(_k("STORE_BACKEND"), "sqlite").strip().lower()
        if store_backend not in STORE_BACKENDS:
            raise ValueError(f"{_k('STORE_BACKEND')} must be one of {STORE_BACKENDS}, got {store_backend!r}")

        return Settings(
            app_name=app_name,
            log_level=_env(_k("LOG_LEVEL"), "INFO").upper(),
            timezone=_env(_k("TIMEZONE"), "Asia/Bangkok"),
            data_dir=data_dir,
            tasks_db_path=_env_path(_k("TASKS_DB_PATH"), data_dir / "tasks.sqlite3"),
            store_backend=store_backend,
            apps_script_url=_env(_k("APPS_SCRIPT_URL")).strip(),
            apps_script_key=_env(_k("APPS_SCRIPT_KEY")).strip(),
            store_timeout_seconds=_env_float(_k("STORE_TIMEOUT_SECONDS"), 15.0),
            console_enabled=_env_bool(_k("CONSOLE_ENABLED"), True),
            console_user_id=_env(_k("CONSOLE_USER_ID"), "console").strip() or "console",
            matrix_enabled=_env_bool(_k("MATRIX_ENABLED"), False),
            matrix_homeserver=_env(_k("MATRIX_HOMESERVER")).strip(),
            matrix_user_id=_env(_k("MATRIX_USER_ID")).strip(),
            matrix_password=_env(_k("MATRIX_PASSWORD")).strip(),
            matrix_rooms=_env_list(_k("MATRIX_ROOMS"), []),
            matrix_store_path=_env_path(_k("MATRIX_STORE_PATH"), data_dir / "matrix_store"),
            digests_enabled=_env_bool(_k("DIGESTS_ENABLED"), True),
            morning_digest_at=_env(_k("MORNING_DIGEST_AT"), "08:30"),
            evening_digest_at=_env(_k("EVENING_DIGEST_AT"), "17:30"),
            admin_digest_at=_env(_k("ADMIN_DIGEST_AT"), "17:35"),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
