"""Project-level configuration, path helpers and environment defaults."""

import os
from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_DB_PATH = DATA_DIR / "playbook.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DEFAULT_TIMEOUT_MS = 30000
DEFAULT_TIMEOUT_TEXT = "Timed out! Please start again."
DEFAULT_IMPROV_FALLBACK = "unknown"


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve DATABASE_URL to an absolute path."""
    if not env_value:
        DATA_DIR.mkdir(parents=True, exist_ok=True)
        return DEFAULT_DB_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate


def dialogue_defaults() -> dict:
    """Dialogue config fallbacks, read from env at call time."""
    return {
        "send_replies": False,
        "timeout": int(os.getenv("DIALOGUE_TIMEOUT", DEFAULT_TIMEOUT_MS)),
        "timeout_text": os.getenv("DIALOGUE_TIMEOUT_TEXT", DEFAULT_TIMEOUT_TEXT),
    }


def director_defaults() -> dict:
    """Director config fallbacks."""
    return {
        "type": "whitelist",
        "scope": "username",
        "denied_reply": os.getenv("DENIED_REPLY") or None,
    }


def director_names(list_type: str, scope: str) -> list[str]:
    """Names preloaded for a director from e.g. WHITELIST_USERNAMES."""
    suffix = "USERNAMES" if scope == "username" else "ROOMS"
    value = os.getenv(f"{list_type.upper()}_{suffix}")
    if not value:
        return []
    return [name.strip() for name in value.split(",") if name.strip()]


def improv_defaults() -> dict:
    """Improv config fallbacks."""
    return {
        "save": True,
        "fallback": os.getenv("IMPROV_FALLBACK", DEFAULT_IMPROV_FALLBACK),
        "replacement": os.getenv("IMPROV_REPLACEMENT") or None,
    }
