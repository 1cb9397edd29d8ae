"""Load settings from environment (.env and env vars)."""

from __future__ import annotations

import os
from pathlib import Path

# Load .env from backend root if present
_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
if _env_path.exists():
    from dotenv import load_dotenv
    load_dotenv(_env_path)


def _str(key: str, default: str = "") -> str:
    return (os.environ.get(key) or "").strip() or default


def _int(key: str, default: int) -> int:
    try:
        return int(_str(key))
    except ValueError:
        return default


# Storage (the store re-reads KODO_DATA_DIR per call so tests can redirect it)
KODO_DATA_DIR = _str("KODO_DATA_DIR")
SNAPSHOT_RETENTION_DAYS = _int("KODO_SNAPSHOT_RETENTION_DAYS", 30)

# Document structure
PREVIEW_LENGTH = _int("KODO_PREVIEW_LENGTH", 120)

# Logging
LOG_LEVEL = _str("KODO_LOG_LEVEL", "INFO").upper()
