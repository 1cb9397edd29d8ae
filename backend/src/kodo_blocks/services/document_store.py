"""Document and snapshot storage.

- in-memory dicts for the fast path
- persisted as JSON files under the data dir so documents survive a restart

Documents carry a ``version`` that ``save_document`` checks when the caller
passes ``expected_version``; that is how read-modify-write cycles detect a
concurrent writer.
"""

from __future__ import annotations

import json
import logging
import os
import threading
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from .. import config
from ..errors import VersionConflictError

logger = logging.getLogger(__name__)

_document_store: dict[str, dict[str, Any]] = {}
_snapshot_store: dict[str, dict[str, Any]] = {}
_lock = threading.Lock()

_BACKEND_DIR = Path(__file__).resolve().parents[3]  # backend/
_DEFAULT_DATA_DIR = _BACKEND_DIR / ".data"


def _data_dir() -> Path:
    return Path(os.environ.get("KODO_DATA_DIR") or config.KODO_DATA_DIR or _DEFAULT_DATA_DIR)


def _documents_dir() -> Path:
    return _data_dir() / "documents"


def _snapshots_dir() -> Path:
    return _data_dir() / "snapshots"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _write_json(directory: Path, key: str, record: dict[str, Any]) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{key}.json"
    path.write_text(json.dumps(record, ensure_ascii=False), encoding="utf-8")


def _read_json(directory: Path, key: str) -> dict[str, Any] | None:
    path = directory / f"{key}.json"
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        logger.warning("Unreadable record %s", path)
        return None


def _scan(directory: Path) -> list[str]:
    if not directory.exists():
        return []
    return [p.stem for p in directory.glob("*.json")]


# =============================================================================
# Documents
# =============================================================================


def new_document_id() -> str:
    return str(uuid.uuid4())


def get_document(document_id: str) -> dict[str, Any] | None:
    """Retrieve a stored document by id."""
    rec = _document_store.get(document_id)
    if rec is not None:
        return rec
    rec = _read_json(_documents_dir(), document_id)
    if rec is not None:
        _document_store[document_id] = rec
    return rec


def save_document(record: dict[str, Any], expected_version: int | None = None) -> dict[str, Any]:
    """Store ``record`` and bump its version.

    With ``expected_version`` the write only happens if the stored document
    is still at that version.
    """
    document_id = record["id"]
    with _lock:
        current = get_document(document_id)
        current_version = int(current.get("version", 0)) if current else 0
        if expected_version is not None and current_version != expected_version:
            raise VersionConflictError(document_id, expected_version, current_version)
        now = _now()
        stored = {
            **record,
            "version": current_version + 1,
            "created_at": (current or {}).get("created_at") or record.get("created_at") or now,
            "updated_at": now,
        }
        _document_store[document_id] = stored
        _write_json(_documents_dir(), document_id, stored)
    return stored


def delete_document(document_id: str) -> bool:
    with _lock:
        existed = get_document(document_id) is not None
        _document_store.pop(document_id, None)
        path = _documents_dir() / f"{document_id}.json"
        if path.exists():
            path.unlink()
    return existed


def list_documents(page: int = 1, size: int = 20) -> dict[str, Any]:
    """List documents, most recently updated first."""
    ids = set(_document_store) | set(_scan(_documents_dir()))
    records = [rec for rec in (get_document(i) for i in ids) if rec is not None]
    records.sort(key=lambda r: r.get("updated_at") or "", reverse=True)
    total = len(records)
    page, size = max(page, 1), max(size, 1)
    start = (page - 1) * size
    end = start + size
    return {"documents": records[start:end], "total": total}


# =============================================================================
# Snapshots
# =============================================================================


def save_snapshot(
    *,
    entity_type: str,
    entity_id: str,
    tool_name: str,
    operation: str,
    data: Any,
) -> dict[str, Any]:
    """Persist a copy of ``data`` before it is modified.

    Raises if the snapshot cannot be written, so the caller does not go on
    to modify the entity.
    """
    token = uuid.uuid4().hex
    record = {
        "token": token,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "tool_name": tool_name,
        "operation": operation,
        "data": data,
        "created_at": _now(),
    }
    _write_json(_snapshots_dir(), token, record)
    _snapshot_store[token] = record
    logger.info("Snapshot %s saved for %s %s (%s)", token, entity_type, entity_id, tool_name)
    return record


def get_snapshot(token: str) -> dict[str, Any] | None:
    rec = _snapshot_store.get(token)
    if rec is not None:
        return rec
    rec = _read_json(_snapshots_dir(), token)
    if rec is not None:
        _snapshot_store[token] = rec
    return rec


def delete_snapshot(token: str) -> bool:
    existed = _snapshot_store.pop(token, None) is not None
    path = _snapshots_dir() / f"{token}.json"
    if path.exists():
        path.unlink()
        existed = True
    return existed


def list_snapshots(entity_type: str | None = None, entity_id: str | None = None, limit: int = 50) -> list[dict[str, Any]]:
    """Snapshots for an entity, most recent first (without their data)."""
    tokens = set(_snapshot_store) | set(_scan(_snapshots_dir()))
    rows = []
    for token in tokens:
        rec = get_snapshot(token)
        if rec is None:
            continue
        if entity_type and rec.get("entity_type") != entity_type:
            continue
        if entity_id and rec.get("entity_id") != entity_id:
            continue
        rows.append({k: v for k, v in rec.items() if k != "data"})
    rows.sort(key=lambda r: r.get("created_at") or "", reverse=True)
    return rows[:limit]


def cleanup_old_snapshots(retention_days: int | None = None) -> int:
    """Delete snapshots older than the retention period; returns how many."""
    days = config.SNAPSHOT_RETENTION_DAYS if retention_days is None else retention_days
    cutoff = (datetime.now(timezone.utc) - timedelta(days=days)).isoformat()
    removed = 0
    for token in set(_snapshot_store) | set(_scan(_snapshots_dir())):
        rec = get_snapshot(token)
        if rec is None or (rec.get("created_at") or "") >= cutoff:
            continue
        delete_snapshot(token)
        removed += 1
    if removed:
        logger.info("Removed %d snapshots older than %d days", removed, days)
    return removed
