import itertools

import pytest
from fastapi.testclient import TestClient


@pytest.fixture()
def client() -> TestClient:
    from kodo_blocks.main import app

    return TestClient(app)


@pytest.fixture()
def ids():
    """Deterministic block id factory: block-1, block-2, ..."""
    counter = itertools.count(1)
    return lambda: f"block-{next(counter)}"


@pytest.fixture(autouse=True)
def _clear_in_memory_stores(tmp_path, monkeypatch):
    # Ensure deterministic tests across runs.
    from kodo_blocks.services import document_store

    # Use a temp data dir for persisted documents and snapshots in tests
    monkeypatch.setenv("KODO_DATA_DIR", str(tmp_path))

    document_store._document_store.clear()
    document_store._snapshot_store.clear()
    yield
    document_store._document_store.clear()
    document_store._snapshot_store.clear()
