"""
Shared pytest fixtures.

Every test that touches the database gets a clean temporary DATA_DIR via the
`tmp_data_dir` fixture so tests are fully isolated from each other and from
the real size_chart.db.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# ── Make the project root importable without installing the package ────────────
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(autouse=True)
def tmp_data_dir(tmp_path, monkeypatch):
    """
    Redirect DATA_DIR to a fresh tmp directory for every test.
    This gives each test a clean SQLite file and prevents cross-test pollution.
    """
    data = tmp_path / "data"
    data.mkdir()
    monkeypatch.setenv("DATA_DIR", str(data))

    # Patch the module-level DB_PATH that was already computed at import time
    import database
    monkeypatch.setattr(database, "DB_PATH", str(data / "size_chart.db"))
    monkeypatch.setattr(database, "_DATA_DIR", data)

    # Also reset the internal lock so tests don't share state
    import asyncio
    monkeypatch.setattr(database, "_lock", asyncio.Lock())

    yield data


@pytest.fixture
def nonces():
    from nonces import NonceManager
    return NonceManager(secret="test-secret", lifetime_secs=86400)


@pytest.fixture
def media():
    from media_library import MediaLibrary
    return MediaLibrary(base_url="https://cdn.example/img")


@pytest.fixture
def service(nonces, media):
    from settings_store import ProductSettingsStore
    from size_chart import ChartLookupService
    return ChartLookupService(ProductSettingsStore(), media, nonces)
