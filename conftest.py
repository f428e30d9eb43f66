from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture
def memory_db(monkeypatch):
    """Point the engine at a fresh in-memory sqlite database."""
    from fluxfeed import db as dbmod

    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    dbmod._engine = None
    dbmod.init_db()
    yield dbmod.get_engine()
    dbmod._engine = None


@pytest.fixture
def storage(memory_db):
    from fluxfeed.storage import Storage

    return Storage()
