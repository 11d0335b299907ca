"""Shared pytest fixtures for outline-notes tests."""

import pytest
from dotenv import load_dotenv

from outline_notes.config import Config
from outline_notes.mcp.lifespan import AppContext
from outline_notes.store.tree import BlockStore
from outline_notes.sync.adapter import MemoryDirectoryAdapter
from outline_notes.sync.engine import SyncEngine

load_dotenv()


@pytest.fixture
def store():
    """An empty block store."""
    return BlockStore()


@pytest.fixture
def adapter():
    """An in-memory vault."""
    return MemoryDirectoryAdapter()


@pytest.fixture
async def engine(store, adapter):
    """A sync engine over the in-memory vault, closed after the test."""
    sync_engine = SyncEngine(store, adapter, export_debounce=0.01)
    yield sync_engine
    await sync_engine.close()


@pytest.fixture
def mock_config(tmp_path):
    """Create a Config pointing at a temporary vault."""
    return Config(vault_path=str(tmp_path / "vault"))


@pytest.fixture
def app_context(mock_config, store, engine):
    """AppContext wired to the in-memory store and engine."""
    return AppContext(config=mock_config, store=store, engine=engine)
