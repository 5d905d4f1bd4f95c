"""Shared fixtures — history DB paths and stores, mock providers."""

from unittest.mock import MagicMock

import pytest

from codexflow.storage.history_store import HistoryStore


@pytest.fixture
def db_path(tmp_path):
    """Per-test SQLite path (created on first HistoryStore open)."""
    return tmp_path / "data" / "codexflow.db"


@pytest.fixture
def history_store(db_path):
    """Per-test HistoryStore with a small cap so eviction is easy to hit."""
    store = HistoryStore(db_path, max_items=3)
    yield store
    store.close()


@pytest.fixture
def provider():
    """Mock provider; tests set ``provider.generate.return_value`` or ``side_effect``."""
    mock = MagicMock()
    mock.generate.return_value = ""
    return mock
