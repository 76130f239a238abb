"""
tests/conftest.py

Shared fixtures: an isolated Config and a temporary SQLite entry queue.
Nothing here touches the network or real credentials.
"""

from __future__ import annotations

from pathlib import Path
from typing import Generator

import pytest

from config import Config
from entry_queue import EntryQueue
from tests.helpers import SECRET


@pytest.fixture
def config(tmp_path: Path) -> Config:
    """Valid configuration pointing at unroutable test hosts."""
    return Config(
        miniflux_url="http://miniflux.invalid",
        miniflux_username="admin",
        miniflux_password="hunter2",
        webhook_secret=SECRET,
        ai_url="http://ai.invalid",
        ai_token="ai-token",
        queue_path=tmp_path / "queue.db",
        log_dir=tmp_path / "log",
        request_timeout=5,
    )


@pytest.fixture
def queue(tmp_path: Path) -> Generator[EntryQueue, None, None]:
    """Fresh on-disk queue per test."""
    q = EntryQueue(tmp_path / "queue.db")
    yield q
    q.close()
