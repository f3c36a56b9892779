from __future__ import annotations

import pytest

from tickerlens import client
from tickerlens.notifications import Notifier
from tickerlens.storage import StorageManager

from .helpers import AlertRecorder, FakeWatchlist


@pytest.fixture
def watchlist() -> FakeWatchlist:
    return FakeWatchlist()


@pytest.fixture
def alert_recorder() -> AlertRecorder:
    return AlertRecorder()


@pytest.fixture
def storage(tmp_path) -> StorageManager:
    return StorageManager(tmp_path / "storage.json")


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


@pytest.fixture(autouse=True)
def _reset_client_limiter():
    client._limiter.reset()
    yield
    client._limiter.reset()
