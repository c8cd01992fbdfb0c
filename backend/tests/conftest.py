from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from memoserver.config import Settings
from memoserver.main import create_app
from memoserver.storage import FileMemoStore


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture()
def clock():
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture()
def store(tmp_path):
    # isolate data dir per test
    return FileMemoStore(tmp_path)


@pytest.fixture()
def client(tmp_path, store, clock):
    settings = Settings(data_dir=tmp_path, sweep_enabled=False)
    app = create_app(settings, store=store, clock=clock)
    return TestClient(app)
