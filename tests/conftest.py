import os
from datetime import datetime, timedelta
from unittest.mock import create_autospec

import pytest
from fastapi.testclient import TestClient

# Keep tests off the filesystem unless a test builds its own SQLite repository
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from todo_api.clock import DateTimeService  # noqa: E402
from todo_api.db import SQLiteRepository  # noqa: E402
from todo_api.main import app  # noqa: E402
from todo_api.repositories import InMemoryRepository  # noqa: E402
from todo_api.services import TodoService, get_todo_service  # noqa: E402

CURRENT_TIME = datetime(2024, 1, 15, 10, 30, 0)


class StubClock(DateTimeService):
    """Clock returning a fixed time that tests move forward explicitly."""

    def __init__(self, current: datetime = CURRENT_TIME) -> None:
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock():
    return StubClock()


@pytest.fixture(params=["memory", "sqlite"])
def repository(request, clock, tmp_path):
    if request.param == "sqlite":
        return SQLiteRepository(str(tmp_path / "todos.db"), clock=clock)
    return InMemoryRepository(clock=clock)


@pytest.fixture
def service_mock():
    """Autospec'd TodoService wired into the app in place of the real one."""
    mock = create_autospec(TodoService, instance=True)
    app.dependency_overrides[get_todo_service] = lambda: mock
    yield mock
    app.dependency_overrides.pop(get_todo_service, None)


@pytest.fixture
def mocked_client(service_mock):
    return TestClient(app)


@pytest.fixture
def client(clock, tmp_path):
    """Client backed by a fresh SQLite database and the stub clock."""
    service = TodoService(SQLiteRepository(str(tmp_path / "api.db"), clock=clock))
    app.dependency_overrides[get_todo_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.pop(get_todo_service, None)
