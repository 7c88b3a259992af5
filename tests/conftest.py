from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterator
from typing import Any

import pytest
from fastapi.testclient import TestClient

from jobly.core.config import get_settings
from jobly.core.security import create_token
from jobly.main import app


class RecordingDatabase:
    """Query executor that records statements and replays queued results.

    A queued ``BaseException`` instance is raised instead of returned.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self._results: deque[Any] = deque()

    def queue(self, *results: Any) -> None:
        self._results.extend(results)

    async def fetch(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        result = self._next(sql, args)
        return list(result) if result is not None else []

    async def fetchrow(self, sql: str, *args: Any) -> dict[str, Any] | None:
        result = self._next(sql, args)
        return dict(result) if result is not None else None

    @property
    def statements(self) -> list[str]:
        return [sql for sql, _ in self.calls]

    def _next(self, sql: str, args: tuple[Any, ...]) -> Any:
        self.calls.append((" ".join(sql.split()), args))
        result = self._results.popleft() if self._results else None
        if isinstance(result, BaseException):
            raise result
        return result


@pytest.fixture
def recording_db() -> RecordingDatabase:
    return RecordingDatabase()


@pytest.fixture
def api_client() -> Iterator[TestClient]:
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def bearer() -> Callable[..., dict[str, str]]:
    def _bearer(username: str, *, is_admin: bool = False) -> dict[str, str]:
        token = create_token({"username": username, "isAdmin": is_admin}, get_settings())
        return {"Authorization": f"Bearer {token}"}

    return _bearer
