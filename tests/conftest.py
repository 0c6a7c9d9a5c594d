"""
Shared fixtures: a mocked aiohttp session and a session store with a fixed clock.
"""

import json
from typing import Any, Dict, Optional
from unittest.mock import MagicMock

import pytest
from aiohttp import ClientSession

from stationrest.http import HTTPExecutor
from stationrest.session import MemoryStorage, SessionStore

BASE_URL = "https://api.test.com"
API_KEY = "test-api-key"
NOW = 1_700_000_000


class MockResponse:
    """Mock aiohttp response."""

    def __init__(self, data: Any = None, status: int = 200) -> None:
        self._data = data
        self.status = status
        self.ok = status < 400

    async def text(self) -> str:
        if self._data is None:
            return ""
        if isinstance(self._data, bytes):
            return self._data.decode()
        if isinstance(self._data, str):
            return self._data
        return json.dumps(self._data)

    async def read(self) -> bytes:
        if isinstance(self._data, bytes):
            return self._data
        return (await self.text()).encode()

    async def __aenter__(self) -> "MockResponse":
        return self

    async def __aexit__(self, *args: object) -> None:
        pass


def user_payload(email: str = "test@example.com", user_id: str = "user-1") -> Dict[str, Any]:
    return {
        "id": user_id,
        "email": email,
        "user_metadata": {"role": "manager"},
        "created_at": "2024-01-01T00:00:00Z",
    }


def token_payload(
    email: str = "test@example.com",
    access_token: str = "access-token",
    expires_at: Optional[int] = NOW + 3600,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "access_token": access_token,
        "refresh_token": "refresh-token",
        "token_type": "bearer",
        "expires_in": 3600,
        "user": user_payload(email),
    }
    if expires_at is not None:
        payload["expires_at"] = expires_at
    return payload


def request_call(mock_session: MagicMock, index: int = -1) -> Any:
    """Return (method, url, kwargs) of a recorded request."""
    call = mock_session.request.call_args_list[index]
    return call.args[0], call.args[1], call.kwargs


class BrokenStorage(MemoryStorage):
    """Backend whose every operation fails like an unwritable disk."""

    def get(self, key: str) -> Optional[str]:
        raise OSError("disk unavailable")

    def set(self, key: str, value: str) -> None:
        raise OSError("disk unavailable")

    def remove(self, key: str) -> None:
        raise OSError("disk unavailable")


class Clock:
    """Settable clock for expiry tests."""

    def __init__(self, now: float = NOW) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def mock_session() -> MagicMock:
    """Create mock aiohttp session."""
    return MagicMock(spec=ClientSession)


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def session_store(storage: MemoryStorage, clock: Clock) -> SessionStore:
    return SessionStore(storage, clock=clock)


@pytest.fixture
def executor(mock_session: MagicMock, session_store: SessionStore) -> HTTPExecutor:
    return HTTPExecutor(BASE_URL, API_KEY, session_store, session=mock_session)
