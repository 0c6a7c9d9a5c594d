"""
Session persistence for the stationrest client.

SessionStore keeps the single auth session record behind a small
get/set/remove storage interface. Expired or malformed records are
discarded on load.
"""

import json
import logging
import os
import time
from typing import Callable, Dict, Optional, Protocol

from .types import Session

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "stationrest.auth.session"


class StorageBackend(Protocol):
    """Minimal key-value storage used to persist the session."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def remove(self, key: str) -> None:
        ...


class MemoryStorage:
    """Process-local storage. Lost when the process exits."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove(self, key: str) -> None:
        self._items.pop(key, None)


class FileStorage:
    """Durable storage backed by a JSON file of key -> value strings."""

    def __init__(self, path: str) -> None:
        self._path = path

    def _read(self) -> Dict[str, str]:
        try:
            with open(self._path, "r", encoding="utf-8") as fh:
                data = json.load(fh)
        except FileNotFoundError:
            return {}
        except ValueError:
            logger.warning("Ignoring unreadable session file %s", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, items: Dict[str, str]) -> None:
        directory = os.path.dirname(self._path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self._path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(items, fh)
        os.replace(tmp_path, self._path)

    def get(self, key: str) -> Optional[str]:
        value = self._read().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        items = self._read()
        items[key] = value
        self._write(items)

    def remove(self, key: str) -> None:
        items = self._read()
        if key in items:
            del items[key]
            self._write(items)


class SessionStore:
    """Loads, saves and clears the persisted session record."""

    def __init__(
        self,
        storage: Optional[StorageBackend] = None,
        key: str = DEFAULT_STORAGE_KEY,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._storage: StorageBackend = storage if storage is not None else MemoryStorage()
        self._key = key
        self._clock = clock

    def now(self) -> float:
        return self._clock()

    def is_expired(self, session: Session) -> bool:
        return session.expires_at <= self._clock()

    def load(self) -> Optional[Session]:
        """Return the stored session, or None if absent, malformed or expired.

        Anything other than a live session is removed from storage. An
        unreadable storage backend counts as no session.
        """
        try:
            raw = self._storage.get(self._key)
        except OSError as e:
            logger.warning("Could not read session from storage: %s", e)
            return None
        if raw is None:
            return None

        try:
            session = Session.from_dict(json.loads(raw))
        except (ValueError, KeyError, TypeError, AttributeError, OverflowError):
            logger.warning("Discarding malformed session record")
            self._discard()
            return None

        if self.is_expired(session):
            logger.info("Stored session expired at %s, clearing", session.expires_at)
            self._discard()
            return None

        return session

    def _discard(self) -> None:
        try:
            self.clear()
        except OSError as e:
            logger.warning("Could not remove stale session record: %s", e)

    def save(self, session: Session) -> None:
        """Overwrite the stored record with session.

        Storage failures propagate as OSError.
        """
        self._storage.set(self._key, json.dumps(session.to_dict()))
        logger.info("Saved session for user %s", session.user.id)

    def clear(self) -> None:
        self._storage.remove(self._key)
