"""
StationClient - Main client class for the stationrest package.

Entry point for all operations. One client owns one session store and one
HTTP session; pass it to call sites instead of sharing a global.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Optional, Dict, Any

import aiohttp

from .auth import AuthClient
from .database import PostgrestClient, QueryBuilder
from .http import HTTPExecutor
from .session import DEFAULT_STORAGE_KEY, FileStorage, SessionStore, StorageBackend
from .storage import StorageClient

logger = logging.getLogger(__name__)

URL_ENV = "STATIONREST_URL"
KEY_ENV = "STATIONREST_KEY"
SESSION_FILE_ENV = "STATIONREST_SESSION_FILE"


@dataclass
class ClientOptions:
    """Optional client settings."""
    headers: Dict[str, str] = field(default_factory=dict)
    storage: Optional[StorageBackend] = None
    storage_key: str = DEFAULT_STORAGE_KEY


class StationClient:
    """
    Main client class.

    Example:
        async with StationClient(url="https://project.example.com", key="anon-key") as client:
            await client.auth.sign_in_with_password("user@example.com", "password")
            result = await client.from_("products").select().eq("category", "fuel").execute()
    """

    def __init__(
        self,
        url: str,
        key: str,
        options: Optional[ClientOptions] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            url: Base URL of the backend
            key: API key sent with every request
            options: Custom headers and session storage
            session: aiohttp session to reuse; one is created on first use otherwise
        """
        if not url:
            raise ValueError("StationClient: url is required")
        if not key:
            raise ValueError("StationClient: key is required")

        self._options = options or ClientOptions()
        self._base_url = url.rstrip("/")

        self.session_store = SessionStore(
            self._options.storage,
            key=self._options.storage_key,
        )
        self._executor = HTTPExecutor(
            self._base_url,
            key,
            self.session_store,
            session=session,
            headers=self._options.headers,
        )

        self.auth = AuthClient(self._executor, self.session_store)
        self._db = PostgrestClient(self._executor)
        self.storage = StorageClient(self._executor)

    @property
    def url(self) -> str:
        return self._base_url

    def from_(self, table: str) -> QueryBuilder[Dict[str, Any]]:
        """
        Create a new query builder for a table.
        Uses from_ to avoid Python keyword clash.
        """
        return self._db.from_(table)

    async def close(self) -> None:
        """Close the client and release resources."""
        await self._executor.close()

    async def __aenter__(self) -> "StationClient":
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: Any,
        exc_val: Any,
        exc_tb: Any,
    ) -> None:
        """Async context manager exit."""
        await self.close()


def create_client(
    url: Optional[str] = None,
    key: Optional[str] = None,
    options: Optional[ClientOptions] = None,
    session: Optional[aiohttp.ClientSession] = None,
) -> StationClient:
    """Build a client, filling missing settings from the environment.

    STATIONREST_URL and STATIONREST_KEY supply url and key.
    STATIONREST_SESSION_FILE, when set and no storage is given, persists
    the session in that file.
    """
    url = url or os.environ.get(URL_ENV)
    key = key or os.environ.get(KEY_ENV)
    if not url or not key:
        raise ValueError(f"create_client: url and key are required (or set {URL_ENV} and {KEY_ENV})")

    options = options or ClientOptions()
    session_file = os.environ.get(SESSION_FILE_ENV)
    if options.storage is None and session_file:
        logger.debug("Persisting session in %s", session_file)
        options = replace(options, storage=FileStorage(session_file))

    return StationClient(url, key, options=options, session=session)
