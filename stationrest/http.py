"""
HTTPExecutor - shared header and request logic.

Every call goes through request(), which maps transport errors, bad JSON
and non-2xx responses onto the RestResponse envelope.
"""

import json
import logging
from typing import Any, Dict, Optional

import aiohttp

from .session import SessionStore
from .types import RestResponse, RestError

logger = logging.getLogger(__name__)


class HTTPExecutor:
    """Builds headers and performs HTTP calls against the backend."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        session_store: SessionStore,
        session: Optional[aiohttp.ClientSession] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._session_store = session_store
        self._session = session
        self._owns_session = session is None
        self._custom_headers = headers or {}

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def session_store(self) -> SessionStore:
        return self._session_store

    def _get_session(self) -> aiohttp.ClientSession:
        # Created lazily so it binds to the running event loop.
        if self._session is None:
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    def get_headers(self, include_auth: bool = True) -> Dict[str, str]:
        """Build request headers.

        The bearer header is only attached when include_auth is set and a
        non-expired session is stored.
        """
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        headers.update(self._custom_headers)
        headers["apikey"] = self._api_key
        if include_auth:
            current = self._session_store.load()
            if current is not None:
                headers["Authorization"] = f"Bearer {current.access_token}"
        return headers

    async def request(
        self,
        method: str,
        path: str,
        *,
        include_auth: bool = True,
        json_body: Any = None,
        data: Any = None,
        headers: Optional[Dict[str, Optional[str]]] = None,
        raw: bool = False,
    ) -> RestResponse[Any]:
        """Perform a request and wrap the outcome in an envelope.

        A None value in headers removes that header from the request.
        With raw set, a successful body is returned as bytes.
        """
        url = f"{self._base_url}{path}"
        logger.debug("%s %s", method, url)
        try:
            request_headers = self.get_headers(include_auth)
            for name, value in (headers or {}).items():
                if value is None:
                    request_headers.pop(name, None)
                else:
                    request_headers[name] = value

            async with self._get_session().request(
                method,
                url,
                json=json_body,
                data=data,
                headers=request_headers,
            ) as response:
                if not response.ok:
                    body = await self._read_error_body(response)
                    logger.debug("%s %s -> %s", method, url, response.status)
                    return RestResponse(
                        data=None,
                        error=RestError.from_body(body, response.status),
                    )

                if raw:
                    return RestResponse(data=await response.read(), error=None)

                text = await response.text()
                return RestResponse(
                    data=json.loads(text) if text.strip() else None,
                    error=None,
                )
        except Exception as e:
            logger.warning("%s %s failed: %s", method, url, e)
            return RestResponse(
                data=None,
                error=RestError(message=str(e), code="NETWORK_ERROR"),
            )

    async def _read_error_body(self, response: aiohttp.ClientResponse) -> Any:
        # Undecodable bytes must not hide the status code.
        text = (await response.read()).decode("utf-8", errors="replace")
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError:
            return {"message": text}

    async def close(self) -> None:
        """Close the HTTP session if this executor created it."""
        if self._owns_session and self._session is not None:
            await self._session.close()
        self._session = None
