"""
AuthClient - Authentication operations for stationrest.

Handles sign up, password sign in, sign out, session validation and
password management. The session lives in the SessionStore; this module
is the only writer besides expiry cleanup in the store itself.
Uses Result pattern - never raises exceptions.
"""

import logging
from typing import Optional, Dict, Any

from .http import HTTPExecutor
from .session import SessionStore
from .types import (
    RestResponse,
    RestError,
    VoidResponse,
    User,
    Session,
    AuthData,
)

logger = logging.getLogger(__name__)


def _not_authenticated() -> RestError:
    return RestError(message="Not authenticated", code="NOT_AUTHENTICATED")


def _storage_error(e: OSError) -> RestError:
    return RestError(message=f"Session storage failed: {e}", code="STORAGE_ERROR")


class AuthClient:
    """Authentication client for user management."""

    def __init__(self, executor: HTTPExecutor, session_store: SessionStore) -> None:
        self._executor = executor
        self._store = session_store

    def get_token(self) -> Optional[str]:
        """Get the current access token, if the session is still valid."""
        current = self._store.load()
        return current.access_token if current else None

    def _parse_token_payload(self, payload: Dict[str, Any]) -> Session:
        return Session.from_token_payload(payload, now=self._store.now())

    def _save(self, session: Session) -> Optional[RestError]:
        try:
            self._store.save(session)
        except OSError as e:
            logger.warning("Could not persist session: %s", e)
            return _storage_error(e)
        return None

    def _clear(self) -> Optional[RestError]:
        try:
            self._store.clear()
        except OSError as e:
            logger.warning("Could not clear session: %s", e)
            return _storage_error(e)
        return None

    async def sign_up(
        self,
        email: str,
        password: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> RestResponse[User]:
        """Sign up a new user.

        options may carry "data" (user metadata). If the backend confirms
        the account immediately it answers with a session, which is saved.
        """
        payload: Dict[str, Any] = {
            "email": email,
            "password": password,
            "data": (options or {}).get("data"),
        }
        result = await self._executor.request(
            "POST", "/auth/v1/signup", include_auth=False, json_body=payload
        )
        if result.error is not None:
            return RestResponse(data=None, error=result.error)

        body = result.data or {}
        try:
            if not body.get("access_token"):
                user_data = body.get("user") or body
                return RestResponse(data=User.from_dict(user_data), error=None)
            session = self._parse_token_payload(body)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            return RestResponse(
                data=None,
                error=RestError(message=f"Malformed signup response: {e}", details=body),
            )

        storage_error = self._save(session)
        if storage_error is not None:
            return RestResponse(data=None, error=storage_error)
        return RestResponse(data=session.user, error=None)

    async def sign_in_with_password(
        self,
        email: str,
        password: str,
    ) -> RestResponse[AuthData]:
        """Sign in with email and password, replacing any stored session."""
        result = await self._executor.request(
            "POST",
            "/auth/v1/token?grant_type=password",
            include_auth=False,
            json_body={"email": email, "password": password},
        )
        if result.error is not None:
            return RestResponse(data=AuthData(user=None, session=None), error=result.error)

        try:
            session = self._parse_token_payload(result.data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            return RestResponse(
                data=AuthData(user=None, session=None),
                error=RestError(message=f"Malformed token response: {e}", details=result.data),
            )

        storage_error = self._save(session)
        if storage_error is not None:
            return RestResponse(data=AuthData(user=None, session=None), error=storage_error)
        return RestResponse(data=AuthData(user=session.user, session=session), error=None)

    async def sign_out(self) -> VoidResponse:
        """Sign out the current user.

        The revoke call is best effort; the local session is cleared
        whatever its outcome.
        """
        error: Optional[RestError] = None
        if self._store.load() is not None:
            result = await self._executor.request("POST", "/auth/v1/logout")
            error = result.error
            if error is not None:
                logger.warning("Logout request failed: %s", error.message)

        storage_error = self._clear()
        return VoidResponse(error=storage_error or error)

    async def get_session(self) -> RestResponse[Session]:
        """Validate the stored session against the server.

        Returns data=None when there is no usable session. A rejected token
        clears the local copy.
        """
        if self._store.load() is None:
            return RestResponse(data=None, error=None)

        result = await self._executor.request("GET", "/auth/v1/user")
        if result.error is not None:
            if result.error.status is None:
                # Transport failure: the token was never judged, keep it.
                return RestResponse(data=None, error=result.error)
            logger.info("Session rejected by server (%s), clearing", result.error.status)
            return RestResponse(data=None, error=self._clear())

        stored = self._store.load()
        if stored is None:
            return RestResponse(data=None, error=None)

        try:
            user = User.from_dict(result.data)
        except (KeyError, TypeError, AttributeError) as e:
            return RestResponse(
                data=None,
                error=RestError(message=f"Malformed user response: {e}", details=result.data),
            )

        session = Session(
            access_token=stored.access_token,
            expires_at=stored.expires_at,
            user=user,
            refresh_token=stored.refresh_token,
            token_type=stored.token_type,
        )
        storage_error = self._save(session)
        if storage_error is not None:
            return RestResponse(data=None, error=storage_error)
        return RestResponse(data=session, error=None)

    async def get_user(self) -> RestResponse[User]:
        """Get the current authenticated user from the server."""
        if self._store.load() is None:
            return RestResponse(data=None, error=_not_authenticated())

        result = await self._executor.request("GET", "/auth/v1/user")
        if result.error is not None:
            return RestResponse(data=None, error=result.error)

        try:
            return RestResponse(data=User.from_dict(result.data), error=None)
        except (KeyError, TypeError, AttributeError) as e:
            return RestResponse(
                data=None,
                error=RestError(message=f"Malformed user response: {e}", details=result.data),
            )

    async def reset_password_for_email(
        self,
        email: str,
        redirect_to: Optional[str] = None,
    ) -> VoidResponse:
        """Send a password recovery email."""
        payload: Dict[str, Any] = {"email": email}
        if redirect_to:
            payload["redirect_to"] = redirect_to

        result = await self._executor.request(
            "POST", "/auth/v1/recover", include_auth=False, json_body=payload
        )
        return VoidResponse(error=result.error)

    async def update_user(
        self,
        password: Optional[str] = None,
        email: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> RestResponse[User]:
        """Update the signed-in user's credentials or metadata."""
        current = self._store.load()
        if current is None:
            return RestResponse(data=None, error=_not_authenticated())

        payload: Dict[str, Any] = {}
        if password is not None:
            payload["password"] = password
        if email is not None:
            payload["email"] = email
        if data is not None:
            payload["data"] = data

        result = await self._executor.request("PUT", "/auth/v1/user", json_body=payload)
        if result.error is not None:
            return RestResponse(data=None, error=result.error)

        try:
            user = User.from_dict(result.data)
        except (KeyError, TypeError, AttributeError) as e:
            return RestResponse(
                data=None,
                error=RestError(message=f"Malformed user response: {e}", details=result.data),
            )

        storage_error = self._save(
            Session(
                access_token=current.access_token,
                expires_at=current.expires_at,
                user=user,
                refresh_token=current.refresh_token,
                token_type=current.token_type,
            )
        )
        return RestResponse(data=user, error=storage_error)

    async def refresh_session(self) -> RestResponse[Session]:
        """Exchange the stored refresh token for a new session.

        Never called implicitly. A rejected refresh token clears the session.
        """
        current = self._store.load()
        if current is None or not current.refresh_token:
            return RestResponse(
                data=None,
                error=RestError(message="No refresh token", code="NO_REFRESH_TOKEN"),
            )

        result = await self._executor.request(
            "POST",
            "/auth/v1/token?grant_type=refresh_token",
            include_auth=False,
            json_body={"refresh_token": current.refresh_token},
        )
        if result.error is not None:
            if result.error.status is not None:
                self._clear()
            return RestResponse(data=None, error=result.error)

        try:
            session = self._parse_token_payload(result.data)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            return RestResponse(
                data=None,
                error=RestError(message=f"Malformed token response: {e}", details=result.data),
            )

        storage_error = self._save(session)
        if storage_error is not None:
            return RestResponse(data=None, error=storage_error)
        return RestResponse(data=session, error=None)
