"""
Type definitions for the stationrest client.
All types are fully annotated for mypy strict mode.
"""

import math
import time
from dataclasses import dataclass, field
from typing import TypeVar, Generic, Optional, Dict, Any, List

T = TypeVar("T")


def _epoch_seconds(value: Any) -> int:
    """Coerce an expiry timestamp to int seconds, rejecting NaN and infinities."""
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"expires_at is not finite: {value!r}")
    try:
        return int(value)
    except OverflowError as e:
        raise ValueError(f"expires_at out of range: {value!r}") from e


@dataclass
class RestError:
    """Standard error type for all client operations."""
    message: str
    status: Optional[int] = None
    code: Optional[str] = None
    details: Optional[Any] = None

    @classmethod
    def from_body(cls, body: Any, status: Optional[int] = None) -> "RestError":
        """Build an error from a server response body, kept verbatim in details."""
        if isinstance(body, dict):
            message = (
                body.get("message")
                or body.get("msg")
                or body.get("error_description")
                or body.get("error")
            )
            code = body.get("code") or body.get("error_code")
            return cls(
                message=str(message) if message else f"Request failed with status {status}",
                status=status,
                code=str(code) if code is not None else None,
                details=body,
            )
        return cls(
            message=str(body) if body else f"Request failed with status {status}",
            status=status,
            details=body,
        )


@dataclass
class RestResponse(Generic[T]):
    """Standard {data, error} envelope.
    Uses Result pattern - never raises exceptions."""
    data: Optional[T]
    error: Optional[RestError]


@dataclass
class VoidResponse:
    """{error} envelope for operations that return no data."""
    error: Optional[RestError] = None


@dataclass
class User:
    """User snapshot returned by the auth endpoints."""
    id: str
    email: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    email_confirmed_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        metadata = data.get("user_metadata")
        if metadata is None:
            metadata = data.get("metadata")
        return cls(
            id=str(data["id"]),
            email=data.get("email") or "",
            metadata=dict(metadata or {}),
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
            email_confirmed_at=data.get("email_confirmed_at"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "user_metadata": self.metadata,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "email_confirmed_at": self.email_confirmed_at,
        }


@dataclass
class Session:
    """Authenticated session. expires_at is in epoch seconds."""
    access_token: str
    expires_at: int
    user: User
    refresh_token: Optional[str] = None
    token_type: str = "bearer"

    @classmethod
    def from_token_payload(
        cls, data: Dict[str, Any], now: Optional[float] = None
    ) -> "Session":
        """Build a session from a token endpoint response."""
        expires_at = data.get("expires_at")
        if expires_at is None:
            issued = time.time() if now is None else now
            expires_at = int(issued) + _epoch_seconds(data.get("expires_in") or 0)
        return cls(
            access_token=data["access_token"],
            expires_at=_epoch_seconds(expires_at),
            user=User.from_dict(data["user"]),
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type") or "bearer",
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        return cls(
            access_token=data["access_token"],
            expires_at=_epoch_seconds(data["expires_at"]),
            user=User.from_dict(data["user"]),
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type") or "bearer",
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_at": self.expires_at,
            "token_type": self.token_type,
            "user": self.user.to_dict(),
        }


@dataclass
class AuthData:
    """Combined auth response with user and session."""
    user: Optional[User]
    session: Optional[Session]


@dataclass
class FileObject:
    """File object returned from storage uploads."""
    name: str
    bucket: str
    path: str
    key: Optional[str] = None
    size: Optional[int] = None
    content_type: Optional[str] = None


# Type aliases for common response types
Row = Dict[str, Any]
AuthResponse = RestResponse[AuthData]
UserResponse = RestResponse[User]
SessionResponse = RestResponse[Session]
FileResponse = RestResponse[FileObject]
ListResponse = RestResponse[List[Row]]
