"""
stationrest - async REST client for the station operations portal backend.

Provides session-aware access to the Auth, Database (PostgREST) and
Storage APIs.

Example usage:
    from stationrest import create_client

    client = create_client(url="https://project.example.com", key="anon-key")

    # Auth
    result = await client.auth.sign_in_with_password("user@example.com", "password123")

    # Database queries
    result = await client.from_("employees").select("*").eq("station", "MOBIL").limit(10).execute()

    # Storage
    url = client.storage.get_public_url("employee-photos", "42/avatar.png")
"""

from .client import StationClient, ClientOptions, create_client
from .database import QueryBuilder
from .session import SessionStore, MemoryStorage, FileStorage, StorageBackend
from .types import (
    RestResponse,
    VoidResponse,
    RestError,
    User,
    Session,
    AuthData,
    FileObject,
)

__version__ = "1.0.0"

__all__ = [
    "StationClient",
    "ClientOptions",
    "create_client",
    "QueryBuilder",
    "SessionStore",
    "MemoryStorage",
    "FileStorage",
    "StorageBackend",
    "RestResponse",
    "VoidResponse",
    "RestError",
    "User",
    "Session",
    "AuthData",
    "FileObject",
]
