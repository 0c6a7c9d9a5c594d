"""
StorageClient - File storage operations for stationrest.

Upload, download and delete objects in storage buckets, and build
public URLs.
"""

import os
from typing import BinaryIO, List, Optional, Dict, Any, Union
from urllib.parse import quote

import aiohttp

from .http import HTTPExecutor
from .types import RestResponse, RestError, FileObject

FileContent = Union[bytes, BinaryIO]


def _object_path(bucket: str, path: str) -> str:
    return f"{quote(bucket, safe='')}/{quote(path.lstrip('/'), safe='/')}"


class StorageClient:
    """Storage client for file operations."""

    def __init__(self, executor: HTTPExecutor) -> None:
        self._executor = executor

    async def upload(
        self,
        bucket: str,
        path: str,
        file: FileContent,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> RestResponse[FileObject]:
        """Upload a file as multipart form data."""
        try:
            form = aiohttp.FormData()
            form.add_field(
                "file",
                file,
                filename=os.path.basename(path),
                content_type=content_type,
            )
        except (TypeError, ValueError) as e:
            return RestResponse(
                data=None,
                error=RestError(message=f"Invalid upload payload: {e}"),
            )

        headers: Dict[str, Optional[str]] = {"Content-Type": None}
        if upsert:
            headers["x-upsert"] = "true"

        result = await self._executor.request(
            "POST",
            f"/storage/v1/object/{_object_path(bucket, path)}",
            data=form,
            headers=headers,
        )
        if result.error is not None:
            return RestResponse(data=None, error=result.error)

        body = result.data if isinstance(result.data, dict) else {}
        file_obj = FileObject(
            name=os.path.basename(path),
            bucket=bucket,
            path=path,
            key=body.get("Key") or body.get("key"),
            size=len(file) if isinstance(file, bytes) else None,
            content_type=content_type,
        )
        return RestResponse(data=file_obj, error=None)

    async def download(self, bucket: str, path: str) -> RestResponse[bytes]:
        """Download a file's bytes."""
        return await self._executor.request(
            "GET",
            f"/storage/v1/object/{_object_path(bucket, path)}",
            raw=True,
        )

    async def remove(self, bucket: str, paths: List[str]) -> RestResponse[List[Dict[str, Any]]]:
        """Delete files from the bucket."""
        return await self._executor.request(
            "DELETE",
            f"/storage/v1/object/{quote(bucket, safe='')}",
            json_body={"prefixes": paths},
        )

    def get_public_url(self, bucket: str, path: str) -> str:
        """Get public URL for a file (if bucket is public). No request is made."""
        return f"{self._executor.base_url}/storage/v1/object/public/{_object_path(bucket, path)}"

    def from_(self, bucket: str) -> "BucketOperations":
        """Get bucket operations for a specific bucket."""
        return BucketOperations(bucket, self)


class BucketOperations:
    """Storage operations bound to one bucket."""

    def __init__(self, bucket_name: str, storage: StorageClient) -> None:
        self._bucket_name = bucket_name
        self._storage = storage

    async def upload(
        self,
        path: str,
        file: FileContent,
        content_type: str = "application/octet-stream",
        upsert: bool = False,
    ) -> RestResponse[FileObject]:
        return await self._storage.upload(self._bucket_name, path, file, content_type, upsert)

    async def download(self, path: str) -> RestResponse[bytes]:
        return await self._storage.download(self._bucket_name, path)

    async def remove(self, paths: List[str]) -> RestResponse[List[Dict[str, Any]]]:
        return await self._storage.remove(self._bucket_name, paths)

    def get_public_url(self, path: str) -> str:
        return self._storage.get_public_url(self._bucket_name, path)
