"""
Object storage abstraction for the locator.

file://  -> LocalObjectStore (buckets are directories under a root)
https:// -> SupabaseObjectStore (storage REST API over httpx)

Design principle: treat storage as a URI, not a boolean. The locator only
needs two operations: mint a time-boxed signed URL and list the immediate
children of a directory.
"""
from __future__ import annotations

import logging
import os
import re
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import quote, urlencode, urlparse

import httpx

from ..errors import AccessError, StorageNotFound

logger = logging.getLogger(__name__)

_NOT_FOUND_RE = re.compile(r"not\s*found", re.IGNORECASE)


def looks_like_not_found(message: Optional[str]) -> bool:
    """Storage services report missing objects and buckets as '... not found'."""
    return bool(message) and bool(_NOT_FOUND_RE.search(message))


@dataclass(frozen=True)
class ListedObject:
    """One entry of a directory listing."""

    name: str  # full path within the bucket
    updated_at: Optional[datetime] = None

    @property
    def basename(self) -> str:
        return self.name.rsplit("/", 1)[-1]

    @property
    def sort_key(self) -> float:
        return self.updated_at.timestamp() if self.updated_at else 0.0


class ObjectStore(ABC):
    """Abstract base class for object storage."""

    @abstractmethod
    async def sign_url(
        self,
        bucket: str,
        path: str,
        expires_in: int,
        download_name: Optional[str] = None,
    ) -> str:
        """Mint a signed access URL.

        Raises:
            StorageNotFound: the object (or bucket) does not exist
            AccessError: any other failure
        """
        pass

    @abstractmethod
    async def list_dir(
        self, bucket: str, prefix: str, limit: int = 200
    ) -> List[ListedObject]:
        """List immediate file children of ``prefix``, newest first.

        A missing directory lists as empty.
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        pass


class LocalObjectStore(ObjectStore):
    """Local filesystem object store (file:// URIs).

    Structure:
        <root>/
        ├── minute_book/         # upload bucket
        │   └── <entity>/<domain>/<file>.pdf
        ├── governance_sandbox/  # TEST lane certified bucket
        └── governance_truth/    # REAL lane certified bucket
    """

    def __init__(self, root: Path):
        """Initialize with the directory holding one folder per bucket.

        Args:
            root: Storage root path
        """
        self.root = Path(root)

    def _object_path(self, bucket: str, path: str) -> Path:
        bucket_dir = (self.root / bucket).resolve()
        if not bucket_dir.is_dir():
            raise StorageNotFound(bucket, path, f'Bucket not found: "{bucket}".')
        full_path = (bucket_dir / path).resolve()
        if bucket_dir not in full_path.parents and full_path != bucket_dir:
            raise AccessError(
                f'Path "{path}" escapes bucket "{bucket}".', code="ACCESS_DENIED"
            )
        return full_path

    async def sign_url(
        self,
        bucket: str,
        path: str,
        expires_in: int,
        download_name: Optional[str] = None,
    ) -> str:
        full_path = self._object_path(bucket, path)
        if not full_path.is_file():
            raise StorageNotFound(bucket, path)
        if not os.access(full_path, os.R_OK):
            raise AccessError(
                f'Permission denied for "{bucket}/{path}".', code="ACCESS_DENIED"
            )

        params = {"expires": str(int(time.time()) + expires_in)}
        if download_name:
            params["download"] = download_name
        return f"{full_path.as_uri()}?{urlencode(params)}"

    async def list_dir(
        self, bucket: str, prefix: str, limit: int = 200
    ) -> List[ListedObject]:
        try:
            directory = self._object_path(bucket, prefix) if prefix else (self.root / bucket)
        except StorageNotFound:
            return []
        if not directory.is_dir():
            return []

        entries = []
        for child in directory.iterdir():
            if not child.is_file():
                continue
            updated_at = datetime.fromtimestamp(child.stat().st_mtime, tz=timezone.utc)
            name = f"{prefix}/{child.name}" if prefix else child.name
            entries.append(ListedObject(name=name, updated_at=updated_at))

        entries.sort(key=lambda e: e.sort_key, reverse=True)
        return entries[:limit]


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class SupabaseObjectStore(ObjectStore):
    """Storage REST API client (https:// URIs)."""

    def __init__(
        self,
        base_url: str,
        service_key: Optional[str] = None,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.storage_url = f"{self.base_url}/storage/v1"
        headers = {}
        if service_key:
            headers = {"Authorization": f"Bearer {service_key}", "apikey": service_key}
        self.client = client or httpx.AsyncClient(timeout=timeout, headers=headers)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def _post(self, url: str, payload: Dict[str, Any]) -> httpx.Response:
        try:
            return await self.client.post(url, json=payload)
        except httpx.RequestError as e:
            logger.error(f"Storage request failed: {e}")
            raise AccessError(f"Storage request failed: {e}") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict):
            return str(body.get("message") or body.get("error") or body)
        return str(body)

    @staticmethod
    def _is_not_found(response: httpx.Response, message: str) -> bool:
        if response.status_code == 404:
            return True
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and str(body.get("statusCode", "")) == "404":
            return True
        return looks_like_not_found(message)

    async def sign_url(
        self,
        bucket: str,
        path: str,
        expires_in: int,
        download_name: Optional[str] = None,
    ) -> str:
        url = f"{self.storage_url}/object/sign/{quote(bucket)}/{quote(path)}"
        response = await self._post(url, {"expiresIn": expires_in})

        if response.is_error:
            message = self._error_message(response)
            if self._is_not_found(response, message):
                raise StorageNotFound(bucket, path, message)
            code = "ACCESS_DENIED" if response.status_code in (401, 403) else None
            raise AccessError(message, code=code, status_code=response.status_code)

        signed = (response.json() or {}).get("signedURL")
        if not signed:
            raise AccessError("Signed URL generation failed.", status_code=response.status_code)

        signed_url = f"{self.storage_url}{signed}"
        if download_name:
            separator = "&" if "?" in signed_url else "?"
            signed_url = f"{signed_url}{separator}download={quote(download_name)}"
        return signed_url

    async def list_dir(
        self, bucket: str, prefix: str, limit: int = 200
    ) -> List[ListedObject]:
        url = f"{self.storage_url}/object/list/{quote(bucket)}"
        response = await self._post(
            url,
            {
                "prefix": prefix,
                "limit": limit,
                "offset": 0,
                "sortBy": {"column": "updated_at", "order": "desc"},
            },
        )

        if response.is_error:
            message = self._error_message(response)
            if self._is_not_found(response, message):
                return []
            code = "ACCESS_DENIED" if response.status_code in (401, 403) else None
            raise AccessError(message, code=code, status_code=response.status_code)

        entries = []
        for item in response.json() or []:
            # Folder placeholders have no id.
            if not item.get("name") or item.get("id") is None:
                continue
            name = f"{prefix}/{item['name']}" if prefix else item["name"]
            entries.append(
                ListedObject(name=name, updated_at=_parse_timestamp(item.get("updated_at")))
            )
        return entries


def create_object_store(
    uri: str, service_key: Optional[str] = None, timeout: float = 30.0
) -> ObjectStore:
    """Factory function to create the appropriate ObjectStore from a URI.

    Args:
        uri: Storage root (e.g. "file:///var/lib/archive" or "https://xyz.supabase.co")
        service_key: API key for remote storage
        timeout: HTTP timeout in seconds

    Returns:
        ObjectStore instance for the given URI scheme

    Raises:
        ValueError: If URI scheme is not supported
    """
    parsed = urlparse(uri)

    if parsed.scheme == "file":
        # file:///abs/path or file://./relative
        root = f"{parsed.netloc}{parsed.path}" if parsed.netloc else parsed.path
        return LocalObjectStore(Path(root))

    elif parsed.scheme in ("http", "https"):
        return SupabaseObjectStore(uri, service_key=service_key, timeout=timeout)

    else:
        raise ValueError(
            f"Unsupported storage scheme: {parsed.scheme}. "
            f"Supported: file://, https://"
        )
