"""
Storage Locator - turns a recorded (bucket, path) into a signed access URL.

Algorithm:
1. Normalize the path and mint a signed URL for the exact location.
2. Any failure other than "not found" propagates immediately; permission
   errors never trigger repair.
3. On "not found", list the candidate directories concurrently, merge the
   listings and let the pure matcher pick the intended object.
4. Mint a URL for the winner and report where it actually resolved.
5. Fail with StorageNotFound (carrying the original request) only after the
   repair search comes up empty.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field

from ..errors import StorageNotFound
from ..policy.lane_gate import LaneConfig, lane_for_bucket
from ..schemas.enums import Lane
from ..schemas.records import LocatedObject
from .backends import ListedObject, ObjectStore
from .cache import SignedUrlCache
from .repair import (
    DEFAULT_EXTENSION,
    DEFAULT_SIGNED_MARKER,
    candidate_directories,
    normalize_path,
    select_repair_candidate,
)

logger = logging.getLogger(__name__)

DEFAULT_SIGNED_URL_TTL = 600
DEFAULT_LIST_LIMIT = 200
DEFAULT_UPLOADS_BUCKET = "minute_book"


class LocatorConfig(BaseModel):
    """Configuration for the storage locator."""

    signed_url_ttl_seconds: int = DEFAULT_SIGNED_URL_TTL
    list_limit: int = DEFAULT_LIST_LIMIT
    extension: str = DEFAULT_EXTENSION
    signed_marker: str = DEFAULT_SIGNED_MARKER
    uploads_bucket: str = DEFAULT_UPLOADS_BUCKET
    lanes: LaneConfig = Field(default_factory=LaneConfig)


def _get_default_locator_config() -> LocatorConfig:
    """Build the locator config from environment settings."""
    from ..config import settings

    return LocatorConfig(
        signed_url_ttl_seconds=settings.signed_url_ttl_seconds,
        list_limit=settings.repair_list_limit,
        extension=settings.repair_extension,
        signed_marker=settings.signed_marker,
        uploads_bucket=settings.uploads_bucket,
        lanes=LaneConfig(
            sandbox_bucket=settings.sandbox_bucket,
            truth_bucket=settings.truth_bucket,
            strict_unknown=settings.strict_unknown_lane,
        ),
    )


def upload_bucket_candidates(
    path: str,
    lane: Optional[Lane] = None,
    recorded_bucket: Optional[str] = None,
    config: Optional[LocatorConfig] = None,
) -> List[str]:
    """Buckets an upload may live in, most likely first.

    A recorded bucket is authoritative. Otherwise the path prefix hints at
    the lane bucket, with the uploads bucket and the sandbox bucket as
    fallbacks. Buckets belonging to the lane opposite ``lane`` are dropped.
    """
    if config is None:
        config = _get_default_locator_config()
    sandbox = config.lanes.sandbox_bucket
    truth = config.lanes.truth_bucket

    if recorded_bucket:
        candidates = [recorded_bucket]
    else:
        p = normalize_path(path).lower()
        candidates = []
        if p.startswith("sandbox/"):
            candidates.append(sandbox)
        if p.startswith("truth/"):
            candidates.append(truth)
        if "/archive/" in p:
            candidates.append(sandbox)
        candidates.append(config.uploads_bucket)
        candidates.append(sandbox)

    unique: List[str] = []
    for bucket in candidates:
        if bucket in unique:
            continue
        if lane in (Lane.TEST, Lane.REAL):
            bucket_lane = lane_for_bucket(bucket, config.lanes)
            if bucket_lane is not Lane.UNKNOWN and bucket_lane != lane:
                continue
        unique.append(bucket)
    return unique


class StorageLocator:
    """Resolves recorded storage pointers into signed access URLs."""

    def __init__(
        self,
        store: ObjectStore,
        config: Optional[LocatorConfig] = None,
        cache: Optional[SignedUrlCache] = None,
    ):
        """Initialize the locator.

        Args:
            store: Object storage backend
            config: Optional locator configuration; defaults to settings
            cache: Optional session-scoped memo of minted URLs
        """
        self.store = store
        self.config = config or _get_default_locator_config()
        self.cache = cache

    def _expiry(self) -> datetime:
        return datetime.now(timezone.utc) + timedelta(
            seconds=self.config.signed_url_ttl_seconds
        )

    async def _mint(self, bucket: str, path: str, download_name: Optional[str]) -> str:
        return await self.store.sign_url(
            bucket,
            path,
            self.config.signed_url_ttl_seconds,
            download_name=download_name,
        )

    async def _list_candidates(self, bucket: str, dirs: Sequence[str]) -> List[ListedObject]:
        listings = await asyncio.gather(
            *(self.store.list_dir(bucket, d, limit=self.config.list_limit) for d in dirs)
        )
        merged: List[ListedObject] = []
        for listing in listings:
            merged.extend(listing)
        return merged

    async def locate(
        self,
        bucket: str,
        path: str,
        download_name: Optional[str] = None,
        extra_dirs: Optional[Iterable[str]] = None,
    ) -> LocatedObject:
        """Mint an access URL for ``(bucket, path)``, repairing stale paths.

        Args:
            bucket: Recorded bucket
            path: Recorded path within the bucket
            download_name: Optional forced download filename
            extra_dirs: Alternate directories to search on a miss

        Returns:
            LocatedObject with the access URL and the resolved location

        Raises:
            StorageNotFound: exact path and repair search both missed
            AccessError: permission or transport failure (never repaired)
        """
        want_path = normalize_path(path)

        if self.cache is not None:
            cached = self.cache.get(bucket, want_path, download_name)
            if cached is not None:
                return cached

        try:
            url = await self._mint(bucket, want_path, download_name)
            located = LocatedObject(
                access_url=url,
                resolved_bucket=bucket,
                resolved_path=want_path,
                requested_bucket=bucket,
                requested_path=want_path,
                download_name=download_name,
                expires_at=self._expiry(),
            )
        except StorageNotFound:
            located = await self._repair(bucket, want_path, download_name, extra_dirs)

        if self.cache is not None:
            self.cache.put(located)
        return located

    async def _repair(
        self,
        bucket: str,
        want_path: str,
        download_name: Optional[str],
        extra_dirs: Optional[Iterable[str]],
    ) -> LocatedObject:
        dirs = candidate_directories(want_path, extra_dirs)
        entries = await self._list_candidates(bucket, dirs)
        best = select_repair_candidate(
            want_path,
            entries,
            extension=self.config.extension,
            signed_marker=self.config.signed_marker,
        )

        if best is None:
            raise StorageNotFound(
                bucket,
                want_path,
                f'Object not found. No matching file in bucket "{bucket}" for "{want_path}".',
            )

        logger.info(
            f"Repaired stale path {bucket}/{want_path} -> {bucket}/{best.name} "
            f"(searched {len(dirs)} directories)"
        )
        url = await self._mint(bucket, best.name, download_name)
        return LocatedObject(
            access_url=url,
            resolved_bucket=bucket,
            resolved_path=best.name,
            requested_bucket=bucket,
            requested_path=want_path,
            download_name=download_name,
            repaired=True,
            expires_at=self._expiry(),
        )

    async def locate_first(
        self,
        buckets: Sequence[str],
        path: str,
        download_name: Optional[str] = None,
        extra_dirs: Optional[Iterable[str]] = None,
    ) -> LocatedObject:
        """Try ``locate`` in each bucket until one resolves.

        A miss moves on to the next bucket; any other error propagates.
        """
        if not buckets:
            raise ValueError("At least one bucket is required")

        extra = list(extra_dirs or [])
        last_miss: Optional[StorageNotFound] = None
        for bucket in buckets:
            try:
                return await self.locate(bucket, path, download_name, extra)
            except StorageNotFound as e:
                logger.debug(f"{path} not found in bucket {bucket}")
                last_miss = e

        raise last_miss
