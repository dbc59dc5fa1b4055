"""
Evidence Session - one viewer's "select record -> resolve -> locate -> mint" flow.

A session is scoped to a single viewer context. It owns the signed-URL
cache for that viewer, runs at most one resolution at a time and refreshes
the open preview after a successful promotion.
"""

from __future__ import annotations

import asyncio
from typing import Literal, Optional

import structlog
from pydantic import BaseModel, ConfigDict

from .db.services import ArchiveRepository
from .errors import ArchiveError
from .promotion.coordinator import PromotionCoordinator
from .resolver.authority import AuthorityResolver
from .schemas.certification import PromotionResult
from .schemas.enums import AuthorityTier
from .schemas.records import LocatedObject, LogicalRecord, Resolution, ViewerContext
from .storage.cache import SignedUrlCache
from .storage.locator import StorageLocator, upload_bucket_candidates
from .storage.repair import extra_dirs_for_record, safe_filename

logger = structlog.get_logger()

NO_PREVIEW_MESSAGE = "No preview available"


class EvidenceView(BaseModel):
    """What a viewer sees for one record."""

    model_config = ConfigDict(frozen=True)

    record_id: str
    status: Literal["ready", "unavailable", "error"]
    tier: Optional[AuthorityTier] = None
    preview: Optional[LocatedObject] = None
    download: Optional[LocatedObject] = None
    file_hash: Optional[str] = None
    message: Optional[str] = None

    @property
    def preview_url(self) -> Optional[str]:
        return self.preview.access_url if self.preview else None

    @property
    def download_url(self) -> Optional[str]:
        return self.download.access_url if self.download else None


class PromotionOutcome(BaseModel):
    """Inline result of a promotion request."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    result: Optional[PromotionResult] = None
    error: Optional[str] = None
    code: Optional[str] = None


class EvidenceSession:
    """Per-viewer evidence flow over the resolver and the locator."""

    def __init__(
        self,
        repository: ArchiveRepository,
        locator: StorageLocator,
        viewer: ViewerContext,
        coordinator: Optional[PromotionCoordinator] = None,
    ):
        self.viewer = viewer
        self.locator = locator
        if locator.cache is None:
            locator.cache = SignedUrlCache(locator.config.signed_url_ttl_seconds)
        self.cache = locator.cache
        self.resolver = AuthorityResolver(repository, lane_config=locator.config.lanes)
        self.coordinator = coordinator
        if coordinator is not None:
            coordinator.on_promoted(self._on_promoted)

        self.view: Optional[EvidenceView] = None
        self._record: Optional[LogicalRecord] = None
        self._download_name: Optional[str] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False
        self.log = logger.bind(entity_key=viewer.entity_key, lane=viewer.lane.value)

    @property
    def current_record(self) -> Optional[LogicalRecord]:
        return self._record

    async def _locate(self, record: LogicalRecord, resolution: Resolution, download_name: Optional[str]):
        bucket, path = resolution.bucket, resolution.path
        if resolution.tier is AuthorityTier.UPLOADED:
            buckets = upload_bucket_candidates(
                path,
                lane=self.viewer.lane,
                recorded_bucket=bucket,
                config=self.locator.config,
            )
            if not buckets:
                return None, None
            preview = await self.locator.locate_first(
                buckets, path, extra_dirs=extra_dirs_for_record(record)
            )
        else:
            preview = await self.locator.locate(bucket, path)

        download = None
        if download_name:
            download = await self.locator.locate(
                preview.resolved_bucket,
                preview.resolved_path,
                download_name=safe_filename(download_name),
            )
        return preview, download

    async def open(
        self, record: LogicalRecord, download_name: Optional[str] = None
    ) -> EvidenceView:
        """Resolve and locate ``record`` for this viewer.

        Storage and datastore failures become an ``error`` view carrying the
        underlying message; a record with nothing to show is ``unavailable``.
        """
        log = self.log.bind(record_id=record.id)
        try:
            resolution = await self.resolver.resolve(record, self.viewer)
            if resolution is None:
                log.debug("no_artifact")
                return EvidenceView(record_id=record.id, status="unavailable", message=NO_PREVIEW_MESSAGE)

            preview, download = await self._locate(record, resolution, download_name)
        except ArchiveError as e:
            log.warning("evidence_open_failed", code=e.code, error=e.message)
            return EvidenceView(record_id=record.id, status="error", message=e.message)

        if preview is None:
            return EvidenceView(
                record_id=record.id,
                status="unavailable",
                tier=resolution.tier,
                message=NO_PREVIEW_MESSAGE,
            )

        log.info(
            "evidence_ready",
            tier=resolution.tier.value,
            resolved_bucket=preview.resolved_bucket,
            resolved_path=preview.resolved_path,
            repaired=preview.repaired,
        )
        return EvidenceView(
            record_id=record.id,
            status="ready",
            tier=resolution.tier,
            preview=preview,
            download=download,
            file_hash=resolution.file_hash,
        )

    async def _run(self, record: LogicalRecord, download_name: Optional[str]) -> EvidenceView:
        try:
            view = await self.open(record, download_name)
        except asyncio.CancelledError:
            self.log.debug("selection_cancelled", record_id=record.id)
            raise
        self.view = view
        return view

    def select(self, record: LogicalRecord, download_name: Optional[str] = None) -> asyncio.Task:
        """Start resolving ``record``, abandoning any resolution in flight."""
        self.cancel()
        self._record = record
        self._download_name = download_name
        self.view = None
        self._task = asyncio.create_task(self._run(record, download_name))
        return self._task

    def cancel(self) -> bool:
        """Abandon the in-flight resolution, if any. Nothing is retried."""
        task, self._task = self._task, None
        if task is None or task.done():
            return False
        task.cancel()
        return True

    def is_promoting(self, record: LogicalRecord) -> bool:
        if self.coordinator is None:
            return False
        return self.coordinator.is_in_flight(record, self.viewer.lane)

    async def promote(self, record: LogicalRecord, force: bool = False) -> PromotionOutcome:
        """Promote ``record`` into the viewer's lane.

        Failures are reported inline; the current view is left as it was.
        """
        if self.coordinator is None:
            raise ValueError("This session has no promotion coordinator")

        try:
            result = await self.coordinator.promote(record, self.viewer.lane, force=force)
        except ArchiveError as e:
            return PromotionOutcome(ok=False, error=e.message, code=e.code)
        return PromotionOutcome(ok=True, result=result)

    async def wait(self) -> Optional[EvidenceView]:
        """Wait for the current resolution, if any, and return the view."""
        task = self._task
        if task is not None:
            await task
        return self.view

    async def _on_promoted(self, result: PromotionResult) -> None:
        if self._closed:
            return
        dropped = self.cache.invalidate()
        self.log.info("cache_invalidated", record_id=result.record_id, entries=dropped)

        if self._record is None or self._record.id != result.record_id:
            return
        if result.lane != self.viewer.lane:
            return
        # The refresh runs as its own task; a newer selection may cancel it.
        self.select(self._record, self._download_name)

    async def close(self) -> None:
        """Detach from the coordinator, cancel any in-flight resolution and wait for it to unwind."""
        self._closed = True
        if self.coordinator is not None:
            self.coordinator.remove_hook(self._on_promoted)
        task = self._task
        if self.cancel() and task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
