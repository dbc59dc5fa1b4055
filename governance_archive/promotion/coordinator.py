"""
Promotion Coordinator - certifies upload-originated records on demand.

State per (record, lane):
    NONE -> PROMOTED        first promotion (force=False)
    PROMOTED -> PROMOTED    reissue (force=True overwrites in place)

Ledger-originated records are certified by the ledger signing flow and are
rejected here before any network call. The coordinator holds no state a
reader can observe half-way: either the certification function succeeds and
the invalidation hooks run, or the error propagates and nothing changes.
"""

from __future__ import annotations

from typing import Awaitable, Callable, List, Optional, Set, Tuple

import structlog

from ..errors import ValidationError
from ..integrations.certification import CertificationClient
from ..resolver.authority import AuthorityResolver
from ..schemas.certification import CertificationRequest, PromotionResult
from ..schemas.enums import Lane, PromotionState
from ..schemas.records import LogicalRecord, ViewerContext

logger = structlog.get_logger()

PromotionHook = Callable[[PromotionResult], Awaitable[None]]


class PromotionCoordinator:
    """Turns an upload into a registry-grade artifact, idempotently."""

    def __init__(
        self,
        certifier: CertificationClient,
        resolver: Optional[AuthorityResolver] = None,
    ):
        """Initialize the coordinator.

        Args:
            certifier: Client for the certification function
            resolver: Used by ``state_for`` to look up existing promotions
        """
        self.certifier = certifier
        self.resolver = resolver
        self._in_flight: Set[Tuple[str, Lane]] = set()
        self._hooks: List[PromotionHook] = []

    def on_promoted(self, hook: PromotionHook) -> None:
        """Register a coroutine run after every successful promotion."""
        self._hooks.append(hook)

    def remove_hook(self, hook: PromotionHook) -> bool:
        """Unregister ``hook``. Returns False when it was not registered."""
        try:
            self._hooks.remove(hook)
        except ValueError:
            return False
        return True

    def is_in_flight(self, record: LogicalRecord, lane: Lane) -> bool:
        return (record.id, lane) in self._in_flight

    @staticmethod
    def validate(record: LogicalRecord, lane: Lane) -> None:
        """Caller-side guards; raises ValidationError."""
        if record.is_ledger_originated:
            raise ValidationError(
                "Ledger-originated records are certified by the ledger flow and cannot be promoted.",
                code="LEDGER_ORIGINATED",
            )
        if lane not in (Lane.TEST, Lane.REAL):
            raise ValidationError(
                f"Promotion needs a concrete lane, got '{lane.value}'.",
                code="LANE_REQUIRED",
            )

    async def promote(
        self, record: LogicalRecord, lane: Lane, force: bool = False
    ) -> PromotionResult:
        """
        Promote ``record`` into ``lane``.

        Args:
            record: An upload-originated logical record
            lane: Lane the certified copy belongs to
            force: Reissue an existing promoted artifact in place

        Returns:
            PromotionResult with the verified artifact id

        Raises:
            ValidationError: guard failure or a promotion already outstanding
            CertificationFailure: the function refused; message kept verbatim
            AccessError: transport failure
        """
        self.validate(record, lane)

        key = (record.id, lane)
        if key in self._in_flight:
            raise ValidationError(
                f"A promotion for record {record.id} is already in progress.",
                code="PROMOTION_IN_FLIGHT",
            )

        log = logger.bind(record_id=record.id, lane=lane.value, force=force)
        log.info("promotion_start")

        self._in_flight.add(key)
        try:
            response = await self.certifier.certify(
                CertificationRequest(entry_id=record.id, is_test=lane is Lane.TEST, force=force)
            )
        except Exception as e:
            log.warning("promotion_failed", error=str(e))
            raise
        finally:
            self._in_flight.discard(key)

        result = PromotionResult(
            record_id=record.id,
            lane=lane,
            verified_artifact_id=response.verified_artifact_id,
            reused=response.reused,
            forced=force,
        )
        log.info(
            "promotion_complete",
            verified_artifact_id=result.verified_artifact_id,
            reused=result.reused,
        )

        for hook in list(self._hooks):
            await hook(result)
        return result

    async def reissue(self, record: LogicalRecord, lane: Lane) -> PromotionResult:
        """Overwrite the existing promoted artifact (PROMOTED -> PROMOTED)."""
        return await self.promote(record, lane, force=True)

    async def state_for(self, record: LogicalRecord, viewer: ViewerContext) -> PromotionState:
        """Whether ``record`` already has a promoted artifact visible in the viewer's lane."""
        if self.resolver is None:
            raise ValueError("state_for needs a resolver")
        promoted = await self.resolver.find_promoted(record, viewer)
        return PromotionState.PROMOTED if promoted is not None else PromotionState.NONE
