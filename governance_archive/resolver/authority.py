"""
Authority Resolver - picks the one authoritative artifact for a record.

Tiers, strongest first:
- OFFICIAL: an artifact certified by the approval-ledger signing flow for the
  record's upstream ledger row
- PROMOTED: an artifact certified from the record itself by promotion
- UPLOADED: the record's primary supporting object

Every candidate passes through the lane gate; a candidate from the other
lane is simply not a candidate. A failed query at the OFFICIAL or PROMOTED
tier degrades to the next tier instead of failing the resolution.
"""
from __future__ import annotations

import logging
from typing import Dict, Optional

from ..db.services import ArchiveRepository
from ..errors import AccessError
from ..policy.lane_gate import LaneConfig, get_lane_config, is_visible
from ..schemas.enums import AuthorityTier, Lane
from ..schemas.records import (
    Artifact,
    LogicalRecord,
    Resolution,
    SupportingObject,
    VerifiedArtifact,
    ViewerContext,
)

logger = logging.getLogger(__name__)


class AuthorityResolver:
    """Resolves a logical record to its highest lane-consistent tier."""

    def __init__(
        self,
        repository: ArchiveRepository,
        lane_config: Optional[LaneConfig] = None,
    ):
        self.repository = repository
        self.lane_config = lane_config or get_lane_config()

    async def find_official(
        self, record: LogicalRecord, viewer: ViewerContext
    ) -> Optional[VerifiedArtifact]:
        """Newest lane-visible ledger-certified artifact, if any."""
        ledger_id = record.ledger_id
        if not ledger_id:
            return None

        try:
            ledger = self.repository.get_ledger_record(viewer.entity_key, ledger_id)
        except AccessError as e:
            logger.warning(f"Ledger lookup failed for {ledger_id}: {e.message}")
            ledger = None

        ledger_flag = ledger.is_test if ledger else None
        ledger_lane = Lane.from_flag(ledger_flag)
        if ledger_lane is not Lane.UNKNOWN and ledger_lane != viewer.lane:
            logger.debug(
                f"Ledger row {ledger_id} is {ledger_lane.value}; "
                f"no official artifact in {viewer.lane.value} lane"
            )
            return None

        try:
            candidates = self.repository.list_official_artifacts(viewer.entity_key, ledger_id)
        except AccessError as e:
            logger.warning(f"Official artifact lookup failed for {ledger_id}: {e.message}")
            return None

        for artifact in candidates:
            if ledger_flag is not None:
                artifact = artifact.model_copy(update={"is_test": ledger_flag})
            if is_visible(artifact, viewer.lane, self.lane_config):
                return artifact
        return None

    async def find_promoted(
        self, record: LogicalRecord, viewer: ViewerContext
    ) -> Optional[VerifiedArtifact]:
        """Newest lane-visible artifact promoted from ``record``, if any."""
        try:
            candidates = self.repository.list_promoted_artifacts(viewer.entity_key, record.id)
        except AccessError as e:
            logger.warning(f"Promoted artifact lookup failed for {record.id}: {e.message}")
            return None

        for artifact in candidates:
            if is_visible(artifact, viewer.lane, self.lane_config):
                return artifact
        return None

    async def find_primary_upload(
        self, record: LogicalRecord, viewer: ViewerContext
    ) -> Optional[SupportingObject]:
        """The record's primary supporting object.

        Raises:
            AccessError: the datastore failed; there is no lower tier to fall to
        """
        upload = self.repository.get_primary_supporting_object(viewer.entity_key, record.id)
        if upload is None or not (upload.file_path or "").strip():
            return None
        return upload

    async def resolve(
        self, record: LogicalRecord, viewer: ViewerContext
    ) -> Optional[Resolution]:
        """
        Resolve the authoritative artifact for ``record`` as seen by ``viewer``.

        Returns:
            Resolution for exactly one tier, or None when the record has no
            artifact and no upload at all
        """
        if record.entity_key != viewer.entity_key:
            logger.debug(f"Record {record.id} is outside entity scope {viewer.entity_key}")
            return None

        official = await self.find_official(record, viewer)
        if official is not None:
            return Resolution(record_id=record.id, tier=AuthorityTier.OFFICIAL, artifact=official)

        promoted = await self.find_promoted(record, viewer)
        if promoted is not None:
            return Resolution(record_id=record.id, tier=AuthorityTier.PROMOTED, artifact=promoted)

        upload = await self.find_primary_upload(record, viewer)
        if upload is not None:
            return Resolution(record_id=record.id, tier=AuthorityTier.UPLOADED, artifact=upload)

        return None

    async def list_candidates(
        self, record: LogicalRecord, viewer: ViewerContext
    ) -> Dict[AuthorityTier, Optional[Artifact]]:
        """Every tier's winner, for audit displays. Precedence is not applied."""
        return {
            AuthorityTier.OFFICIAL: await self.find_official(record, viewer),
            AuthorityTier.PROMOTED: await self.find_promoted(record, viewer),
            AuthorityTier.UPLOADED: await self.find_primary_upload(record, viewer),
        }
