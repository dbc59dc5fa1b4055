"""
Verified registry listing.

Lists an entity's verified artifacts for one lane. Ledger-backed rows take
their lane from the approval ledger (one bulk IN query); promoted rows are
not linked to the ledger, so their lane comes from the storage bucket.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from ..db.services import DEFAULT_REGISTRY_LIMIT, ArchiveRepository
from ..errors import AccessError
from ..policy.lane_gate import LaneConfig, filter_visible, get_lane_config
from ..schemas.records import VerifiedArtifact, ViewerContext

logger = logging.getLogger(__name__)


async def list_verified_registry(
    repository: ArchiveRepository,
    viewer: ViewerContext,
    limit: int = DEFAULT_REGISTRY_LIMIT,
    lane_config: Optional[LaneConfig] = None,
) -> List[VerifiedArtifact]:
    """Lane-visible verified artifacts for the viewer's entity, newest first.

    Raises:
        AccessError: the artifact query itself failed
    """
    if lane_config is None:
        lane_config = get_lane_config()

    artifacts = repository.list_verified_artifacts(viewer.entity_key, limit=limit)

    ledger_ids = {a.source_record_id for a in artifacts if a.is_ledger_backed and a.source_record_id}
    try:
        ledger = repository.get_ledger_records(viewer.entity_key, ledger_ids)
    except AccessError as e:
        # Without ledger lanes, rows fall back to bucket classification.
        logger.warning(f"Ledger lane lookup failed: {e.message}")
        ledger = {}

    merged = []
    for artifact in artifacts:
        row = ledger.get(artifact.source_record_id) if artifact.is_ledger_backed else None
        if row is not None and row.is_test is not None:
            artifact = artifact.model_copy(update={"is_test": row.is_test})
        merged.append(artifact)

    return filter_visible(merged, viewer.lane, lane_config)
