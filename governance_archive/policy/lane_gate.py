"""
Lane gate for sandbox/production isolation.

This module implements a pure, testable classifier that decides which lane
(TEST or REAL) a candidate document belongs to, and whether a viewer scoped
to a lane may see it. It performs no I/O: candidates are already-fetched
metadata.

Classification Rules:
- an explicit boolean ``is_test`` on the candidate wins
- otherwise a verified artifact is classified by its storage bucket:
  sandbox bucket -> TEST, truth bucket -> REAL
- anything else is UNKNOWN

Visibility:
- visible when the classification equals the active lane
- UNKNOWN is visible in every lane so that legacy rows without a lane
  signal keep showing up; ``strict_unknown`` turns that off

Configuration:
- ARCHIVE_SANDBOX_BUCKET / ARCHIVE_TRUTH_BUCKET: the two lane buckets
- ARCHIVE_STRICT_UNKNOWN_LANE: fail-closed for UNKNOWN
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from governance_archive.schemas.enums import Lane
from governance_archive.schemas.records import VerifiedArtifact

DEFAULT_SANDBOX_BUCKET = "governance_sandbox"
DEFAULT_TRUTH_BUCKET = "governance_truth"


class LaneConfig(BaseModel):
    """Configuration for lane classification."""

    sandbox_bucket: str = DEFAULT_SANDBOX_BUCKET
    truth_bucket: str = DEFAULT_TRUTH_BUCKET
    strict_unknown: bool = False

    @property
    def bucket_lanes(self) -> Dict[str, Lane]:
        return {self.sandbox_bucket: Lane.TEST, self.truth_bucket: Lane.REAL}


def get_lane_config() -> LaneConfig:
    """
    Get default lane config from environment settings.

    Lazy-loads the settings to avoid import cycles.
    """
    from governance_archive.config import settings

    return LaneConfig(
        sandbox_bucket=settings.sandbox_bucket,
        truth_bucket=settings.truth_bucket,
        strict_unknown=settings.strict_unknown_lane,
    )


def lane_for_bucket(bucket: Optional[str], config: Optional[LaneConfig] = None) -> Lane:
    """Classify a bucket name; unrecognized or empty buckets are UNKNOWN."""
    if config is None:
        config = get_lane_config()
    name = (bucket or "").strip()
    if not name:
        return Lane.UNKNOWN
    return config.bucket_lanes.get(name, Lane.UNKNOWN)


def bucket_for_lane(lane: Lane, config: Optional[LaneConfig] = None) -> str:
    """Certified bucket that holds documents of ``lane``."""
    if config is None:
        config = get_lane_config()
    if lane is Lane.TEST:
        return config.sandbox_bucket
    if lane is Lane.REAL:
        return config.truth_bucket
    raise ValueError("UNKNOWN lane has no bucket")


def classify(candidate: Any, config: Optional[LaneConfig] = None) -> Lane:
    """
    Decide which lane a candidate belongs to.

    Args:
        candidate: A ledger row, verified artifact or any object exposing an
                   ``is_test`` attribute
        config: Optional lane configuration; defaults to settings

    Returns:
        Lane.TEST, Lane.REAL or Lane.UNKNOWN
    """
    flag = getattr(candidate, "is_test", None)
    if isinstance(flag, bool):
        return Lane.from_flag(flag)

    if isinstance(candidate, VerifiedArtifact):
        return lane_for_bucket(candidate.storage_bucket, config)

    return Lane.UNKNOWN


def is_visible(
    candidate: Any, active_lane: Lane, config: Optional[LaneConfig] = None
) -> bool:
    """Whether a viewer in ``active_lane`` may see ``candidate``."""
    if config is None:
        config = get_lane_config()
    lane = classify(candidate, config)
    if lane is Lane.UNKNOWN:
        return not config.strict_unknown
    return lane == active_lane


def filter_visible(
    candidates: List[Any], active_lane: Lane, config: Optional[LaneConfig] = None
) -> List[Any]:
    """Keep the lane-visible candidates, preserving order."""
    if config is None:
        config = get_lane_config()
    return [c for c in candidates if is_visible(c, active_lane, config)]
