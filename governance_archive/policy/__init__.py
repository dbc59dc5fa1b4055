"""
Lane isolation policy.
"""

from .lane_gate import (
    LaneConfig,
    get_lane_config,
    bucket_for_lane,
    classify,
    filter_visible,
    is_visible,
    lane_for_bucket,
)

__all__ = [
    "LaneConfig",
    "get_lane_config",
    "bucket_for_lane",
    "classify",
    "filter_visible",
    "is_visible",
    "lane_for_bucket",
]
