"""
Canonical enums for lanes, authority tiers and artifact provenance.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Lane(str, Enum):
    """Isolation lane of a document or viewer."""

    TEST = "test"
    REAL = "real"
    UNKNOWN = "unknown"

    @classmethod
    def from_flag(cls, is_test: Optional[bool]) -> "Lane":
        """Map a tri-state ``is_test`` flag to a lane."""
        if is_test is None:
            return cls.UNKNOWN
        return cls.TEST if is_test else cls.REAL

    @property
    def is_test(self) -> Optional[bool]:
        if self is Lane.UNKNOWN:
            return None
        return self is Lane.TEST


class AuthorityTier(str, Enum):
    """Authority tiers, strongest first."""

    OFFICIAL = "official"
    PROMOTED = "promoted"
    UPLOADED = "uploaded"


class SourceTable(str, Enum):
    """What a verified artifact certifies."""

    GOVERNANCE_LEDGER = "governance_ledger"
    MINUTE_BOOK_ENTRIES = "minute_book_entries"


class PromotionState(str, Enum):
    """Promotion state of a logical record within one lane.

    NONE -> PROMOTED, and PROMOTED -> PROMOTED on reissue. There is no
    un-promote transition.
    """

    NONE = "none"
    PROMOTED = "promoted"
