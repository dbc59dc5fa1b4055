"""
Schemas for the Governance Archive engine.
"""

from .certification import CertificationRequest, CertificationResponse, PromotionResult
from .enums import AuthorityTier, Lane, PromotionState, SourceTable
from .records import (
    Artifact,
    LedgerRecord,
    LocatedObject,
    LogicalRecord,
    Resolution,
    SupportingObject,
    VerifiedArtifact,
    ViewerContext,
)

__all__ = [
    "Artifact",
    "AuthorityTier",
    "CertificationRequest",
    "CertificationResponse",
    "Lane",
    "LedgerRecord",
    "LocatedObject",
    "LogicalRecord",
    "PromotionResult",
    "PromotionState",
    "Resolution",
    "SourceTable",
    "SupportingObject",
    "VerifiedArtifact",
    "ViewerContext",
]
