"""
Governance Archive Engine

Resolves governance records to their authoritative document, keeps TEST and
REAL lanes isolated, repairs stale storage paths and promotes uploads into
certified artifacts.
"""

import importlib.metadata

__version__ = importlib.metadata.version("governance-archive-engine")

from .errors import (
    AccessError,
    ArchiveError,
    CertificationFailure,
    StorageNotFound,
    ValidationError,
)
from .promotion import PromotionCoordinator
from .resolver import AuthorityResolver, list_verified_registry
from .schemas import AuthorityTier, Lane, LogicalRecord, Resolution, ViewerContext
from .session import EvidenceSession, EvidenceView, PromotionOutcome
from .storage import StorageLocator, create_object_store

__all__ = [
    "AccessError",
    "ArchiveError",
    "AuthorityResolver",
    "AuthorityTier",
    "CertificationFailure",
    "EvidenceSession",
    "EvidenceView",
    "Lane",
    "LogicalRecord",
    "PromotionCoordinator",
    "PromotionOutcome",
    "Resolution",
    "StorageLocator",
    "StorageNotFound",
    "ValidationError",
    "ViewerContext",
    "create_object_store",
    "list_verified_registry",
]
