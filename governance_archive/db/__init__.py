"""
Database package for the Governance Archive engine.
"""

from .base import Base, get_db, get_engine, get_session_local, init_database
from .models import (
    GovernanceLedgerModel,
    MinuteBookEntryModel,
    SupportingDocumentModel,
    VerifiedDocumentModel,
)
from .services import ArchiveRepository

__all__ = [
    "ArchiveRepository",
    "Base",
    "GovernanceLedgerModel",
    "MinuteBookEntryModel",
    "SupportingDocumentModel",
    "VerifiedDocumentModel",
    "get_db",
    "get_engine",
    "get_session_local",
    "init_database",
]
