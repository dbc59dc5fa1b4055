"""
SQLAlchemy models for the governance archive tables the engine reads.

The engine never writes these tables; the filing/upload flow, the ledger
signing flow and the certification function own them.
"""

import uuid
from typing import Any, Dict

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text
from sqlalchemy.sql import func

from .base import Base


def _uuid_str() -> str:
    return str(uuid.uuid4())


def _iso(value) -> Any:
    return value.isoformat() if value else None


class MinuteBookEntryModel(Base):
    """Logical record: one governance filing."""

    __tablename__ = "minute_book_entries"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    entity_key = Column(String(128), nullable=False, index=True)
    domain_key = Column(String(128), nullable=True, index=True)
    section_name = Column(String(256), nullable=True)
    entry_type = Column(String(64), nullable=True)
    title = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    source = Column(String(64), nullable=True)
    # governance_ledger.id when the entry was filed from an approval
    source_record_id = Column(String(36), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    __table_args__ = (
        Index("ix_minute_book_entries_entity_created", "entity_key", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "entity_key": self.entity_key,
            "domain_key": self.domain_key,
            "section_name": self.section_name,
            "entry_type": self.entry_type,
            "title": self.title,
            "notes": self.notes,
            "source": self.source,
            "source_record_id": self.source_record_id,
            "created_at": _iso(self.created_at),
        }


class SupportingDocumentModel(Base):
    """Supporting object: one uploaded version of an entry's file."""

    __tablename__ = "supporting_documents"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    entry_id = Column(String(36), nullable=False, index=True)
    entity_key = Column(String(128), nullable=False, index=True)
    storage_bucket = Column(String(128), nullable=True)
    file_path = Column(Text, nullable=True)
    file_name = Column(String(512), nullable=True)
    file_hash = Column(String(128), nullable=True)
    file_size = Column(Integer, nullable=True)
    mime_type = Column(String(128), nullable=True)
    version = Column(Integer, nullable=True, default=1)
    uploaded_at = Column(DateTime(timezone=True), nullable=True, default=func.now())
    registry_visible = Column(Boolean, nullable=True, default=True)

    __table_args__ = (
        Index("ix_supporting_documents_entity_entry", "entity_key", "entry_id"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "entry_id": self.entry_id,
            "entity_key": self.entity_key,
            "storage_bucket": self.storage_bucket,
            "file_path": self.file_path,
            "file_name": self.file_name,
            "file_hash": self.file_hash,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "version": self.version,
            "uploaded_at": _iso(self.uploaded_at),
            "registry_visible": self.registry_visible,
        }


class VerifiedDocumentModel(Base):
    """Verified artifact: an official (ledger) or promoted (entry) certified copy."""

    __tablename__ = "verified_documents"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    entity_key = Column(String(128), nullable=False, index=True)
    title = Column(Text, nullable=True)
    document_class = Column(String(64), nullable=True)
    # 'governance_ledger' (official) or 'minute_book_entries' (promoted);
    # legacy rows may leave it NULL
    source_table = Column(String(64), nullable=True)
    source_record_id = Column(String(36), nullable=True)
    storage_bucket = Column(String(128), nullable=False)
    storage_path = Column(Text, nullable=False)
    file_name = Column(String(512), nullable=True)
    file_hash = Column(String(128), nullable=True)
    mime_type = Column(String(128), nullable=True, default="application/pdf")
    verification_level = Column(String(32), nullable=True)
    is_archived = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=func.now())

    __table_args__ = (
        Index("ix_verified_documents_source", "source_table", "source_record_id"),
        Index("ix_verified_documents_entity_created", "entity_key", "created_at"),
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "entity_key": self.entity_key,
            "title": self.title,
            "document_class": self.document_class,
            "source_table": self.source_table,
            "source_record_id": self.source_record_id,
            "storage_bucket": self.storage_bucket,
            "storage_path": self.storage_path,
            "file_name": self.file_name,
            "file_hash": self.file_hash,
            "mime_type": self.mime_type,
            "verification_level": self.verification_level,
            "is_archived": self.is_archived,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }


class GovernanceLedgerModel(Base):
    """Approval-ledger row; carries the explicit lane flag."""

    __tablename__ = "governance_ledger"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    entity_key = Column(String(128), nullable=False, index=True)
    title = Column(Text, nullable=True)
    status = Column(String(32), nullable=True)
    # NULL on legacy rows
    is_test = Column(Boolean, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=func.now())

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary."""
        return {
            "id": self.id,
            "entity_key": self.entity_key,
            "title": self.title,
            "status": self.status,
            "is_test": self.is_test,
            "created_at": _iso(self.created_at),
        }
