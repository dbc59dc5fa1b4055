"""
Schemas for governance records and their stored artifacts.

Logical records (minute-book entries) are filed with supporting objects
(uploads). Verified artifacts certify either an approval-ledger row
(official) or a logical record (promoted). Field names follow the datastore
columns so rows load directly via ``model_validate``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, constr

from .enums import AuthorityTier, Lane, SourceTable


class ViewerContext(BaseModel):
    """Who is looking: the active entity scope and lane."""

    model_config = ConfigDict(frozen=True)

    entity_key: constr(min_length=1, max_length=128) = Field(
        ..., description="Owning-entity scope applied to every query"
    )
    lane: Lane = Field(..., description="Active lane (TEST or REAL)")

    @classmethod
    def for_flag(cls, entity_key: str, is_test: bool) -> "ViewerContext":
        return cls(entity_key=entity_key, lane=Lane.from_flag(is_test))


class LogicalRecord(BaseModel):
    """A governance entry, e.g. a minute-book filing."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    entity_key: str
    domain_key: Optional[str] = None
    title: Optional[str] = None
    entry_type: Optional[str] = None
    section_name: Optional[str] = None
    source_record_id: Optional[str] = Field(
        None, description="Approval-ledger row this entry was filed from"
    )
    created_at: Optional[datetime] = None

    @property
    def ledger_id(self) -> Optional[str]:
        value = (self.source_record_id or "").strip()
        return value or None

    @property
    def is_ledger_originated(self) -> bool:
        return self.ledger_id is not None


class LedgerRecord(BaseModel):
    """The lane-bearing slice of an approval-ledger row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    entity_key: str
    is_test: Optional[bool] = None
    status: Optional[str] = None
    title: Optional[str] = None


class SupportingObject(BaseModel):
    """An uploaded file backing a logical record (one version of it)."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    entry_id: str
    entity_key: str
    storage_bucket: Optional[str] = Field(
        None, description="Upload bucket; derived from the path when absent"
    )
    file_path: Optional[str] = None
    file_name: Optional[str] = None
    file_hash: Optional[str] = None
    file_size: Optional[int] = Field(None, ge=0)
    mime_type: Optional[str] = None
    version: Optional[int] = None
    uploaded_at: Optional[datetime] = None
    registry_visible: Optional[bool] = None

    @property
    def bucket(self) -> Optional[str]:
        return self.storage_bucket

    @property
    def path(self) -> Optional[str]:
        return self.file_path


class VerifiedArtifact(BaseModel):
    """A certified output stored in a lane bucket."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    entity_key: str
    storage_bucket: str
    storage_path: str
    file_name: Optional[str] = None
    file_hash: Optional[str] = None
    title: Optional[str] = None
    source_table: Optional[str] = None
    source_record_id: Optional[str] = None
    verification_level: Optional[str] = None
    created_at: Optional[datetime] = None

    # Carried lane flag from the ledger join; never stored on the row.
    is_test: Optional[bool] = None

    @property
    def bucket(self) -> str:
        return self.storage_bucket

    @property
    def path(self) -> str:
        return self.storage_path

    @property
    def is_ledger_backed(self) -> bool:
        """Official artifact. Legacy rows with no source_table count as ledger-backed."""
        table = (self.source_table or "").strip()
        return not table or table == SourceTable.GOVERNANCE_LEDGER.value

    @property
    def is_promoted(self) -> bool:
        return (self.source_table or "").strip() == SourceTable.MINUTE_BOOK_ENTRIES.value


Artifact = Union[VerifiedArtifact, SupportingObject]


class Resolution(BaseModel):
    """The single winning artifact for a logical record."""

    model_config = ConfigDict(frozen=True)

    record_id: str
    tier: AuthorityTier
    artifact: Artifact

    @property
    def bucket(self) -> Optional[str]:
        return self.artifact.bucket

    @property
    def path(self) -> Optional[str]:
        return self.artifact.path

    @property
    def file_name(self) -> Optional[str]:
        return self.artifact.file_name

    @property
    def file_hash(self) -> Optional[str]:
        return self.artifact.file_hash


class LocatedObject(BaseModel):
    """A minted access URL and where it actually points.

    Views display ``resolved_bucket``/``resolved_path``, not the recorded
    location, so the audit trail shows what was really served.
    """

    model_config = ConfigDict(frozen=True)

    access_url: str
    resolved_bucket: str
    resolved_path: str
    requested_bucket: str
    requested_path: str
    download_name: Optional[str] = None
    repaired: bool = False
    expires_at: Optional[datetime] = None
