"""
Read services over the governance archive tables.

Every query is filtered by the owning-entity scope. No joins: callers compose
multiple point queries and merge in memory.
"""

from contextlib import contextmanager
from typing import Dict, Iterable, Iterator, List, Optional

from sqlalchemy import desc, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..errors import AccessError
from ..schemas.enums import SourceTable
from ..schemas.records import LedgerRecord, LogicalRecord, SupportingObject, VerifiedArtifact
from .models import (
    GovernanceLedgerModel,
    MinuteBookEntryModel,
    SupportingDocumentModel,
    VerifiedDocumentModel,
)

DEFAULT_RECORD_LIMIT = 1000
DEFAULT_ARTIFACT_LIMIT = 25
DEFAULT_REGISTRY_LIMIT = 300


@contextmanager
def _datastore_errors(operation: str) -> Iterator[None]:
    """Surface driver failures as AccessError."""
    try:
        yield
    except SQLAlchemyError as e:
        raise AccessError(f"Datastore query failed ({operation}): {e}") from e


class ArchiveRepository:
    """Entity-scoped queries for records, uploads, verified artifacts and ledger lanes."""

    def __init__(self, db: Session):
        self.db = db

    # Logical records

    def get_record(self, entity_key: str, record_id: str) -> Optional[LogicalRecord]:
        """Get a minute-book entry by ID."""
        with _datastore_errors("get_record"):
            row = (
                self.db.query(MinuteBookEntryModel)
                .filter(MinuteBookEntryModel.entity_key == entity_key)
                .filter(MinuteBookEntryModel.id == record_id)
                .first()
            )
        return LogicalRecord.model_validate(row) if row else None

    def list_records(
        self,
        entity_key: str,
        domain_key: Optional[str] = None,
        limit: int = DEFAULT_RECORD_LIMIT,
    ) -> List[LogicalRecord]:
        """Get an entity's entries, newest first, optionally for one domain."""
        with _datastore_errors("list_records"):
            query = self.db.query(MinuteBookEntryModel).filter(
                MinuteBookEntryModel.entity_key == entity_key
            )
            if domain_key:
                query = query.filter(MinuteBookEntryModel.domain_key == domain_key)
            rows = query.order_by(desc(MinuteBookEntryModel.created_at)).limit(limit).all()
        return [LogicalRecord.model_validate(r) for r in rows]

    # Supporting objects

    def _supporting_query(self, entity_key: str):
        return (
            self.db.query(SupportingDocumentModel)
            .filter(SupportingDocumentModel.entity_key == entity_key)
            .order_by(
                SupportingDocumentModel.registry_visible.desc().nulls_last(),
                SupportingDocumentModel.version.desc().nulls_last(),
                SupportingDocumentModel.uploaded_at.desc().nulls_last(),
            )
        )

    def get_primary_supporting_object(
        self, entity_key: str, record_id: str
    ) -> Optional[SupportingObject]:
        """The primary upload: registry-visible first, then newest version."""
        with _datastore_errors("get_primary_supporting_object"):
            row = (
                self._supporting_query(entity_key)
                .filter(SupportingDocumentModel.entry_id == record_id)
                .first()
            )
        return SupportingObject.model_validate(row) if row else None

    def get_primary_supporting_objects(
        self, entity_key: str, record_ids: Iterable[str]
    ) -> Dict[str, SupportingObject]:
        """Primary upload per record for a batch of records (first row wins)."""
        ids = [r for r in record_ids if r]
        if not ids:
            return {}
        with _datastore_errors("get_primary_supporting_objects"):
            rows = (
                self._supporting_query(entity_key)
                .filter(SupportingDocumentModel.entry_id.in_(ids))
                .all()
            )
        primary: Dict[str, SupportingObject] = {}
        for row in rows:
            if row.entry_id not in primary:
                primary[row.entry_id] = SupportingObject.model_validate(row)
        return primary

    # Ledger

    def get_ledger_record(self, entity_key: str, ledger_id: str) -> Optional[LedgerRecord]:
        """Get an approval-ledger row by ID."""
        with _datastore_errors("get_ledger_record"):
            row = (
                self.db.query(GovernanceLedgerModel)
                .filter(GovernanceLedgerModel.entity_key == entity_key)
                .filter(GovernanceLedgerModel.id == ledger_id)
                .first()
            )
        return LedgerRecord.model_validate(row) if row else None

    def get_ledger_records(
        self, entity_key: str, ledger_ids: Iterable[str]
    ) -> Dict[str, LedgerRecord]:
        """Ledger rows by ID for a batch of IDs."""
        ids = [i for i in ledger_ids if i]
        if not ids:
            return {}
        with _datastore_errors("get_ledger_records"):
            rows = (
                self.db.query(GovernanceLedgerModel)
                .filter(GovernanceLedgerModel.entity_key == entity_key)
                .filter(GovernanceLedgerModel.id.in_(ids))
                .all()
            )
        return {r.id: LedgerRecord.model_validate(r) for r in rows}

    # Verified artifacts

    def list_official_artifacts(
        self, entity_key: str, ledger_id: str, limit: int = DEFAULT_ARTIFACT_LIMIT
    ) -> List[VerifiedArtifact]:
        """Ledger-backed artifacts for a ledger row, newest first.

        Legacy rows with an empty source_table count as ledger-backed.
        """
        with _datastore_errors("list_official_artifacts"):
            rows = (
                self.db.query(VerifiedDocumentModel)
                .filter(VerifiedDocumentModel.entity_key == entity_key)
                .filter(VerifiedDocumentModel.source_record_id == ledger_id)
                .filter(
                    or_(
                        VerifiedDocumentModel.source_table
                        == SourceTable.GOVERNANCE_LEDGER.value,
                        VerifiedDocumentModel.source_table.is_(None),
                        VerifiedDocumentModel.source_table == "",
                    )
                )
                .order_by(desc(VerifiedDocumentModel.created_at))
                .limit(limit)
                .all()
            )
        return [VerifiedArtifact.model_validate(r) for r in rows]

    def list_promoted_artifacts(
        self, entity_key: str, record_id: str, limit: int = DEFAULT_ARTIFACT_LIMIT
    ) -> List[VerifiedArtifact]:
        """Artifacts certified from a minute-book entry, newest first."""
        with _datastore_errors("list_promoted_artifacts"):
            rows = (
                self.db.query(VerifiedDocumentModel)
                .filter(VerifiedDocumentModel.entity_key == entity_key)
                .filter(
                    VerifiedDocumentModel.source_table
                    == SourceTable.MINUTE_BOOK_ENTRIES.value
                )
                .filter(VerifiedDocumentModel.source_record_id == record_id)
                .order_by(desc(VerifiedDocumentModel.created_at))
                .limit(limit)
                .all()
            )
        return [VerifiedArtifact.model_validate(r) for r in rows]

    def list_verified_artifacts(
        self, entity_key: str, limit: int = DEFAULT_REGISTRY_LIMIT
    ) -> List[VerifiedArtifact]:
        """All verified artifacts of an entity, newest first."""
        with _datastore_errors("list_verified_artifacts"):
            rows = (
                self.db.query(VerifiedDocumentModel)
                .filter(VerifiedDocumentModel.entity_key == entity_key)
                .order_by(desc(VerifiedDocumentModel.created_at))
                .limit(limit)
                .all()
            )
        return [VerifiedArtifact.model_validate(r) for r in rows]
