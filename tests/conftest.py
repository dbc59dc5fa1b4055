"""Test configuration and fixtures."""

import os
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from governance_archive.db.base import init_database
from governance_archive.db.models import (
    GovernanceLedgerModel,
    MinuteBookEntryModel,
    SupportingDocumentModel,
    VerifiedDocumentModel,
)
from governance_archive.db.services import ArchiveRepository
from governance_archive.policy.lane_gate import LaneConfig
from governance_archive.schemas.enums import Lane
from governance_archive.schemas.records import LogicalRecord, ViewerContext
from governance_archive.storage.backends import LocalObjectStore
from governance_archive.storage.locator import LocatorConfig

ENTITY = "acme-holdings"
BASE_TIME = datetime(2026, 1, 15, 9, 0, 0, tzinfo=timezone.utc)


class ArchiveSeeder:
    """Inserts archive rows with sensible defaults."""

    def __init__(self, session):
        self.session = session
        self._counter = 0

    def _next_time(self, offset_minutes: Optional[int]) -> datetime:
        self._counter += 1
        minutes = self._counter if offset_minutes is None else offset_minutes
        return BASE_TIME + timedelta(minutes=minutes)

    def record(self, entity_key: str = ENTITY, **fields) -> LogicalRecord:
        row = MinuteBookEntryModel(
            entity_key=entity_key,
            domain_key=fields.pop("domain_key", "share_capital"),
            title=fields.pop("title", "Issuance of common shares"),
            created_at=self._next_time(fields.pop("minutes", None)),
            **fields,
        )
        self.session.add(row)
        self.session.commit()
        return LogicalRecord.model_validate(row)

    def ledger(self, is_test: Optional[bool], entity_key: str = ENTITY, **fields):
        row = GovernanceLedgerModel(
            entity_key=entity_key,
            is_test=is_test,
            status=fields.pop("status", "APPROVED"),
            title=fields.pop("title", "Board approval"),
            **fields,
        )
        self.session.add(row)
        self.session.commit()
        return row

    def upload(self, record_id: str, file_path: str, entity_key: str = ENTITY, **fields):
        row = SupportingDocumentModel(
            entry_id=record_id,
            entity_key=entity_key,
            file_path=file_path,
            file_name=fields.pop("file_name", file_path.rsplit("/", 1)[-1]),
            uploaded_at=self._next_time(fields.pop("minutes", None)),
            **fields,
        )
        self.session.add(row)
        self.session.commit()
        return row

    def verified(
        self,
        source_table: Optional[str],
        source_record_id: str,
        storage_bucket: str,
        storage_path: str,
        entity_key: str = ENTITY,
        **fields,
    ):
        row = VerifiedDocumentModel(
            entity_key=entity_key,
            source_table=source_table,
            source_record_id=source_record_id,
            storage_bucket=storage_bucket,
            storage_path=storage_path,
            file_name=fields.pop("file_name", storage_path.rsplit("/", 1)[-1]),
            created_at=self._next_time(fields.pop("minutes", None)),
            **fields,
        )
        self.session.add(row)
        self.session.commit()
        return row


@pytest.fixture
def db_session():
    """Create a fresh in-memory database for each test."""
    engine = create_engine("sqlite:///:memory:")
    init_database(engine)
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def repository(db_session) -> ArchiveRepository:
    return ArchiveRepository(db_session)


@pytest.fixture
def seed(db_session) -> ArchiveSeeder:
    return ArchiveSeeder(db_session)


@pytest.fixture
def lane_config() -> LaneConfig:
    return LaneConfig()


@pytest.fixture
def locator_config(lane_config) -> LocatorConfig:
    return LocatorConfig(lanes=lane_config)


@pytest.fixture
def test_viewer() -> ViewerContext:
    return ViewerContext(entity_key=ENTITY, lane=Lane.TEST)


@pytest.fixture
def real_viewer() -> ViewerContext:
    return ViewerContext(entity_key=ENTITY, lane=Lane.REAL)


@pytest.fixture
def storage_root(tmp_path):
    """Storage root with the three standard buckets."""
    for bucket in ("minute_book", "governance_sandbox", "governance_truth"):
        (tmp_path / bucket).mkdir()
    return tmp_path


@pytest.fixture
def local_store(storage_root) -> LocalObjectStore:
    return LocalObjectStore(storage_root)


@pytest.fixture
def put_object(storage_root):
    """Write an object into the storage root, optionally pinning its mtime."""

    def _put(bucket: str, path: str, content: bytes = b"%PDF-1.7\n", mtime: Optional[float] = None):
        target = storage_root / bucket / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        if mtime is not None:
            os.utime(target, (mtime, mtime))
        return target

    return _put
