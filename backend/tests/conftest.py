import asyncio
import os
from typing import List, Optional

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("ENCRYPTION_KEY", "A" * 43 + "=")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from sheetsync.api.deps import get_sync_executor
from sheetsync.auth import get_current_active_user
from sheetsync.connectors.base import (
    AccountContext, RecordBatch, SheetData, SourceDescriptor, SourceReader, TargetWriter, WriteResult
)
from sheetsync.database import Base, get_db
from sheetsync.main import app
from sheetsync.models.mapping import IntegrationMapping
from sheetsync.schemas.auth import User
from sheetsync.services.sync_executor import MappingLocks, SyncExecutor

DEFAULT_VALUES = [
    ["Email", "Amount", "Notes"],
    ["ada@example.com", "120.50", "first"],
    ["grace@example.com", "80", ""],
]

DEFAULT_FIELD_MAPPINGS = [
    {"source_column": "Email", "target_field": "ACCOUNT_EMAIL", "required": True},
    {"source_column": "Amount", "target_field": "TOTAL", "required": False},
]


class FakeSourceReader(SourceReader):
    def __init__(self, values: Optional[List[List[str]]] = None, error: Optional[Exception] = None, delay: float = 0.0):
        self.values = DEFAULT_VALUES if values is None else values
        self.error = error
        self.delay = delay
        self.calls: List[SourceDescriptor] = []

    async def read_source(self, source: SourceDescriptor, account: AccountContext) -> SheetData:
        self.calls.append(source)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return SheetData.from_values(self.values)


class FakeTargetWriter(TargetWriter):
    def __init__(self, error: Optional[Exception] = None, rows_failed: int = 0, delay: float = 0.0):
        self.error = error
        self.rows_failed = rows_failed
        self.delay = delay
        self.batches: List[RecordBatch] = []

    async def write_target(self, batch: RecordBatch, account: AccountContext) -> WriteResult:
        self.batches.append(batch)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return WriteResult(
            rows_processed=len(batch.records) - self.rows_failed,
            rows_failed=self.rows_failed,
            details={"target_type": batch.target.system_type}
        )


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def source_reader() -> FakeSourceReader:
    return FakeSourceReader()


@pytest.fixture
def target_writer() -> FakeTargetWriter:
    return FakeTargetWriter()


@pytest.fixture
def locks() -> MappingLocks:
    return MappingLocks()


@pytest.fixture
def executor(db, source_reader, target_writer, locks) -> SyncExecutor:
    return SyncExecutor(db, source_reader=source_reader, target_writer=target_writer, locks=locks)


@pytest.fixture
def make_mapping(db):
    def _make_mapping(**overrides) -> IntegrationMapping:
        values = {
            "user_id": "admin",
            "name": "Invoices",
            "source_spreadsheet_id": "spreadsheet-1",
            "source_range": "Sheet1!A:Z",
            "target_type": "quickbooks",
            "target_entity": "Invoice",
            "field_mappings": DEFAULT_FIELD_MAPPINGS,
            "sync_frequency": "hourly",
            "trigger_type": "schedule",
            "is_active": True,
            "sync_count": 0,
        }
        values.update(overrides)
        mapping = IntegrationMapping(**values)
        db.add(mapping)
        db.commit()
        db.refresh(mapping)
        return mapping
    return _make_mapping


@pytest.fixture
def client(session_factory, source_reader, target_writer, locks) -> TestClient:
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    def override_get_sync_executor(db: Session = Depends(get_db)):
        return SyncExecutor(db, source_reader=source_reader, target_writer=target_writer, locks=locks)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_active_user] = lambda: User(username="admin", full_name="Admin User")
    app.dependency_overrides[get_sync_executor] = override_get_sync_executor
    yield TestClient(app)
    app.dependency_overrides.clear()
