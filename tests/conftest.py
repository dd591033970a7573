from __future__ import annotations

from datetime import date

import pytest

from models.competency import CompetencyPeriod
from services.attachment_service import AttachmentService
from services.document_storage import DocumentStorage
from services.document_sync import DocumentSyncEngine
from tests.fakes import NullSchema, Store, wire_memory_repositories


@pytest.fixture
def store() -> Store:
    store = Store()
    store.competencies[42] = CompetencyPeriod(
        id=42,
        organization="cassems",
        created_by=7,
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 31),
    )
    store.competencies[7] = CompetencyPeriod(id=7, reference_date="2024-03-01")
    return store


@pytest.fixture
def storage(tmp_path) -> DocumentStorage:
    return DocumentStorage(str(tmp_path / "documentos"))


@pytest.fixture
def engine(store, storage) -> DocumentSyncEngine:
    engine = DocumentSyncEngine(executor=object(), storage=storage)
    engine.schema = NullSchema()
    wire_memory_repositories(engine, store)
    return engine


@pytest.fixture
def service(engine, store) -> AttachmentService:
    service = AttachmentService(executor=object(), sync_engine=engine)
    service._schema = engine.schema
    service.attachments = engine.attachments
    service.competencies = engine.competencies
    return service
