from __future__ import annotations

from datetime import date, datetime

from db.executor import QueryExecutor
from models.attachment import AttachmentRecord
from models.document import DocumentRecord, FolderRecord
from repositories.attachment_repo import AttachmentRepository
from repositories.competency_repo import CompetencyRepository
from repositories.document_repo import DocumentRepository
from repositories.folder_repo import FolderRepository
from tests.fakes import DummyPoolManager

CREATED = datetime(2024, 2, 1, 9, 30)


def _wire(responder) -> tuple[QueryExecutor, DummyPoolManager]:
    manager = DummyPoolManager(responder)
    return QueryExecutor(manager, max_retries=0, retry_delay=0, sleep=lambda _: None), manager


def _statements(manager: DummyPoolManager) -> list[str]:
    return [" ".join(query.split()) for query, _ in manager.pool.conn.executed]


def test_competency_is_mapped_from_its_row() -> None:
    row = {
        "id": 42,
        "organizacao": "cassems",
        "organizacao_criacao": "portes",
        "ultima_alteracao_organizacao": None,
        "created_by": 7,
        "competencia_inicio": date(2024, 1, 1),
        "competencia_fim": date(2024, 1, 31),
        "competencia_referencia": None,
        "pasta_documentos_id": 12,
    }
    executor, _ = _wire(lambda query, params: [row])

    period = CompetencyRepository(executor).get_by_id(42)

    assert period.folder_id == 12
    assert period.folder_organization() == "portes"
    assert period.end_date == date(2024, 1, 31)


def test_claim_folder_only_fills_an_empty_reference() -> None:
    executor, manager = _wire(lambda query, params: 0)

    assert CompetencyRepository(executor).claim_folder(42, 12) is False
    assert "pasta_documentos_id IS NULL" in _statements(manager)[0]
    assert manager.pool.conn.executed[0][1] == (12, 42)


def test_attachment_reference_column_is_quoted() -> None:
    executor, manager = _wire(lambda query, params: 1)
    repo = CompetencyRepository(executor)

    assert repo.set_attachment_reference(42, "emails", 5) is True
    assert repo.clear_attachment_reference(42, "emails", 5) is True
    assert _statements(manager) == [
        'UPDATE compliance_fiscal SET "emails_anexo_id" = %s WHERE id = %s;',
        'UPDATE compliance_fiscal SET "emails_anexo_id" = NULL WHERE id = %s AND "emails_anexo_id" = %s;',
    ]


def test_unknown_category_touches_no_column() -> None:
    executor, manager = _wire(lambda query, params: 1)
    repo = CompetencyRepository(executor)

    assert repo.set_attachment_reference(42, "id = 1; --", 5) is False
    assert repo.clear_attachment_reference(42, "contratos", 5) is False
    assert manager.pool.conn.executed == []


def test_folder_insert_returns_generated_fields() -> None:
    executor, manager = _wire(lambda query, params: [{"id": 3, "created_at": CREATED, "updated_at": CREATED}])

    folder = FolderRepository(executor).add(FolderRecord(title="Notas Fiscais", parent_id=1, organization="cassems"))

    assert (folder.id, folder.created_at) == (3, CREATED)
    assert manager.pool.conn.executed[0][1] == ("Notas Fiscais", None, "cassems", 1, None)


def test_missing_folder_update_reports_false() -> None:
    executor, _ = _wire(lambda query, params: 0)
    assert FolderRepository(executor).update_metadata(99, "Título", None, None) is False


def test_find_child_maps_the_folder() -> None:
    row = {"id": 4, "titulo": "Comprovação de Email", "pasta_pai_id": 1, "organizacao": "cassems"}
    executor, manager = _wire(lambda query, params: [row])

    child = FolderRepository(executor).find_child(1, "Comprovação de Email")

    assert child.id == 4 and child.parent_id == 1
    assert manager.pool.conn.executed[0][1] == (1, "Comprovação de Email")


def test_document_insert_and_move() -> None:
    def responder(query, params):
        return [{"id": 8, "created_at": CREATED}] if query.lstrip().startswith("INSERT") else 1

    executor, manager = _wire(responder)
    repo = DocumentRepository(executor)

    document = repo.add(DocumentRecord(filename="nf.pdf", path="/srv/uploads/nf.pdf", size=10, folder_id=4))
    assert document.id == 8
    assert repo.move_to_folder(8, 5) is True
    assert manager.pool.conn.executed[-1][1] == (5, 8)


def test_attachment_payload_is_sent_as_binary_and_read_back_as_bytes() -> None:
    def responder(query, params):
        if query.lstrip().startswith("INSERT"):
            return [{"id": 11, "created_at": CREATED}]
        return [{
            "id": 11,
            "compliance_id": 42,
            "tipo_anexo": "emails",
            "nome_arquivo": "email.eml",
            "file_data": memoryview(b"conteudo"),
            "documento_id": None,
        }]

    executor, manager = _wire(responder)
    repo = AttachmentRepository(executor)

    added = repo.add(AttachmentRecord(competency_id=42, category="emails", filename="email.eml", payload=b"conteudo"))
    assert added.id == 11
    assert manager.pool.conn.executed[0][1][4].adapted == b"conteudo"

    loaded = repo.get_by_id(11, include_payload=True)
    assert loaded.payload == b"conteudo"
    assert not loaded.synced
    assert "file_data" in _statements(manager)[1]


def test_attachment_listing_filters_by_category() -> None:
    executor, manager = _wire(lambda query, params: [])

    assert AttachmentRepository(executor).list_by_competency(42, "emails") == []

    statement = _statements(manager)[0]
    assert "AND tipo_anexo = %s" in statement
    assert "file_data" not in statement
    assert manager.pool.conn.executed[0][1] == (42, "emails")
