"""
repositories/document_repo.py
-----------------------------
Data access layer for generic documents.
All SQL queries related to the `documentos` table live here.
"""

from typing import Optional

from db.executor import QueryExecutor, get_executor
from models.document import DocumentRecord
from utils.logger import get_logger

logger = get_logger(__name__)


class DocumentRepository:
    """Repository for CRUD operations on the documentos table."""

    def __init__(self, executor: Optional[QueryExecutor] = None):
        self.executor = executor or get_executor()

    # ── CREATE ────────────────────────────────────────────

    def add(self, document: DocumentRecord) -> DocumentRecord:
        """
        Insert a document row.

        Returns:
            The same DocumentRecord with `id` and `created_at` populated.
        """
        row = self.executor.fetch_one(
            """
            INSERT INTO documentos (nome_arquivo, caminho, tamanho, mimetype, organizacao, enviado_por, pasta_id)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at;
            """,
            (
                document.filename, document.path, document.size, document.mimetype,
                document.organization, document.uploaded_by, document.folder_id,
            ),
        )
        document.id = row["id"]
        document.created_at = row["created_at"]
        logger.info(f"Created document #{document.id} in folder #{document.folder_id}")
        return document

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, document_id: int) -> Optional[DocumentRecord]:
        row = self.executor.fetch_one(
            """
            SELECT id, nome_arquivo, caminho, tamanho, mimetype, organizacao,
                   enviado_por, pasta_id, created_at
            FROM documentos WHERE id = %s;
            """,
            (document_id,),
        )
        return self._row_to_document(row) if row else None

    def list_linked_in_folder(self, folder_id: int) -> list[dict]:
        """
        Documents filed directly in `folder_id` that came from a compliance
        attachment, with the attachment's category.

        Returns:
            List of dicts: [{'id', 'nome_arquivo', 'pasta_id', 'tipo_anexo'}, ...]
        """
        return self.executor.fetch_all(
            """
            SELECT d.id, d.nome_arquivo, d.pasta_id, ca.tipo_anexo
            FROM documentos d
            INNER JOIN compliance_anexos ca ON d.id = ca.documento_id
            WHERE d.pasta_id = %s
            ORDER BY d.id;
            """,
            (folder_id,),
        )

    # ── UPDATE ────────────────────────────────────────────

    def move_to_folder(self, document_id: int, folder_id: int) -> bool:
        result = self.executor.execute(
            "UPDATE documentos SET pasta_id = %s WHERE id = %s;", (folder_id, document_id)
        )
        return result.rowcount > 0

    # ── DELETE ────────────────────────────────────────────

    def delete(self, document_id: int) -> bool:
        """
        Delete a document row.

        Returns:
            True if a row was deleted, False otherwise.
        """
        result = self.executor.execute("DELETE FROM documentos WHERE id = %s;", (document_id,))
        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted document #{document_id}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_document(row: dict) -> DocumentRecord:
        return DocumentRecord(
            id=row["id"],
            filename=row["nome_arquivo"],
            path=row["caminho"],
            size=row.get("tamanho"),
            mimetype=row.get("mimetype"),
            organization=row.get("organizacao"),
            uploaded_by=row.get("enviado_por"),
            folder_id=row.get("pasta_id"),
            created_at=row.get("created_at"),
        )
