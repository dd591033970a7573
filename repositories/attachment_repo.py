"""
repositories/attachment_repo.py
-------------------------------
Data access layer for compliance attachments.
All SQL queries related to the `compliance_anexos` table live here.
"""

from typing import Optional

import psycopg2

from db.executor import QueryExecutor, get_executor
from models.attachment import AttachmentRecord
from utils.logger import get_logger

logger = get_logger(__name__)

_LIST_COLUMNS = (
    "id, compliance_id, tipo_anexo, nome_arquivo, caminho_arquivo, tamanho_arquivo, "
    "tipo_mime, created_by, organizacao_upload, documento_id, created_at"
)


class AttachmentRepository:
    """Repository for CRUD operations on the compliance_anexos table."""

    def __init__(self, executor: Optional[QueryExecutor] = None):
        self.executor = executor or get_executor()

    # ── CREATE ────────────────────────────────────────────

    def add(self, attachment: AttachmentRecord) -> AttachmentRecord:
        """
        Insert an attachment, payload included.

        Returns:
            The same AttachmentRecord with `id` and `created_at` populated.
        """
        payload = psycopg2.Binary(attachment.payload) if attachment.payload is not None else None
        row = self.executor.fetch_one(
            """
            INSERT INTO compliance_anexos (
                compliance_id, tipo_anexo, nome_arquivo, caminho_arquivo, file_data,
                tamanho_arquivo, tipo_mime, created_by, organizacao_upload
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id, created_at;
            """,
            (
                attachment.competency_id, attachment.category, attachment.filename,
                attachment.path, payload, attachment.size, attachment.mimetype,
                attachment.created_by, attachment.organization,
            ),
        )
        attachment.id = row["id"]
        attachment.created_at = row["created_at"]
        logger.info(
            f"Added attachment #{attachment.id} ({attachment.category}) "
            f"to competency {attachment.competency_id}"
        )
        return attachment

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, attachment_id: int, include_payload: bool = False) -> Optional[AttachmentRecord]:
        columns = _LIST_COLUMNS + (", file_data" if include_payload else "")
        row = self.executor.fetch_one(
            f"SELECT {columns} FROM compliance_anexos WHERE id = %s;", (attachment_id,)
        )
        return self._row_to_attachment(row) if row else None

    def list_by_competency(self, competency_id: int, category: Optional[str] = None) -> list[AttachmentRecord]:
        """
        List a competency's attachments, newest first, without payloads.

        Args:
            competency_id: Owning compliance_fiscal id.
            category: Optional "tipo_anexo" filter.
        """
        query = f"SELECT {_LIST_COLUMNS} FROM compliance_anexos WHERE compliance_id = %s"
        params: list = [competency_id]
        if category:
            query += " AND tipo_anexo = %s"
            params.append(category)
        query += " ORDER BY created_at DESC, id DESC;"
        return [self._row_to_attachment(r) for r in self.executor.fetch_all(query, params)]

    # ── UPDATE ────────────────────────────────────────────

    def set_document(self, attachment_id: int, document_id: Optional[int]) -> bool:
        """Link (or unlink, with None) the attachment's synchronized document."""
        result = self.executor.execute(
            "UPDATE compliance_anexos SET documento_id = %s WHERE id = %s;",
            (document_id, attachment_id),
        )
        return result.rowcount > 0

    # ── DELETE ────────────────────────────────────────────

    def delete(self, attachment_id: int) -> bool:
        result = self.executor.execute("DELETE FROM compliance_anexos WHERE id = %s;", (attachment_id,))
        deleted = result.rowcount > 0
        if deleted:
            logger.info(f"Deleted attachment #{attachment_id}")
        return deleted

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_attachment(row: dict) -> AttachmentRecord:
        payload = row.get("file_data")
        return AttachmentRecord(
            id=row["id"],
            competency_id=row["compliance_id"],
            category=row["tipo_anexo"],
            filename=row["nome_arquivo"],
            path=row.get("caminho_arquivo"),
            payload=bytes(payload) if payload is not None else None,
            size=row.get("tamanho_arquivo"),
            mimetype=row.get("tipo_mime"),
            created_by=row.get("created_by"),
            organization=row.get("organizacao_upload"),
            document_id=row.get("documento_id"),
            created_at=row.get("created_at"),
        )
