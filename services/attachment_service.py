"""
services/attachment_service.py
------------------------------
Business logic for compliance attachments.

An upload succeeds once the attachment row exists. Mirroring it into the
documents repository happens afterwards and may fail without affecting the
upload's result.
"""

from dataclasses import dataclass
from typing import Optional

import psycopg2

from db.executor import QueryExecutor
from db.init_db import ensure_compliance_tables
from models.attachment import AttachmentRecord
from repositories.attachment_repo import AttachmentRepository
from repositories.competency_repo import CompetencyRepository
from services.document_sync import DocumentSyncEngine
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class UploadResult:
    attachment: AttachmentRecord
    document_id: Optional[int]


class CompetencyNotFound(LookupError):
    """The competency an attachment refers to does not exist."""


class AttachmentService:
    """
    Handles uploading, listing and removing compliance attachments.

    Args:
        executor: Query executor used for every statement.
        sync_engine: Document sync engine; built on `executor` when omitted.
    """

    def __init__(self, executor: QueryExecutor, sync_engine: Optional[DocumentSyncEngine] = None):
        self.sync = sync_engine or DocumentSyncEngine(executor)
        self.attachments = AttachmentRepository(executor)
        self.competencies = CompetencyRepository(executor)
        self._schema = self.sync.schema

    def _ensure_schema(self) -> None:
        # Attachment side only: folder and document tables are the sync
        # engine's concern and must not be able to fail an upload.
        ensure_compliance_tables(self._schema)
        self._schema.ensure_column("compliance_anexos", "documento_id", "INTEGER NULL")

    def upload(
        self,
        competency_id: int,
        category: str,
        filename: str,
        payload: bytes,
        mimetype: Optional[str] = None,
        user_id: Optional[int] = None,
        organization: Optional[str] = None,
    ) -> UploadResult:
        """
        Store an attachment and mirror it into the documents repository.

        Args:
            competency_id: Owning compliance_fiscal id.
            category: Attachment category ("tipo_anexo").
            filename: Original filename, already sanitized by the caller.
            payload: File contents.
            mimetype: MIME type reported by the client.
            user_id: Uploading user.
            organization: Uploading user's organization.

        Returns:
            UploadResult; `document_id` is None when synchronization failed.

        Raises:
            CompetencyNotFound: If the competency does not exist.
            psycopg2.Error: If the attachment row cannot be stored.
        """
        self._ensure_schema()
        period = self.competencies.get_by_id(competency_id)
        if period is None:
            raise CompetencyNotFound(f"Competency {competency_id} not found")

        attachment = self.attachments.add(AttachmentRecord(
            competency_id=competency_id,
            category=category,
            filename=filename,
            payload=payload,
            size=len(payload),
            mimetype=mimetype,
            created_by=user_id,
            organization=organization,
        ))
        try:
            self.competencies.set_attachment_reference(competency_id, category, attachment.id)
        except psycopg2.Error as e:
            logger.warning(f"Failed to record attachment #{attachment.id} on competency {competency_id}: {e}")

        document_id = self.sync.sync_attachment_upload(attachment, period)
        return UploadResult(attachment=attachment, document_id=document_id)

    def get(self, attachment_id: int, include_payload: bool = True) -> Optional[AttachmentRecord]:
        return self.attachments.get_by_id(attachment_id, include_payload=include_payload)

    def list_for_competency(self, competency_id: int, category: Optional[str] = None) -> list[AttachmentRecord]:
        return self.attachments.list_by_competency(competency_id, category)

    def remove(self, attachment_id: int) -> bool:
        """
        Delete an attachment and, best-effort, its synchronized document.

        Returns:
            True if deleted, False if the attachment did not exist.
        """
        attachment = self.attachments.get_by_id(attachment_id)
        if attachment is None:
            return False

        deleted = self.sync.on_attachment_removed(attachment)
        if deleted:
            try:
                self.competencies.clear_attachment_reference(
                    attachment.competency_id, attachment.category, attachment.id
                )
            except psycopg2.Error as e:
                logger.warning(f"Failed to clear attachment #{attachment_id} from its competency: {e}")
        return deleted
