"""
services/document_sync.py
-------------------------
Keeps the generic document repository in step with compliance attachments.

Compliance attachments are the source of truth. For each one the engine
derives a period folder (plus a category subfolder), writes the file under
the folder path, inserts a `documentos` row and links it back through
`compliance_anexos.documento_id`.

Synchronization is best-effort. An upload walks the states

    uploaded -> folder_resolved -> file_written -> document_linked

and stops at the last completed state when something fails. The failure
is logged, never raised, and the attachment keeps a NULL `documento_id`.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import psycopg2

from db.executor import QueryExecutor
from db.init_db import ensure_compliance_documents_infrastructure
from db.errors import SyncError
from db.schema import SchemaEnsurer
from models.attachment import AttachmentRecord
from models.competency import CompetencyPeriod
from models.document import DocumentRecord, FolderRecord
from repositories.attachment_repo import AttachmentRepository
from repositories.competency_repo import CompetencyRepository
from repositories.document_repo import DocumentRepository
from repositories.folder_repo import FolderRepository
from services.document_storage import DocumentStorage, StoredFile
from services.folder_paths import (
    PRIMARY_CATEGORIES,
    build_folder_metadata,
    resolve_folder_path,
    subfolder_title,
)
from utils.logger import get_logger

logger = get_logger(__name__)


class SyncState(str, Enum):
    UPLOADED = "uploaded"
    FOLDER_RESOLVED = "folder_resolved"
    FILE_WRITTEN = "file_written"
    DOCUMENT_LINKED = "document_linked"


@dataclass
class SyncOutcome:
    """
    How far an attachment's synchronization got.

    `document_id` is only set once the document is linked to the attachment.
    """
    attachment_id: Optional[int]
    state: SyncState = SyncState.UPLOADED
    document_id: Optional[int] = None
    error: Optional[str] = None

    @property
    def synced(self) -> bool:
        return self.state is SyncState.DOCUMENT_LINKED

    @property
    def partially_synced(self) -> bool:
        return not self.synced


@dataclass
class MigrationReport:
    migrated: int = 0
    errors: int = 0
    total: int = 0


class DocumentSyncEngine:
    """
    Mirrors compliance attachments into the documents repository.

    Args:
        executor: Query executor shared by every repository the engine uses.
        storage: Where document files are written.
    """

    def __init__(self, executor: QueryExecutor, storage: Optional[DocumentStorage] = None):
        self.executor = executor
        self.schema = SchemaEnsurer(executor)
        self.storage = storage or DocumentStorage()
        self.folders = FolderRepository(executor)
        self.documents = DocumentRepository(executor)
        self.attachments = AttachmentRepository(executor)
        self.competencies = CompetencyRepository(executor)

    def ensure_infrastructure(self) -> None:
        ensure_compliance_documents_infrastructure(self.schema)

    # ── FOLDERS ───────────────────────────────────────────

    def ensure_folder(self, period: CompetencyPeriod) -> int:
        """
        Return the competency's period folder, creating it on first use.

        An existing folder only gets its title, description and organization
        refreshed from the current dates. The primary category subfolders are
        made sure of on every call.

        Raises:
            SyncError: If the competency no longer exists.
            psycopg2.Error: On database failures.
        """
        self.ensure_infrastructure()
        metadata = build_folder_metadata(period)

        folder_id = period.folder_id
        if folder_id and not self.folders.update_metadata(
            folder_id, metadata.title, metadata.description, metadata.organization
        ):
            logger.warning(f"Folder #{folder_id} of competency {period.id} is gone, recreating it.")
            self.competencies.release_folder(period.id, folder_id)
            folder_id = None

        if not folder_id:
            folder_id = self._create_period_folder(period, metadata)
        period.folder_id = folder_id

        for category in PRIMARY_CATEGORIES:
            try:
                self.ensure_subfolder(folder_id, category, metadata.organization, period.created_by)
            except psycopg2.Error as e:
                logger.error(f"Failed to ensure subfolder {category} of folder #{folder_id}: {e}")
        return folder_id

    def _create_period_folder(self, period: CompetencyPeriod, metadata) -> int:
        folder = self.folders.add(FolderRecord(
            title=metadata.title,
            description=metadata.description,
            organization=metadata.organization,
            created_by=period.created_by,
        ))
        if self.competencies.claim_folder(period.id, folder.id):
            return folder.id

        # Another request created the folder first (or the competency is gone).
        self.folders.delete(folder.id)
        current = self.competencies.get_by_id(period.id)
        if current is None or not current.folder_id:
            raise SyncError("folder_resolved", f"competency {period.id} not found")
        self.folders.update_metadata(
            current.folder_id, metadata.title, metadata.description, metadata.organization
        )
        return current.folder_id

    def ensure_subfolder(
        self,
        parent_id: int,
        category: str,
        organization: Optional[str] = None,
        created_by: Optional[int] = None,
    ) -> Optional[int]:
        """
        Find or create the subfolder for an attachment category.

        Returns:
            The subfolder id, or None for categories without a subfolder.
        """
        title = subfolder_title(category)
        if title is None:
            return None

        existing = self.folders.find_child(parent_id, title)
        if existing:
            return existing.id

        if organization is None:
            parent = self.folders.get_by_id(parent_id)
            organization = parent.organization if parent else None

        folder = self.folders.add(FolderRecord(
            title=title,
            description=f"Documentos da categoria {title}",
            organization=organization,
            parent_id=parent_id,
            created_by=created_by,
        ))
        return folder.id

    # ── UPLOAD ────────────────────────────────────────────

    def on_attachment_uploaded(self, attachment: AttachmentRecord, period: CompetencyPeriod) -> SyncOutcome:
        """
        Mirror a committed attachment into the documents repository.

        Never raises: any failure is logged and reflected in the outcome,
        leaving the attachment's `documento_id` NULL.
        """
        outcome = SyncOutcome(attachment_id=attachment.id)
        stored: Optional[StoredFile] = None
        document: Optional[DocumentRecord] = None
        try:
            folder_id = self.ensure_folder(period)
            target_id = self.ensure_subfolder(
                folder_id, attachment.category, period.folder_organization(), period.created_by
            ) or folder_id
            outcome.state = SyncState.FOLDER_RESOLVED

            stored = self.storage.save(
                resolve_folder_path(period, attachment.category),
                attachment.filename,
                self._read_payload(attachment),
                period.id,
            )
            outcome.state = SyncState.FILE_WRITTEN

            document = self.documents.add(DocumentRecord(
                filename=attachment.filename,
                path=stored.path,
                size=stored.size,
                mimetype=attachment.mimetype,
                organization=attachment.organization or period.folder_organization(),
                uploaded_by=attachment.created_by,
                folder_id=target_id,
            ))
            if not self.attachments.set_document(attachment.id, document.id):
                raise SyncError("document_linked", f"attachment #{attachment.id} no longer exists")
        except Exception as e:
            outcome.error = str(e)
            logger.warning(
                f"Document sync for attachment #{attachment.id} stopped at '{outcome.state.value}': {e}"
            )
            self._discard(document, stored)
            return outcome

        attachment.document_id = document.id
        outcome.state = SyncState.DOCUMENT_LINKED
        outcome.document_id = document.id
        logger.info(f"Attachment #{attachment.id} linked to document #{document.id}")
        return outcome

    def _read_payload(self, attachment: AttachmentRecord) -> bytes:
        if attachment.payload is not None:
            return attachment.payload
        if attachment.path and os.path.isfile(attachment.path):
            with open(attachment.path, "rb") as fh:
                return fh.read()
        raise SyncError("file_written", f"attachment #{attachment.id} has no content")

    def _discard(self, document: Optional[DocumentRecord], stored: Optional[StoredFile]) -> None:
        """Undo a half-finished upload: row first, then the file it points at."""
        if document is not None and document.id is not None:
            try:
                self.documents.delete(document.id)
            except Exception as e:
                logger.error(f"Failed to discard unlinked document #{document.id}: {e}")
                return
        if stored is not None:
            self.storage.remove(stored.path)

    # ── REMOVAL ───────────────────────────────────────────

    def on_attachment_removed(self, attachment: AttachmentRecord) -> bool:
        """
        Remove an attachment together with its synchronized document.

        The document row is deleted before its file, so no row ever points
        at a file this call deleted. Cleanup of the derived document is
        best-effort; the attachment row is deleted regardless.

        Returns:
            True if the attachment row was deleted.

        Raises:
            psycopg2.Error: If the attachment row itself cannot be deleted.
        """
        if attachment.document_id:
            self._remove_document(attachment.document_id)
        return self.attachments.delete(attachment.id)

    def _remove_document(self, document_id: int) -> None:
        try:
            document = self.documents.get_by_id(document_id)
            self.documents.delete(document_id)
        except Exception as e:
            logger.warning(f"Failed to delete document #{document_id}, keeping its file: {e}")
            return
        if document is not None:
            self.storage.remove(document.path)

    # ── EXTERNAL INTERFACE ────────────────────────────────

    def sync_attachment_upload(self, attachment: AttachmentRecord, period: CompetencyPeriod) -> Optional[int]:
        """Synchronize an uploaded attachment; returns the linked document id or None."""
        return self.on_attachment_uploaded(attachment, period).document_id

    def sync_attachment_removal(self, attachment: AttachmentRecord) -> None:
        self.on_attachment_removed(attachment)

    # ── MAINTENANCE ───────────────────────────────────────

    def sync_folder_by_competency_id(self, competency_id: int) -> Optional[int]:
        """
        Re-derive a competency's folder from its current dates and move its
        documents into their category subfolders.

        Returns:
            The folder id, or None if the competency does not exist.
        """
        self.ensure_infrastructure()
        period = self.competencies.get_by_id(competency_id)
        if period is None:
            return None

        folder_id = self.ensure_folder(period)
        try:
            self.migrate_documents_to_subfolders(folder_id)
        except psycopg2.Error as e:
            logger.warning(f"Failed to migrate documents of folder #{folder_id}, continuing: {e}")
        return folder_id

    def migrate_documents_to_subfolders(self, folder_id: int) -> MigrationReport:
        """
        Move documents filed directly in a period folder into the subfolder
        of their attachment category.
        """
        docs = self.documents.list_linked_in_folder(folder_id)
        report = MigrationReport(total=len(docs))
        logger.info(f"Migrating {report.total} documents of folder #{folder_id} into subfolders")

        for doc in docs:
            category = doc.get("tipo_anexo")
            if not category:
                continue
            try:
                subfolder_id = self.ensure_subfolder(folder_id, category)
                if subfolder_id and subfolder_id != doc["pasta_id"]:
                    self.documents.move_to_folder(doc["id"], subfolder_id)
                    report.migrated += 1
            except psycopg2.Error as e:
                logger.error(f"Failed to migrate document #{doc['id']}: {e}")
                report.errors += 1

        logger.info(f"Migration finished: {report.migrated} migrated, {report.errors} errors")
        return report
