"""
repositories/folder_repo.py
---------------------------
Data access layer for document folders.
All SQL queries related to the `pastas_documentos` table live here.
"""

from typing import Optional

from db.executor import QueryExecutor, get_executor
from models.document import FolderRecord
from utils.logger import get_logger

logger = get_logger(__name__)

_COLUMNS = "id, titulo, descricao, organizacao, pasta_pai_id, criado_por, created_at, updated_at"


class FolderRepository:
    """Repository for CRUD operations on the pastas_documentos table."""

    def __init__(self, executor: Optional[QueryExecutor] = None):
        self.executor = executor or get_executor()

    # ── CREATE ────────────────────────────────────────────

    def add(self, folder: FolderRecord) -> FolderRecord:
        """
        Insert a new folder.

        Returns:
            The same FolderRecord with `id` and timestamps populated.
        """
        row = self.executor.fetch_one(
            """
            INSERT INTO pastas_documentos (titulo, descricao, organizacao, pasta_pai_id, criado_por)
            VALUES (%s, %s, %s, %s, %s)
            RETURNING id, created_at, updated_at;
            """,
            (folder.title, folder.description, folder.organization, folder.parent_id, folder.created_by),
        )
        folder.id = row["id"]
        folder.created_at = row["created_at"]
        folder.updated_at = row["updated_at"]
        logger.info(f"Created folder #{folder.id} '{folder.title}'")
        return folder

    # ── READ ──────────────────────────────────────────────

    def get_by_id(self, folder_id: int) -> Optional[FolderRecord]:
        row = self.executor.fetch_one(
            f"SELECT {_COLUMNS} FROM pastas_documentos WHERE id = %s;", (folder_id,)
        )
        return self._row_to_folder(row) if row else None

    def find_child(self, parent_id: int, title: str) -> Optional[FolderRecord]:
        """Find a subfolder by parent and title."""
        row = self.executor.fetch_one(
            f"""
            SELECT {_COLUMNS} FROM pastas_documentos
            WHERE pasta_pai_id = %s AND titulo = %s
            ORDER BY id
            LIMIT 1;
            """,
            (parent_id, title),
        )
        return self._row_to_folder(row) if row else None

    def list_children(self, parent_id: int) -> list[FolderRecord]:
        rows = self.executor.fetch_all(
            f"SELECT {_COLUMNS} FROM pastas_documentos WHERE pasta_pai_id = %s ORDER BY id;",
            (parent_id,),
        )
        return [self._row_to_folder(r) for r in rows]

    # ── UPDATE ────────────────────────────────────────────

    def update_metadata(
        self, folder_id: int, title: str, description: Optional[str], organization: Optional[str]
    ) -> bool:
        """
        Refresh a folder's title and description. The organization is only
        overwritten when a new one is given.

        Returns:
            True if a row was updated.
        """
        result = self.executor.execute(
            """
            UPDATE pastas_documentos
            SET titulo = %s, descricao = %s, organizacao = COALESCE(%s, organizacao),
                updated_at = NOW()
            WHERE id = %s;
            """,
            (title, description, organization, folder_id),
        )
        return result.rowcount > 0

    # ── DELETE ────────────────────────────────────────────

    def delete(self, folder_id: int) -> bool:
        """Delete a folder; subfolders go with it (ON DELETE CASCADE)."""
        result = self.executor.execute("DELETE FROM pastas_documentos WHERE id = %s;", (folder_id,))
        return result.rowcount > 0

    # ── HELPERS ───────────────────────────────────────────

    @staticmethod
    def _row_to_folder(row: dict) -> FolderRecord:
        return FolderRecord(
            id=row["id"],
            title=row["titulo"],
            description=row.get("descricao"),
            organization=row.get("organizacao"),
            parent_id=row.get("pasta_pai_id"),
            created_by=row.get("criado_por"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )
