"""
repositories/competency_repo.py
-------------------------------
Data access for the compliance_fiscal columns the document core reads or
maintains. The rest of the table belongs to the compliance feature.
"""

from typing import Optional

from psycopg2 import sql

from db.executor import QueryExecutor, get_executor
from models.attachment import ATTACHMENT_CATEGORIES
from models.competency import CompetencyPeriod
from utils.logger import get_logger

logger = get_logger(__name__)


class CompetencyRepository:
    """Repository for competency periods and their document cross-references."""

    def __init__(self, executor: Optional[QueryExecutor] = None):
        self.executor = executor or get_executor()

    def get_by_id(self, competency_id: int) -> Optional[CompetencyPeriod]:
        """
        Fetch the period data of a competency.

        Returns:
            A CompetencyPeriod or None if not found.
        """
        row = self.executor.fetch_one(
            """
            SELECT id, organizacao, organizacao_criacao, ultima_alteracao_organizacao,
                   created_by, competencia_inicio, competencia_fim,
                   competencia_referencia, pasta_documentos_id
            FROM compliance_fiscal
            WHERE id = %s;
            """,
            (competency_id,),
        )
        return self._row_to_period(row) if row else None

    def claim_folder(self, competency_id: int, folder_id: int) -> bool:
        """
        Record the competency's period folder unless one is already set.

        Returns:
            False if another folder got there first (or the competency is gone).
        """
        result = self.executor.execute(
            """
            UPDATE compliance_fiscal SET pasta_documentos_id = %s
            WHERE id = %s AND pasta_documentos_id IS NULL;
            """,
            (folder_id, competency_id),
        )
        return result.rowcount > 0

    def release_folder(self, competency_id: int, folder_id: int) -> bool:
        """Forget a folder reference that points at a folder which no longer exists."""
        result = self.executor.execute(
            """
            UPDATE compliance_fiscal SET pasta_documentos_id = NULL
            WHERE id = %s AND pasta_documentos_id = %s;
            """,
            (competency_id, folder_id),
        )
        return result.rowcount > 0

    def set_attachment_reference(self, competency_id: int, category: str, attachment_id: int) -> bool:
        """
        Point the competency's `<category>_anexo_id` column at an attachment.

        Returns:
            False for categories without such a column.
        """
        if category not in ATTACHMENT_CATEGORIES:
            return False
        statement = sql.SQL("UPDATE compliance_fiscal SET {} = %s WHERE id = %s;").format(
            sql.Identifier(f"{category}_anexo_id")
        )
        return self.executor.execute(statement, (attachment_id, competency_id)).rowcount > 0

    def clear_attachment_reference(self, competency_id: int, category: str, attachment_id: int) -> bool:
        """Clear `<category>_anexo_id` if it still points at `attachment_id`."""
        if category not in ATTACHMENT_CATEGORIES:
            return False
        column = sql.Identifier(f"{category}_anexo_id")
        statement = sql.SQL("UPDATE compliance_fiscal SET {} = NULL WHERE id = %s AND {} = %s;").format(
            column, column
        )
        return self.executor.execute(statement, (competency_id, attachment_id)).rowcount > 0

    @staticmethod
    def _row_to_period(row: dict) -> CompetencyPeriod:
        return CompetencyPeriod(
            id=row["id"],
            organization=row.get("organizacao"),
            creation_organization=row.get("organizacao_criacao"),
            last_change_organization=row.get("ultima_alteracao_organizacao"),
            created_by=row.get("created_by"),
            start_date=row.get("competencia_inicio"),
            end_date=row.get("competencia_fim"),
            reference_date=row.get("competencia_referencia"),
            folder_id=row.get("pasta_documentos_id"),
        )
