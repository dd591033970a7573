"""
models/competency.py
--------------------
Domain model for the compliance record a set of attachments belongs to.
"""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class CompetencyPeriod:
    """
    A compliance competency and the period it covers.

    Attributes:
        id: Primary key of the compliance_fiscal row.
        organization: Organization that owns the record.
        creation_organization: Organization recorded when the record was created.
        documents_organization: Organization that should own derived documents.
        last_change_organization: Organization of the last editor.
        created_by: User id of the creator.
        start_date: First day of the period (optional).
        end_date: Last day of the period (optional).
        reference_date: Single reference date, used when no range is set.
        folder_id: Linked pastas_documentos row, once created.
    """
    id: int
    organization: Optional[str] = None
    creation_organization: Optional[str] = None
    documents_organization: Optional[str] = None
    last_change_organization: Optional[str] = None
    created_by: Optional[int] = None
    start_date: Optional[date | str] = None
    end_date: Optional[date | str] = None
    reference_date: Optional[date | str] = None
    folder_id: Optional[int] = None

    def folder_organization(self) -> Optional[str]:
        """The organization that derived folders are filed under."""
        return (
            self.documents_organization
            or self.creation_organization
            or self.organization
            or self.last_change_organization
        )
