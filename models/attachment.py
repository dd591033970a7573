"""
models/attachment.py
--------------------
Domain model for compliance attachments, the source of truth that the
document repository is derived from.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

# Attachment categories ("tipo_anexo") known to the compliance feature.
ATTACHMENT_CATEGORIES = (
    "relatorio_inicial",
    "relatorio_faturamento",
    "imposto_compensado",
    "emails",
    "estabelecimento",
    "valor_compensado",
    "resumo_folha_pagamento",
    "planilha_quantidade_empregados",
    "decreto_3048_1999_vigente",
    "solucao_consulta_cosit_79_2023_vigente",
)


@dataclass
class AttachmentRecord:
    """
    A file attached to a compliance competency (compliance_anexos).

    `document_id` is filled in by the document sync engine and may stay
    None when synchronization failed; that state is tolerated.
    """
    competency_id: int
    category: str
    filename: str
    payload: Optional[bytes] = field(default=None, repr=False)
    path: Optional[str] = None
    size: Optional[int] = None
    mimetype: Optional[str] = None
    created_by: Optional[int] = None
    organization: Optional[str] = None
    document_id: Optional[int] = None
    id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def synced(self) -> bool:
        return self.document_id is not None
