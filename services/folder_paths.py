"""
services/folder_paths.py
------------------------
Derives where a competency's documents live.

Every competency maps to one period folder; every attachment category maps
to a subfolder beneath it. The functions here are pure: the same competency
and category always produce the same path, title and description.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from dateutil import parser as date_parser

from models.competency import CompetencyPeriod

# Attachment category -> physical folder name
CATEGORY_FOLDERS: dict[str, str] = {
    "relatorio_inicial": "relatorio_tecnico",
    "relatorio_faturamento": "relatorio_faturamento",
    "imposto_compensado": "comprovacao_compensacoes",
    "emails": "comprovacao_email",
    "estabelecimento": "notas_fiscais",
    "valor_compensado": "valor_compensado",
    "resumo_folha_pagamento": "resumo_folha_pagamento",
    "planilha_quantidade_empregados": "planilha_quantidade_empregados",
    "decreto_3048_1999_vigente": "decreto_3048_1999_vigente",
    "solucao_consulta_cosit_79_2023_vigente": "solucao_consulta_cosit_79_2023_vigente",
}

# Attachment category -> title of its subfolder record
SUBFOLDER_TITLES: dict[str, str] = {
    "relatorio_inicial": "Relatório Técnico",
    "relatorio_faturamento": "Relatório Faturamento",
    "imposto_compensado": "Comprovação de Compensações",
    "emails": "Comprovação de Email",
    "estabelecimento": "Notas Fiscais",
    "valor_compensado": "Valor Compensado",
    "resumo_folha_pagamento": "Resumo Folha de Pagamento",
    "planilha_quantidade_empregados": "Planilha Quantidade Empregados",
    "decreto_3048_1999_vigente": "Decreto 3048/1999 Vigente",
    "solucao_consulta_cosit_79_2023_vigente": "Solução Consulta COSIT 79/2023 Vigente",
}

# Categories whose subfolders are created together with the period folder,
# in the order the admin panel shows them.
PRIMARY_CATEGORIES = (
    "relatorio_inicial",
    "relatorio_faturamento",
    "imposto_compensado",
    "emails",
    "estabelecimento",
)

_ISO_PREFIX = re.compile(r"^(\d{4})[-/](\d{2})[-/](\d{2})")


@dataclass(frozen=True)
class FolderMetadata:
    title: str
    description: str
    organization: Optional[str]


def parse_date_value(value) -> Optional[date]:
    """
    Coerce a date-like value to a `date`.

    Accepts dates, datetimes, "YYYY-MM-DD" / "YYYY/MM/DD" prefixed strings
    and anything else dateutil understands (day-first). Returns None for
    empty or unparseable input.
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    trimmed = value.strip()
    if not trimmed:
        return None
    match = _ISO_PREFIX.match(trimmed)
    if match:
        try:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        except ValueError:
            return None
    try:
        return date_parser.parse(trimmed, dayfirst=True).date()
    except (ValueError, OverflowError):
        return None


def format_date_br(value) -> Optional[str]:
    """Format a date-like value as DD/MM/YYYY."""
    parsed = parse_date_value(value)
    return parsed.strftime("%d/%m/%Y") if parsed else None


def period_segment(period: CompetencyPeriod) -> str:
    """
    Folder name for a competency's period.

    start_end when both dates exist, else whichever one exists, else the
    reference date, else a name keyed by the competency id.
    """
    start = parse_date_value(period.start_date)
    end = parse_date_value(period.end_date)
    if start and end:
        return f"{start.isoformat()}_{end.isoformat()}"
    if start or end:
        return (start or end).isoformat()
    reference = parse_date_value(period.reference_date)
    if reference:
        return reference.isoformat()
    return f"competencia_{period.id}"


def category_segment(category: str) -> str:
    """Folder name for an attachment category; unmapped categories pass through."""
    return CATEGORY_FOLDERS.get(category, category)


def resolve_folder_path(period: CompetencyPeriod, category: str) -> str:
    """
    Relative folder for a competency's attachments of one category.

    Example:
        >>> resolve_folder_path(CompetencyPeriod(42, start_date="2024-01-01",
        ...     end_date="2024-01-31"), "estabelecimento")
        '2024-01-01_2024-01-31/notas_fiscais'
    """
    return f"{period_segment(period)}/{category_segment(category)}"


def subfolder_title(category: str) -> Optional[str]:
    """Title of the category's subfolder record, or None if it has none."""
    return SUBFOLDER_TITLES.get(category)


def build_folder_metadata(period: CompetencyPeriod) -> FolderMetadata:
    """Title, description and organization of a competency's period folder."""
    start = format_date_br(period.start_date)
    end = format_date_br(period.end_date)
    reference = format_date_br(period.reference_date)
    organization = period.folder_organization()

    if start and end:
        title = f"Documentos Compliance Período ({start}) - ({end})"
    elif start or end:
        title = f"Documentos Compliance Período ({start or end})"
    elif reference:
        title = f"Documentos Compliance Referência ({reference})"
    else:
        title = f"Documentos Compliance Competência #{period.id}"

    parts = [f"Documentos anexados automaticamente para a competência {period.id}"]
    if start:
        parts.append(f"Início: {start}")
    if end:
        parts.append(f"Fim: {end}")
    if not start and not end and reference:
        parts.append(f"Referência: {reference}")
    if organization:
        parts.append(f"Organização: {organization}")

    return FolderMetadata(title=title, description=" | ".join(parts), organization=organization)
