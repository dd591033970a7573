from __future__ import annotations

from datetime import date, datetime

import pytest

from models.competency import CompetencyPeriod
from services.folder_paths import (
    build_folder_metadata,
    category_segment,
    format_date_br,
    parse_date_value,
    resolve_folder_path,
)


def test_period_range_and_mapped_category() -> None:
    period = CompetencyPeriod(id=42, start_date=date(2024, 1, 1), end_date=date(2024, 1, 31))
    assert resolve_folder_path(period, "estabelecimento") == "2024-01-01_2024-01-31/notas_fiscais"


def test_reference_date_when_no_range() -> None:
    period = CompetencyPeriod(id=7, reference_date="2024-03-01")
    assert resolve_folder_path(period, "relatorio_inicial") == "2024-03-01/relatorio_tecnico"


def test_single_date_is_used_alone() -> None:
    assert resolve_folder_path(CompetencyPeriod(id=1, start_date="2024-02-01"), "emails") == "2024-02-01/comprovacao_email"
    assert resolve_folder_path(CompetencyPeriod(id=1, end_date="2024-02-29"), "emails") == "2024-02-29/comprovacao_email"


def test_no_dates_falls_back_to_the_competency_id() -> None:
    first = resolve_folder_path(CompetencyPeriod(id=99), "estabelecimento")
    second = resolve_folder_path(CompetencyPeriod(id=100), "estabelecimento")
    assert first == "competencia_99/notas_fiscais"
    assert first != second


def test_resolution_is_deterministic_and_category_only_changes_the_last_segment() -> None:
    period = CompetencyPeriod(id=42, start_date="2024-01-01", end_date="2024-01-31")
    first = resolve_folder_path(period, "imposto_compensado")
    assert first == resolve_folder_path(period, "imposto_compensado")

    other = resolve_folder_path(period, "relatorio_faturamento")
    assert first.split("/")[0] == other.split("/")[0]
    assert first.split("/")[1] != other.split("/")[1]


def test_unmapped_categories_pass_through() -> None:
    assert category_segment("contratos") == "contratos"


@pytest.mark.parametrize(
    "value, expected",
    [
        (date(2024, 5, 10), date(2024, 5, 10)),
        (datetime(2024, 5, 10, 23, 59), date(2024, 5, 10)),
        ("2024-05-10", date(2024, 5, 10)),
        ("2024/05/10", date(2024, 5, 10)),
        ("2024-05-10T03:00:00.000Z", date(2024, 5, 10)),
        ("10/05/2024", date(2024, 5, 10)),
        ("", None),
        ("   ", None),
        (None, None),
        ("not a date", None),
        ("2024-13-40", None),
    ],
)
def test_parse_date_value(value, expected) -> None:
    assert parse_date_value(value) == expected


def test_format_date_br() -> None:
    assert format_date_br("2024-01-31") == "31/01/2024"
    assert format_date_br(None) is None


def test_metadata_for_a_full_period() -> None:
    period = CompetencyPeriod(id=42, organization="cassems", start_date="2024-01-01", end_date="2024-01-31")
    metadata = build_folder_metadata(period)
    assert metadata.title == "Documentos Compliance Período (01/01/2024) - (31/01/2024)"
    assert metadata.description == (
        "Documentos anexados automaticamente para a competência 42 | Início: 01/01/2024"
        " | Fim: 31/01/2024 | Organização: cassems"
    )
    assert metadata.organization == "cassems"


def test_metadata_titles_follow_the_available_dates() -> None:
    assert build_folder_metadata(CompetencyPeriod(id=1, end_date="2024-01-31")).title == (
        "Documentos Compliance Período (31/01/2024)"
    )
    reference = build_folder_metadata(CompetencyPeriod(id=7, reference_date="2024-03-01"))
    assert reference.title == "Documentos Compliance Referência (01/03/2024)"
    assert reference.description.endswith("| Referência: 01/03/2024")
    assert build_folder_metadata(CompetencyPeriod(id=5)).title == "Documentos Compliance Competência #5"


def test_folder_organization_prefers_the_documents_organization() -> None:
    period = CompetencyPeriod(id=1, organization="org", creation_organization="creator", documents_organization="docs")
    assert build_folder_metadata(period).organization == "docs"
    period.documents_organization = None
    assert build_folder_metadata(period).organization == "creator"
