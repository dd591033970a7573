"""
db/init_db.py
-------------
Table definitions and the routines that make sure they exist.

Nothing here is a migration: every function is idempotent and may be
called before any feature touches its tables. Run this module directly to
initialize a fresh database:
    python -m db.init_db
"""

from typing import Optional

from db.executor import QueryExecutor, get_executor
from db.schema import ColumnSpec, SchemaEnsurer, TableSpec
from models.attachment import ATTACHMENT_CATEGORIES
from utils.logger import get_logger

logger = get_logger(__name__)

# Document folders: one per competency period, plus category subfolders
FOLDERS_TABLE = TableSpec(
    name="pastas_documentos",
    columns=[
        ColumnSpec("id", "SERIAL PRIMARY KEY"),
        ColumnSpec("titulo", "VARCHAR(255) NOT NULL"),
        ColumnSpec("descricao", "TEXT NULL"),
        ColumnSpec("organizacao", "VARCHAR(50) NULL"),
        ColumnSpec("pasta_pai_id", "INTEGER NULL"),
        ColumnSpec("criado_por", "INTEGER NULL"),
        ColumnSpec("created_at", "TIMESTAMPTZ DEFAULT NOW()"),
        ColumnSpec("updated_at", "TIMESTAMPTZ DEFAULT NOW()"),
    ],
)

# Generic documents, each pointing at a physical file
DOCUMENTS_TABLE = TableSpec(
    name="documentos",
    columns=[
        ColumnSpec("id", "SERIAL PRIMARY KEY"),
        ColumnSpec("nome_arquivo", "VARCHAR(255) NOT NULL"),
        ColumnSpec("caminho", "VARCHAR(500) NOT NULL"),
        ColumnSpec("tamanho", "BIGINT NULL"),
        ColumnSpec("mimetype", "VARCHAR(100) NULL"),
        ColumnSpec("organizacao", "VARCHAR(50) NULL"),
        ColumnSpec("enviado_por", "INTEGER NULL"),
        ColumnSpec("pasta_id", "INTEGER NULL"),
        ColumnSpec("created_at", "TIMESTAMPTZ DEFAULT NOW()"),
    ],
)

# Compliance competencies (owned by the compliance feature)
COMPETENCIES_TABLE = TableSpec(
    name="compliance_fiscal",
    columns=[
        ColumnSpec("id", "SERIAL PRIMARY KEY"),
        ColumnSpec("organizacao", "VARCHAR(50) NULL"),
        ColumnSpec("organizacao_criacao", "VARCHAR(50) NULL"),
        ColumnSpec("ultima_alteracao_organizacao", "VARCHAR(50) NULL"),
        ColumnSpec("created_by", "INTEGER NULL"),
        ColumnSpec("competencia_inicio", "DATE NULL"),
        ColumnSpec("competencia_fim", "DATE NULL"),
        ColumnSpec("competencia_referencia", "DATE NULL"),
        ColumnSpec("created_at", "TIMESTAMPTZ DEFAULT NOW()"),
    ] + [ColumnSpec(f"{category}_anexo_id", "INTEGER NULL") for category in ATTACHMENT_CATEGORIES],
)

# Compliance attachments, the source of truth for synchronized documents
ATTACHMENTS_TABLE = TableSpec(
    name="compliance_anexos",
    columns=[
        ColumnSpec("id", "SERIAL PRIMARY KEY"),
        ColumnSpec("compliance_id", "INTEGER NOT NULL REFERENCES compliance_fiscal (id) ON DELETE CASCADE"),
        ColumnSpec("tipo_anexo", "VARCHAR(100) NOT NULL"),
        ColumnSpec("nome_arquivo", "VARCHAR(255) NOT NULL"),
        ColumnSpec("caminho_arquivo", "VARCHAR(500) NULL"),
        ColumnSpec("file_data", "BYTEA NULL"),
        ColumnSpec("tamanho_arquivo", "BIGINT NULL"),
        ColumnSpec("tipo_mime", "VARCHAR(100) NULL"),
        ColumnSpec("created_by", "INTEGER NULL"),
        ColumnSpec("organizacao_upload", "VARCHAR(50) NULL"),
        ColumnSpec("created_at", "TIMESTAMPTZ DEFAULT NOW()"),
    ],
)


def ensure_document_tables(ensurer: SchemaEnsurer) -> None:
    """Folders and documents, with their self/parent references."""
    ensurer.ensure_table(FOLDERS_TABLE)
    ensurer.ensure_foreign_key(
        "pastas_documentos", "fk_pasta_pai", "pasta_pai_id", "pastas_documentos",
        on_delete="CASCADE",
    )
    ensurer.ensure_index("pastas_documentos", "idx_pastas_pai_titulo", ["pasta_pai_id", "titulo"])

    ensurer.ensure_table(DOCUMENTS_TABLE)
    ensurer.ensure_foreign_key(
        "documentos", "fk_documentos_pasta", "pasta_id", "pastas_documentos",
        on_delete="SET NULL",
    )
    ensurer.ensure_index("documentos", "idx_documentos_pasta", ["pasta_id"])


def ensure_compliance_tables(ensurer: SchemaEnsurer) -> None:
    ensurer.ensure_table(COMPETENCIES_TABLE)
    ensurer.ensure_table(ATTACHMENTS_TABLE)
    ensurer.ensure_index("compliance_anexos", "idx_anexos_compliance_tipo", ["compliance_id", "tipo_anexo"])


def ensure_compliance_documents_infrastructure(ensurer: SchemaEnsurer) -> None:
    """
    Everything the document sync engine needs: both document tables plus
    the cross-reference columns on the compliance tables.
    """
    ensure_document_tables(ensurer)

    ensurer.ensure_column("compliance_fiscal", "pasta_documentos_id", "INTEGER NULL")
    ensurer.ensure_foreign_key(
        "compliance_fiscal", "fk_compliance_pasta_documentos", "pasta_documentos_id",
        "pastas_documentos", on_delete="SET NULL",
    )

    ensurer.ensure_column("compliance_anexos", "documento_id", "INTEGER NULL")
    ensurer.ensure_foreign_key(
        "compliance_anexos", "fk_compliance_anexos_documentos", "documento_id",
        "documentos", on_delete="SET NULL",
    )


def create_tables(executor: Optional[QueryExecutor] = None) -> None:
    """
    Ensure every table this application uses.
    Safe to call multiple times.
    """
    ensurer = SchemaEnsurer(executor or get_executor())
    ensure_compliance_tables(ensurer)
    ensure_compliance_documents_infrastructure(ensurer)
    logger.info("Database schema initialized successfully.")


if __name__ == "__main__":
    from db.connection import close_pool
    try:
        create_tables()
        print("✅ Database schema created successfully.")
    finally:
        close_pool()
