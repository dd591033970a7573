"""
db/schema.py
------------
Idempotent schema evolution without a migration tool.

Each `ensure_*` call checks information_schema and issues the DDL only
when the object is missing. Concurrent callers may race to create the same
object; the loser sees a duplicate-object error, which is treated as
success. Safe to call on every request that needs the object.
"""

from dataclasses import dataclass, field
from typing import Optional, Sequence

import psycopg2
from psycopg2 import sql

from db.errors import is_catalog_race_error, is_duplicate_object_error
from db.executor import QueryExecutor
from utils.logger import get_logger

logger = get_logger(__name__)

_ON_DELETE_ACTIONS = frozenset({"SET NULL", "CASCADE", "RESTRICT", "NO ACTION"})


@dataclass
class ColumnSpec:
    """A column name and its type definition, e.g. ("pasta_id", "INTEGER NULL")."""
    name: str
    ddl: str


@dataclass
class TableSpec:
    """
    Declarative table definition.

    Attributes:
        name: Table name.
        columns: Column definitions in creation order.
        constraints: Extra table constraints as raw DDL (e.g. "UNIQUE (a, b)").
    """
    name: str
    columns: list[ColumnSpec]
    constraints: list[str] = field(default_factory=list)


class SchemaEnsurer:
    """Creates tables, columns, foreign keys and indexes on demand."""

    def __init__(self, executor: QueryExecutor):
        self.executor = executor

    # ── TABLES ────────────────────────────────────────────

    def ensure_table(self, spec: TableSpec) -> bool:
        """
        Make sure a table and every declared column exist.

        Columns declared after the table was first created are
        added with ALTER TABLE.

        Returns:
            True if this call created the table.
        """
        exists = self._check(
            """
            SELECT 1 FROM information_schema.tables
            WHERE table_schema = current_schema() AND table_name = %s;
            """,
            (spec.name,),
            f"table {spec.name}",
        )
        if exists:
            self._ensure_declared_columns(spec)
            return False

        parts = [
            sql.SQL("{} {}").format(sql.Identifier(col.name), sql.SQL(col.ddl))
            for col in spec.columns
        ]
        parts.extend(sql.SQL(constraint) for constraint in spec.constraints)
        statement = sql.SQL("CREATE TABLE IF NOT EXISTS {} ({})").format(
            sql.Identifier(spec.name), sql.SQL(", ").join(parts)
        )
        created = self._apply(statement, f"table {spec.name}")
        if exists is None:
            # Introspection failed: the table may have predated this call.
            self._ensure_declared_columns(spec)
        return created

    def _ensure_declared_columns(self, spec: TableSpec) -> None:
        rows = self._query(
            """
            SELECT column_name FROM information_schema.columns
            WHERE table_schema = current_schema() AND table_name = %s;
            """,
            (spec.name,),
            f"columns of {spec.name}",
        )
        present = {row["column_name"] for row in rows} if rows is not None else set()
        for col in spec.columns:
            if col.name not in present:
                self.ensure_column(spec.name, col.name, col.ddl)

    # ── COLUMNS ───────────────────────────────────────────

    def ensure_column(self, table: str, column: str, ddl_type: str) -> bool:
        """
        Add `column` to `table` if it is missing.

        Returns:
            True if this call added the column.

        Raises:
            psycopg2.Error: For any DDL failure other than "duplicate column".
        """
        exists = self._check(
            """
            SELECT 1 FROM information_schema.columns
            WHERE table_schema = current_schema() AND table_name = %s AND column_name = %s;
            """,
            (table, column),
            f"column {table}.{column}",
        )
        if exists:
            return False
        statement = sql.SQL("ALTER TABLE {} ADD COLUMN {} {}").format(
            sql.Identifier(table), sql.Identifier(column), sql.SQL(ddl_type)
        )
        return self._apply(statement, f"column {table}.{column}")

    # ── CONSTRAINTS & INDEXES ─────────────────────────────

    def ensure_foreign_key(
        self,
        table: str,
        name: str,
        column: str,
        ref_table: str,
        ref_column: str = "id",
        on_delete: str = "SET NULL",
    ) -> bool:
        """Add a named foreign key constraint if it is missing."""
        action = on_delete.upper()
        if action not in _ON_DELETE_ACTIONS:
            raise ValueError(f"Unsupported ON DELETE action: {on_delete}")
        exists = self._check(
            """
            SELECT 1 FROM information_schema.table_constraints
            WHERE table_schema = current_schema() AND table_name = %s
              AND constraint_name = %s AND constraint_type = 'FOREIGN KEY';
            """,
            (table, name),
            f"constraint {name}",
        )
        if exists:
            return False
        statement = sql.SQL(
            "ALTER TABLE {} ADD CONSTRAINT {} FOREIGN KEY ({}) REFERENCES {} ({}) ON DELETE {}"
        ).format(
            sql.Identifier(table),
            sql.Identifier(name),
            sql.Identifier(column),
            sql.Identifier(ref_table),
            sql.Identifier(ref_column),
            sql.SQL(action),
        )
        return self._apply(statement, f"constraint {name}")

    def ensure_index(self, table: str, name: str, columns: Sequence[str]) -> bool:
        """Create a plain b-tree index if it is missing."""
        statement = sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {} ({})").format(
            sql.Identifier(name),
            sql.Identifier(table),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
        )
        return self._apply(statement, f"index {name}")

    # ── HELPERS ───────────────────────────────────────────

    def _query(self, query: str, params: tuple, what: str) -> Optional[list[dict]]:
        """Run an introspection query; None means it could not be answered."""
        try:
            return self.executor.fetch_all(query, params)
        except psycopg2.Error as e:
            logger.warning(f"Could not inspect {what}, attempting DDL directly: {e}")
            return None

    def _check(self, query: str, params: tuple, what: str) -> Optional[bool]:
        rows = self._query(query, params, what)
        if rows is None:
            return None
        return len(rows) > 0

    def _apply(self, statement: sql.Composable, what: str) -> bool:
        try:
            self.executor.execute(statement)
        except psycopg2.Error as e:
            if is_duplicate_object_error(e) or is_catalog_race_error(e):
                logger.warning(f"{what} already exists (created concurrently), continuing.")
                return False
            logger.error(f"Failed to create {what}: {e}")
            raise
        logger.info(f"Created {what}.")
        return True
