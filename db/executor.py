"""
db/executor.py
--------------
Executes SQL statements against the current pool.

Connection-class failures (refused connection, pool timeout, lost server)
reset the pool and are retried a bounded number of times. Everything else,
constraint violations and bad SQL included, is raised on the first attempt.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, Sequence

import psycopg2
from psycopg2 import extras

from config import DB_QUERY_MAX_RETRIES, DB_QUERY_RETRY_DELAY_SECONDS
from db.connection import Pool, PoolManager, get_pool_manager
from db.errors import is_connection_error
from utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class CommandResult:
    """Outcome of a statement that returns no rows (UPDATE, DELETE, DDL)."""
    rowcount: int


class QueryExecutor:
    """
    Runs one statement per call on a pooled connection, committing on
    success and rolling back on failure.

    Args:
        pool_manager: Source of the current pool.
        max_retries: Extra attempts after a connection-class failure.
        retry_delay: Seconds to wait between attempts.
    """

    def __init__(
        self,
        pool_manager: Optional[PoolManager] = None,
        max_retries: int = DB_QUERY_MAX_RETRIES,
        retry_delay: float = DB_QUERY_RETRY_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.pool_manager = pool_manager or get_pool_manager()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self._sleep = sleep

    def execute(self, sql: Any, params: Sequence = ()) -> list[dict] | CommandResult:
        """
        Execute a statement, retrying on transient connection failures.

        Args:
            sql: SQL text with %s placeholders, or a psycopg2.sql composable.
            params: Positional parameters.

        Returns:
            A list of row dicts when the statement returns rows,
            otherwise a CommandResult.

        Raises:
            The driver error of the last attempt, unchanged.
        """
        attempts = 1 + self.max_retries
        for attempt in range(1, attempts + 1):
            current = None
            try:
                current = self.pool_manager.acquire_pool()
                return self._run_once(current, sql, params)
            except Exception as e:
                if not is_connection_error(e):
                    raise
                logger.error(f"Query attempt {attempt}/{attempts} failed: {e}")
                # Only the pool this attempt ran on is torn down; a replacement
                # built meanwhile by another request is left alone. A failed
                # build leaves no pool behind to reset.
                if current is not None:
                    self.pool_manager.reset_pool(current)
                if attempt >= attempts:
                    raise
                logger.info(f"Connection error detected, retrying in {self.retry_delay}s...")
                self._sleep(self.retry_delay)

    def fetch_all(self, sql: Any, params: Sequence = ()) -> list[dict]:
        result = self.execute(sql, params)
        return result if isinstance(result, list) else []

    def fetch_one(self, sql: Any, params: Sequence = ()) -> Optional[dict]:
        rows = self.fetch_all(sql, params)
        return rows[0] if rows else None

    def _run_once(self, pool: Pool, sql: Any, params: Sequence) -> list[dict] | CommandResult:
        with pool.connection() as conn:
            try:
                with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
                    cur.execute(sql, params)
                    if cur.description is not None:
                        result = [dict(row) for row in cur.fetchall()]
                    else:
                        result = CommandResult(rowcount=cur.rowcount)
                conn.commit()
                return result
            except Exception:
                if not conn.closed:
                    try:
                        conn.rollback()
                    except psycopg2.Error as rollback_error:
                        logger.error(f"Rollback failed: {rollback_error}")
                raise


_default_executor: Optional[QueryExecutor] = None


def get_executor() -> QueryExecutor:
    """The executor bound to the process-wide pool manager."""
    global _default_executor
    if _default_executor is None:
        _default_executor = QueryExecutor()
    return _default_executor


def execute(sql: Any, params: Sequence = ()) -> list[dict] | CommandResult:
    return get_executor().execute(sql, params)
