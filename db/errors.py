"""
db/errors.py
------------
Error taxonomy for the data-access layer.

psycopg2 exceptions are never wrapped: callers always see the original
driver error. These helpers classify them by their psycopg2.errors class
(falling back to the SQLSTATE) so the executor and the schema ensurer can
decide what to retry and what to tolerate.
"""

import psycopg2
from psycopg2 import errors, pool


class PoolAcquireTimeout(pool.PoolError):
    """No pooled connection became free within the acquire timeout."""


class SyncError(Exception):
    """
    A document synchronization stage failed.

    Raised inside the sync engine only; the engine logs it and reports a
    partially-synced outcome instead of propagating it.
    """

    def __init__(self, stage: str, message: str):
        super().__init__(f"{stage}: {message}")
        self.stage = stage


# Errors that mean the connection (not the statement) is the problem.
_CONNECTION_ERRORS = (
    errors.ConnectionException,
    errors.TooManyConnections,
    errors.AdminShutdown,
    errors.CrashShutdown,
    errors.CannotConnectNow,
    errors.QueryCanceled,
)

# DDL outcomes that mean "someone else already created it".
_DUPLICATE_ERRORS = (
    errors.DuplicateTable,
    errors.DuplicateColumn,
    errors.DuplicateObject,
    errors.DuplicateSchema,
)

# Catalog indexes that concurrent CREATE ... IF NOT EXISTS statements collide on.
_CATALOG_RACE_INDEXES = frozenset({"pg_type_typname_nsp_index", "pg_class_relname_nsp_index"})

# Class 08 - Connection Exception
_CONNECTION_CLASS = "08"


def is_connection_error(exc: BaseException) -> bool:
    """
    True when the failure is transient and tied to the connection or pool:
    refused/lost connections, pool exhaustion, server shutdown and timeouts.
    """
    if isinstance(exc, (pool.PoolError, psycopg2.InterfaceError) + _CONNECTION_ERRORS):
        return True
    if not isinstance(exc, psycopg2.Error):
        return False
    code = exc.pgcode
    if code is None:
        # Raised client-side before the server answered (refused, reset, timeout).
        return isinstance(exc, psycopg2.OperationalError)
    return code.startswith(_CONNECTION_CLASS)


def is_duplicate_object_error(exc: BaseException) -> bool:
    """True when a DDL statement failed because its object already exists."""
    return isinstance(exc, _DUPLICATE_ERRORS)


def is_catalog_race_error(exc: BaseException) -> bool:
    """
    True for the unique violation a concurrent `CREATE TABLE IF NOT EXISTS`
    raises when both sessions insert the same row into the system catalog.

    Unique violations on user data (e.g. a UNIQUE column added over
    duplicate rows) are not races and return False.
    """
    if not isinstance(exc, errors.UniqueViolation):
        return False
    return getattr(exc.diag, "constraint_name", None) in _CATALOG_RACE_INDEXES
