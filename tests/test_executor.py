from __future__ import annotations

from contextlib import contextmanager

import psycopg2
import pytest
from psycopg2 import errors

from db.connection import PoolManager
from db.executor import CommandResult, QueryExecutor
from tests.fakes import DummyConn, DummyPoolManager, connection_refused


def _executor(manager: DummyPoolManager, sleeps: list | None = None, max_retries: int = 2) -> QueryExecutor:
    return QueryExecutor(
        manager,
        max_retries=max_retries,
        retry_delay=1,
        sleep=(sleeps.append if sleeps is not None else (lambda _: None)),
    )


def test_rows_come_back_as_dicts_and_are_committed() -> None:
    manager = DummyPoolManager(lambda query, params: [{"id": 1, "titulo": "Notas Fiscais"}])
    rows = _executor(manager).execute("SELECT id, titulo FROM pastas_documentos WHERE id = %s;", (1,))

    assert rows == [{"id": 1, "titulo": "Notas Fiscais"}]
    assert manager.pool.conn.commits == 1
    assert manager.pool.conn.executed == [("SELECT id, titulo FROM pastas_documentos WHERE id = %s;", (1,))]


def test_statements_without_rows_return_a_command_result() -> None:
    manager = DummyPoolManager(lambda query, params: 3)
    result = _executor(manager).execute("UPDATE documentos SET pasta_id = %s;", (9,))
    assert result == CommandResult(rowcount=3)


def test_fetch_helpers() -> None:
    manager = DummyPoolManager(lambda query, params: [{"id": 5}, {"id": 6}])
    executor = _executor(manager)
    assert executor.fetch_one("SELECT id FROM documentos;") == {"id": 5}
    assert executor.fetch_all("SELECT id FROM documentos;") == [{"id": 5}, {"id": 6}]

    empty = _executor(DummyPoolManager(lambda query, params: []))
    assert empty.fetch_one("SELECT id FROM documentos;") is None


def test_gives_up_after_one_plus_max_retries_attempts() -> None:
    failures = [connection_refused() for _ in range(5)]
    pending = list(failures)
    manager = DummyPoolManager(lambda query, params: pending.pop(0))
    sleeps: list = []

    with pytest.raises(psycopg2.OperationalError) as exc_info:
        _executor(manager, sleeps, max_retries=2).execute("SELECT 1;")

    assert manager.acquire_calls == 3
    assert manager.reset_calls == 3
    assert sleeps == [1, 1]
    # The last driver error is raised as-is, not wrapped.
    assert exc_info.value is failures[2]


def test_failed_pool_build_is_retried_without_a_reset() -> None:
    failures = [connection_refused() for _ in range(3)]
    manager = DummyPoolManager(acquire_errors=failures)

    with pytest.raises(psycopg2.OperationalError) as exc_info:
        _executor(manager, max_retries=2).execute("SELECT 1;")

    assert manager.acquire_calls == 3
    assert manager.reset_calls == 0
    assert exc_info.value is failures[2]


def test_transient_failure_is_absorbed_by_a_retry() -> None:
    manager = DummyPoolManager(lambda query, params: [{"ok": 1}], acquire_errors=[connection_refused(), None])
    assert _executor(manager).execute("SELECT 1 AS ok;") == [{"ok": 1}]
    assert manager.acquire_calls == 2


def test_connection_lost_mid_statement_is_retried() -> None:
    calls = []

    def responder(query, params):
        calls.append(query)
        if len(calls) == 1:
            return psycopg2.InterfaceError("connection already closed")
        return 1

    manager = DummyPoolManager(responder)
    assert _executor(manager).execute("DELETE FROM documentos WHERE id = %s;", (1,)).rowcount == 1
    assert len(calls) == 2


@pytest.mark.parametrize(
    "error",
    [
        errors.UniqueViolation("duplicate key value violates unique constraint"),
        errors.SyntaxError('syntax error at or near "SELEC"'),
        errors.ForeignKeyViolation("insert or update violates foreign key constraint"),
    ],
)
def test_statement_errors_fail_immediately(error) -> None:
    manager = DummyPoolManager(lambda query, params: error)
    sleeps: list = []

    with pytest.raises(type(error)) as exc_info:
        _executor(manager, sleeps).execute("INSERT INTO documentos (id) VALUES (1);")

    assert exc_info.value is error
    assert manager.acquire_calls == 1
    assert manager.reset_calls == 0
    assert sleeps == []
    assert manager.pool.conn.rollbacks == 1
    assert manager.pool.conn.commits == 0


class _ReplacedMidStatementPool:
    """
    Pool double for PoolManager. While a statement runs on the first pool,
    another request resets it and builds a replacement; the statement then
    fails with a lost connection.
    """

    manager: PoolManager
    created: list["_ReplacedMidStatementPool"] = []

    def __init__(self, dsn, **options) -> None:
        self.closed = False
        _ReplacedMidStatementPool.created.append(self)

    def probe(self) -> None:
        pass

    def close(self) -> None:
        self.closed = True

    @contextmanager
    def connection(self):
        if self is _ReplacedMidStatementPool.created[0]:
            self.manager.reset_pool()
            self.manager.acquire_pool()
            raise connection_refused()
        yield DummyConn(lambda query, params: [{"ok": 1}])


def test_failure_on_a_replaced_pool_keeps_the_replacement() -> None:
    _ReplacedMidStatementPool.created = []
    manager = PoolManager("postgresql://dummy", pool_factory=_ReplacedMidStatementPool, sleep=lambda _: None)
    _ReplacedMidStatementPool.manager = manager

    rows = QueryExecutor(manager, max_retries=2, retry_delay=0, sleep=lambda _: None).execute("SELECT 1 AS ok;")

    assert rows == [{"ok": 1}]
    created = _ReplacedMidStatementPool.created
    assert len(created) == 2
    assert [p.closed for p in created] == [True, False]
    assert manager.acquire_pool() is created[1]
