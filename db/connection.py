"""
db/connection.py
----------------
Manages the process-wide PostgreSQL connection pool.

The pool is created lazily on first use, probed for liveness, and can be
torn down and rebuilt when connections go bad. Callers only ever ask for
"the current pool"; the underlying psycopg2 pool is never handed out for
direct mutation.
"""

import threading
import time
from contextlib import contextmanager
from enum import Enum
from typing import Callable, Iterator, Optional

import psycopg2
from psycopg2 import pool

from config import (
    DATABASE_URL,
    DB_ACQUIRE_TIMEOUT,
    DB_CONNECT_TIMEOUT,
    DB_IDLE_TIMEOUT,
    DB_POOL_INIT_ATTEMPTS,
    DB_POOL_INIT_DELAY_SECONDS,
    DB_POOL_MAX,
    DB_POOL_MIN,
    DB_STATEMENT_TIMEOUT_MS,
)
from db.errors import PoolAcquireTimeout
from utils.logger import get_logger

logger = get_logger(__name__)

# How long to wait between checkout attempts while the pool is exhausted.
_ACQUIRE_POLL_SECONDS = 0.1


class PoolState(str, Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    BROKEN = "broken"


class Pool:
    """
    A bounded set of reusable connections shared across requests.

    Thin wrapper around psycopg2's ThreadedConnectionPool that adds an
    acquire timeout, idle-connection recycling and discarding of broken
    connections on release.
    """

    def __init__(
        self,
        dsn: str,
        min_conn: int = DB_POOL_MIN,
        max_conn: int = DB_POOL_MAX,
        connect_timeout: int = DB_CONNECT_TIMEOUT,
        acquire_timeout: float = DB_ACQUIRE_TIMEOUT,
        idle_timeout: float = DB_IDLE_TIMEOUT,
        statement_timeout_ms: int = DB_STATEMENT_TIMEOUT_MS,
    ):
        self.max_conn = max_conn
        self.acquire_timeout = acquire_timeout
        self.idle_timeout = idle_timeout
        self._released_at: dict[int, float] = {}
        self._pool = pool.ThreadedConnectionPool(
            min_conn,
            max_conn,
            dsn,
            connect_timeout=connect_timeout,
            options=f"-c statement_timeout={statement_timeout_ms}",
        )

    @property
    def closed(self) -> bool:
        return self._pool.closed

    def getconn(self):
        """
        Check a connection out of the pool.

        Waits up to `acquire_timeout` seconds while the pool is exhausted.

        Raises:
            PoolAcquireTimeout: If no connection frees up in time.
            psycopg2.OperationalError: If a new connection cannot be opened.
        """
        deadline = time.monotonic() + self.acquire_timeout
        while True:
            try:
                conn = self._pool.getconn()
            except pool.PoolError:
                if self._pool.closed:
                    raise
                if time.monotonic() >= deadline:
                    raise PoolAcquireTimeout(
                        f"pool timeout: no connection available after {self.acquire_timeout}s"
                    )
                time.sleep(_ACQUIRE_POLL_SECONDS)
                continue

            released_at = self._released_at.pop(id(conn), None)
            if released_at is not None and time.monotonic() - released_at > self.idle_timeout:
                logger.info(f"Recycling connection idle for more than {self.idle_timeout}s.")
                self._pool.putconn(conn, close=True)
                continue
            return conn

    def putconn(self, conn, discard: bool = False) -> None:
        """Return a connection; closed or discarded connections are dropped."""
        if self._pool.closed:
            return
        close = discard or bool(conn.closed)
        if not close:
            self._released_at[id(conn)] = time.monotonic()
        self._pool.putconn(conn, close=close)

    @contextmanager
    def connection(self) -> Iterator:
        """Borrow a connection for the duration of a `with` block."""
        conn = self.getconn()
        discard = False
        try:
            yield conn
        except (psycopg2.OperationalError, psycopg2.InterfaceError):
            discard = True
            raise
        finally:
            self.putconn(conn, discard=discard)

    def probe(self) -> None:
        """Liveness check: open a connection, run a trivial query, release it."""
        with self.connection() as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
            conn.rollback()

    def status(self) -> dict:
        # ThreadedConnectionPool keeps checked-out connections in `_used`
        # and idle ones in `_pool`.
        return {
            "active_connections": len(getattr(self._pool, "_used", {})),
            "idle_connections": len(getattr(self._pool, "_pool", [])),
            "max_connections": self.max_conn,
        }

    def close(self) -> None:
        if not self._pool.closed:
            self._pool.closeall()
        self._released_at.clear()


class PoolManager:
    """
    Owns the single live Pool.

    The pool is replaced wholesale on reset, never mutated in place, so
    operations running on the old pool finish or fail on their own.
    """

    def __init__(
        self,
        dsn: str = DATABASE_URL,
        init_attempts: int = DB_POOL_INIT_ATTEMPTS,
        init_delay: float = DB_POOL_INIT_DELAY_SECONDS,
        pool_factory: Optional[Callable[..., Pool]] = None,
        sleep: Callable[[float], None] = time.sleep,
        **pool_options,
    ):
        self.dsn = dsn
        self.init_attempts = max(1, init_attempts)
        self.init_delay = init_delay
        self._pool_factory = pool_factory or Pool
        self._pool_options = pool_options
        self._sleep = sleep
        self._pool: Optional[Pool] = None
        self._state = PoolState.UNINITIALIZED
        self._build_lock = threading.Lock()

    @property
    def state(self) -> PoolState:
        return self._state

    def acquire_pool(self) -> Pool:
        """
        Return the current pool, building and probing it on first use.

        Raises:
            psycopg2.OperationalError: If the database stays unreachable
                after `init_attempts` tries.
        """
        current = self._pool
        if current is not None:
            return current
        with self._build_lock:
            if self._pool is None:
                self._pool = self._build()
            return self._pool

    def _build(self) -> Pool:
        attempt = 0
        while True:
            attempt += 1
            logger.info(f"Creating database connection pool (attempt {attempt}/{self.init_attempts})...")
            candidate = None
            try:
                candidate = self._pool_factory(self.dsn, **self._pool_options)
                candidate.probe()
            except (psycopg2.Error, pool.PoolError) as e:
                self._state = PoolState.BROKEN
                logger.error(f"Pool attempt {attempt} failed: {e}")
                if candidate is not None:
                    self._close_quietly(candidate)
                if attempt >= self.init_attempts:
                    raise
                logger.info(f"Waiting {self.init_delay}s before the next attempt...")
                self._sleep(self.init_delay)
                continue

            self._state = PoolState.READY
            logger.info("Database connection pool initialized successfully.")
            return candidate

    def reset_pool(self, expected: Optional[Pool] = None) -> None:
        """
        Tear down the current pool; the next acquire_pool() rebuilds it.

        Args:
            expected: The pool the caller saw failing. If it has already been
                replaced, the replacement is kept and nothing happens.
        """
        with self._build_lock:
            if expected is not None and self._pool is not expected:
                logger.info("Pool already replaced since the failure, keeping the new one.")
                return
            old, self._pool = self._pool, None
            self._state = PoolState.UNINITIALIZED
        if old is not None:
            logger.warning("Resetting database connection pool.")
            self._close_quietly(old)

    def close_pool(self) -> None:
        """Close all connections in the pool."""
        with self._build_lock:
            old, self._pool = self._pool, None
            self._state = PoolState.UNINITIALIZED
        if old is not None:
            old.close()
            logger.info("Database connection pool closed.")

    def pool_status(self) -> dict:
        current = self._pool
        if current is None:
            return {
                "state": self._state.value,
                "active_connections": 0,
                "idle_connections": 0,
                "max_connections": None,
            }
        return {"state": self._state.value, **current.status()}

    @staticmethod
    def _close_quietly(target: Pool) -> None:
        try:
            target.close()
        except (psycopg2.Error, pool.PoolError) as e:
            logger.error(f"Failed to close pool: {e}")


_default_manager = PoolManager()


def get_pool_manager() -> PoolManager:
    """The process-wide PoolManager."""
    return _default_manager


def acquire_pool() -> Pool:
    return _default_manager.acquire_pool()


def reset_pool(expected: Optional[Pool] = None) -> None:
    _default_manager.reset_pool(expected)


def pool_status() -> dict:
    return _default_manager.pool_status()


def close_pool() -> None:
    _default_manager.close_pool()
