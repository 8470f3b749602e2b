"""
Storage admission policies.

Governs how many Postgres connections the ingestion code may hold at once.
Two interchangeable strategies, selected by DB_MODE:

- pooled:     up to N concurrent connections from a psycopg_pool ConnectionPool.
- serialized: exactly one connection process-wide. Every acquire opens a fresh
              physical connection and every release closes it.

Usage:
    admission = create_admission("pooled", pool_size=5)
    with admission.connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
"""

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Callable, Generator, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool, PoolTimeout

from scholar_ingest.config import config
from scholar_ingest.db.errors import StorageError

logger = logging.getLogger(__name__)

POOLED = "pooled"
SERIALIZED = "serialized"

# Accepted spellings of each mode
_MODE_ALIASES = {
    "pooled": POOLED,
    "pool": POOLED,
    "serialized": SERIALIZED,
    "single": SERIALIZED,
}


class AdmissionHandle:
    """A checked-out connection. release() is idempotent."""

    def __init__(self, connection: Any, releaser: Callable[[Any], None]):
        self.connection = connection
        self._releaser = releaser
        self._released = False
        self._lock = threading.Lock()

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        with self._lock:
            if self._released:
                return
            self._released = True
        self._releaser(self.connection)


class StorageAdmission(ABC):
    """Scoped acquisition contract shared by both policies."""

    mode: str = ""

    def __init__(self):
        self._active = 0
        self._active_lock = threading.Lock()

    @property
    def active(self) -> int:
        """Number of handles currently checked out."""
        return self._active

    @property
    @abstractmethod
    def capacity(self) -> int:
        """Maximum number of concurrent handles."""

    @abstractmethod
    def _open(self) -> Any:
        """Obtain a connection, blocking until admitted."""

    @abstractmethod
    def _return(self, conn: Any) -> None:
        """Give a connection back."""

    def acquire(self) -> AdmissionHandle:
        """
        Block until a connection is admitted and return a handle to it.

        Raises:
            StorageError: If no connection could be obtained
        """
        conn = self._open()
        with self._active_lock:
            self._active += 1
        return AdmissionHandle(conn, self._release)

    def _release(self, conn: Any) -> None:
        with self._active_lock:
            self._active -= 1
        self._return(conn)

    @contextmanager
    def connection(self) -> Generator[Any, None, None]:
        """Acquire a connection for the duration of a with-block."""
        handle = self.acquire()
        try:
            yield handle.connection
        finally:
            handle.release()

    def close(self) -> None:
        """Release policy-level resources."""


class PooledAdmission(StorageAdmission):
    """Bounded pool: up to pool_size connections, acquire blocks when exhausted."""

    mode = POOLED

    def __init__(
        self,
        dsn: Optional[str] = None,
        pool_size: Optional[int] = None,
        min_size: Optional[int] = None,
        timeout: Optional[float] = None,
        pool: Optional[ConnectionPool] = None,
    ):
        """
        Args:
            dsn: Postgres connection string (default: config.POSTGRES_DSN)
            pool_size: Maximum concurrent connections (default: config.PG_POOL_MAX)
            min_size: Connections kept open (default: config.PG_POOL_MIN)
            timeout: Seconds to wait for a free connection (default: config.PG_POOL_TIMEOUT)
            pool: Pre-built pool, mainly for tests
        """
        super().__init__()
        self.dsn = dsn or config.POSTGRES_DSN
        self.pool_size = pool_size or config.PG_POOL_MAX
        self.min_size = min(min_size if min_size is not None else config.PG_POOL_MIN, self.pool_size)
        self.timeout = timeout if timeout is not None else config.PG_POOL_TIMEOUT
        self._pool = pool
        self._pool_lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self.pool_size

    @property
    def pool(self) -> ConnectionPool:
        """Lazily create the connection pool."""
        if self._pool is None:
            with self._pool_lock:
                if self._pool is None:
                    logger.info(
                        f"Creating Postgres connection pool (min={self.min_size}, max={self.pool_size})"
                    )
                    self._pool = ConnectionPool(
                        self.dsn,
                        min_size=self.min_size,
                        max_size=self.pool_size,
                        timeout=self.timeout,
                        kwargs={"row_factory": dict_row},
                        open=True,
                    )
        return self._pool

    def _open(self) -> Any:
        try:
            return self.pool.getconn()
        except PoolTimeout as e:
            raise StorageError(
                f"No pooled connection available after {self.timeout}s "
                f"({self.pool_size} in use)"
            ) from e
        except psycopg.Error as e:
            raise StorageError(f"Failed to obtain pooled connection: {e}") from e

    def _return(self, conn: Any) -> None:
        self.pool.putconn(conn)

    def close(self) -> None:
        if self._pool is not None:
            self._pool.close()
            self._pool = None
            logger.info("Postgres connection pool closed")


class SerializedAdmission(StorageAdmission):
    """
    Single permit over short-lived connections.

    Not a pool: each acquire opens a new physical connection and each release
    closes it before the permit is handed to the next waiter.
    """

    mode = SERIALIZED

    def __init__(
        self,
        dsn: Optional[str] = None,
        connect: Optional[Callable[[], Any]] = None,
    ):
        """
        Args:
            dsn: Postgres connection string (default: config.POSTGRES_DSN)
            connect: Zero-argument connection factory, mainly for tests
        """
        super().__init__()
        self.dsn = dsn or config.POSTGRES_DSN
        self._connect = connect or self._connect_postgres
        self._permit = threading.Semaphore(1)
        logger.info("Serialized storage admission configured (1 connection at a time)")

    @property
    def capacity(self) -> int:
        return 1

    def _connect_postgres(self) -> psycopg.Connection:
        return psycopg.connect(self.dsn, row_factory=dict_row)

    def _open(self) -> Any:
        self._permit.acquire()
        try:
            return self._connect()
        except psycopg.Error as e:
            self._permit.release()
            raise StorageError(f"Failed to open connection: {e}") from e
        except BaseException:
            self._permit.release()
            raise

    def _return(self, conn: Any) -> None:
        try:
            conn.close()
        except Exception as e:
            logger.warning(f"Error closing serialized connection: {e}")
        finally:
            self._permit.release()


def normalize_mode(mode: str) -> str:
    """Map a configured DB_MODE value to POOLED or SERIALIZED."""
    key = (mode or "").strip().lower()
    if key not in _MODE_ALIASES:
        raise ValueError(f"Unknown storage admission mode: {mode!r}")
    return _MODE_ALIASES[key]


def create_admission(
    mode: Optional[str] = None,
    dsn: Optional[str] = None,
    pool_size: Optional[int] = None,
) -> StorageAdmission:
    """
    Build the admission policy selected by configuration.

    Args:
        mode: "pooled" or "serialized" (default: config.DB_MODE)
        dsn: Postgres connection string (default: config.POSTGRES_DSN)
        pool_size: Pool capacity for pooled mode (default: config.PG_POOL_MAX)
    """
    resolved = normalize_mode(mode or config.DB_MODE)
    if resolved == SERIALIZED:
        return SerializedAdmission(dsn=dsn)
    return PooledAdmission(dsn=dsn, pool_size=pool_size)


# Global admission policy
_admission: Optional[StorageAdmission] = None
_admission_lock = threading.Lock()


def get_admission() -> StorageAdmission:
    """Get or create the process-wide admission policy."""
    global _admission

    if _admission is None:
        with _admission_lock:
            if _admission is None:
                _admission = create_admission()
    return _admission


def close_admission() -> None:
    """Close the process-wide admission policy."""
    global _admission
    if _admission is not None:
        _admission.close()
        _admission = None
