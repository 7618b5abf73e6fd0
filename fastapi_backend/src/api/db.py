import logging
import os
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence
from urllib.parse import quote

import psycopg2
import psycopg2.extras
from psycopg2.pool import PoolError, ThreadedConnectionPool

from src.api.errors import QueryFailed, StoreUnreachable

logger = logging.getLogger("tierdemo.db")


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(
            f"Missing required environment variable '{name}'. "
            "Set it in the container environment (Secret/ConfigMap)."
        )
    return value


# PUBLIC_INTERFACE
def build_dsn() -> str:
    """
    Build DSN from the standardized database env vars.

    Uses:
      - POSTGRES_URL (optional full DSN; if provided, it wins)
      - DB_HOST, POSTGRES_USER, POSTGRES_PASSWORD, POSTGRES_DB, POSTGRES_PORT
      - DB_CONNECT_TIMEOUT (seconds, applied by libpq when connecting)
    """
    url = os.getenv("POSTGRES_URL")
    if url:
        # Assume it is a valid libpq connection string / URL
        return url

    user = _required_env("POSTGRES_USER")
    password = _required_env("POSTGRES_PASSWORD")
    db = _required_env("POSTGRES_DB")
    host = os.getenv("DB_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    timeout = os.getenv("DB_CONNECT_TIMEOUT", "5")
    return (
        f"postgresql://{quote(user, safe='')}:{quote(password, safe='')}@{host}:{port}/{db}"
        f"?sslmode=disable&connect_timeout={timeout}"
    )


def _driver_message(exc: BaseException) -> str:
    return str(exc).strip() or exc.__class__.__name__


class Database:
    """PostgreSQL connection pool plus the query helpers used by the stores.

    Driver exceptions never leave this class: connection problems surface as
    :class:`StoreUnreachable` and statement problems as :class:`QueryFailed`.
    """

    def __init__(
        self,
        dsn: Optional[str] = None,
        min_connections: Optional[int] = None,
        max_connections: Optional[int] = None,
    ) -> None:
        self._dsn = dsn
        self._min = min_connections if min_connections is not None else int(os.getenv("DB_POOL_MIN", "1"))
        self._max = max_connections if max_connections is not None else int(os.getenv("DB_POOL_MAX", "10"))
        self._pool: Optional[ThreadedConnectionPool] = None
        self._lock = threading.Lock()

    # PUBLIC_INTERFACE
    def init_pool(self) -> ThreadedConnectionPool:
        """Create the connection pool if it does not exist yet."""
        with self._lock:
            if self._pool is None:
                try:
                    dsn = self._dsn or build_dsn()
                except RuntimeError as exc:
                    raise StoreUnreachable(str(exc)) from exc
                try:
                    self._pool = ThreadedConnectionPool(minconn=self._min, maxconn=self._max, dsn=dsn)
                except psycopg2.Error as exc:
                    raise StoreUnreachable(_driver_message(exc)) from exc
                logger.info("Connection pool ready (min=%d, max=%d)", self._min, self._max)
            return self._pool

    # PUBLIC_INTERFACE
    def close(self) -> None:
        """Close every pooled connection."""
        with self._lock:
            if self._pool is not None:
                self._pool.closeall()
                self._pool = None

    @contextmanager
    def _get_conn(self) -> Iterator[Any]:
        pool = self._pool or self.init_pool()
        try:
            conn = pool.getconn()
        except (PoolError, psycopg2.OperationalError) as exc:
            raise StoreUnreachable(_driver_message(exc)) from exc

        broken = False
        try:
            yield conn
        except psycopg2.OperationalError as exc:
            broken = True
            raise StoreUnreachable(_driver_message(exc)) from exc
        except psycopg2.Error as exc:
            conn.rollback()
            raise QueryFailed(_driver_message(exc)) from exc
        finally:
            pool.putconn(conn, close=broken or bool(conn.closed))

    @staticmethod
    def _dict_cursor(conn):
        return conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)

    # PUBLIC_INTERFACE
    def fetch_one(self, query: str, params: Optional[Sequence[Any]] = None) -> Optional[Dict[str, Any]]:
        """Fetch a single row as a dict, or None."""
        with self._get_conn() as conn:
            with self._dict_cursor(conn) as cur:
                cur.execute(query, params or [])
                row = cur.fetchone()
            conn.commit()
            return dict(row) if row else None

    # PUBLIC_INTERFACE
    def fetch_all(self, query: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """Fetch all rows as dicts."""
        with self._get_conn() as conn:
            with self._dict_cursor(conn) as cur:
                cur.execute(query, params or [])
                rows = cur.fetchall()
            conn.commit()
            return [dict(r) for r in rows]

    # PUBLIC_INTERFACE
    def execute(self, query: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute a statement (DDL/INSERT). Returns affected rowcount."""
        with self._get_conn() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params or [])
                affected = cur.rowcount
            conn.commit()
            return affected
