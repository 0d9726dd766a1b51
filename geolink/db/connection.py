"""
Connection management for PostgreSQL.

A ``Database`` owns one psycopg2 ``ThreadedConnectionPool`` and hands out
connections through a context manager that commits on success and rolls back
on exception. There is no module-level pool: the API and CLI build a
``Database`` once and pass it to every component that touches SQL.

Usage:
    from geolink.db import Database

    db = Database.from_config()
    with db.connection() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT 1")
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Generator
from contextlib import contextmanager

import psycopg2
import psycopg2.pool

from geolink.config import DatabaseConfig, get_config

logger = logging.getLogger(__name__)


class Database:
    """Lazily-created connection pool for one PostgreSQL database."""

    def __init__(self, cfg: DatabaseConfig, minconn: int = 1, maxconn: int = 10):
        self.cfg = cfg
        self.minconn = minconn
        self.maxconn = maxconn
        self._pool: psycopg2.pool.ThreadedConnectionPool | None = None
        self._lock = threading.Lock()

    @classmethod
    def from_config(cls) -> Database:
        cfg = get_config()
        return cls(cfg.db, minconn=cfg.pool_min, maxconn=cfg.pool_max)

    def get_pool(self) -> psycopg2.pool.ThreadedConnectionPool:
        """Get or create the connection pool."""
        if self._pool is not None and not self._pool.closed:
            return self._pool

        with self._lock:
            if self._pool is not None and not self._pool.closed:
                return self._pool

            cfg = self.cfg
            logger.info(
                "Creating connection pool: %s@%s:%s/%s (min=%d, max=%d)",
                cfg.user,
                cfg.host,
                cfg.port,
                cfg.name,
                self.minconn,
                self.maxconn,
            )
            try:
                self._pool = psycopg2.pool.ThreadedConnectionPool(
                    minconn=self.minconn,
                    maxconn=self.maxconn,
                    **cfg.dict,
                )
            except psycopg2.OperationalError as e:
                raise ConnectionError(
                    f"Cannot connect to PostgreSQL at {cfg.host}:{cfg.port}/{cfg.name}: {e}\n"
                    f"Check GEOLINK_DB_* environment variables and ensure PostgreSQL is running."
                ) from e
            return self._pool

    @contextmanager
    def connection(
        self,
        autocommit: bool = False,
    ) -> Generator[psycopg2.extensions.connection, None, None]:
        """Get a connection from the pool.

        Usage:
            with db.connection() as conn:
                cur = conn.cursor()
                cur.execute("SELECT 1")
            # Connection is returned to pool automatically.
            # On exception, transaction is rolled back.
        """
        pool = self.get_pool()
        conn = pool.getconn()
        try:
            if autocommit:
                conn.autocommit = True
            yield conn
            if not autocommit:
                conn.commit()
        except Exception:
            if not autocommit:
                conn.rollback()
            raise
        finally:
            if autocommit:
                conn.autocommit = False
            pool.putconn(conn)

    def close(self) -> None:
        """Close all connections in the pool."""
        if self._pool is not None:
            self._pool.closeall()
            self._pool = None
