from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

import psycopg
from psycopg.conninfo import make_conninfo
from psycopg_pool import ConnectionPool, PoolTimeout

from app.config.settings import Settings
from app.logging.logger import Log

_pool: ConnectionPool | None = None


def build_conninfo(settings: Settings) -> str:
    """Build a libpq connection string from settings."""
    return make_conninfo(
        host=settings.db_host,
        port=settings.db_port,
        dbname=settings.db_database,
        user=settings.db_username,
        password=settings.db_password,
    )


def init_pool(settings: Settings, max_size: int = 10) -> None:
    """Initialize the global connection pool from settings.

    Fails fast when the database is unreachable so the API never starts
    serving without its store.
    """
    global _pool  # noqa: PLW0603
    if _pool is not None:
        return
    pool = ConnectionPool(build_conninfo(settings), min_size=1, max_size=max_size, open=False)
    pool.open(wait=True, timeout=10.0)
    _pool = pool


def close_pool() -> None:
    """Close the global connection pool."""
    global _pool  # noqa: PLW0603
    if _pool is not None:
        _pool.close()
        _pool = None


def check_connection() -> bool:
    """Run a trivial query. False when the pool is missing or the database is down."""
    if _pool is None:
        return False
    try:
        with _pool.connection(timeout=2.0) as conn:
            conn.execute("SELECT 1")
    except (psycopg.Error, PoolTimeout) as exc:
        Log.warning("Database health check failed", error=exc)
        return False
    return True


@contextmanager
def get_connection() -> Generator[psycopg.Connection[Any], None, None]:
    """Yield a connection from the pool. Caller manages commit/rollback."""
    if _pool is None:
        raise RuntimeError("Connection pool not initialized. Call init_pool() first.")
    with _pool.connection() as conn:
        yield conn
