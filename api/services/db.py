"""Snowflake connectivity for the article store.

Exposes a managed ``connect()`` context, a small connection pool behind the
request-scoped FastAPI dependency, and dict-returning query helpers.
"""

import logging
import threading
from contextlib import contextmanager
from queue import Empty, Full, Queue
from typing import Optional

import snowflake.connector

from config import get_settings


class SnowflakeConnectionError(Exception):
    pass


def _conn_kwargs() -> dict:
    """Builds the connection keyword arguments from environment settings."""
    settings = get_settings()
    required_keys = [
        "snowflake_account",
        "snowflake_user",
        "snowflake_password",
        "snowflake_database",
        "snowflake_schema",
    ]

    missing_keys = [key for key in required_keys if not getattr(settings, key)]
    if missing_keys:
        raise SnowflakeConnectionError(f"Missing Snowflake credentials: {', '.join(missing_keys)}")

    kwargs = {
        "account": settings.snowflake_account,
        "user": settings.snowflake_user,
        "password": settings.snowflake_password,
        "database": settings.snowflake_database,
        "schema": settings.snowflake_schema,
    }
    if settings.snowflake_role:
        kwargs["role"] = settings.snowflake_role
    if settings.snowflake_warehouse:
        kwargs["warehouse"] = settings.snowflake_warehouse
    return kwargs


def _open_connection() -> snowflake.connector.SnowflakeConnection:
    try:
        conn = snowflake.connector.connect(**_conn_kwargs())
    except snowflake.connector.Error as e:
        logging.exception(f"Snowflake connection failed: {e}")
        raise SnowflakeConnectionError(f"Failed to connect to Snowflake: {e}") from e
    logging.debug("Snowflake connection established.")
    return conn


class ConnectionPool:
    """Thread-safe pool of Snowflake connections."""

    def __init__(self, max_size: int = 5):
        self.max_size = max_size
        self._pool: Queue = Queue(maxsize=max_size)
        self._active_count = 0
        self._lock = threading.Lock()

    def get_connection(self, timeout: float = 5.0):
        try:
            conn = self._pool.get_nowait()
            if not conn.is_closed():
                logging.debug("Reused connection from pool")
                return conn
            with self._lock:
                self._active_count -= 1
        except Empty:
            pass

        with self._lock:
            if self._active_count < self.max_size:
                self._active_count += 1
                create = True
            else:
                create = False

        if create:
            try:
                return _open_connection()
            except SnowflakeConnectionError:
                with self._lock:
                    self._active_count -= 1
                raise

        try:
            return self._pool.get(timeout=timeout)
        except Empty:
            raise SnowflakeConnectionError("Connection pool timeout - all connections in use")

    def return_connection(self, conn) -> None:
        if conn is None:
            return
        try:
            self._pool.put_nowait(conn)
        except Full:
            conn.close()
            with self._lock:
                self._active_count -= 1
            logging.debug("Pool full, closed connection")


_connection_pool: Optional[ConnectionPool] = None
_pool_lock = threading.Lock()


def _get_pool() -> ConnectionPool:
    """Get or create the global connection pool."""
    global _connection_pool
    if _connection_pool is None:
        with _pool_lock:
            if _connection_pool is None:
                _connection_pool = ConnectionPool()
    return _connection_pool


@contextmanager
def connect():
    """Provides a managed Snowflake connection, closed on exit."""
    conn = _open_connection()
    try:
        yield conn
    finally:
        conn.close()
        logging.debug("Snowflake connection closed.")


def get_db_connection():
    """
    FastAPI dependency that provides a request-scoped Snowflake connection.
    Connections come from the pool and go back to it after the request.
    """
    pool = _get_pool()
    conn = pool.get_connection()
    try:
        yield conn
    finally:
        pool.return_connection(conn)


def fetch_dicts(sql: str, params: dict | None = None, conn: Optional[snowflake.connector.SnowflakeConnection] = None) -> list[dict]:
    """
    Executes a SQL query and returns a list of dictionaries keyed by lowercase column name.

    Args:
        sql: SQL query string
        params: Optional query parameters
        conn: Optional existing connection. If provided, uses it; otherwise opens a new one.
    """
    if conn is None:
        with connect() as own_conn:
            return fetch_dicts(sql, params, conn=own_conn)

    with conn.cursor() as cur:
        cur.execute(sql, params or {})
        columns = [col[0].lower() for col in cur.description]
        return [dict(zip(columns, row)) for row in cur.fetchall()]


def execute(sql: str, params: dict | None = None, conn: Optional[snowflake.connector.SnowflakeConnection] = None) -> int:
    """
    Executes a DML statement, commits, and returns the affected row count.
    """
    if conn is None:
        with connect() as own_conn:
            return execute(sql, params, conn=own_conn)

    with conn.cursor() as cur:
        if params is None:
            cur.execute(sql)
        else:
            cur.execute(sql, params)
        rowcount = cur.rowcount or 0
    conn.commit()
    return rowcount
