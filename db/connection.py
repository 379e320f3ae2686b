"""SQLite access for the newsletter store: connections, DataFrame reads, blob lookups, writes."""

import sqlite3
import logging
from contextlib import contextmanager

import pandas as pd

logger = logging.getLogger(__name__)


@contextmanager
def get_connection(db_path: str):
    """Context manager for SQLite connections. Commits on success, rolls back and re-raises on error."""
    conn = sqlite3.connect(db_path)
    conn.execute("PRAGMA journal_mode=WAL")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def read_query(query: str, db_path: str, params=None) -> pd.DataFrame:
    """Execute a SQL query and return results as DataFrame."""
    with get_connection(db_path) as conn:
        return pd.read_sql_query(query, conn, params=params)


def read_first_value(query: str, db_path: str, params=None):
    """First column of the first row, or None when the query matches nothing."""
    df = read_query(query, db_path, params=params)
    if df.empty:
        return None
    return df.iloc[0, 0]


def execute(query: str, db_path: str, params=None):
    """Execute a single SQL statement (INSERT, UPDATE, DELETE, etc.)."""
    with get_connection(db_path) as conn:
        conn.execute(query, params or [])


def execute_many(query: str, db_path: str, rows: list):
    """Execute one statement per parameter row inside a single transaction."""
    if not rows:
        return
    with get_connection(db_path) as conn:
        conn.executemany(query, rows)
    logger.debug(f"Wrote {len(rows)} rows")


def table_row_count(table_name: str, db_path: str) -> int:
    """Get the row count of a table."""
    return int(read_first_value(f"SELECT COUNT(*) AS cnt FROM {table_name}", db_path))
