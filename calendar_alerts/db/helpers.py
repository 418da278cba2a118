# calendar_alerts/db/helpers.py
"""
Database helper functions for common patterns.
Connections and cursors are always scoped with ``async with`` so they are
released on every exit path, including errors.
"""

from typing import Any

import psycopg

from calendar_alerts.db.pool import db_pool
from calendar_alerts.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class DatabaseError(Exception):
    """Custom exception for database operations."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


async def fetch_all(query: Any, params: tuple = ()) -> list[dict[str, Any]]:
    """
    Execute query and return all rows as list of dicts.

    Args:
        query: SQL query with %s placeholders
        params: Query parameters

    Returns:
        List of dicts with row data (empty list when nothing matched)
    """
    try:
        async with db_pool.connection() as conn:
            async with conn.cursor() as cur:
                await cur.execute(query, params)
                rows = await cur.fetchall()
                return rows or []

    except psycopg.Error as e:
        logger.error("Database fetch_all error", query=str(query)[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="fetch_all") from e


async def execute_query(query: Any, params: tuple = ()) -> int:
    """Execute query and return number of affected rows."""
    try:
        async with db_pool.connection() as conn:
            cursor = await conn.execute(query, params)
            return cursor.rowcount

    except psycopg.Error as e:
        logger.error("Database execute error", query=str(query)[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation="execute") from e
