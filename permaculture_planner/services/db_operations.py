"""
Database operations for the permaculture planner.

This module provides:
1. Engine lifecycle (configure, lazy creation, dispose)
2. Raw SQL helpers returning rows as dicts
3. JSON column encoding and id/timestamp helpers
4. Schema creation
"""
import json
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import sqlalchemy as sa
from sqlalchemy.engine import Result
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from permaculture_planner.config import Config
from permaculture_planner.logging_config import get_logger
from permaculture_planner.services.schema import INDEX_DEFINITIONS, TABLE_DEFINITIONS

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None
_database_url: str = Config.DATABASE_URL


def configure_engine(database_url: str) -> None:
    """Point the module at a different database. The engine is rebuilt lazily."""
    global _engine, _database_url
    _engine = None
    _database_url = database_url


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        kwargs: Dict[str, Any] = {}
        if _database_url.startswith("sqlite"):
            # aiosqlite connections are bound to the loop that opened them
            kwargs["poolclass"] = NullPool
        _engine = create_async_engine(_database_url, **kwargs)
        logger.info("Created database engine for %s", _database_url.split("@")[-1])
    return _engine


async def dispose_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None


def new_id() -> str:
    return uuid.uuid4().hex


def now_ts() -> int:
    return int(time.time())


def encode_json(value: Any) -> Optional[str]:
    if value is None:
        return None
    return json.dumps(value)


def decode_json(value: Any, default: Any = None) -> Any:
    """Decode a JSON TEXT column, returning ``default`` for empty or malformed values."""
    if value is None or value == "":
        return default
    if not isinstance(value, str):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        logger.warning("Could not decode JSON column value: %r", value[:80])
        return default


def _build_statement(sql: str, params: Optional[Dict[str, Any]]) -> sa.TextClause:
    stmt = sa.text(sql)
    expanding = [
        sa.bindparam(name, expanding=True)
        for name, value in (params or {}).items()
        if isinstance(value, (list, tuple)) and f":{name}" in sql
    ]
    if expanding:
        stmt = stmt.bindparams(*expanding)
    return stmt


async def execute_sql_query(
    conn: AsyncConnection, sql: str, params: Optional[Dict[str, Any]] = None
) -> Result:
    """Execute a parameterized statement on an open connection.

    List and tuple parameters are bound as expanding ``IN`` lists.
    """
    return await conn.execute(_build_statement(sql, params), params or {})


@asynccontextmanager
async def transaction() -> AsyncIterator[AsyncConnection]:
    """Open a connection inside a transaction that commits on success."""
    async with get_engine().begin() as conn:
        yield conn


async def fetch_all(sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    async with get_engine().connect() as conn:
        result = await execute_sql_query(conn, sql, params)
        return [dict(row) for row in result.mappings()]


async def fetch_one(sql: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
    async with get_engine().connect() as conn:
        result = await execute_sql_query(conn, sql, params)
        row = result.mappings().first()
        return dict(row) if row is not None else None


async def fetch_value(sql: str, params: Optional[Dict[str, Any]] = None, default: Any = None) -> Any:
    async with get_engine().connect() as conn:
        result = await execute_sql_query(conn, sql, params)
        value = result.scalar()
        return default if value is None else value


async def execute(sql: str, params: Optional[Dict[str, Any]] = None) -> int:
    """Run a write statement in its own transaction and return the affected row count."""
    async with transaction() as conn:
        result = await execute_sql_query(conn, sql, params)
        return result.rowcount


async def init_db() -> None:
    """Create all tables and indexes if they do not exist."""
    async with transaction() as conn:
        for table_name, create_stmt in TABLE_DEFINITIONS.items():
            await conn.execute(sa.text(create_stmt))
            logger.debug("Ensured table %s", table_name)
        for index_stmt in INDEX_DEFINITIONS:
            await conn.execute(sa.text(index_stmt))
    logger.info("Database schema ready (%d tables)", len(TABLE_DEFINITIONS))


def build_update(
    table: str,
    updates: Dict[str, Any],
    where: str,
    params: Dict[str, Any],
    touch: bool = True,
) -> tuple:
    """Build an ``UPDATE`` statement from a dict of column values.

    Column names come from server-side allow lists, never from request keys.
    """
    assignments = [f"{column} = :set_{column}" for column in updates]
    bound = {f"set_{column}": value for column, value in updates.items()}
    if touch:
        assignments.append("updated_at = :set_updated_at")
        bound["set_updated_at"] = now_ts()
    bound.update(params)
    return f"UPDATE {table} SET {', '.join(assignments)} WHERE {where}", bound


def escape_like(term: str) -> str:
    """Escape LIKE wildcards; pair with ``ESCAPE '\\'`` in the statement."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
