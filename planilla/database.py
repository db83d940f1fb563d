"""
Database gateway (async SQLAlchemy over asyncpg).
- All business logic lives in stored functions/procedures; this layer only renders
  `SELECT * FROM fn(...)`, `SELECT fn(...)` and `CALL proc(...)` with bound parameters.
- One pooled connection per statement, committed on success, never retried.
- Driver errors are re-raised as GatewayError carrying the vendor SQLSTATE.
"""
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import asyncpg
from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from planilla.config import Settings
from planilla.exceptions import GatewayError

logger = logging.getLogger(__name__)


def build_routine_call(
    routine: str,
    params: Sequence[Any] = (),
    types: Sequence[Optional[str]] = (),
) -> Tuple[str, Dict[str, Any]]:
    """
    Render `routine(:p1, CAST(:p2 AS INT), ...)` and its bind dict.

    types is positional; a missing or None entry leaves the parameter uncast.
    Named binds with CAST are used instead of `:p1::INT`, which text() would not parse.
    """
    placeholders = []
    binds: Dict[str, Any] = {}
    for i, value in enumerate(params, 1):
        name = f"p{i}"
        binds[name] = value
        cast = types[i - 1] if i - 1 < len(types) else None
        placeholders.append(f"CAST(:{name} AS {cast})" if cast else f":{name}")
    return f"{routine}({', '.join(placeholders)})", binds


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    """SQLSTATE of a driver error; the asyncpg adapter exposes it as sqlstate/pgcode."""
    for candidate in (exc.orig, getattr(exc.orig, "__cause__", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def _driver_message(exc: DBAPIError) -> str:
    """
    Server-side message of a driver error. The asyncpg adapter wraps the
    asyncpg exception and, on SQLAlchemy 2.0, prefixes it with the class name.
    """
    for candidate in (getattr(exc.orig, "__cause__", None), exc.orig):
        if isinstance(candidate, asyncpg.PostgresError):
            return candidate.message or candidate.args[0]
    return str(exc.orig) if exc.orig is not None else str(exc)


def _gateway_error(exc: DBAPIError) -> GatewayError:
    return GatewayError(_driver_message(exc), code=_sqlstate(exc))


class Gateway:
    """Handle on the connection pool; built once per process and injected into handlers."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @classmethod
    def from_settings(cls, settings: Settings) -> "Gateway":
        engine = create_async_engine(
            settings.database_url,
            echo=settings.db_echo,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
            connect_args=settings.connect_args(),
        )
        return cls(engine)

    async def _execute(self, sql: str, binds: Dict[str, Any]):
        logger.debug("execute %s %s", sql, binds)
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(text(sql), binds)
                if result.returns_rows:
                    return [dict(row._mapping) for row in result]
                return []
        except DBAPIError as exc:
            raise _gateway_error(exc) from exc

    async def fetch(
        self,
        routine: str,
        params: Sequence[Any] = (),
        types: Sequence[Optional[str]] = (),
    ) -> List[Dict[str, Any]]:
        """Set-returning function: SELECT * FROM routine(...)."""
        call, binds = build_routine_call(routine, params, types)
        return await self._execute(f"SELECT * FROM {call}", binds)

    async def scalar(
        self,
        routine: str,
        params: Sequence[Any] = (),
        types: Sequence[Optional[str]] = (),
    ) -> Any:
        """Scalar function: SELECT routine(...) AS value; None when no row comes back."""
        call, binds = build_routine_call(routine, params, types)
        rows = await self._execute(f"SELECT {call} AS value", binds)
        return rows[0]["value"] if rows else None

    async def call(
        self,
        procedure: str,
        params: Sequence[Any] = (),
        types: Sequence[Optional[str]] = (),
    ) -> None:
        """Stored procedure: CALL procedure(...)."""
        call, binds = build_routine_call(procedure, params, types)
        await self._execute(f"CALL {call}", binds)

    async def server_time(self):
        """Health check on an explicitly acquired connection, released right after."""
        conn = await self.engine.connect()
        try:
            result = await conn.execute(text("SELECT NOW() AS now"))
            return result.scalar_one()
        except DBAPIError as exc:
            raise _gateway_error(exc) from exc
        finally:
            await conn.close()

    async def dispose(self) -> None:
        await self.engine.dispose()


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway
