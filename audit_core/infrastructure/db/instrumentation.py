"""
===============================================================================
CRC CARD — infrastructure/db/instrumentation.py
===============================================================================

Clases:
  - TimedConnection (Proxy de conexión)
  - InstrumentedConnectionPool (Facade del pool)

Responsabilidades:
  - Medir cada conn.execute(...) en audit_db_query_duration_seconds{kind}.
  - Loguear queries lentas (solo el tipo de statement, nunca el SQL).
  - Healthcheck opcional (SELECT 1) al adquirir; fallas -> StoreConnectionError.

Colaboradores:
  - crosscutting.config (db_slow_query_seconds, db_healthcheck_on_acquire)
  - crosscutting.logger / crosscutting.metrics
  - psycopg_pool.ConnectionPool (pool real)
===============================================================================
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from ...crosscutting.config import get_settings
from ...crosscutting.exceptions import StoreConnectionError
from ...crosscutting.logger import logger
from ...crosscutting.metrics import observe_db_query_duration


def statement_kind(sql: Any) -> str:
    """SELECT / INSERT / ... (label de baja cardinalidad)."""
    head = str(sql).lstrip().split(None, 1)
    return head[0].upper() if head else "UNKNOWN"


class TimedConnection:
    """Mide execute(); cualquier otro atributo va a la conexión real."""

    def __init__(self, inner_conn, *, slow_query_seconds: float) -> None:
        self._conn = inner_conn
        self._slow_query_seconds = slow_query_seconds

    def execute(self, query, *args, **kwargs):
        kind = statement_kind(query)
        started = time.perf_counter()
        try:
            return self._conn.execute(query, *args, **kwargs)
        finally:
            self._observe(kind, time.perf_counter() - started)

    def _observe(self, kind: str, seconds: float) -> None:
        observe_db_query_duration(kind, seconds)
        if seconds >= self._slow_query_seconds:
            logger.warning(
                "Slow audit store query",
                extra={"kind": kind, "seconds": round(seconds, 4)},
            )

    def __getattr__(self, item: str):
        return getattr(self._conn, item)


class InstrumentedConnectionPool:
    """
    Facade del pool real.

    Los repositorios siguen usando `with pool.connection() as conn:`;
    `conn` es un TimedConnection.
    """

    def __init__(
        self,
        inner_pool,
        *,
        slow_query_seconds: Optional[float] = None,
        healthcheck: Optional[bool] = None,
    ) -> None:
        settings = get_settings()
        self._pool = inner_pool
        self._slow_query_seconds = (
            settings.db_slow_query_seconds if slow_query_seconds is None else slow_query_seconds
        )
        self._healthcheck = (
            settings.db_healthcheck_on_acquire if healthcheck is None else healthcheck
        )

    @property
    def inner(self):
        return self._pool

    @contextmanager
    def connection(self, *args, **kwargs) -> Iterator[TimedConnection]:
        inner_ctx = self._pool.connection(*args, **kwargs)
        try:
            conn = inner_ctx.__enter__()
        except Exception as exc:
            raise StoreConnectionError(
                "Could not acquire an audit store connection", original_error=exc
            ) from exc

        try:
            if self._healthcheck:
                _check_alive(conn)
            yield TimedConnection(conn, slow_query_seconds=self._slow_query_seconds)
        except BaseException as exc:
            # El pool decide si la conexión vuelve sana o se descarta.
            if not inner_ctx.__exit__(type(exc), exc, exc.__traceback__):
                raise
        else:
            inner_ctx.__exit__(None, None, None)

    def __getattr__(self, item: str):
        return getattr(self._pool, item)


def _check_alive(conn) -> None:
    try:
        conn.execute("SELECT 1")
    except Exception as exc:
        raise StoreConnectionError(
            "Audit store connection failed healthcheck", original_error=exc
        ) from exc
