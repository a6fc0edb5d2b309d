"""
===============================================================================
CRC CARD — infrastructure/db/pool.py
===============================================================================

Componente:
  Pool de conexiones PostgreSQL del audit store (uno por proceso)

Responsabilidades:
  - Abrir, exponer y cerrar el pool (init_pool / get_pool / close_pool).
  - Dejar cada conexión nueva en UTC y con statement_timeout.
  - Entregar el pool envuelto en InstrumentedConnectionPool.

Colaboradores:
  - psycopg_pool.ConnectionPool
  - infrastructure/db/instrumentation.InstrumentedConnectionPool
  - container.py (abre el pool al construir el store postgres)

Principios:
  - Fail-fast: doble init o uso sin init lanzan StoreError tipados
===============================================================================
"""

from __future__ import annotations

import threading
from typing import Optional

from psycopg_pool import ConnectionPool

from ...crosscutting.config import get_settings
from ...crosscutting.exceptions import PoolAlreadyInitializedError, PoolNotInitializedError
from ...crosscutting.logger import logger
from .instrumentation import InstrumentedConnectionPool


def _configure_connection(conn) -> None:
    """Hook `configure` del pool: corre una vez por conexión física."""
    conn.execute("SET TIME ZONE 'UTC'")
    timeout_ms = int(get_settings().db_statement_timeout_ms)
    if timeout_ms > 0:
        conn.execute(f"SET statement_timeout = {timeout_ms}")
    conn.commit()


class _PoolHolder:
    """Estado del singleton; el lock serializa apertura y cierre."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._pool: Optional[InstrumentedConnectionPool] = None

    def open(self, database_url: str, min_size: int, max_size: int) -> InstrumentedConnectionPool:
        with self._lock:
            if self._pool is not None:
                raise PoolAlreadyInitializedError("Audit store pool already initialized")

            logger.info(
                "Opening audit store pool",
                extra={"min_size": min_size, "max_size": max_size},
            )
            self._pool = InstrumentedConnectionPool(
                ConnectionPool(
                    conninfo=database_url,
                    min_size=min_size,
                    max_size=max_size,
                    configure=_configure_connection,
                    open=True,
                )
            )
            return self._pool

    def current(self) -> InstrumentedConnectionPool:
        pool = self._pool
        if pool is None:
            raise PoolNotInitializedError(
                "Audit store pool not initialized. Call init_pool() first."
            )
        return pool

    def close(self, *, raise_errors: bool) -> None:
        with self._lock:
            pool, self._pool = self._pool, None
        if pool is None:
            return

        logger.info("Closing audit store pool")
        try:
            pool.close()
        except Exception as exc:
            if raise_errors:
                raise
            logger.warning("Audit store pool close failed", extra={"error": str(exc)})


_holder = _PoolHolder()


def init_pool(database_url: str, min_size: int, max_size: int) -> InstrumentedConnectionPool:
    return _holder.open(database_url, min_size, max_size)


def get_pool() -> InstrumentedConnectionPool:
    return _holder.current()


def close_pool() -> None:
    """Cierra el pool (idempotente). Un error de close() se propaga."""
    _holder.close(raise_errors=True)


def reset_pool() -> None:
    """Descarta el pool aunque close() falle (tests / reconfiguración)."""
    _holder.close(raise_errors=False)
