"""
===============================================================================
TARJETA CRC — audit_core/container.py (Composition Root / DI manual)
===============================================================================

Responsabilidades:
  - Componer store, monitor y servicios del audit core siguiendo DIP.
  - Mantener singletons con caching (lru_cache): un monitor por proceso,
    un store por proceso.
  - Centralizar decisiones runtime basadas en Settings (backend del store,
    umbrales del monitor, parámetros de anomalías).

Colaboradores:
  - crosscutting.config.get_settings
  - domain.repositories.ActivityLogRepository (puerto)
  - infrastructure.repositories / infrastructure.db (implementaciones)
  - application.* (servicios)

Notas:
  - Este archivo NO contiene lógica de negocio.
  - reset_container() limpia los singletons (tests / reconfiguración).
===============================================================================
"""

from __future__ import annotations

from functools import lru_cache

from .application.activity_log import ActivityLogService
from .application.analytics import ActivityAnalyticsService, AnalyticsConfig
from .application.monitoring import ActivityMonitor, MonitorConfig
from .application.retrieval import ActivityRetrievalService
from .crosscutting.config import get_settings
from .domain.repositories import ActivityLogRepository
from .infrastructure.db.pool import close_pool, init_pool
from .infrastructure.repositories import (
    InMemoryActivityLogRepository,
    PostgresActivityLogRepository,
)

# =============================================================================
# Store + monitor (singletons)
# =============================================================================


@lru_cache(maxsize=1)
def get_repository() -> ActivityLogRepository:
    """Store del audit trail (in-memory o Postgres según Settings)."""
    settings = get_settings()
    if settings.store_backend == "postgres":
        pool = init_pool(
            settings.database_url,
            settings.db_pool_min_size,
            settings.db_pool_max_size,
        )
        return PostgresActivityLogRepository(pool=pool)
    return InMemoryActivityLogRepository()


@lru_cache(maxsize=1)
def get_monitor() -> ActivityMonitor:
    """Monitor en tiempo real (una instancia por proceso)."""
    return ActivityMonitor(MonitorConfig.from_settings(get_settings()))


# =============================================================================
# Servicios
# =============================================================================


@lru_cache(maxsize=1)
def get_activity_log_service() -> ActivityLogService:
    return ActivityLogService(
        get_repository(),
        monitor=get_monitor(),
        max_metadata_bytes=get_settings().metadata_max_bytes,
    )


@lru_cache(maxsize=1)
def get_retrieval_service() -> ActivityRetrievalService:
    return ActivityRetrievalService(get_repository())


@lru_cache(maxsize=1)
def get_analytics_service() -> ActivityAnalyticsService:
    return ActivityAnalyticsService(
        get_repository(), AnalyticsConfig.from_settings(get_settings())
    )


def reset_container() -> None:
    """Descarta singletons y cierra el pool si existía."""
    for factory in (
        get_analytics_service,
        get_retrieval_service,
        get_activity_log_service,
        get_monitor,
        get_repository,
    ):
        factory.cache_clear()
    close_pool()
