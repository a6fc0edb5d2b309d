"""
===============================================================================
TARJETA CRC — application/__init__.py
===============================================================================

Módulo:
    Servicios del audit core (escritura, recuperación, analítica, monitor).

Colaboradores:
    - application.activity_log: writer + wrappers por tipo de evento
    - application.retrieval: listados, búsqueda y paginación
    - application.analytics: estadísticas, dashboard, anomalías, compliance
    - application.monitoring: buffer en tiempo real + detectores
===============================================================================
"""

from .activity_log import ActivityLogService
from .analytics import ActivityAnalyticsService, AnalyticsConfig
from .monitoring import ActivityMonitor, MonitorConfig
from .results import (
    ActivityErrorCode,
    ActivityListResult,
    ActivityLogResult,
    ActivityResult,
    AnomalyResult,
    ComplianceReportResult,
    DashboardResult,
    StatisticsResult,
)
from .retrieval import ActivityRetrievalService

__all__ = [
    "ActivityLogService",
    "ActivityRetrievalService",
    "ActivityAnalyticsService",
    "AnalyticsConfig",
    "ActivityMonitor",
    "MonitorConfig",
    "ActivityErrorCode",
    "ActivityLogResult",
    "ActivityListResult",
    "ActivityResult",
    "StatisticsResult",
    "DashboardResult",
    "AnomalyResult",
    "ComplianceReportResult",
]
