"""
===============================================================================
ARCHIVO: crosscutting/metrics.py
===============================================================================

CRC CARD (Módulo)
-------------------------------------------------------------------------------
Nombre:
    Métricas (Prometheus) del core de auditoría

Responsabilidades:
    - Definir métricas Prometheus en un registry propio.
    - Proveer funciones pequeñas y estables para registrar eventos/duraciones.
    - Cuidar cardinalidad (NO actor_id, NO SQL completo, NO acciones libres).

Colaboradores:
    - application/activity_log: registra eventos escritos y rechazados.
    - application/monitoring: registra alertas de seguridad.
    - application/retrieval, application/analytics: duración de consultas.
    - infrastructure/db/instrumentation: observa duración de queries.
===============================================================================
"""

from __future__ import annotations

from typing import Optional

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Registro propio del paquete, separado del REGISTRY global.
_registry = CollectorRegistry()

_activities_logged_total: Optional[Counter] = None
_activities_rejected_total: Optional[Counter] = None
_security_alerts_total: Optional[Counter] = None
_subscriber_errors_total: Optional[Counter] = None
_query_duration: Optional[Histogram] = None
_db_query_duration: Optional[Histogram] = None


def _init_metrics() -> None:
    """Inicializa métricas (una sola vez)."""
    global _activities_logged_total, _activities_rejected_total
    global _security_alerts_total, _subscriber_errors_total
    global _query_duration, _db_query_duration

    if _activities_logged_total is not None:
        return

    # ------------------------
    # Escritura
    # ------------------------
    _activities_logged_total = Counter(
        "audit_activities_logged_total",
        "Eventos de auditoría persistidos",
        ["category", "status"],
        registry=_registry,
    )

    _activities_rejected_total = Counter(
        "audit_activities_rejected_total",
        "Eventos de auditoría rechazados o fallidos",
        ["reason"],
        registry=_registry,
    )

    # ------------------------
    # Monitor en tiempo real
    # ------------------------
    _security_alerts_total = Counter(
        "audit_security_alerts_total",
        "Alertas de seguridad publicadas",
        ["detector"],
        registry=_registry,
    )

    _subscriber_errors_total = Counter(
        "audit_subscriber_errors_total",
        "Excepciones de suscriptores aisladas por el monitor",
        ["channel"],
        registry=_registry,
    )

    # ------------------------
    # Lectura / DB
    # ------------------------
    _query_duration = Histogram(
        "audit_query_duration_seconds",
        "Duración de operaciones de consulta/analítica (segundos)",
        ["operation"],
        buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
        registry=_registry,
    )

    _db_query_duration = Histogram(
        "audit_db_query_duration_seconds",
        "Duración de queries DB por tipo de statement (segundos)",
        ["kind"],
        buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
        registry=_registry,
    )


_init_metrics()


def record_activity_logged(category: str, status: str) -> None:
    """Cuenta un evento persistido (labels acotados por enums)."""
    if _activities_logged_total:
        _activities_logged_total.labels(category=category, status=status).inc()


def record_activity_rejected(reason: str) -> None:
    """
    Cuenta un evento rechazado.

    `reason` es un código estable (VALIDATION_ERROR, METADATA_ERROR, STORE_ERROR).
    """
    if _activities_rejected_total:
        _activities_rejected_total.labels(reason=reason).inc()


def record_security_alert(detector: str) -> None:
    if _security_alerts_total:
        _security_alerts_total.labels(detector=detector).inc()


def record_subscriber_error(channel: str) -> None:
    if _subscriber_errors_total:
        _subscriber_errors_total.labels(channel=channel).inc()


def observe_query_duration(operation: str, seconds: float) -> None:
    if _query_duration:
        _query_duration.labels(operation=operation).observe(seconds)


def observe_db_query_duration(kind: str, seconds: float) -> None:
    """Observa duración de una query DB.

    Reglas:
      - `kind` debe ser baja cardinalidad (SELECT/INSERT/...).
      - NO incluir SQL completo.
    """
    if _db_query_duration:
        _db_query_duration.labels(kind=(kind or "UNKNOWN").upper()).observe(seconds)


def get_metrics_response() -> tuple[bytes, str]:
    """Genera el body y content-type para exponer las métricas."""
    return generate_latest(_registry), CONTENT_TYPE_LATEST


def get_registry() -> CollectorRegistry:
    return _registry
