"""
===============================================================================
TARJETA CRC — domain/__init__.py
===============================================================================

Módulo:
    Exportaciones de la capa de dominio del audit trail.

Colaboradores:
    - domain.activity: enums de clasificación, params y registro persistido
    - domain.actions: ActionKind y perfiles por acción
    - domain.queries: filtros y especificación de consulta
    - domain.monitoring: eventos y alertas del monitor
    - domain.repositories: puerto del store
===============================================================================
"""

from .actions import DEFAULT_PROFILE, ActionKind, ActionProfile
from .activity import (
    ActivityCategory,
    ActivityLog,
    ActivityLogParams,
    ActivitySeverity,
    ActivityStatus,
    Actor,
    ResourceType,
)
from .monitoring import ActivityEvent, AlertDetector, SecurityAlert
from .queries import ActivityFilters, ActivityQuery, GroupField, StatisticsPeriod
from .repositories import ActivityLogRepository

__all__ = [
    "ActionKind",
    "ActionProfile",
    "ActivityCategory",
    "ActivityEvent",
    "ActivityFilters",
    "ActivityLog",
    "ActivityLogParams",
    "ActivityLogRepository",
    "ActivityQuery",
    "ActivitySeverity",
    "ActivityStatus",
    "Actor",
    "AlertDetector",
    "DEFAULT_PROFILE",
    "GroupField",
    "ResourceType",
    "SecurityAlert",
    "StatisticsPeriod",
]
