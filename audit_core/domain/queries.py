"""
===============================================================================
TARJETA CRC — domain/queries.py (Filtros y especificación de consulta)
===============================================================================

Responsabilidades:
  - ActivityFilters: criterios de búsqueda ya normalizados.
  - ActivityQuery: especificación inmutable que el store sabe ejecutar
    (condiciones, búsqueda, orden, paginación, join de actor).
  - Enums auxiliares para agrupación estadística.

Colaboradores:
  - application.retrieval.filters: produce ActivityFilters
  - application.retrieval.query_builder: produce ActivityQuery
  - infrastructure.repositories: ejecutan ActivityQuery (memoria / SQL)

Notas:
  - El store no conoce "filtros sueltos": solo ActivityQuery. Así in-memory
    y Postgres comparten exactamente la misma semántica.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Final, Optional

from .activity import ActivityCategory, ActivitySeverity, ActivityStatus

DEFAULT_PAGE: Final[int] = 1
DEFAULT_LIMIT: Final[int] = 50
MAX_LIMIT: Final[int] = 1000
DEFAULT_SORT_BY: Final[str] = "created_at"
DEFAULT_SORT_ORDER: Final[str] = "desc"

SORT_FIELDS: Final[frozenset[str]] = frozenset(
    {"id", "created_at", "action", "resource_type", "severity", "category", "status"}
)
SORT_ORDERS: Final[frozenset[str]] = frozenset({"asc", "desc"})

# Columnas sobre las que se expande la búsqueda libre (OR, case-insensitive).
SEARCH_FIELDS: Final[tuple[str, ...]] = (
    "description",
    "action",
    "resource_type",
    "category",
    "severity",
    "status",
)

# Columnas admitidas en condiciones (whitelist compartida con el SQL).
FILTER_FIELDS: Final[frozenset[str]] = frozenset(
    {
        "id",
        "actor_id",
        "session_id",
        "action",
        "resource_type",
        "resource_id",
        "resource_uuid",
        "category",
        "severity",
        "status",
        "ip_address",
        "created_at",
    }
)


class ConditionOp(str, Enum):
    EQ = "eq"
    GTE = "gte"
    LTE = "lte"
    LT = "lt"


class StatisticsPeriod(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class GroupField(str, Enum):
    ACTION = "action"
    CATEGORY = "category"
    SEVERITY = "severity"
    STATUS = "status"
    ACTOR = "actor_id"


@dataclass(frozen=True)
class ActivityFilters:
    """Criterios de recuperación normalizados (ver normalize_filters)."""

    actor_id: Optional[int] = None
    session_id: Optional[str] = None
    action: Optional[str] = None
    resource_type: Optional[str] = None
    resource_id: Optional[int] = None
    resource_uuid: Optional[str] = None
    category: Optional[ActivityCategory] = None
    severity: Optional[ActivitySeverity] = None
    status: Optional[ActivityStatus] = None
    ip_address: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    search: Optional[str] = None
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_by: str = DEFAULT_SORT_BY
    sort_order: str = DEFAULT_SORT_ORDER
    include_actor: bool = False


@dataclass(frozen=True, slots=True)
class Condition:
    field: str
    op: ConditionOp
    value: Any

    def __post_init__(self) -> None:
        if self.field not in FILTER_FIELDS:
            raise ValueError(f"Unsupported filter field: {self.field}")


@dataclass(frozen=True)
class ActivityQuery:
    """
    Especificación de consulta (inmutable).

    - conditions: AND de predicados simples
    - search: substring case-insensitive OR sobre SEARCH_FIELDS
    - sort_by / sort_order: None => sin orden (queries de conteo)
    - limit / offset: None => sin paginación
    """

    conditions: tuple[Condition, ...] = field(default_factory=tuple)
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: str = DEFAULT_SORT_ORDER
    limit: Optional[int] = None
    offset: int = 0
    include_actor: bool = False
