"""
===============================================================================
TARJETA CRC — application/retrieval/query_builder.py (Constructor de queries)
===============================================================================

Responsabilidades:
  - Traducir ActivityFilters normalizados a ActivityQuery:
      * igualdad para cada criterio escalar presente
      * created_at >= date_from / <= date_to
      * búsqueda libre (OR case-insensitive, resuelta por el store)
      * orden + paginación al final
      * join de actor solo si se pidió
  - Query de conteo paralela: mismos filtros/búsqueda, sin orden/paginación/join.
  - Builders especializados (por id, recientes, categoría, severidad, rango
    de fechas, actor, búsqueda) que reutilizan la misma maquinaria.

Colaboradores:
  - application.retrieval.filters.normalize_filters
  - domain.queries (ActivityQuery, Condition)
  - crosscutting.pagination.page_offset
===============================================================================
"""

from __future__ import annotations

from dataclasses import asdict, replace
from enum import Enum
from typing import Any, Final, Optional

from ...crosscutting.pagination import page_offset
from ...domain.queries import ActivityFilters, ActivityQuery, Condition, ConditionOp
from .filters import normalize_filters, normalize_limit, normalize_page

DEFAULT_RECENT_LIMIT: Final[int] = 10

_EQUALITY_FIELDS: Final[tuple[str, ...]] = (
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
)


def _conditions(filters: ActivityFilters) -> tuple[Condition, ...]:
    conditions: list[Condition] = []
    for name in _EQUALITY_FIELDS:
        value = getattr(filters, name)
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        conditions.append(Condition(name, ConditionOp.EQ, value))

    if filters.date_from is not None:
        conditions.append(Condition("created_at", ConditionOp.GTE, filters.date_from))
    if filters.date_to is not None:
        conditions.append(Condition("created_at", ConditionOp.LTE, filters.date_to))

    return tuple(conditions)


def _with(filters: Any, **overrides: Any) -> ActivityFilters:
    """Normaliza `filters` y aplica overrides (que también se normalizan)."""
    data = asdict(normalize_filters(filters))
    data.update(overrides)
    return normalize_filters(data)


# =============================================================================
# Builders base
# =============================================================================


def build_query(filters: Any = None) -> ActivityQuery:
    f = normalize_filters(filters)
    return ActivityQuery(
        conditions=_conditions(f),
        search=f.search,
        sort_by=f.sort_by,
        sort_order=f.sort_order,
        limit=f.limit,
        offset=page_offset(f.page, f.limit),
        include_actor=f.include_actor,
    )


def build_count_query(filters: Any = None) -> ActivityQuery:
    f = normalize_filters(filters)
    return ActivityQuery(conditions=_conditions(f), search=f.search)


def apply_pagination(query: ActivityQuery, page: Any, limit: Any) -> ActivityQuery:
    page, limit = normalize_page(page), normalize_limit(limit)
    return replace(query, limit=limit, offset=page_offset(page, limit))


# =============================================================================
# Builders especializados
# =============================================================================


def build_single_activity_query(
    activity_id: int, *, include_actor: bool = True
) -> ActivityQuery:
    return ActivityQuery(
        conditions=(Condition("id", ConditionOp.EQ, activity_id),),
        limit=1,
        include_actor=include_actor,
    )


def build_recent_activities_query(
    limit: Optional[int] = DEFAULT_RECENT_LIMIT, *, include_actor: bool = True
) -> ActivityQuery:
    return build_query(
        {
            "limit": limit if limit is not None else DEFAULT_RECENT_LIMIT,
            "sort_by": "created_at",
            "sort_order": "desc",
            "include_actor": include_actor,
        }
    )


def build_actor_activity_query(actor_id: int, filters: Any = None) -> ActivityQuery:
    return build_query(_with(filters, actor_id=actor_id))


def build_category_query(category: Any, filters: Any = None) -> ActivityQuery:
    return build_query(_with(filters, category=category))


def build_severity_query(severity: Any, filters: Any = None) -> ActivityQuery:
    return build_query(_with(filters, severity=severity))


def build_date_range_query(
    date_from: Any, date_to: Any, filters: Any = None
) -> ActivityQuery:
    return build_query(_with(filters, date_from=date_from, date_to=date_to))


def build_search_query(term: Any, filters: Any = None) -> ActivityQuery:
    return build_query(_with(filters, search=term))


def count_query_for(query: ActivityQuery) -> ActivityQuery:
    """Deriva la query de conteo de una query ya construida."""
    return ActivityQuery(conditions=query.conditions, search=query.search)
