"""
===============================================================================
TARJETA CRC — application/retrieval/service.py (Servicio de recuperación)
===============================================================================

Responsabilidades:
  - Listados paginados con metadata (page, limit, total, total_pages,
    has_next, has_previous).
  - Historial por actor, lookup por id, búsqueda libre, recientes,
    por categoría / severidad / rango de fechas.
  - Convertir fallos del store en resultados (success=False) con log.

Colaboradores:
  - domain.repositories.ActivityLogRepository
  - application.retrieval.filters / query_builder
  - crosscutting.pagination / timing / metrics

Notas:
  - Stateless por llamada: cada operación hace sus propias lecturas.
  - Solo lectura: nunca escribe en el store.
===============================================================================
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ...crosscutting.pagination import build_page_info
from ...crosscutting.timing import OperationTimer
from ...domain.activity import ActivityCategory, ActivitySeverity
from ...domain.queries import ActivityQuery
from ...domain.repositories import ActivityLogRepository
from ..results import ActivityErrorCode, ActivityListResult, ActivityResult
from . import query_builder as qb
from .filters import is_valid_date_range, parse_date, sanitize_search_term

logger = logging.getLogger(__name__)

_RETRIEVAL_FAILED = "Failed to retrieve activities"


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _invalid(message: str) -> ActivityListResult:
    return ActivityListResult(
        success=False, error=message, error_code=ActivityErrorCode.VALIDATION_ERROR
    )


class ActivityRetrievalService:
    """Lecturas del audit trail (filtros, búsqueda, paginación)."""

    def __init__(self, repository: ActivityLogRepository) -> None:
        self._repository = repository

    # =========================================================
    # Núcleo: query + count -> página
    # =========================================================
    def _paginate(
        self, query: ActivityQuery, *, operation: str
    ) -> ActivityListResult:
        try:
            with OperationTimer(operation):
                activities = self._repository.query(query)
                total = self._repository.count(qb.count_query_for(query))
        except Exception as exc:
            logger.error(
                "Activity retrieval failed",
                extra={"operation": operation, "error": str(exc)},
            )
            return ActivityListResult(
                success=False,
                error=_RETRIEVAL_FAILED,
                error_code=ActivityErrorCode.STORE_ERROR,
            )

        limit = query.limit or max(1, len(activities))
        page = query.offset // limit + 1
        return ActivityListResult(
            success=True,
            activities=activities,
            page_info=build_page_info(page=page, limit=limit, total=total),
        )

    # =========================================================
    # Operaciones
    # =========================================================
    def get_activity_logs(self, filters: Any = None) -> ActivityListResult:
        return self._paginate(qb.build_query(filters), operation="list")

    def get_actor_activity_history(
        self, actor_id: Any, filters: Any = None
    ) -> ActivityListResult:
        if not _is_positive_int(actor_id):
            return _invalid("Invalid actor ID provided")
        return self._paginate(
            qb.build_actor_activity_query(actor_id, filters), operation="actor_history"
        )

    def get_activity_by_id(
        self, activity_id: Any, *, include_actor: bool = True
    ) -> ActivityResult:
        if not _is_positive_int(activity_id):
            return ActivityResult(
                success=False,
                error="Invalid activity ID provided",
                error_code=ActivityErrorCode.VALIDATION_ERROR,
            )

        try:
            activity = self._repository.find_by_id(
                activity_id, include_actor=include_actor
            )
        except Exception as exc:
            logger.error(
                "Activity lookup failed",
                extra={"activity_id": activity_id, "error": str(exc)},
            )
            return ActivityResult(
                success=False,
                error="Failed to retrieve activity",
                error_code=ActivityErrorCode.STORE_ERROR,
            )

        if activity is None:
            return ActivityResult(
                success=False,
                error="Activity not found",
                error_code=ActivityErrorCode.NOT_FOUND,
            )
        return ActivityResult(success=True, activity=activity)

    def search_activities(self, term: Any, filters: Any = None) -> ActivityListResult:
        clean = sanitize_search_term(term)
        if clean is None:
            return _invalid("Search term is required")
        return self._paginate(qb.build_search_query(clean, filters), operation="search")

    def get_recent_activities(self, limit: Optional[int] = None) -> ActivityListResult:
        return self._paginate(
            qb.build_recent_activities_query(limit), operation="recent"
        )

    def get_activities_by_category(
        self, category: Any, filters: Any = None
    ) -> ActivityListResult:
        try:
            ActivityCategory(category)
        except (ValueError, TypeError):
            return _invalid("Invalid category provided")
        return self._paginate(
            qb.build_category_query(category, filters), operation="by_category"
        )

    def get_activities_by_severity(
        self, severity: Any, filters: Any = None
    ) -> ActivityListResult:
        try:
            ActivitySeverity(severity)
        except (ValueError, TypeError):
            return _invalid("Invalid severity provided")
        return self._paginate(
            qb.build_severity_query(severity, filters), operation="by_severity"
        )

    def get_activities_by_date_range(
        self, date_from: Any, date_to: Any, filters: Any = None
    ) -> ActivityListResult:
        if parse_date(date_from) is None or parse_date(date_to) is None:
            return _invalid("Date range required")
        if not is_valid_date_range(date_from, date_to):
            return _invalid("Invalid date range")
        return self._paginate(
            qb.build_date_range_query(date_from, date_to, filters),
            operation="by_date_range",
        )
