"""
===============================================================================
TARJETA CRC — application/analytics.py (Motor de analítica)
===============================================================================

Responsabilidades:
  - Estadísticas agrupadas por período (day/week/month/year) y dimensión.
  - Dashboard: totales, success rate, breakdowns, tendencia reciente.
  - Detección de anomalías: ventana actual vs. promedio histórico por ventana.
  - Reporte de compliance sobre un rango de fechas (con chequeo de integridad).

Colaboradores:
  - domain.repositories.ActivityLogRepository (count / group_count / query)
  - domain.queries (ActivityQuery, Condition, StatisticsPeriod, GroupField)
  - application.retrieval.filters.parse_date

Reglas:
  - Solo lectura: ninguna operación muta el store.
  - success_rate = 0 cuando no hay eventos (nunca división por cero).
  - Compliance sin start o end: falla rápido SIN consultar el store.
  - Los defaults numéricos (ventana, lookback, multiplicador) son config.
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from ..crosscutting.timing import OperationTimer
from ..domain.activity import ActivityCategory, ActivitySeverity, ActivityStatus
from ..domain.queries import (
    MAX_LIMIT,
    ActivityQuery,
    Condition,
    ConditionOp,
    GroupField,
    StatisticsPeriod,
)
from ..domain.repositories import ActivityLogRepository
from .results import (
    ActivityErrorCode,
    AnomalyReport,
    AnomalyResult,
    ComplianceReport,
    ComplianceReportResult,
    DashboardData,
    DashboardResult,
    IntegrityCheck,
    StatisticsResult,
)
from .retrieval.filters import parse_date

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

DATE_RANGE_REQUIRED = "Date range required"
INVALID_DATE_RANGE = "Invalid date range"


@dataclass(frozen=True)
class AnalyticsConfig:
    anomaly_window_hours: int = 1
    anomaly_lookback_days: int = 7
    anomaly_threshold_multiplier: float = 3.0
    anomaly_absolute_threshold: Optional[int] = None
    dashboard_trend_days: int = 30

    @classmethod
    def from_settings(cls, settings) -> "AnalyticsConfig":
        return cls(
            anomaly_window_hours=settings.anomaly_window_hours,
            anomaly_lookback_days=settings.anomaly_lookback_days,
            anomaly_threshold_multiplier=settings.anomaly_threshold_multiplier,
            anomaly_absolute_threshold=settings.anomaly_absolute_threshold,
            dashboard_trend_days=settings.dashboard_trend_days,
        )


def _range_conditions(
    date_from: Optional[datetime], date_to: Optional[datetime]
) -> tuple[Condition, ...]:
    conditions: list[Condition] = []
    if date_from is not None:
        conditions.append(Condition("created_at", ConditionOp.GTE, date_from))
    if date_to is not None:
        conditions.append(Condition("created_at", ConditionOp.LTE, date_to))
    return tuple(conditions)


def _breakdown(rows: list[dict[str, Any]], key: str) -> dict[str, int]:
    return {str(row[key]): int(row["count"]) for row in rows}


def _coerce_enum(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return default


def _given(value: Any, default: Any) -> Any:
    """Argumento explícito (incluido 0) o el default de la config."""
    return value if value is not None else default


class ActivityAnalyticsService:
    """Analítica de solo lectura sobre el store."""

    def __init__(
        self,
        repository: ActivityLogRepository,
        config: Optional[AnalyticsConfig] = None,
        *,
        clock: Optional[Clock] = None,
    ) -> None:
        self._repository = repository
        self._config = config or AnalyticsConfig()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # =========================================================
    # Estadísticas
    # =========================================================
    def get_activity_statistics(
        self,
        period: Any = StatisticsPeriod.MONTH,
        group_by: Any = GroupField.CATEGORY,
        date_from: Any = None,
        date_to: Any = None,
    ) -> StatisticsResult:
        period_enum = _coerce_enum(StatisticsPeriod, period, StatisticsPeriod.MONTH)
        group_enum = _coerce_enum(GroupField, group_by, GroupField.CATEGORY)

        try:
            with OperationTimer("statistics"):
                rows = self._statistics_rows(
                    period_enum, group_enum, parse_date(date_from), parse_date(date_to)
                )
        except Exception as exc:
            logger.error("Failed to get activity statistics", extra={"error": str(exc)})
            return StatisticsResult(success=False, error="Failed to get activity statistics")

        return StatisticsResult(
            success=True,
            period=period_enum.value,
            group_by=group_enum.value,
            rows=rows,
        )

    def _statistics_rows(
        self,
        period: StatisticsPeriod,
        group_by: GroupField,
        date_from: Optional[datetime],
        date_to: Optional[datetime],
    ) -> list[dict[str, Any]]:
        query = ActivityQuery(conditions=_range_conditions(date_from, date_to))
        rows = self._repository.group_count(query, group_by=[group_by], period=period)
        return [
            {
                "period": row["period"].date().isoformat(),
                group_by.value: row[group_by.value],
                "count": int(row["count"]),
            }
            for row in rows
        ]

    # =========================================================
    # Dashboard
    # =========================================================
    def get_dashboard_data(
        self, date_from: Any = None, date_to: Any = None
    ) -> DashboardResult:
        try:
            with OperationTimer("dashboard"):
                data = self._dashboard(parse_date(date_from), parse_date(date_to))
        except Exception as exc:
            logger.error("Failed to get dashboard data", extra={"error": str(exc)})
            return DashboardResult(success=False, error="Failed to get dashboard data")

        return DashboardResult(success=True, data=data)

    def _dashboard(
        self, date_from: Optional[datetime], date_to: Optional[datetime]
    ) -> DashboardData:
        query = ActivityQuery(conditions=_range_conditions(date_from, date_to))

        total = self._repository.count(query)
        categories = _breakdown(
            self._repository.group_count(query, group_by=[GroupField.CATEGORY]),
            GroupField.CATEGORY.value,
        )
        severities = _breakdown(
            self._repository.group_count(query, group_by=[GroupField.SEVERITY]),
            GroupField.SEVERITY.value,
        )
        statuses = _breakdown(
            self._repository.group_count(query, group_by=[GroupField.STATUS]),
            GroupField.STATUS.value,
        )
        successful = statuses.get(ActivityStatus.SUCCESS.value, 0)

        return DashboardData(
            total_activities=total,
            successful_activities=successful,
            success_rate=round(successful / total * 100, 2) if total > 0 else 0.0,
            categories=categories,
            severity_breakdown=severities,
            status_breakdown=statuses,
            recent_trend=self._recent_trend(query, date_to),
        )

    def _recent_trend(
        self, query: ActivityQuery, date_to: Optional[datetime]
    ) -> list[dict[str, Any]]:
        end = date_to or self._clock()
        start = end - timedelta(days=self._config.dashboard_trend_days)
        trend_query = replace(
            query,
            conditions=query.conditions
            + (Condition("created_at", ConditionOp.GTE, start),),
        )
        rows = self._repository.group_count(
            trend_query, group_by=[], period=StatisticsPeriod.DAY
        )
        return [
            {"date": row["period"].date().isoformat(), "count": int(row["count"])}
            for row in rows
        ]

    # =========================================================
    # Anomalías
    # =========================================================
    def detect_anomalous_activity(
        self,
        actor_id: Optional[int] = None,
        time_window_hours: Optional[int] = None,
        threshold_multiplier: Optional[float] = None,
        lookback_days: Optional[int] = None,
        absolute_threshold: Optional[int] = None,
    ) -> AnomalyResult:
        """
        Compara la ventana actual contra el promedio histórico por ventana.

        Historial: [ahora - ventana - lookback, ahora - ventana). El promedio es
        historial / (lookback / ventana). Anómalo si promedio > 0 y actual >
        promedio * multiplicador, o si hay umbral absoluto y actual >= umbral.
        """
        cfg = self._config
        window_hours = _given(time_window_hours, cfg.anomaly_window_hours)
        multiplier = _given(threshold_multiplier, cfg.anomaly_threshold_multiplier)
        lookback = _given(lookback_days, cfg.anomaly_lookback_days)
        absolute = _given(absolute_threshold, cfg.anomaly_absolute_threshold)
        if window_hours <= 0 or lookback < 0:
            return AnomalyResult(success=False, error="Invalid anomaly window")

        now = self._clock()
        window_start = now - timedelta(hours=window_hours)
        history_start = window_start - timedelta(days=lookback)

        scope: tuple[Condition, ...] = ()
        if actor_id is not None:
            scope = (Condition("actor_id", ConditionOp.EQ, actor_id),)

        try:
            current = self._repository.count(
                ActivityQuery(
                    conditions=scope
                    + (Condition("created_at", ConditionOp.GTE, window_start),)
                )
            )
            historical = self._repository.count(
                ActivityQuery(
                    conditions=scope
                    + (
                        Condition("created_at", ConditionOp.GTE, history_start),
                        Condition("created_at", ConditionOp.LT, window_start),
                    )
                )
            )
        except Exception as exc:
            logger.error(
                "Failed to detect anomalous activity",
                extra={"error": str(exc), "actor_id": actor_id},
            )
            return AnomalyResult(success=False, error="Failed to detect anomalous activity")

        windows = (lookback * 24) / window_hours
        average = historical / windows if windows > 0 else 0.0
        threshold = average * multiplier

        anomalous = average > 0 and current > threshold
        if absolute is not None and current >= absolute:
            anomalous = True

        if anomalous:
            logger.warning(
                "Anomalous activity detected",
                extra={
                    "actor_id": actor_id,
                    "current_count": current,
                    "historical_average": round(average, 4),
                },
            )

        return AnomalyResult(
            success=True,
            report=AnomalyReport(
                anomalous=anomalous,
                current_count=current,
                historical_average=average,
                threshold=threshold,
                metric="events",
                window_hours=window_hours,
                lookback_days=lookback,
                actor_id=actor_id,
            ),
        )

    # =========================================================
    # Compliance
    # =========================================================
    def generate_compliance_report(
        self, start_date: Any = None, end_date: Any = None
    ) -> ComplianceReportResult:
        if start_date in (None, "") or end_date in (None, ""):
            return ComplianceReportResult(
                success=False,
                error=DATE_RANGE_REQUIRED,
                error_code=ActivityErrorCode.VALIDATION_ERROR,
            )

        start, end = parse_date(start_date), parse_date(end_date)
        if start is None or end is None or start > end:
            return ComplianceReportResult(
                success=False,
                error=INVALID_DATE_RANGE,
                error_code=ActivityErrorCode.VALIDATION_ERROR,
            )

        try:
            with OperationTimer("compliance_report"):
                dashboard = self._dashboard(start, end)
                statistics = self._statistics_rows(
                    StatisticsPeriod.MONTH, GroupField.CATEGORY, start, end
                )
                integrity = self._check_integrity(start, end)
        except Exception as exc:
            logger.error(
                "Failed to generate compliance report", extra={"error": str(exc)}
            )
            return ComplianceReportResult(
                success=False,
                error="Failed to generate compliance report",
                error_code=ActivityErrorCode.STORE_ERROR,
            )

        statuses = dashboard.status_breakdown
        report = ComplianceReport(
            start_date=start,
            end_date=end,
            generated_at=self._clock(),
            total_activities=dashboard.total_activities,
            failed_activities=statuses.get(ActivityStatus.FAILURE.value, 0)
            + statuses.get(ActivityStatus.ERROR.value, 0),
            security_events=dashboard.categories.get(ActivityCategory.SECURITY.value, 0),
            critical_events=dashboard.severity_breakdown.get(
                ActivitySeverity.CRITICAL.value, 0
            ),
            dashboard=dashboard,
            statistics=statistics,
            integrity=integrity,
        )
        if not integrity.valid:
            logger.warning(
                "Audit trail integrity issues found",
                extra={"issues": len(integrity.issues)},
            )
        return ComplianceReportResult(success=True, report=report)

    def _check_integrity(self, start: datetime, end: datetime) -> IntegrityCheck:
        """
        Recorre el rango por id ascendente en lotes.

        Reglas: ids estrictamente crecientes y timestamp presente. El orden de
        created_at entre ids no se exige.
        """
        issues: list[str] = []
        checked = 0
        offset = 0
        previous = None
        base = ActivityQuery(
            conditions=_range_conditions(start, end),
            sort_by="id",
            sort_order="asc",
            limit=MAX_LIMIT,
        )

        while True:
            batch = self._repository.query(replace(base, offset=offset))
            for log in batch:
                checked += 1
                if previous is not None and log.id <= previous.id:
                    issues.append(
                        f"Activity {log.id} is out of sequence after activity {previous.id}"
                    )
                if log.created_at is None:
                    issues.append(f"Activity {log.id} has no timestamp")
                previous = log
            if len(batch) < MAX_LIMIT:
                break
            offset += MAX_LIMIT

        return IntegrityCheck(valid=not issues, total_checked=checked, issues=issues)
