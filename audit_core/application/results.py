"""
===============================================================================
AUDIT CORE RESULTS (Shared Result / Error Models)
===============================================================================

Los servicios del core devuelven resultados tipados en lugar de propagar
excepciones al llamador:
  - Escritura: ActivityLogResult (uno por evento, también en bulk)
  - Lectura: ActivityListResult, ActivityResult
  - Analítica: StatisticsResult, DashboardResult, AnomalyResult,
    ComplianceReportResult

-------------------------------------------------------------------------------
CRC CARD (Module-Responsibility-Collaborator)
-------------------------------------------------------------------------------
Responsibilities:
    - Definir ActivityErrorCode como conjunto estable de categorías de error.
    - Definir DTOs de resultado por operación.
    - Garantizar que ningún resultado expone detalles internos de excepciones.

Collaborators:
    - domain.activity: ActivityLog
    - crosscutting.pagination: PageInfo
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from ..crosscutting.pagination import PageInfo
from ..domain.activity import ActivityLog

FAILED_TO_LOG_ACTIVITY = "Failed to log activity"
ACTIVITY_LOGGED = "Activity logged successfully"


class ActivityErrorCode(str, Enum):
    """
    Categorías de error.

      - VALIDATION_ERROR: input inválido/incompleto (con field).
      - METADATA_ERROR: metadata/old/new values no serializables o demasiado grandes.
      - NOT_FOUND: registro inexistente.
      - STORE_ERROR: fallo del store (sin detalle interno hacia el llamador).
    """

    VALIDATION_ERROR = "VALIDATION_ERROR"
    METADATA_ERROR = "METADATA_ERROR"
    NOT_FOUND = "NOT_FOUND"
    STORE_ERROR = "STORE_ERROR"


# =============================================================================
# Escritura
# =============================================================================


@dataclass(frozen=True)
class ActivityLogResult:
    success: bool
    activity_id: Optional[int] = None
    message: Optional[str] = None
    error: Optional[str] = None
    field: Optional[str] = None
    error_code: Optional[ActivityErrorCode] = None

    @classmethod
    def logged(cls, activity_id: int) -> "ActivityLogResult":
        return cls(success=True, activity_id=activity_id, message=ACTIVITY_LOGGED)

    @classmethod
    def failed(
        cls,
        error: str,
        code: ActivityErrorCode,
        field: Optional[str] = None,
    ) -> "ActivityLogResult":
        return cls(success=False, error=error, field=field, error_code=code)


@dataclass(frozen=True)
class LoggingStatistics:
    total_activities: int = 0
    success_rate: float = 0.0
    category_counts: dict[str, int] = field(default_factory=dict)
    severity_counts: dict[str, int] = field(default_factory=dict)


# =============================================================================
# Lectura
# =============================================================================


@dataclass(frozen=True)
class ActivityListResult:
    success: bool
    activities: list[ActivityLog] = field(default_factory=list)
    page_info: Optional[PageInfo] = None
    error: Optional[str] = None
    error_code: Optional[ActivityErrorCode] = None


@dataclass(frozen=True)
class ActivityResult:
    success: bool
    activity: Optional[ActivityLog] = None
    error: Optional[str] = None
    error_code: Optional[ActivityErrorCode] = None


# =============================================================================
# Analítica
# =============================================================================


@dataclass(frozen=True)
class StatisticsResult:
    success: bool
    period: Optional[str] = None
    group_by: Optional[str] = None
    rows: list[dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None


@dataclass(frozen=True)
class DashboardData:
    total_activities: int
    successful_activities: int
    success_rate: float
    categories: dict[str, int]
    severity_breakdown: dict[str, int]
    status_breakdown: dict[str, int]
    recent_trend: list[dict[str, Any]]


@dataclass(frozen=True)
class DashboardResult:
    success: bool
    data: Optional[DashboardData] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class AnomalyReport:
    anomalous: bool
    current_count: int
    historical_average: float
    threshold: float
    metric: str
    window_hours: int
    lookback_days: int
    actor_id: Optional[int] = None


@dataclass(frozen=True)
class AnomalyResult:
    success: bool
    report: Optional[AnomalyReport] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class IntegrityCheck:
    valid: bool
    total_checked: int
    issues: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ComplianceReport:
    start_date: datetime
    end_date: datetime
    generated_at: datetime
    total_activities: int
    failed_activities: int
    security_events: int
    critical_events: int
    dashboard: DashboardData
    statistics: list[dict[str, Any]]
    integrity: IntegrityCheck


@dataclass(frozen=True)
class ComplianceReportResult:
    success: bool
    report: Optional[ComplianceReport] = None
    error: Optional[str] = None
    error_code: Optional[ActivityErrorCode] = None
