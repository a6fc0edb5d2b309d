"""
===============================================================================
TARJETA CRC — application/activity_log.py (Event Log Writer)
===============================================================================

Responsabilidades:
  - Único camino de escritura del audit trail:
      validar -> categorizar -> enriquecer metadata -> insertar
  - Wrappers por dominio (usuario, sistema, seguridad, autenticación).
  - Escritura bulk con semántica de fallo parcial (un resultado por evento).
  - Alimentar al monitor en tiempo real después de cada insert.
  - Estadísticas rápidas de logging.

Colaboradores:
  - domain.repositories.ActivityLogRepository (store)
  - application.validation / categorization / metadata
  - application.monitoring.ActivityMonitor (opcional)
  - crosscutting.metrics

Reglas:
  - Un evento inválido NUNCA toca el store.
  - Ante cualquier excepción en categorizar/enriquecer/insertar: log de error
    con la proyección sanitizada y resultado genérico "Failed to log activity".
    El detalle interno jamás llega al llamador.
  - Log informativo y feed del monitor son best-effort: no cambian el resultado.
===============================================================================
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Iterable, Optional

from ..crosscutting.exceptions import error_fields
from ..crosscutting.metrics import record_activity_logged, record_activity_rejected
from ..domain.activity import (
    ActivityCategory,
    ActivityLog,
    ActivityLogParams,
    ActivitySeverity,
    ActivityStatus,
    ResourceType,
)
from ..domain.monitoring import ActivityEvent
from ..domain.queries import ActivityQuery, GroupField
from ..domain.repositories import ActivityLogRepository
from .categorization import get_categorization, get_severity_for_action
from .metadata import DEFAULT_MAX_METADATA_BYTES, collect_metadata, validate_metadata
from .monitoring import ActivityMonitor
from .results import (
    ACTIVITY_LOGGED,
    FAILED_TO_LOG_ACTIVITY,
    ActivityErrorCode,
    ActivityLogResult,
    LoggingStatistics,
)
from .validation import sanitize_params, validate_json, validate_params

logger = logging.getLogger(__name__)


def apply_categorization(params: ActivityLogParams) -> ActivityLogParams:
    """
    Completa category/severity/status faltantes a partir de la acción.

    Valores ya presentes se respetan (y se normalizan a su Enum).
    """
    profile = get_categorization(params.action)
    return replace(
        params,
        category=ActivityCategory(params.category) if params.category else profile.category,
        severity=ActivitySeverity(params.severity) if params.severity else profile.severity,
        status=ActivityStatus(params.status) if params.status else profile.status,
    )


class ActivityLogService:
    """
    Writer del audit trail (stateless por llamada).
    """

    def __init__(
        self,
        repository: ActivityLogRepository,
        *,
        monitor: Optional[ActivityMonitor] = None,
        max_metadata_bytes: int = DEFAULT_MAX_METADATA_BYTES,
    ) -> None:
        self._repository = repository
        self._monitor = monitor
        self._max_metadata_bytes = max_metadata_bytes

    # =========================================================
    # Entrada principal
    # =========================================================
    def log_activity(self, params: ActivityLogParams) -> ActivityLogResult:
        # ---------------------------------------------------------------------
        # 1) Validar shape/longitud/formato
        # ---------------------------------------------------------------------
        validation = validate_params(params)
        if not validation.is_valid:
            record_activity_rejected(ActivityErrorCode.VALIDATION_ERROR.value)
            logger.info(
                "Activity rejected by validation",
                extra={"field": validation.field, "validation_error": validation.error},
            )
            return ActivityLogResult.failed(
                validation.error or "Invalid activity",
                ActivityErrorCode.VALIDATION_ERROR,
                validation.field,
            )

        # ---------------------------------------------------------------------
        # 2) Payloads estructurados: serializables y dentro del límite
        # ---------------------------------------------------------------------
        payload_error = self._validate_payloads(params)
        if payload_error is not None:
            return payload_error

        try:
            # -----------------------------------------------------------------
            # 3) Categorizar + enriquecer metadata
            # -----------------------------------------------------------------
            enriched = collect_metadata(apply_categorization(params))

            size_check = validate_metadata(enriched.metadata, self._max_metadata_bytes)
            if not size_check.is_valid:
                record_activity_rejected(ActivityErrorCode.METADATA_ERROR.value)
                return ActivityLogResult.failed(
                    size_check.error or "Invalid metadata",
                    ActivityErrorCode.METADATA_ERROR,
                    size_check.field,
                )

            # -----------------------------------------------------------------
            # 4) Insertar (id + created_at los asigna el store)
            # -----------------------------------------------------------------
            log = self._repository.insert(enriched)
        except Exception as exc:
            record_activity_rejected(ActivityErrorCode.STORE_ERROR.value)
            logger.error(
                "Failed to log activity",
                extra={"params": sanitize_params(params), **error_fields(exc)},
            )
            return ActivityLogResult.failed(
                FAILED_TO_LOG_ACTIVITY, ActivityErrorCode.STORE_ERROR
            )

        # ---------------------------------------------------------------------
        # 5) Side-channels best-effort
        # ---------------------------------------------------------------------
        self._log_success(log)
        self._feed_monitor(log)

        return ActivityLogResult.logged(log.id)

    def _validate_payloads(self, params: ActivityLogParams) -> Optional[ActivityLogResult]:
        metadata_check = validate_metadata(params.metadata, self._max_metadata_bytes)
        if not metadata_check.is_valid:
            record_activity_rejected(ActivityErrorCode.METADATA_ERROR.value)
            return ActivityLogResult.failed(
                metadata_check.error or "Invalid metadata",
                ActivityErrorCode.METADATA_ERROR,
                metadata_check.field,
            )

        for name in ("old_values", "new_values"):
            check = validate_json(getattr(params, name))
            if not check.is_valid:
                record_activity_rejected(ActivityErrorCode.METADATA_ERROR.value)
                return ActivityLogResult.failed(
                    f"{name} must be JSON-serializable without circular references",
                    ActivityErrorCode.METADATA_ERROR,
                    name,
                )
        return None

    def _log_success(self, log: ActivityLog) -> None:
        try:
            record_activity_logged(log.category.value, log.status.value)
            logger.info(
                ACTIVITY_LOGGED,
                extra={
                    "activity_id": log.id,
                    "action": log.action,
                    "category": log.category.value,
                    "severity": log.severity.value,
                    "status": log.status.value,
                    "actor_id": log.actor_id,
                },
            )
        except Exception:
            # El sink operacional nunca rompe la escritura.
            pass

    def _feed_monitor(self, log: ActivityLog) -> None:
        if self._monitor is None:
            return
        try:
            self._monitor.monitor_real_time_activity(ActivityEvent.from_log(log))
        except Exception:
            logger.exception(
                "Real-time monitor feed failed", extra={"activity_id": log.id}
            )

    # =========================================================
    # Wrappers
    # =========================================================
    def log_user_action(
        self,
        actor_id: Optional[int],
        action: str,
        resource_type: str,
        description: str,
        **overrides: Any,
    ) -> ActivityLogResult:
        params = ActivityLogParams(
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            description=description,
            category=ActivityCategory.USER_MANAGEMENT,
            severity=get_severity_for_action(action),
        )
        return self.log_activity(replace(params, **overrides))

    def log_system_event(
        self, action: str, description: str, **overrides: Any
    ) -> ActivityLogResult:
        params = ActivityLogParams(
            actor_id=None,
            action=action,
            resource_type=ResourceType.SYSTEM,
            description=description,
            category=ActivityCategory.SYSTEM,
            severity=get_severity_for_action(action),
        )
        return self.log_activity(replace(params, **overrides))

    def log_security_event(
        self,
        action: str,
        description: str,
        severity: ActivitySeverity = ActivitySeverity.HIGH,
        **overrides: Any,
    ) -> ActivityLogResult:
        params = ActivityLogParams(
            action=action,
            resource_type=ResourceType.SECURITY,
            description=description,
            category=ActivityCategory.SECURITY,
            severity=severity,
        )
        return self.log_activity(replace(params, **overrides))

    def log_authentication_event(
        self,
        actor_id: Optional[int],
        action: str,
        description: str,
        session_id: Optional[str] = None,
        **overrides: Any,
    ) -> ActivityLogResult:
        params = ActivityLogParams(
            actor_id=actor_id,
            session_id=session_id,
            action=action,
            resource_type=ResourceType.AUTHENTICATION,
            description=description,
            category=ActivityCategory.AUTHENTICATION,
            severity=get_severity_for_action(action),
        )
        return self.log_activity(replace(params, **overrides))

    # =========================================================
    # Bulk
    # =========================================================
    def log_bulk_activities(
        self, activities: Iterable[ActivityLogParams]
    ) -> list[ActivityLogResult]:
        """
        Aplica log_activity en orden; un fallo no corta el resto.

        No es transaccional: cada evento se persiste (o no) por separado.
        """
        results = [self.log_activity(params) for params in activities]

        failed = sum(1 for r in results if not r.success)
        if failed:
            logger.warning(
                "Bulk activity logging finished with failures",
                extra={"total": len(results), "failed": failed},
            )
        return results

    # =========================================================
    # Estadísticas rápidas
    # =========================================================
    def get_logging_statistics(self) -> LoggingStatistics:
        try:
            everything = ActivityQuery()
            total = self._repository.count(everything)
            by_category = self._repository.group_count(
                everything, group_by=[GroupField.CATEGORY]
            )
            by_severity = self._repository.group_count(
                everything, group_by=[GroupField.SEVERITY]
            )
            by_status = self._repository.group_count(
                everything, group_by=[GroupField.STATUS]
            )
        except Exception as exc:
            logger.error(
                "Failed to compute logging statistics", extra={"error": str(exc)}
            )
            return LoggingStatistics()

        successful = sum(
            row["count"]
            for row in by_status
            if row["status"] == ActivityStatus.SUCCESS.value
        )
        return LoggingStatistics(
            total_activities=total,
            success_rate=round(successful / total * 100, 2) if total else 0.0,
            category_counts={row["category"]: row["count"] for row in by_category},
            severity_counts={row["severity"]: row["count"] for row in by_severity},
        )
