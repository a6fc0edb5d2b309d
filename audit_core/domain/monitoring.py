"""
===============================================================================
TARJETA CRC — domain/monitoring.py (Eventos y alertas en tiempo real)
===============================================================================

Responsabilidades:
  - ActivityEvent: proyección liviana e inmutable de un registro persistido,
    la unidad que guarda el ring buffer del monitor.
  - SecurityAlert: alerta publicada a los suscriptores.

Colaboradores:
  - application.monitoring.ActivityMonitor
  - application.activity_log (alimenta el monitor con ActivityEvent.from_log)

Notas:
  - El buffer es una copia volátil, no autoritativa: ActivityEvent no guarda
    payloads (old/new values, metadata), solo lo que usan los detectores.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .activity import ActivityCategory, ActivityLog, ActivitySeverity, ActivityStatus


class AlertDetector(str, Enum):
    BURST = "burst"
    FAILURE_STREAK = "failure_streak"
    MANUAL = "manual"


@dataclass(frozen=True, slots=True)
class ActivityEvent:
    action: str
    category: ActivityCategory
    severity: ActivitySeverity
    status: ActivityStatus
    created_at: datetime
    id: Optional[int] = None
    actor_id: Optional[int] = None
    resource_type: Optional[str] = None
    ip_address: Optional[str] = None

    @classmethod
    def from_log(cls, log: ActivityLog) -> "ActivityEvent":
        return cls(
            id=log.id,
            action=log.action,
            category=log.category,
            severity=log.severity,
            status=log.status,
            created_at=log.created_at,
            actor_id=log.actor_id,
            resource_type=log.resource_type,
            ip_address=log.ip_address,
        )

    @property
    def is_failure(self) -> bool:
        return self.status in (ActivityStatus.FAILURE, ActivityStatus.ERROR)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "action": self.action,
            "category": self.category.value,
            "severity": self.severity.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "actor_id": self.actor_id,
            "resource_type": self.resource_type,
        }


@dataclass(frozen=True)
class SecurityAlert:
    """
    Alerta de seguridad.

    events: snapshot inmutable de los eventos que dispararon la alerta.
    """

    reason: str
    detector: AlertDetector
    events: tuple[ActivityEvent, ...]
    triggered_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    action: Optional[str] = None
    count: int = 0
    threshold: int = 0
    window_seconds: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "reason": self.reason,
            "detector": self.detector.value,
            "triggered_at": self.triggered_at.isoformat(),
            "action": self.action,
            "count": self.count,
            "threshold": self.threshold,
            "window_seconds": self.window_seconds,
            "event_ids": [e.id for e in self.events if e.id is not None],
        }
