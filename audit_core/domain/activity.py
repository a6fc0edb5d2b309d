"""
===============================================================================
TARJETA CRC — domain/activity.py (Registro de actividad)
===============================================================================

Responsabilidades:
  - Definir las tres dimensiones de clasificación (categoría, severidad, estado).
  - Definir el input de escritura (ActivityLogParams) y el registro persistido
    (ActivityLog), inmutables.
  - Definir el actor asociado (join opcional al consultar).

Colaboradores:
  - domain.actions: perfil por acción conocida
  - application.activity_log: construye params y recibe ActivityLog del store
  - infrastructure.repositories: mapean filas <-> ActivityLog

Invariantes (registro persistido):
  - action, resource_type, description y category siempre presentes.
  - category/severity/status pertenecen a sus enums.
  - El registro es append-only: no hay update/delete.
===============================================================================
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ActivityCategory(str, Enum):
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    USER_MANAGEMENT = "user_management"
    DATA_MODIFICATION = "data_modification"
    SYSTEM = "system"
    SECURITY = "security"


class ActivitySeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ActivityStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    ERROR = "error"


# Estados que cuentan como "fallo" para el failure-streak detector.
FAILED_STATUSES = frozenset({ActivityStatus.FAILURE, ActivityStatus.ERROR})


class ResourceType:
    """Tipos de recurso habituales (el campo acepta texto libre)."""

    USER = "user"
    ROLE = "role"
    PERMISSION = "permission"
    SESSION = "session"
    SYSTEM = "system"
    SECURITY = "security"
    AUTHENTICATION = "authentication"
    AUDIT_LOG = "audit_log"


@dataclass(frozen=True, slots=True)
class Actor:
    """Usuario asociado a un registro (solo cuando se pide el join)."""

    id: int
    email: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class ActivityLogParams:
    """
    Input de escritura de un evento.

    Campos opcionales en None significan "no informado". category/severity/
    status en None se completan en la categorización.
    """

    action: str
    resource_type: str
    description: str
    actor_id: Optional[int] = None
    session_id: Optional[str] = None
    resource_id: Optional[int] = None
    resource_uuid: Optional[str] = None
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    metadata: Optional[dict[str, Any]] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    category: Optional[ActivityCategory] = None
    severity: Optional[ActivitySeverity] = None
    status: Optional[ActivityStatus] = None


@dataclass(frozen=True, slots=True)
class ActivityLog:
    """Registro persistido: id y created_at asignados por el store."""

    id: int
    created_at: datetime
    action: str
    resource_type: str
    description: str
    category: ActivityCategory
    severity: ActivitySeverity
    status: ActivityStatus
    actor_id: Optional[int] = None
    session_id: Optional[str] = None
    resource_id: Optional[int] = None
    resource_uuid: Optional[str] = None
    old_values: Optional[dict[str, Any]] = None
    new_values: Optional[dict[str, Any]] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    actor: Optional[Actor] = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["category"] = self.category.value
        data["severity"] = self.severity.value
        data["status"] = self.status.value
        return data
