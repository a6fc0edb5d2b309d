"""
===============================================================================
TARJETA CRC — application/categorization.py (Motor de categorización)
===============================================================================

Responsabilidades:
  - Derivar {category, severity, status} a partir del identificador de acción.
  - Resolver acciones vacías o desconocidas al perfil por defecto
    (system / low / success). Una acción desconocida NO es un error.
  - Nombres "display" para reportes.

Colaboradores:
  - domain.actions (ActionKind, ACTION_PROFILES, DEFAULT_PROFILE)

Reglas:
  - Matching exacto y case-sensitive; no se normaliza la acción.
  - Funciones puras, sin estado.
===============================================================================
"""

from __future__ import annotations

from typing import Any, Optional

from ..domain.actions import ActionKind, ActionProfile, profile_for
from ..domain.activity import ActivityCategory, ActivitySeverity, ActivityStatus


def detect_category(action: Optional[str]) -> ActivityCategory:
    return profile_for(action).category


def get_severity_for_action(action: Optional[str]) -> ActivitySeverity:
    return profile_for(action).severity


def get_status_for_action(action: Optional[str]) -> ActivityStatus:
    return profile_for(action).status


def get_categorization(action: Optional[str]) -> ActionProfile:
    """Triple completo {category, severity, status} para la acción."""
    return profile_for(action)


def is_valid_action(action: Optional[str]) -> bool:
    return ActionKind.parse(action) is not None


# -----------------------------------------------------------------------------
# Display names
# -----------------------------------------------------------------------------
_CATEGORY_DISPLAY = {
    ActivityCategory.AUTHENTICATION: "Authentication",
    ActivityCategory.AUTHORIZATION: "Authorization",
    ActivityCategory.USER_MANAGEMENT: "User Management",
    ActivityCategory.DATA_MODIFICATION: "Data Modification",
    ActivityCategory.SYSTEM: "System",
    ActivityCategory.SECURITY: "Security",
}

_SEVERITY_DISPLAY = {
    ActivitySeverity.CRITICAL: "Critical",
    ActivitySeverity.HIGH: "High",
    ActivitySeverity.MEDIUM: "Medium",
    ActivitySeverity.LOW: "Low",
}

_STATUS_DISPLAY = {
    ActivityStatus.SUCCESS: "Success",
    ActivityStatus.FAILURE: "Failure",
    ActivityStatus.ERROR: "Error",
}


def _display(table: dict, enum_cls, value: Any) -> str:
    try:
        return table[enum_cls(value)]
    except (ValueError, TypeError, KeyError):
        return "Unknown"


def get_category_display_name(category: Any) -> str:
    return _display(_CATEGORY_DISPLAY, ActivityCategory, category)


def get_severity_display_name(severity: Any) -> str:
    return _display(_SEVERITY_DISPLAY, ActivitySeverity, severity)


def get_status_display_name(status: Any) -> str:
    return _display(_STATUS_DISPLAY, ActivityStatus, status)
