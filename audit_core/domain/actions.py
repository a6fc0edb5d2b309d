"""
===============================================================================
TARJETA CRC — domain/actions.py (Acciones conocidas)
===============================================================================

Responsabilidades:
  - Enumerar las acciones conocidas del audit trail (ActionKind).
  - Mapear TODA acción conocida a su perfil {category, severity, status}.
  - Hacer explícito el perfil por defecto para acciones desconocidas.

Colaboradores:
  - domain.activity: enums de clasificación
  - application.categorization: API pública de categorización

Reglas:
  - Matching exacto y case-sensitive ("Login_Success" NO es login_success).
  - El mapping es total: cada miembro de ActionKind tiene perfil.
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

from .activity import ActivityCategory, ActivitySeverity, ActivityStatus


class ActionKind(str, Enum):
    # Authentication
    LOGIN_SUCCESS = "login_success"
    LOGIN_FAILED = "login_failed"
    LOGOUT = "logout"
    TOKEN_REFRESH = "token_refresh"
    PASSWORD_CHANGE = "password_change"
    PASSWORD_RESET = "password_reset"
    ACCOUNT_LOCKED = "account_locked"
    EMAIL_VERIFICATION = "email_verification"

    # Authorization
    ACCESS_GRANTED = "access_granted"
    ACCESS_DENIED = "access_denied"
    PERMISSION_CHECKED = "permission_checked"
    ROLE_VERIFIED = "role_verified"
    TOKEN_VALIDATED = "token_validated"
    RESOURCE_ACCESSED = "resource_accessed"

    # User management
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    ROLE_ASSIGNED = "role_assigned"
    ROLE_REMOVED = "role_removed"
    PERMISSION_GRANTED = "permission_granted"
    PERMISSION_REVOKED = "permission_revoked"
    USER_IMPERSONATED = "user_impersonated"

    # Data modification
    RECORD_CREATED = "record_created"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    BULK_OPERATION = "bulk_operation"
    DATA_IMPORTED = "data_imported"
    DATA_EXPORTED = "data_exported"

    # System
    SYSTEM_STARTED = "system_started"
    SYSTEM_STOPPED = "system_stopped"
    CONFIGURATION_CHANGED = "configuration_changed"
    BACKUP_CREATED = "backup_created"
    BACKUP_RESTORED = "backup_restored"
    MAINTENANCE_MODE = "maintenance_mode"

    # Security
    SECURITY_ALERT = "security_alert"
    INTRUSION_DETECTED = "intrusion_detected"
    FIREWALL_BLOCKED = "firewall_blocked"
    SUSPICIOUS_ACTIVITY = "suspicious_activity"
    SECURITY_SCAN = "security_scan"
    VULNERABILITY_DETECTED = "vulnerability_detected"

    @classmethod
    def parse(cls, action: Optional[str]) -> Optional["ActionKind"]:
        """Devuelve el ActionKind exacto o None (sin normalizar mayúsculas)."""
        if not action or not isinstance(action, str):
            return None
        return _BY_VALUE.get(action)


_BY_VALUE: Mapping[str, ActionKind] = MappingProxyType(
    {kind.value: kind for kind in ActionKind}
)


@dataclass(frozen=True, slots=True)
class ActionProfile:
    category: ActivityCategory
    severity: ActivitySeverity
    status: ActivityStatus


DEFAULT_PROFILE = ActionProfile(
    category=ActivityCategory.SYSTEM,
    severity=ActivitySeverity.LOW,
    status=ActivityStatus.SUCCESS,
)


# -----------------------------------------------------------------------------
# Tablas estáticas (fuente de verdad para construir el mapping total)
# -----------------------------------------------------------------------------
_CATEGORY_TABLES: tuple[tuple[ActivityCategory, frozenset[ActionKind]], ...] = (
    (
        ActivityCategory.AUTHENTICATION,
        frozenset(
            {
                ActionKind.LOGIN_SUCCESS,
                ActionKind.LOGIN_FAILED,
                ActionKind.LOGOUT,
                ActionKind.TOKEN_REFRESH,
                ActionKind.PASSWORD_CHANGE,
                ActionKind.PASSWORD_RESET,
                ActionKind.ACCOUNT_LOCKED,
                ActionKind.EMAIL_VERIFICATION,
            }
        ),
    ),
    (
        ActivityCategory.AUTHORIZATION,
        frozenset(
            {
                ActionKind.ACCESS_GRANTED,
                ActionKind.ACCESS_DENIED,
                ActionKind.PERMISSION_CHECKED,
                ActionKind.ROLE_VERIFIED,
                ActionKind.TOKEN_VALIDATED,
                ActionKind.RESOURCE_ACCESSED,
            }
        ),
    ),
    (
        ActivityCategory.USER_MANAGEMENT,
        frozenset(
            {
                ActionKind.USER_CREATED,
                ActionKind.USER_UPDATED,
                ActionKind.USER_DELETED,
                ActionKind.ROLE_ASSIGNED,
                ActionKind.ROLE_REMOVED,
                ActionKind.PERMISSION_GRANTED,
                ActionKind.PERMISSION_REVOKED,
                ActionKind.USER_IMPERSONATED,
            }
        ),
    ),
    (
        ActivityCategory.DATA_MODIFICATION,
        frozenset(
            {
                ActionKind.RECORD_CREATED,
                ActionKind.RECORD_UPDATED,
                ActionKind.RECORD_DELETED,
                ActionKind.BULK_OPERATION,
                ActionKind.DATA_IMPORTED,
                ActionKind.DATA_EXPORTED,
            }
        ),
    ),
    (
        ActivityCategory.SYSTEM,
        frozenset(
            {
                ActionKind.SYSTEM_STARTED,
                ActionKind.SYSTEM_STOPPED,
                ActionKind.CONFIGURATION_CHANGED,
                ActionKind.BACKUP_CREATED,
                ActionKind.BACKUP_RESTORED,
                ActionKind.MAINTENANCE_MODE,
            }
        ),
    ),
    (
        ActivityCategory.SECURITY,
        frozenset(
            {
                ActionKind.SECURITY_ALERT,
                ActionKind.INTRUSION_DETECTED,
                ActionKind.FIREWALL_BLOCKED,
                ActionKind.SUSPICIOUS_ACTIVITY,
                ActionKind.SECURITY_SCAN,
                ActionKind.VULNERABILITY_DETECTED,
            }
        ),
    ),
)

# Orden de prioridad: critical > high > medium; el resto es low.
_SEVERITY_TABLES: tuple[tuple[ActivitySeverity, frozenset[ActionKind]], ...] = (
    (
        ActivitySeverity.CRITICAL,
        frozenset(
            {
                ActionKind.INTRUSION_DETECTED,
                ActionKind.VULNERABILITY_DETECTED,
                ActionKind.SYSTEM_STOPPED,
                ActionKind.ACCOUNT_LOCKED,
            }
        ),
    ),
    (
        ActivitySeverity.HIGH,
        frozenset(
            {
                ActionKind.SECURITY_ALERT,
                ActionKind.SUSPICIOUS_ACTIVITY,
                ActionKind.LOGIN_FAILED,
                ActionKind.USER_DELETED,
                ActionKind.BULK_OPERATION,
            }
        ),
    ),
    (
        ActivitySeverity.MEDIUM,
        frozenset(
            {
                ActionKind.LOGIN_SUCCESS,
                ActionKind.PASSWORD_CHANGE,
                ActionKind.USER_CREATED,
                ActionKind.USER_UPDATED,
                ActionKind.RECORD_CREATED,
                ActionKind.RECORD_UPDATED,
            }
        ),
    ),
)

# Orden de prioridad: failure > error; el resto es success.
_STATUS_TABLES: tuple[tuple[ActivityStatus, frozenset[ActionKind]], ...] = (
    (ActivityStatus.FAILURE, frozenset({ActionKind.LOGIN_FAILED, ActionKind.ACCESS_DENIED})),
    (
        ActivityStatus.ERROR,
        frozenset({ActionKind.INTRUSION_DETECTED, ActionKind.VULNERABILITY_DETECTED}),
    ),
)


def _first_match(kind: ActionKind, tables, default):
    for value, members in tables:
        if kind in members:
            return value
    return default


def _build_profiles() -> Mapping[ActionKind, ActionProfile]:
    profiles: dict[ActionKind, ActionProfile] = {}
    for kind in ActionKind:
        category = _first_match(kind, _CATEGORY_TABLES, None)
        if category is None:
            raise RuntimeError(f"ActionKind {kind.value!r} has no category table")
        profiles[kind] = ActionProfile(
            category=category,
            severity=_first_match(kind, _SEVERITY_TABLES, DEFAULT_PROFILE.severity),
            status=_first_match(kind, _STATUS_TABLES, DEFAULT_PROFILE.status),
        )
    return MappingProxyType(profiles)


ACTION_PROFILES: Mapping[ActionKind, ActionProfile] = _build_profiles()


def actions_in_category(category: ActivityCategory) -> frozenset[ActionKind]:
    for value, members in _CATEGORY_TABLES:
        if value == category:
            return members
    return frozenset()


def profile_for(action: Optional[str]) -> ActionProfile:
    """Perfil de la acción; DEFAULT_PROFILE si es vacía o desconocida."""
    kind = ActionKind.parse(action)
    if kind is None:
        return DEFAULT_PROFILE
    return ACTION_PROFILES[kind]
