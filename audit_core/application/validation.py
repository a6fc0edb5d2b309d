"""
===============================================================================
TARJETA CRC — application/validation.py (Validación y sanitización)
===============================================================================

Responsabilidades:
  - Validar forma/longitud/formato de un ActivityLogParams antes de escribir.
  - Producir la proyección "log-safe" de un evento (sanitize_params) para
    diagnósticos operacionales.
  - Helpers reutilizables: JSON round-trip, strings requeridos/opcionales,
    enteros positivos, UUID e IP.

Colaboradores:
  - domain.activity (enums, ActivityLogParams)
  - application.activity_log (usa validate_params / sanitize_params)

Reglas:
  - validate_params corre en orden: requeridos -> longitudes -> opcionales ->
    ids -> enums. El primer fallo corta y devuelve el campo afectado.
  - sanitize_params NUNCA incluye old_values, new_values, metadata,
    ip_address ni session_id (pueden traer secretos o PII).
===============================================================================
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Final, Mapping, Optional

from ..domain.activity import ActivityCategory, ActivitySeverity, ActivityStatus

MAX_ACTION_LENGTH: Final[int] = 100
MAX_RESOURCE_TYPE_LENGTH: Final[int] = 100
MAX_DESCRIPTION_LENGTH: Final[int] = 1000
MAX_SESSION_ID_LENGTH: Final[int] = 255
MAX_USER_AGENT_LENGTH: Final[int] = 500
MAX_IP_ADDRESS_LENGTH: Final[int] = 45

_UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_IPV4_PART = re.compile(r"^(25[0-5]|2[0-4]\d|1\d\d|[1-9]?\d)$")
# IPv6 restringido: forma completa de 8 grupos, o "::" / "::1".
_IPV6_FULL = re.compile(r"^(?:[0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}$")
_IPV6_SHORTHANDS = frozenset({"::", "::1"})

# Campos que se pueden ecoar en logs operacionales.
LOG_SAFE_FIELDS: Final[tuple[str, ...]] = (
    "action",
    "resource_type",
    "description",
    "actor_id",
    "resource_id",
    "resource_uuid",
    "severity",
    "category",
    "status",
)


@dataclass(frozen=True, slots=True)
class ValidationResult:
    is_valid: bool
    error: Optional[str] = None
    field: Optional[str] = None

    @classmethod
    def ok(cls) -> "ValidationResult":
        return _OK

    @classmethod
    def fail(cls, error: str, field: Optional[str] = None) -> "ValidationResult":
        return cls(is_valid=False, error=error, field=field)


_OK = ValidationResult(is_valid=True)


def _get(params: Any, name: str) -> Any:
    """Lee un campo de un dataclass o de un Mapping."""
    if isinstance(params, Mapping):
        return params.get(name)
    return getattr(params, name, None)


def _is_blank(value: Any) -> bool:
    return not isinstance(value, str) or not value.strip()


# =============================================================================
# Formatos
# =============================================================================


def is_valid_uuid(value: Any) -> bool:
    return isinstance(value, str) and bool(_UUID_PATTERN.match(value))


def is_valid_ipv4(value: str) -> bool:
    parts = value.split(".")
    if len(parts) != 4:
        return False
    return all(_IPV4_PART.match(part) for part in parts)


def is_valid_ipv6(value: str) -> bool:
    if value in _IPV6_SHORTHANDS:
        return True
    return bool(_IPV6_FULL.match(value))


def is_valid_ip(value: Any) -> bool:
    if not isinstance(value, str) or len(value) > MAX_IP_ADDRESS_LENGTH:
        return False
    return is_valid_ipv4(value) or is_valid_ipv6(value)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


# =============================================================================
# validate_params
# =============================================================================


def _validate_required_fields(params: Any) -> ValidationResult:
    if _is_blank(_get(params, "action")):
        return ValidationResult.fail("Action is required", "action")
    if _is_blank(_get(params, "resource_type")):
        return ValidationResult.fail("Resource type is required", "resource_type")
    if _is_blank(_get(params, "description")):
        return ValidationResult.fail("Description is required", "description")
    return _OK


def _validate_field_lengths(params: Any) -> ValidationResult:
    if len(_get(params, "action")) > MAX_ACTION_LENGTH:
        return ValidationResult.fail(
            f"Action must be {MAX_ACTION_LENGTH} characters or less", "action"
        )
    if len(_get(params, "resource_type")) > MAX_RESOURCE_TYPE_LENGTH:
        return ValidationResult.fail(
            f"Resource type must be {MAX_RESOURCE_TYPE_LENGTH} characters or less",
            "resource_type",
        )
    if len(_get(params, "description")) > MAX_DESCRIPTION_LENGTH:
        return ValidationResult.fail(
            f"Description must be {MAX_DESCRIPTION_LENGTH} characters or less",
            "description",
        )
    return _OK


def _validate_optional_fields(params: Any) -> ValidationResult:
    resource_uuid = _get(params, "resource_uuid")
    if resource_uuid and not is_valid_uuid(resource_uuid):
        return ValidationResult.fail(
            "Resource UUID must be a valid UUID format", "resource_uuid"
        )

    ip_address = _get(params, "ip_address")
    if ip_address and not is_valid_ip(ip_address):
        return ValidationResult.fail(
            "IP address must be a valid IPv4 or IPv6 format", "ip_address"
        )

    session_id = _get(params, "session_id")
    if session_id and len(str(session_id)) > MAX_SESSION_ID_LENGTH:
        return ValidationResult.fail(
            f"Session ID must be {MAX_SESSION_ID_LENGTH} characters or less",
            "session_id",
        )

    user_agent = _get(params, "user_agent")
    if user_agent and len(str(user_agent)) > MAX_USER_AGENT_LENGTH:
        return ValidationResult.fail(
            f"User agent must be {MAX_USER_AGENT_LENGTH} characters or less",
            "user_agent",
        )

    return _OK


def _validate_ids(params: Any) -> ValidationResult:
    resource_id = _get(params, "resource_id")
    if resource_id is not None and not _is_positive_int(resource_id):
        return ValidationResult.fail(
            "Resource ID must be a positive number", "resource_id"
        )

    actor_id = _get(params, "actor_id")
    if actor_id is not None and not _is_positive_int(actor_id):
        return ValidationResult.fail("Actor ID must be a positive number", "actor_id")

    return _OK


def _validate_classification(params: Any) -> ValidationResult:
    for name, enum_cls in (
        ("category", ActivityCategory),
        ("severity", ActivitySeverity),
        ("status", ActivityStatus),
    ):
        value = _get(params, name)
        if value is None:
            continue
        try:
            enum_cls(value)
        except (ValueError, TypeError):
            allowed = ", ".join(member.value for member in enum_cls)
            return ValidationResult.fail(
                f"{name.capitalize()} must be one of: {allowed}", name
            )
    return _OK


def validate_params(params: Any) -> ValidationResult:
    """
    Valida un evento antes de escribirlo.

    Acepta ActivityLogParams o un Mapping con las mismas claves.
    """
    for check in (
        _validate_required_fields,
        _validate_field_lengths,
        _validate_optional_fields,
        _validate_ids,
        _validate_classification,
    ):
        result = check(params)
        if not result.is_valid:
            return result
    return _OK


# =============================================================================
# sanitize_params
# =============================================================================


def sanitize_params(params: Any) -> dict[str, Any]:
    """
    Proyección log-safe del evento (solo identidad, clasificación y punteros).
    """
    sanitized: dict[str, Any] = {}
    for name in LOG_SAFE_FIELDS:
        value = _get(params, name)
        if isinstance(value, (ActivityCategory, ActivitySeverity, ActivityStatus)):
            value = value.value
        sanitized[name] = value
    return sanitized


# =============================================================================
# Helpers genéricos
# =============================================================================


def validate_json(data: Any) -> ValidationResult:
    """
    Acepta cualquier valor que sobreviva serialize -> deserialize.

    Rechaza referencias circulares y tipos no serializables.
    """
    if data is None:
        return _OK
    try:
        json.loads(json.dumps(data))
    except (TypeError, ValueError, RecursionError) as exc:
        return ValidationResult.fail(f"Invalid JSON data: {exc}", "json")
    return _OK


def validate_required_string(
    value: Any, field_name: str, max_length: int = 255
) -> ValidationResult:
    if not isinstance(value, str):
        return ValidationResult.fail(
            f"{field_name} is required and must be a string", field_name
        )
    if not value.strip():
        return ValidationResult.fail(f"{field_name} cannot be empty", field_name)
    if len(value) > max_length:
        return ValidationResult.fail(
            f"{field_name} must be {max_length} characters or less", field_name
        )
    return _OK


def validate_optional_string(
    value: Any, field_name: str, max_length: int = 255
) -> ValidationResult:
    if value is None:
        return _OK
    if not isinstance(value, str):
        return ValidationResult.fail(f"{field_name} must be a string", field_name)
    if len(value) > max_length:
        return ValidationResult.fail(
            f"{field_name} must be {max_length} characters or less", field_name
        )
    return _OK


def validate_positive_integer(value: Any, field_name: str) -> ValidationResult:
    if value is None:
        return _OK
    if not isinstance(value, int) or isinstance(value, bool):
        return ValidationResult.fail(f"{field_name} must be an integer", field_name)
    if value <= 0:
        return ValidationResult.fail(
            f"{field_name} must be a positive number", field_name
        )
    return _OK
