"""
===============================================================================
TARJETA CRC — application/metadata.py (Recolector de metadata)
===============================================================================

Responsabilidades:
  - Construir la metadata automática de un evento (timestamp, categorización,
    info de acción, info de proceso, info de request, correlación).
  - Mezclarla con la metadata del llamador: las claves del llamador GANAN
    (override superficial en el primer nivel).
  - Redactar claves sensibles a cualquier profundidad sin mutar el input.
  - Limitar el tamaño serializado (1 MiB por defecto) y rechazar ciclos.

Colaboradores:
  - application.categorization
  - audit_core.context (request_id / trace_id)
  - application.activity_log (usa collect_metadata / validate_metadata)

Notas:
  - collect_metadata devuelve un NUEVO ActivityLogParams (dataclasses.replace).
  - sanitize_metadata corta ciclos con "[CIRCULAR]" en lugar de explotar.
===============================================================================
"""

from __future__ import annotations

import copy
import json
import os
import platform
import socket
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Final, Mapping, Optional

from ..context import get_context_dict
from ..domain.activity import ActivityLogParams
from .categorization import get_categorization, is_valid_action
from .validation import ValidationResult

REDACTED: Final[str] = "[REDACTED]"
CIRCULAR: Final[str] = "[CIRCULAR]"
DEFAULT_MAX_METADATA_BYTES: Final[int] = 1024 * 1024

# Se compara por substring sobre el nombre de la clave en minúsculas.
SENSITIVE_KEY_FRAGMENTS: Final[tuple[str, ...]] = (
    "password",
    "token",
    "secret",
    "key",
    "credential",
    "auth",
    "authorization",
    "cookie",
    "session",
    "api_key",
    "apikey",
    "access_token",
    "refresh_token",
)

_CORRELATION_KEYS: Final[tuple[str, ...]] = ("request_id", "trace_id", "span_id")


def is_sensitive_key(key: Any) -> bool:
    name = str(key).lower()
    return any(fragment in name for fragment in SENSITIVE_KEY_FRAGMENTS)


# =============================================================================
# Metadata automática
# =============================================================================


def _system_info() -> dict[str, Any]:
    return {
        "python_version": platform.python_version(),
        "process_id": os.getpid(),
        "platform": platform.system().lower(),
        "hostname": socket.gethostname(),
    }


def _request_info(params: ActivityLogParams) -> Optional[dict[str, Any]]:
    if not (params.user_agent or params.ip_address or params.session_id):
        return None
    return {
        "user_agent": params.user_agent or None,
        "ip_address": params.ip_address or None,
        "session_id": params.session_id or None,
    }


def _categorization(params: ActivityLogParams) -> dict[str, str]:
    profile = get_categorization(params.action)
    category = params.category or profile.category
    severity = params.severity or profile.severity
    status = params.status or profile.status
    return {
        "category": getattr(category, "value", category),
        "severity": getattr(severity, "value", severity),
        "status": getattr(status, "value", status),
    }


def build_automatic_metadata(
    params: ActivityLogParams, *, now: Optional[datetime] = None
) -> dict[str, Any]:
    """Metadata derivada del evento y del proceso (sin la del llamador)."""
    metadata: dict[str, Any] = {
        "timestamp": (now or datetime.now(timezone.utc)).isoformat(),
        "categorization": _categorization(params),
        "action_info": {
            "action": params.action,
            "is_known_action": is_valid_action(params.action),
        },
        "system_info": _system_info(),
    }

    request_info = _request_info(params)
    if request_info is not None:
        metadata["request_info"] = request_info

    ctx = get_context_dict()
    correlation = {k: ctx[k] for k in _CORRELATION_KEYS if k in ctx}
    if correlation:
        metadata["correlation"] = correlation

    return metadata


def collect_metadata(
    params: ActivityLogParams, *, now: Optional[datetime] = None
) -> ActivityLogParams:
    """
    Devuelve el evento con metadata = {**automática, **llamador}.
    """
    merged = {**build_automatic_metadata(params, now=now), **(params.metadata or {})}
    return replace(params, metadata=merged)


# =============================================================================
# Redacción
# =============================================================================


def sanitize_metadata(data: Any) -> Any:
    """
    Copia de `data` con los valores de claves sensibles reemplazados.

    Recorre dicts anidados y elementos de listas/tuplas. No muta el input.
    """
    return _sanitize(data, active=set())


def _sanitize(value: Any, *, active: set[int]) -> Any:
    if isinstance(value, Mapping):
        marker = id(value)
        if marker in active:
            return CIRCULAR
        active.add(marker)
        try:
            return {
                k: REDACTED if is_sensitive_key(k) else _sanitize(v, active=active)
                for k, v in value.items()
            }
        finally:
            active.discard(marker)

    if isinstance(value, (list, tuple)):
        marker = id(value)
        if marker in active:
            return CIRCULAR
        active.add(marker)
        try:
            return [_sanitize(v, active=active) for v in value]
        finally:
            active.discard(marker)

    return value


# =============================================================================
# Validación de tamaño / ciclos
# =============================================================================


def serialized_size(data: Any) -> int:
    """Bytes UTF-8 de la forma JSON. Lanza ValueError/TypeError si no serializa."""
    return len(json.dumps(data, ensure_ascii=False).encode("utf-8"))


def validate_metadata(
    data: Any, max_bytes: int = DEFAULT_MAX_METADATA_BYTES
) -> ValidationResult:
    if data is None:
        return ValidationResult.ok()
    try:
        size = serialized_size(data)
    except (TypeError, ValueError, RecursionError):
        return ValidationResult.fail(
            "Metadata must be JSON-serializable without circular references",
            "metadata",
        )
    if size > max_bytes:
        limit = "1MB" if max_bytes == DEFAULT_MAX_METADATA_BYTES else f"{max_bytes} bytes"
        return ValidationResult.fail(f"Metadata exceeds {limit} size limit", "metadata")
    return ValidationResult.ok()


# =============================================================================
# Helpers de composición
# =============================================================================


def merge_metadata(
    base: Optional[Mapping[str, Any]], extra: Optional[Mapping[str, Any]]
) -> dict[str, Any]:
    """Deep merge: `extra` gana; dicts anidados se mezclan recursivamente."""
    if not base:
        return copy.deepcopy(dict(extra or {}))
    if not extra:
        return copy.deepcopy(dict(base))

    merged = copy.deepcopy(dict(base))
    for key, value in extra.items():
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_metadata(current, value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def enrich_metadata(
    metadata: Optional[Mapping[str, Any]], context: Optional[Mapping[str, Any]]
) -> dict[str, Any]:
    """Agrega `context` bajo la clave "context" (sin mutar el input)."""
    enriched = dict(metadata or {})
    if context:
        enriched["context"] = {**dict(enriched.get("context") or {}), **dict(context)}
    return enriched


def _read(source: Any, name: str) -> Any:
    if isinstance(source, Mapping):
        return source.get(name)
    return getattr(source, name, None)


def extract_request_metadata(request: Any) -> dict[str, Any]:
    """
    Extrae metadata básica de un objeto "request" (Mapping u objeto con
    atributos method/url/headers/ip/params/query) y la redacta.
    """
    if request is None:
        return {}

    metadata: dict[str, Any] = {}
    for name in ("method", "url", "ip"):
        value = _read(request, name)
        if value:
            metadata[name] = str(value)

    headers = _read(request, "headers")
    if headers:
        lowered = {str(k).lower(): v for k, v in dict(headers).items()}
        metadata["headers"] = {
            "user_agent": lowered.get("user-agent"),
            "content_type": lowered.get("content-type"),
            "accept_language": lowered.get("accept-language"),
        }

    for name in ("params", "query"):
        value = _read(request, name)
        if value:
            metadata[name] = dict(value)

    return sanitize_metadata(metadata)
