"""
===============================================================================
TARJETA CRC — application/retrieval/filters.py (Normalizador de filtros)
===============================================================================

Responsabilidades:
  - Convertir un filtro "suelto" (Mapping, ActivityFilters o None) en un
    ActivityFilters utilizable, reemplazando valores inválidos por defaults.
  - Helpers de filtros: rango de fechas, término de búsqueda, paginación.

Contrato (deliberado):
  - NUNCA lanza: valores inválidos se descartan o se reemplazan por defaults.
    Los llamadores dependen de "siempre devuelve un filtro usable".
  - Idempotente: normalize_filters(normalize_filters(x)) == normalize_filters(x).

Defaults:
  - page < 1 / inválida          -> 1
  - limit <= 0 / ausente         -> 50 ; limit > 1000 -> 1000
  - sort_by fuera de whitelist   -> created_at
  - sort_order fuera de asc/desc -> desc
  - fechas no parseables         -> descartadas
  - enums fuera de dominio       -> descartados
  - ids no positivos             -> descartados
===============================================================================
"""

from __future__ import annotations

import re
from dataclasses import asdict, fields
from datetime import date, datetime, time, timezone
from typing import Any, Mapping, Optional

from ...domain.activity import ActivityCategory, ActivitySeverity, ActivityStatus
from ...domain.queries import (
    DEFAULT_LIMIT,
    DEFAULT_PAGE,
    DEFAULT_SORT_BY,
    DEFAULT_SORT_ORDER,
    MAX_LIMIT,
    SORT_FIELDS,
    SORT_ORDERS,
    ActivityFilters,
)

_INT_PATTERN = re.compile(r"^[+-]?\d+$")
_FILTER_FIELDS = frozenset(f.name for f in fields(ActivityFilters))
_TRUE_STRINGS = frozenset({"1", "true", "yes", "on"})


# =============================================================================
# Coerciones (todas devuelven None ante input inválido)
# =============================================================================


def _coerce_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and _INT_PATTERN.match(value.strip()):
        return int(value.strip())
    return None


def _positive_int(value: Any) -> Optional[int]:
    number = _coerce_int(value)
    return number if number is not None and number > 0 else None


def _clean_str(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _coerce_enum(enum_cls, value: Any):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except (ValueError, TypeError):
        return None


def parse_date(value: Any) -> Optional[datetime]:
    """
    Parsea datetime/date/epoch/ISO-8601 a datetime UTC-aware.

    Valores naive se interpretan como UTC. Devuelve None si no se puede.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.min)
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)


# =============================================================================
# Helpers públicos
# =============================================================================


def sanitize_search_term(term: Any) -> Optional[str]:
    return _clean_str(term)


def is_valid_date_range(date_from: Any, date_to: Any) -> bool:
    """True si falta alguna fecha o si from <= to. Fechas no parseables: False."""
    if date_from is None or date_to is None:
        return True
    start, end = parse_date(date_from), parse_date(date_to)
    if start is None or end is None:
        return False
    return start <= end


def is_valid_actor_id(actor_id: Any) -> bool:
    return actor_id is None or _positive_int(actor_id) is not None


def get_default_pagination() -> dict[str, int]:
    return {"page": DEFAULT_PAGE, "limit": DEFAULT_LIMIT}


def get_max_limit() -> int:
    return MAX_LIMIT


def get_valid_sort_fields() -> frozenset[str]:
    return SORT_FIELDS


def normalize_page(value: Any) -> int:
    page = _coerce_int(value)
    return page if page is not None and page >= 1 else DEFAULT_PAGE


def normalize_limit(value: Any) -> int:
    limit = _coerce_int(value)
    if limit is None or limit <= 0:
        return DEFAULT_LIMIT
    return min(limit, MAX_LIMIT)


# =============================================================================
# normalize_filters
# =============================================================================


def normalize_filters(raw: Any = None) -> ActivityFilters:
    """
    Normaliza un filtro suelto a ActivityFilters (nunca lanza).

    Acepta un Mapping (claves desconocidas se ignoran), un ActivityFilters o None.
    """
    if isinstance(raw, ActivityFilters):
        source: Mapping[str, Any] = asdict(raw)
    elif isinstance(raw, Mapping):
        source = {k: v for k, v in raw.items() if k in _FILTER_FIELDS}
    else:
        source = {}

    sort_by = source.get("sort_by")
    if not (isinstance(sort_by, str) and sort_by in SORT_FIELDS):
        sort_by = DEFAULT_SORT_BY
    sort_order = source.get("sort_order")
    sort_order = sort_order.strip().lower() if isinstance(sort_order, str) else None

    return ActivityFilters(
        actor_id=_positive_int(source.get("actor_id")),
        session_id=_clean_str(source.get("session_id")),
        action=_clean_str(source.get("action")),
        resource_type=_clean_str(source.get("resource_type")),
        resource_id=_positive_int(source.get("resource_id")),
        resource_uuid=_clean_str(source.get("resource_uuid")),
        category=_coerce_enum(ActivityCategory, source.get("category")),
        severity=_coerce_enum(ActivitySeverity, source.get("severity")),
        status=_coerce_enum(ActivityStatus, source.get("status")),
        ip_address=_clean_str(source.get("ip_address")),
        date_from=parse_date(source.get("date_from")),
        date_to=parse_date(source.get("date_to")),
        search=sanitize_search_term(source.get("search")),
        page=normalize_page(source.get("page")),
        limit=normalize_limit(source.get("limit")),
        sort_by=sort_by,
        sort_order=sort_order if sort_order in SORT_ORDERS else DEFAULT_SORT_ORDER,
        include_actor=_coerce_bool(source.get("include_actor", False)),
    )
