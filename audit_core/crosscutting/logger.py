"""
===============================================================================
MÓDULO: Logger operacional estructurado (JSON)
===============================================================================

Objetivo
--------
Sink operacional del core de auditoría ("info(msg, fields)" / "error(...)"):
- Una línea JSON por evento, con timestamp del LogRecord (no del format)
- Correlación con el contexto del request (request_id / trace_id / actor_id)
- Nunca payloads del audit trail: old/new values y metadata se resumen

El log NO es el audit trail: el trail vive en el store.

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  LogFieldScrubber + JSONFormatter + ContextTextFormatter + setup_logger()

Responsabilidades:
  - Serializar LogRecord -> JSON (o texto con contexto en desarrollo)
  - Ocultar secretos y resumir payloads de auditoría en los "extra"
  - Configurar el logger del paquete según Settings

Colaboradores:
  - audit_core/context.py (ContextVars)
  - crosscutting/config.py (log_level / log_json)
===============================================================================
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Mapping

from ..context import get_context_dict

LOGGER_NAME = "audit_core"

REDACTED = "***REDACTED***"

# Atributos estándar de LogRecord; todo lo demás vino por `extra=`.
_RESERVED_ATTRS: frozenset[str] = frozenset(
    vars(logging.makeLogRecord({}))
) | {"message", "asctime", "taskName"}


class LogFieldScrubber:
    """
    ----------------------------------------------------------------------------
    CRC (Class Card)
    ----------------------------------------------------------------------------
    Clase:
      LogFieldScrubber

    Responsabilidades:
      - Reemplazar valores de claves secretas por REDACTED (a cualquier nivel)
      - Resumir payloads de auditoría (solo forma, nunca contenido)
      - Acotar strings largos y anidamiento profundo

    Colaboradores:
      - JSONFormatter / ContextTextFormatter
    ----------------------------------------------------------------------------
    """

    SECRET_KEYS = frozenset(
        {
            "password",
            "passwd",
            "secret",
            "token",
            "access_token",
            "refresh_token",
            "api_key",
            "apikey",
            "authorization",
            "cookie",
            "credential",
            "private_key",
            "session_id",
        }
    )
    PAYLOAD_KEYS = frozenset({"old_values", "new_values", "metadata"})

    def __init__(self, *, max_chars: int = 4_000, max_depth: int = 4) -> None:
        self.max_chars = max_chars
        self.max_depth = max_depth

    @staticmethod
    def _norm(key: Any) -> str:
        return str(key).strip().lower().replace("-", "_")

    def scrub_field(self, key: str, value: Any, depth: int = 0) -> Any:
        name = self._norm(key)
        if name in self.SECRET_KEYS:
            return REDACTED
        if name in self.PAYLOAD_KEYS:
            return self._shape(value)
        return self.scrub(value, depth)

    def scrub(self, value: Any, depth: int = 0) -> Any:
        if depth >= self.max_depth and isinstance(value, (Mapping, list, tuple, set)):
            return "***TRUNCATED***"

        if isinstance(value, str):
            if len(value) > self.max_chars:
                return f"{value[: self.max_chars]}...(+{len(value) - self.max_chars} chars)"
            return value
        if isinstance(value, Mapping):
            return {
                str(k): self.scrub_field(str(k), v, depth + 1) for k, v in value.items()
            }
        if isinstance(value, (list, tuple, set)):
            return [self.scrub(v, depth + 1) for v in value]
        if isinstance(value, (bytes, bytearray)):
            return f"<{len(value)} bytes>"
        if value is None or isinstance(value, (bool, int, float)):
            return value
        return str(value)

    @staticmethod
    def _shape(value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, Mapping):
            return {"redacted": True, "keys": len(value)}
        return REDACTED


def _extras(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in vars(record).items() if k not in _RESERVED_ATTRS}


class JSONFormatter(logging.Formatter):
    """
    LogRecord -> una línea JSON.

    Orden de campos: base, contexto del request, extras saneados, excepción.
    Un extra nunca pisa un campo base.
    """

    def __init__(self, scrubber: LogFieldScrubber | None = None) -> None:
        super().__init__()
        self._scrubber = scrubber or LogFieldScrubber()

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        payload.update(get_context_dict())

        for key, value in _extras(record).items():
            payload.setdefault(key, self._scrubber.scrub_field(key, value))

        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": self.formatException(record.exc_info),
            }

        return json.dumps(payload, ensure_ascii=False, default=str)


class ContextTextFormatter(logging.Formatter):
    """Formato legible para desarrollo: `LEVEL logger message [k=v ...]`."""

    def __init__(self, scrubber: LogFieldScrubber | None = None) -> None:
        super().__init__("%(levelname)s %(name)s %(message)s")
        self._scrubber = scrubber or LogFieldScrubber()

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = dict(get_context_dict())
        for key, value in _extras(record).items():
            fields[key] = self._scrubber.scrub_field(key, value)
        if fields:
            line += " [" + " ".join(f"{k}={v}" for k, v in fields.items()) + "]"
        return line


def setup_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Configura el logger del paquete (idempotente).

    Los módulos usan logging.getLogger(__name__) y propagan hasta acá.
    """
    log = logging.getLogger(name)

    level, use_json = "INFO", True
    try:
        from .config import get_settings

        settings = get_settings()
        level, use_json = settings.log_level, settings.log_json
    except Exception:
        # Settings inválidos no impiden loguear; se usan los defaults.
        pass

    log.setLevel(level)
    if not log.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter() if use_json else ContextTextFormatter())
        log.addHandler(handler)
    return log


logger = setup_logger()
