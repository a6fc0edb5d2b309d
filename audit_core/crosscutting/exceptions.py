"""
===============================================================================
MÓDULO: Excepciones tipadas del core de auditoría
===============================================================================

Objetivo
--------
Errores internos del store con:
- error_code estable (para métricas / logs)
- error_id para correlacionar la línea de log con el resultado
- message sin secretos; la causa se reporta solo por tipo

Las excepciones viajan entre infraestructura y servicios; hacia el llamador
solo salen Result DTOs (ver application/results.py).

-------------------------------------------------------------------------------
CRC (Component Card)
-------------------------------------------------------------------------------
Componente:
  AuditCoreError + subclases, ErrorInfo, error_fields()

Responsabilidades:
  - Jerarquía: AuditCoreError -> StoreError -> errores de pool / conexión
  - Resumir cualquier excepción como campos de log (error_fields)

Colaboradores:
  - infrastructure/repositories y infrastructure/db (lanzan StoreError)
  - application/activity_log.py (loguea con error_fields y devuelve Result)
===============================================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar, Optional
from uuid import uuid4


@dataclass(frozen=True)
class ErrorInfo:
    """Vista serializable de un error; `cause` es el tipo de la excepción original."""

    error_code: str
    message: str
    error_id: str
    cause: Optional[str] = None

    def to_dict(self) -> dict[str, str]:
        data = {
            "error_code": self.error_code,
            "message": self.message,
            "error_id": self.error_id,
        }
        if self.cause:
            data["cause"] = self.cause
        return data


class AuditCoreError(Exception):
    """Base de los errores internos del core."""

    error_code: ClassVar[str] = "AUDIT_CORE_ERROR"

    def __init__(
        self,
        message: str,
        error_id: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_id = error_id or uuid4().hex
        self.original_error = original_error

    def to_response(self) -> ErrorInfo:
        cause = type(self.original_error).__name__ if self.original_error else None
        return ErrorInfo(self.error_code, self.message, self.error_id, cause)


class StoreError(AuditCoreError):
    """El store persistente falló (query, timeout, pool, conexión)."""

    error_code = "STORE_ERROR"


class PoolAlreadyInitializedError(StoreError):
    error_code = "POOL_ALREADY_INITIALIZED"


class PoolNotInitializedError(StoreError):
    error_code = "POOL_NOT_INITIALIZED"


class StoreConnectionError(StoreError):
    """No se pudo adquirir o validar una conexión del pool."""

    error_code = "STORE_CONNECTION_ERROR"


def error_fields(exc: BaseException) -> dict[str, str]:
    """Campos `extra` para loguear una excepción (sin la clave reservada `message`)."""
    if isinstance(exc, AuditCoreError):
        info = exc.to_response()
        fields = {"error": info.message, "error_code": info.error_code, "error_id": info.error_id}
        if info.cause:
            fields["cause"] = info.cause
        return fields
    return {"error": str(exc), "error_code": "UNEXPECTED_ERROR", "cause": type(exc).__name__}
