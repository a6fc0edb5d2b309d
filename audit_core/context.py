"""
===============================================================================
TARJETA CRC — audit_core/context.py (Contexto por request / job)
===============================================================================

Responsabilidades:
  - Guardar la correlación del request/job en curso (request_id, trace_id,
    span_id, actor_id) en ContextVars, aisladas por thread y por task.
  - Exponer el contexto como dict para logs y metadata automática.
  - request_scope(): fijar contexto para un bloque y restaurar el anterior.

Colaboradores:
  - crosscutting.logger: agrega el contexto a cada línea de log.
  - application.metadata: copia request_id / trace_id a la metadata.

Restricciones:
  - Valores str; "" significa "no disponible" y no aparece en el dict.
===============================================================================
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar, Token
from typing import Iterator

CONTEXT_KEYS: tuple[str, ...] = ("request_id", "trace_id", "span_id", "actor_id")

_vars: dict[str, ContextVar[str]] = {
    key: ContextVar(f"audit_{key}", default="") for key in CONTEXT_KEYS
}


def _set(values: dict[str, object]) -> dict[str, Token[str]]:
    return {
        key: _vars[key].set(str(value) if value else "")
        for key, value in values.items()
    }


def set_request_context(*, request_id: str = "", actor_id: object = "") -> None:
    _set({"request_id": request_id, "actor_id": actor_id})


def set_trace_context(*, trace_id: str = "", span_id: str = "") -> None:
    _set({"trace_id": trace_id, "span_id": span_id})


def get_context_dict() -> dict[str, str]:
    """Contexto actual, sin las claves vacías."""
    return {key: value for key, var in _vars.items() if (value := var.get())}


def clear_context() -> None:
    for var in _vars.values():
        var.set("")


@contextmanager
def request_scope(
    *,
    request_id: str = "",
    actor_id: object = "",
    trace_id: str = "",
    span_id: str = "",
) -> Iterator[dict[str, str]]:
    """
    Fija el contexto para el bloque y al salir restaura el valor previo.

    Útil para jobs que registran actividad fuera de un request.
    """
    tokens = _set(
        {
            "request_id": request_id,
            "actor_id": actor_id,
            "trace_id": trace_id,
            "span_id": span_id,
        }
    )
    try:
        yield get_context_dict()
    finally:
        for key, token in tokens.items():
            _vars[key].reset(token)
