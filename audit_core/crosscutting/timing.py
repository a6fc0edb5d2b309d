"""
===============================================================================
MÓDULO: OperationTimer
===============================================================================

Cronómetro para operaciones de lectura/analítica del audit trail.

Al salir del bloque sin error, la duración se observa en
`audit_query_duration_seconds{operation=...}`. Si el bloque falla no se
observa nada: el error lo registra el servicio.

Colaboradores:
  - crosscutting/metrics.py
  - application/retrieval/service.py, application/analytics.py
===============================================================================
"""

from __future__ import annotations

import time
from typing import Optional

from .metrics import observe_query_duration


class OperationTimer:
    def __init__(self, operation: str) -> None:
        self.operation = operation
        self._started: Optional[float] = None
        self.seconds: Optional[float] = None

    def __enter__(self) -> "OperationTimer":
        self._started = time.perf_counter()
        self.seconds = None
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.seconds = time.perf_counter() - self._started
        if exc_type is None:
            observe_query_duration(self.operation, self.seconds)

    @property
    def elapsed_ms(self) -> float:
        if self.seconds is not None:
            return round(self.seconds * 1000, 2)
        if self._started is None:
            return 0.0
        return round((time.perf_counter() - self._started) * 1000, 2)
