"""
===============================================================================
TARJETA CRC — application/monitoring.py (Monitor en tiempo real)
===============================================================================

Responsabilidades:
  - Mantener un ring buffer acotado (oldest-evicted-first) de eventos recientes.
  - Notificar a suscriptores de actividad por cada evento.
  - Evaluar dos detectores de ventana deslizante sobre el buffer:
      * burst: volumen total en la ventana >= umbral
      * failure streak: fallos (failure/error) de una misma acción >= umbral
  - Publicar SecurityAlert a suscriptores de alertas.
  - Exponer un chequeo pull-style (detect_suspicious_activity) sin publicar.

Colaboradores:
  - domain.monitoring (ActivityEvent, SecurityAlert, AlertDetector)
  - crosscutting.metrics (alertas, errores de suscriptores)
  - application.activity_log (lo alimenta después de cada insert)

Concurrencia:
  - Un único RLock cubre "append + notify + evaluar + publicar". Un snapshot
    inmutable (tuple) es lo que ven los detectores.
  - Orden preservado por productor; entre productores es best-effort.

Reglas:
  - Los detectores disparan una vez al cruzar el umbral y se rearman cuando
    el conteo vuelve a quedar por debajo.
  - Una excepción de un suscriptor se loguea y se aísla: no corta la entrega
    al resto ni deja el buffer a medio mutar.
  - El buffer es una copia volátil y no autoritativa del store.
===============================================================================
"""

from __future__ import annotations

import logging
import threading
from collections import Counter, deque
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Optional

from ..crosscutting.metrics import record_security_alert, record_subscriber_error
from ..domain.monitoring import ActivityEvent, AlertDetector, SecurityAlert

logger = logging.getLogger(__name__)

ActivityHandler = Callable[[ActivityEvent], Any]
AlertHandler = Callable[[SecurityAlert], Any]
Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(frozen=True)
class MonitorConfig:
    capacity: int = 1000
    burst_window_seconds: int = 120
    burst_threshold: int = 10
    failure_window_seconds: int = 60
    failure_threshold: int = 5
    suspicious_window_seconds: int = 60
    suspicious_threshold: int = 10

    def __post_init__(self) -> None:
        for name, value in vars(self).items():
            if value <= 0:
                raise ValueError(f"{name} debe ser > 0")

    @classmethod
    def from_settings(cls, settings) -> "MonitorConfig":
        return cls(
            capacity=settings.real_time_buffer_size,
            burst_window_seconds=settings.burst_window_seconds,
            burst_threshold=settings.burst_threshold,
            failure_window_seconds=settings.failure_window_seconds,
            failure_threshold=settings.failure_threshold,
            suspicious_window_seconds=settings.suspicious_window_seconds,
            suspicious_threshold=settings.suspicious_threshold,
        )


class ActivityMonitor:
    """
    Monitor de actividad en memoria (una instancia por proceso, inyectada).
    """

    def __init__(
        self, config: Optional[MonitorConfig] = None, *, clock: Optional[Clock] = None
    ) -> None:
        self._config = config or MonitorConfig()
        self._clock = clock or _utc_now
        self._lock = threading.RLock()
        self._buffer: deque[ActivityEvent] = deque(maxlen=self._config.capacity)
        self._activity_handlers: list[ActivityHandler] = []
        self._alert_handlers: list[AlertHandler] = []
        self._burst_active = False
        self._failing_actions: set[str] = set()

    @property
    def config(self) -> MonitorConfig:
        return self._config

    @property
    def capacity(self) -> int:
        return self._config.capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._buffer)

    # =========================================================
    # Suscripciones
    # =========================================================
    def on_activity(self, handler: ActivityHandler) -> None:
        with self._lock:
            self._activity_handlers.append(handler)

    def off_activity(self, handler: ActivityHandler) -> None:
        with self._lock:
            if handler in self._activity_handlers:
                self._activity_handlers.remove(handler)

    def on_alert(self, handler: AlertHandler) -> None:
        with self._lock:
            self._alert_handlers.append(handler)

    def off_alert(self, handler: AlertHandler) -> None:
        with self._lock:
            if handler in self._alert_handlers:
                self._alert_handlers.remove(handler)

    # =========================================================
    # Ingesta
    # =========================================================
    def monitor_real_time_activity(self, event: ActivityEvent) -> list[SecurityAlert]:
        """
        Agrega el evento al buffer, notifica y evalúa detectores.

        Devuelve las alertas publicadas por este evento.
        """
        with self._lock:
            self._buffer.append(event)
            snapshot = tuple(self._buffer)

            self._dispatch(list(self._activity_handlers), event, channel="activity")

            now = _as_utc(self._clock())
            alerts: list[SecurityAlert] = []

            burst = self._evaluate_burst(snapshot, now)
            if burst is not None:
                alerts.append(burst)

            streak = self._evaluate_failure_streak(snapshot, event, now)
            if streak is not None:
                alerts.append(streak)

            for alert in alerts:
                self._publish(alert)

            return alerts

    # =========================================================
    # Detectores
    # =========================================================
    @staticmethod
    def _in_window(
        events: Iterable[ActivityEvent], now: datetime, seconds: int
    ) -> list[ActivityEvent]:
        cutoff = now - timedelta(seconds=seconds)
        return [e for e in events if _as_utc(e.created_at) >= cutoff]

    def _evaluate_burst(
        self, snapshot: tuple[ActivityEvent, ...], now: datetime
    ) -> Optional[SecurityAlert]:
        cfg = self._config
        recent = self._in_window(snapshot, now, cfg.burst_window_seconds)

        if len(recent) < cfg.burst_threshold:
            self._burst_active = False
            return None
        if self._burst_active:
            return None

        self._burst_active = True
        return SecurityAlert(
            reason="High activity volume",
            detector=AlertDetector.BURST,
            events=tuple(recent),
            triggered_at=now,
            count=len(recent),
            threshold=cfg.burst_threshold,
            window_seconds=cfg.burst_window_seconds,
        )

    def _evaluate_failure_streak(
        self,
        snapshot: tuple[ActivityEvent, ...],
        event: ActivityEvent,
        now: datetime,
    ) -> Optional[SecurityAlert]:
        cfg = self._config
        failures = [
            e
            for e in self._in_window(snapshot, now, cfg.failure_window_seconds)
            if e.is_failure
        ]
        counts = Counter(e.action for e in failures)

        # Rearmar acciones que volvieron a quedar bajo el umbral.
        for action in list(self._failing_actions):
            if counts[action] < cfg.failure_threshold:
                self._failing_actions.discard(action)

        if not event.is_failure:
            return None
        if counts[event.action] < cfg.failure_threshold:
            return None
        if event.action in self._failing_actions:
            return None

        self._failing_actions.add(event.action)
        streak = tuple(e for e in failures if e.action == event.action)
        return SecurityAlert(
            reason=f"Repeated failures for {event.action}",
            detector=AlertDetector.FAILURE_STREAK,
            events=streak,
            triggered_at=now,
            action=event.action,
            count=len(streak),
            threshold=cfg.failure_threshold,
            window_seconds=cfg.failure_window_seconds,
        )

    def detect_suspicious_activity(
        self,
        time_window_seconds: Optional[int] = None,
        threshold: Optional[int] = None,
    ) -> bool:
        """
        Chequeo pull-style: ¿hay >= threshold eventos en la ventana?

        No publica alertas.
        """
        window = (
            time_window_seconds
            if time_window_seconds is not None
            else self._config.suspicious_window_seconds
        )
        limit = threshold if threshold is not None else self._config.suspicious_threshold
        with self._lock:
            now = _as_utc(self._clock())
            return len(self._in_window(tuple(self._buffer), now, window)) >= limit

    # =========================================================
    # Alertas
    # =========================================================
    def trigger_security_alert(
        self, reason: str, events: Iterable[ActivityEvent] = ()
    ) -> SecurityAlert:
        """Publica una alerta manual (p.ej. desde una integración externa)."""
        frozen = tuple(events)
        with self._lock:
            alert = SecurityAlert(
                reason=reason,
                detector=AlertDetector.MANUAL,
                events=frozen,
                triggered_at=_as_utc(self._clock()),
                count=len(frozen),
            )
            self._publish(alert)
            return alert

    def _publish(self, alert: SecurityAlert) -> None:
        logger.warning(
            "Security alert triggered",
            extra={
                "reason": alert.reason,
                "detector": alert.detector.value,
                "count": alert.count,
                "alert_action": alert.action,
            },
        )
        record_security_alert(alert.detector.value)
        self._dispatch(list(self._alert_handlers), alert, channel="alert")

    @staticmethod
    def _dispatch(handlers: list, payload: Any, *, channel: str) -> None:
        for handler in handlers:
            try:
                handler(payload)
            except Exception:
                record_subscriber_error(channel)
                logger.exception(
                    "Monitor subscriber failed",
                    extra={"channel": channel},
                )

    # =========================================================
    # Introspección / ciclo de vida
    # =========================================================
    def snapshot(self) -> tuple[ActivityEvent, ...]:
        with self._lock:
            return tuple(self._buffer)

    def failure_counts(self, time_window_seconds: Optional[int] = None) -> dict[str, int]:
        """Fallos por acción dentro de la ventana (default: la del streak)."""
        window = (
            time_window_seconds
            if time_window_seconds is not None
            else self._config.failure_window_seconds
        )
        with self._lock:
            now = _as_utc(self._clock())
            recent = self._in_window(tuple(self._buffer), now, window)
        return dict(Counter(e.action for e in recent if e.is_failure))

    def reset(self) -> None:
        """Vacía buffer, estado de detectores y suscriptores (tests / shutdown)."""
        with self._lock:
            self._buffer.clear()
            self._activity_handlers.clear()
            self._alert_handlers.clear()
            self._burst_active = False
            self._failing_actions.clear()
