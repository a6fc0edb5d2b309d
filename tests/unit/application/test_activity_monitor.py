"""
Name: Real-Time Monitor Tests

Responsibilities:
  - Bounded buffer (oldest evicted first)
  - Burst and failure-streak detectors (edge-triggered)
  - Pull-style suspicious check does not publish
  - Subscriber isolation and thread safety
"""

import threading
from datetime import timedelta

import pytest

from audit_core.application.monitoring import ActivityMonitor, MonitorConfig
from audit_core.domain import (
    ActivityCategory,
    ActivityEvent,
    ActivitySeverity,
    ActivityStatus,
    AlertDetector,
)


def _event(clock, action="resource_accessed", status=ActivityStatus.SUCCESS, idx=None):
    return ActivityEvent(
        id=idx,
        action=action,
        category=ActivityCategory.AUTHORIZATION,
        severity=ActivitySeverity.LOW,
        status=status,
        created_at=clock(),
    )


def _failure(clock, action="login_failed"):
    return _event(clock, action=action, status=ActivityStatus.FAILURE)


@pytest.mark.unit
class TestBuffer:
    def test_capacity_is_respected(self, clock):
        monitor = ActivityMonitor(MonitorConfig(capacity=100), clock=clock)

        for i in range(150):
            monitor.monitor_real_time_activity(_event(clock, idx=i))

        snapshot = monitor.snapshot()
        assert len(monitor) == 100
        assert snapshot[0].id == 50
        assert snapshot[-1].id == 149

    def test_default_capacity(self, monitor):
        assert monitor.capacity == 1000

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            MonitorConfig(burst_threshold=0)

    def test_reset(self, monitor, clock):
        monitor.on_alert(lambda a: None)
        monitor.monitor_real_time_activity(_event(clock))

        monitor.reset()

        assert len(monitor) == 0


@pytest.mark.unit
class TestBurstDetector:
    def test_fifteen_events_in_window_alert_once(self, monitor, clock):
        alerts = []
        monitor.on_alert(alerts.append)

        for _ in range(15):
            monitor.monitor_real_time_activity(_event(clock))
            clock.advance(seconds=5)

        bursts = [a for a in alerts if a.detector == AlertDetector.BURST]
        assert len(bursts) == 1
        assert bursts[0].reason == "High activity volume"
        assert bursts[0].count == 10
        assert bursts[0].threshold == 10

    def test_spread_out_events_do_not_alert(self, monitor, clock):
        alerts = []
        monitor.on_alert(alerts.append)

        for _ in range(15):
            monitor.monitor_real_time_activity(_event(clock))
            clock.advance(seconds=30)

        assert alerts == []

    def test_rearms_after_quiet_period(self, monitor, clock):
        alerts = []
        monitor.on_alert(alerts.append)

        for _ in range(10):
            monitor.monitor_real_time_activity(_event(clock))
        clock.advance(seconds=600)
        for _ in range(10):
            monitor.monitor_real_time_activity(_event(clock))

        assert [a.detector for a in alerts] == [AlertDetector.BURST, AlertDetector.BURST]


@pytest.mark.unit
class TestFailureStreakDetector:
    def test_five_failures_alert(self, monitor, clock):
        alerts = []
        monitor.on_alert(alerts.append)

        for _ in range(5):
            monitor.monitor_real_time_activity(_failure(clock))
            clock.advance(seconds=2)

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.detector == AlertDetector.FAILURE_STREAK
        assert alert.reason == "Repeated failures for login_failed"
        assert alert.count == 5

    def test_four_failures_do_not_alert(self, monitor, clock):
        alerts = []
        monitor.on_alert(alerts.append)

        for _ in range(4):
            monitor.monitor_real_time_activity(_failure(clock))

        assert alerts == []
        assert monitor.failure_counts() == {"login_failed": 4}

    def test_failures_outside_window_do_not_count(self, monitor, clock):
        alerts = []
        monitor.on_alert(alerts.append)

        for _ in range(5):
            monitor.monitor_real_time_activity(_failure(clock))
            clock.advance(seconds=20)

        assert alerts == []

    def test_streak_is_per_action(self, monitor, clock):
        alerts = []
        monitor.on_alert(alerts.append)

        for i in range(6):
            action = "login_failed" if i % 2 == 0 else "access_denied"
            monitor.monitor_real_time_activity(_failure(clock, action=action))

        assert alerts == []

    def test_error_status_counts_as_failure(self, monitor, clock):
        alerts = []
        monitor.on_alert(alerts.append)

        for _ in range(5):
            monitor.monitor_real_time_activity(
                _event(clock, action="intrusion_detected", status=ActivityStatus.ERROR)
            )

        assert [a.action for a in alerts] == ["intrusion_detected"]

    def test_return_value_lists_published_alerts(self, monitor, clock):
        for _ in range(4):
            assert monitor.monitor_real_time_activity(_failure(clock)) == []

        published = monitor.monitor_real_time_activity(_failure(clock))

        assert len(published) == 1


@pytest.mark.unit
class TestSuspiciousCheck:
    def test_threshold_reached(self, monitor, clock):
        for _ in range(5):
            monitor.monitor_real_time_activity(_event(clock))

        assert monitor.detect_suspicious_activity(60, 5) is True
        assert monitor.detect_suspicious_activity(60, 6) is False

    def test_old_events_are_ignored(self, monitor, clock):
        for _ in range(5):
            monitor.monitor_real_time_activity(_event(clock))
        clock.advance(seconds=61)

        assert monitor.detect_suspicious_activity(60, 5) is False

    def test_does_not_publish(self, monitor, clock):
        alerts = []
        for _ in range(5):
            monitor.monitor_real_time_activity(_event(clock))
        monitor.on_alert(alerts.append)

        monitor.detect_suspicious_activity(60, 1)

        assert alerts == []

    def test_defaults_from_config(self, clock):
        monitor = ActivityMonitor(
            MonitorConfig(suspicious_window_seconds=30, suspicious_threshold=2),
            clock=clock,
        )
        monitor.monitor_real_time_activity(_event(clock))
        monitor.monitor_real_time_activity(_event(clock))

        assert monitor.detect_suspicious_activity() is True

    def test_explicit_zero_threshold_is_honoured(self, clock):
        monitor = ActivityMonitor(MonitorConfig(suspicious_threshold=50), clock=clock)
        monitor.monitor_real_time_activity(_event(clock))

        assert monitor.detect_suspicious_activity(60, 0) is True


@pytest.mark.unit
class TestSubscribers:
    def test_activity_subscribers_receive_events(self, monitor, clock):
        seen = []
        monitor.on_activity(seen.append)
        event = _event(clock)

        monitor.monitor_real_time_activity(event)

        assert seen == [event]

    def test_unsubscribe(self, monitor, clock):
        seen = []
        monitor.on_activity(seen.append)
        monitor.off_activity(seen.append)

        monitor.monitor_real_time_activity(_event(clock))

        assert seen == []

    def test_failing_subscriber_is_isolated(self, monitor, clock):
        seen = []

        def broken(_):
            raise RuntimeError("subscriber down")

        monitor.on_activity(broken)
        monitor.on_activity(seen.append)
        monitor.on_alert(broken)

        for _ in range(5):
            monitor.monitor_real_time_activity(_failure(clock))

        assert len(seen) == 5
        assert len(monitor) == 5

    def test_manual_alert(self, monitor, clock):
        alerts = []
        monitor.on_alert(alerts.append)
        events = [_event(clock), _event(clock)]

        alert = monitor.trigger_security_alert("Manual review", events)

        assert alerts == [alert]
        assert alert.detector == AlertDetector.MANUAL
        assert alert.count == 2
        assert alert.to_dict()["reason"] == "Manual review"


@pytest.mark.unit
class TestConcurrency:
    def test_concurrent_producers(self, clock):
        monitor = ActivityMonitor(MonitorConfig(capacity=500), clock=clock)
        start = clock()

        def produce(worker: int) -> None:
            for i in range(100):
                monitor.monitor_real_time_activity(
                    ActivityEvent(
                        id=worker * 1000 + i,
                        action="resource_accessed",
                        category=ActivityCategory.AUTHORIZATION,
                        severity=ActivitySeverity.LOW,
                        status=ActivityStatus.SUCCESS,
                        created_at=start - timedelta(seconds=1),
                    )
                )

        threads = [threading.Thread(target=produce, args=(w,)) for w in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        snapshot = monitor.snapshot()
        assert len(snapshot) == 500
        for worker in range(8):
            ids = [e.id for e in snapshot if e.id // 1000 == worker]
            assert ids == sorted(ids)
