"""
Name: Crosscutting Tests

Responsibilities:
  - Settings defaults and validation
  - JSON log formatting, context enrichment and redaction
  - Pagination metadata, metrics registry, typed errors, operation timer
"""

import json
import logging

import pytest
from pydantic import ValidationError

from audit_core.context import (
    clear_context,
    get_context_dict,
    request_scope,
    set_request_context,
    set_trace_context,
)
from audit_core.crosscutting.config import Settings, get_settings
from audit_core.crosscutting.exceptions import (
    PoolNotInitializedError,
    StoreConnectionError,
    StoreError,
    error_fields,
)
from audit_core.crosscutting.logger import JSONFormatter
from audit_core.crosscutting.metrics import (
    get_metrics_response,
    get_registry,
    record_activity_logged,
    record_security_alert,
)
from audit_core.crosscutting.pagination import build_page_info, page_offset
from audit_core.crosscutting.timing import OperationTimer


@pytest.mark.unit
class TestSettings:
    def test_defaults(self):
        settings = Settings()

        assert settings.store_backend == "memory"
        assert settings.real_time_buffer_size == 1000
        assert settings.burst_window_seconds == 120
        assert settings.burst_threshold == 10
        assert settings.failure_window_seconds == 60
        assert settings.failure_threshold == 5
        assert settings.anomaly_threshold_multiplier == 3.0
        assert settings.metadata_max_bytes == 1024 * 1024

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("AUDIT_BURST_THRESHOLD", "25")
        monkeypatch.setenv("AUDIT_LOG_LEVEL", "debug")

        settings = get_settings()

        assert settings.burst_threshold == 25
        assert settings.log_level == "DEBUG"

    def test_postgres_requires_database_url(self):
        with pytest.raises(ValidationError, match="AUDIT_DATABASE_URL"):
            Settings(store_backend="postgres", database_url="")

    @pytest.mark.parametrize(
        "field_name, value",
        [
            ("burst_threshold", 0),
            ("anomaly_threshold_multiplier", -1.0),
            ("log_level", "LOUD"),
            ("store_backend", "mongo"),
        ],
    )
    def test_invalid_values(self, field_name, value):
        with pytest.raises(ValidationError):
            Settings(**{field_name: value})

    def test_pool_bounds(self):
        with pytest.raises(ValidationError):
            Settings(db_pool_min_size=5, db_pool_max_size=2)

    def test_unknown_env_vars_are_ignored(self, monkeypatch):
        monkeypatch.setenv("AUDIT_APP_ENV", "production")

        settings = get_settings()

        assert "app_env" not in Settings.model_fields
        assert settings.store_backend == "memory"


@pytest.mark.unit
class TestContext:
    def test_set_and_clear(self):
        set_request_context(request_id="req-9", actor_id="42")
        set_trace_context(trace_id="t1", span_id="s1")

        assert get_context_dict() == {
            "request_id": "req-9",
            "trace_id": "t1",
            "span_id": "s1",
            "actor_id": "42",
        }

        clear_context()
        assert get_context_dict() == {}

    def test_request_scope_restores_previous_values(self):
        set_request_context(request_id="outer")

        with request_scope(request_id="job-1", actor_id=3) as ctx:
            assert ctx == {"request_id": "job-1", "actor_id": "3"}
            assert get_context_dict()["request_id"] == "job-1"

        assert get_context_dict() == {"request_id": "outer"}


@pytest.mark.unit
class TestJSONFormatter:
    def _record(self, **extra) -> logging.LogRecord:
        record = logging.LogRecord(
            name="audit_core.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=10,
            msg="Activity logged successfully",
            args=(),
            exc_info=None,
        )
        for key, value in extra.items():
            setattr(record, key, value)
        return record

    def test_payload_has_context_and_extras(self):
        set_request_context(request_id="req-1")

        payload = json.loads(JSONFormatter().format(self._record(activity_id=5)))

        assert payload["message"] == "Activity logged successfully"
        assert payload["level"] == "INFO"
        assert payload["request_id"] == "req-1"
        assert payload["activity_id"] == 5

    def test_sensitive_extras_are_redacted(self):
        record = self._record(
            new_values={"email": "a@b.c"},
            params={"action": "login", "password": "p"},
        )

        payload = json.loads(JSONFormatter().format(record))

        assert payload["new_values"] == {"redacted": True, "keys": 1}
        assert payload["params"]["password"] == "***REDACTED***"
        assert payload["params"]["action"] == "login"


@pytest.mark.unit
class TestPagination:
    @pytest.mark.parametrize(
        "page, limit, total, pages, has_next, has_previous",
        [
            (1, 10, 0, 0, False, False),
            (1, 10, 25, 3, True, False),
            (3, 10, 25, 3, False, True),
            (2, 50, 50, 1, False, True),
        ],
    )
    def test_build_page_info(self, page, limit, total, pages, has_next, has_previous):
        info = build_page_info(page=page, limit=limit, total=total)

        assert info.total_pages == pages
        assert info.has_next is has_next
        assert info.has_previous is has_previous

    def test_page_offset(self):
        assert page_offset(1, 20) == 0
        assert page_offset(3, 20) == 40
        assert page_offset(0, 20) == 0


@pytest.mark.unit
class TestMetrics:
    def test_counters_increment(self):
        registry = get_registry()
        labels = {"category": "security", "status": "error"}
        before = registry.get_sample_value("audit_activities_logged_total", labels) or 0

        record_activity_logged("security", "error")

        after = registry.get_sample_value("audit_activities_logged_total", labels)
        assert after == before + 1

    def test_exposition(self):
        record_security_alert("burst")

        body, content_type = get_metrics_response()

        assert b"audit_security_alerts_total" in body
        assert content_type.startswith("text/plain")


@pytest.mark.unit
class TestErrorsAndTimer:
    def test_store_error_response(self):
        error = StoreError("boom", error_id="err-1")
        response = error.to_response().to_dict()

        assert response == {"error_code": "STORE_ERROR", "message": "boom", "error_id": "err-1"}

    def test_pool_errors_are_store_errors(self):
        assert issubclass(PoolNotInitializedError, StoreError)
        assert PoolNotInitializedError("x").error_code == "POOL_NOT_INITIALIZED"

    def test_error_fields(self):
        wrapped = StoreConnectionError("no conn", error_id="e-2", original_error=OSError("refused"))

        assert error_fields(wrapped) == {
            "error": "no conn",
            "error_code": "STORE_CONNECTION_ERROR",
            "error_id": "e-2",
            "cause": "OSError",
        }
        assert error_fields(ValueError("bad"))["cause"] == "ValueError"

    def test_operation_timer_observes_only_on_success(self):
        registry = get_registry()
        labels = {"operation": "timer_check"}

        with OperationTimer("timer_check") as timer:
            pass
        with pytest.raises(RuntimeError):
            with OperationTimer("timer_check"):
                raise RuntimeError("boom")

        assert timer.seconds >= 0
        assert registry.get_sample_value("audit_query_duration_seconds_count", labels) == 1
        assert OperationTimer("idle").elapsed_ms == 0.0
