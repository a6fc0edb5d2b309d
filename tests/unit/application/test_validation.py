"""
Name: Validation and Sanitization Tests

Responsibilities:
  - Check validate_params ordering and messages
  - Check format helpers (UUID, IP, JSON)
  - Check sanitize_params never leaks payloads or PII fields
"""

from dataclasses import replace

import pytest

from audit_core.application.validation import (
    is_valid_ip,
    is_valid_uuid,
    sanitize_params,
    validate_json,
    validate_optional_string,
    validate_params,
    validate_positive_integer,
    validate_required_string,
)
from audit_core.domain import ActivityLogParams, ActivitySeverity


def _params(**overrides) -> ActivityLogParams:
    base = ActivityLogParams(
        action="user_updated",
        resource_type="user",
        description="Profile updated",
    )
    return replace(base, **overrides)


@pytest.mark.unit
class TestRequiredFields:
    def test_valid_minimal_params(self):
        assert validate_params(_params()).is_valid is True

    @pytest.mark.parametrize(
        "field_name, message",
        [
            ("action", "Action is required"),
            ("resource_type", "Resource type is required"),
            ("description", "Description is required"),
        ],
    )
    def test_missing_required(self, field_name, message):
        result = validate_params(_params(**{field_name: ""}))

        assert result.is_valid is False
        assert result.error == message
        assert result.field == field_name

    def test_whitespace_only_is_blank(self):
        result = validate_params(_params(description="   "))
        assert result.field == "description"

    def test_required_checked_before_lengths(self):
        result = validate_params(_params(action="", description="x" * 5000))
        assert result.field == "action"

    def test_accepts_mapping(self):
        result = validate_params(
            {"action": "logout", "resource_type": "session", "description": "bye"}
        )
        assert result.is_valid is True


@pytest.mark.unit
class TestLengthsAndFormats:
    def test_action_too_long(self):
        result = validate_params(_params(action="a" * 101))
        assert result.error == "Action must be 100 characters or less"

    def test_description_limit_is_inclusive(self):
        assert validate_params(_params(description="d" * 1000)).is_valid is True
        assert validate_params(_params(description="d" * 1001)).field == "description"

    def test_bad_uuid(self):
        result = validate_params(_params(resource_uuid="not-a-uuid"))
        assert result.field == "resource_uuid"

    def test_bad_ip(self):
        result = validate_params(_params(ip_address="999.1.1.1"))
        assert result.error == "IP address must be a valid IPv4 or IPv6 format"

    def test_session_and_user_agent_limits(self):
        assert validate_params(_params(session_id="s" * 256)).field == "session_id"
        assert validate_params(_params(user_agent="u" * 501)).field == "user_agent"

    @pytest.mark.parametrize("value", [0, -4, True, "12"])
    def test_actor_id_must_be_positive_int(self, value):
        result = validate_params(_params(actor_id=value))
        assert result.error == "Actor ID must be a positive number"

    def test_resource_id_checked_before_actor_id(self):
        result = validate_params(_params(resource_id=-1, actor_id=-1))
        assert result.error == "Resource ID must be a positive number"

    def test_enum_domains(self):
        assert validate_params(_params(severity="urgent")).field == "severity"
        assert validate_params(_params(severity=ActivitySeverity.HIGH)).is_valid
        assert validate_params(_params(status="high")).field == "status"


@pytest.mark.unit
class TestFormatHelpers:
    def test_uuid(self):
        assert is_valid_uuid("123e4567-e89b-42d3-a456-426614174000")
        assert not is_valid_uuid("123e4567e89b42d3a456426614174000")

    @pytest.mark.parametrize(
        "value", ["127.0.0.1", "255.255.255.255", "::1", "::", "2001:db8:0:0:0:0:2:1"]
    )
    def test_valid_ips(self, value):
        assert is_valid_ip(value)

    @pytest.mark.parametrize("value", ["256.0.0.1", "1.2.3", "2001:db8::1", "abc", 42])
    def test_invalid_ips(self, value):
        assert not is_valid_ip(value)

    def test_validate_json_rejects_cycles(self):
        data: dict = {}
        data["self"] = data

        assert validate_json(data).is_valid is False
        assert validate_json({"a": [1, 2]}).is_valid is True
        assert validate_json(None).is_valid is True

    def test_string_and_integer_helpers(self):
        assert validate_required_string("  ", "name").error == "name cannot be empty"
        assert validate_required_string(5, "name").is_valid is False
        assert validate_optional_string(None, "name").is_valid is True
        assert validate_optional_string("x" * 10, "name", max_length=5).is_valid is False
        assert validate_positive_integer(0, "count").is_valid is False
        assert validate_positive_integer(None, "count").is_valid is True


@pytest.mark.unit
class TestSanitizeParams:
    def test_excludes_payloads_and_pii(self):
        params = _params(
            actor_id=1,
            old_values={"password": "old"},
            new_values={"password": "new"},
            metadata={"token": "t"},
            ip_address="10.0.0.1",
            session_id="sess",
            user_agent="agent",
            severity=ActivitySeverity.HIGH,
        )

        sanitized = sanitize_params(params)

        for forbidden in ("old_values", "new_values", "metadata", "ip_address", "session_id"):
            assert forbidden not in sanitized
        assert sanitized["action"] == "user_updated"
        assert sanitized["actor_id"] == 1
        assert sanitized["severity"] == "high"
