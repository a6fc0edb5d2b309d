"""Unit tests for ActivityQuery building and period truncation."""

from datetime import datetime, timezone

import pytest

from audit_core.domain.queries import ActivityQuery, Condition, ConditionOp, StatisticsPeriod
from audit_core.domain.repositories import period_start


@pytest.mark.unit
class TestCondition:
    def test_known_field_is_accepted(self):
        condition = Condition("actor_id", ConditionOp.EQ, 3)
        assert condition.field == "actor_id"

    def test_unknown_field_is_rejected(self):
        with pytest.raises(ValueError, match="Unsupported filter field"):
            Condition("password", ConditionOp.EQ, "x")

    def test_query_defaults(self):
        query = ActivityQuery()
        assert query.conditions == ()
        assert query.limit is None
        assert query.offset == 0
        assert query.include_actor is False


@pytest.mark.unit
class TestPeriodStart:
    # 2025-03-13 is a Thursday
    value = datetime(2025, 3, 13, 17, 45, 12, tzinfo=timezone.utc)

    def test_day(self):
        assert period_start(self.value, StatisticsPeriod.DAY) == datetime(
            2025, 3, 13, tzinfo=timezone.utc
        )

    def test_week_starts_monday(self):
        assert period_start(self.value, StatisticsPeriod.WEEK) == datetime(
            2025, 3, 10, tzinfo=timezone.utc
        )

    def test_month(self):
        assert period_start(self.value, StatisticsPeriod.MONTH) == datetime(
            2025, 3, 1, tzinfo=timezone.utc
        )

    def test_year(self):
        assert period_start(self.value, StatisticsPeriod.YEAR) == datetime(
            2025, 1, 1, tzinfo=timezone.utc
        )
