"""
Name: Postgres Activity Log Repository Tests

Responsibilities:
  - SQL compilation from ActivityQuery (parameterized, whitelisted)
  - Row mapping to ActivityLog
  - Failures wrapped as StoreError

Notes:
  - Offline: the pool is a MagicMock, no database involved
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from audit_core.crosscutting.exceptions import StoreError
from audit_core.domain import (
    ActivityCategory,
    ActivityLogParams,
    ActivityQuery,
    ActivitySeverity,
    ActivityStatus,
    GroupField,
    StatisticsPeriod,
)
from audit_core.domain.queries import Condition, ConditionOp
from audit_core.infrastructure.repositories import PostgresActivityLogRepository

CREATED = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def _mock_pool():
    pool = MagicMock()
    conn = MagicMock()
    pool.connection.return_value.__enter__.return_value = conn
    return pool, conn


def _row(activity_id=1, **overrides):
    values = {
        "id": activity_id,
        "created_at": CREATED,
        "action": "login_failed",
        "resource_type": "authentication",
        "description": "bad password",
        "category": "authentication",
        "severity": "high",
        "status": "failure",
        "actor_id": 7,
        "session_id": None,
        "resource_id": None,
        "resource_uuid": None,
        "old_values": None,
        "new_values": None,
        "metadata": {"k": "v"},
        "ip_address": "10.0.0.1",
        "user_agent": None,
    }
    values.update(overrides)
    return tuple(values.values())


@pytest.mark.unit
class TestInsert:
    def test_insert_returns_log_with_db_id(self):
        pool, conn = _mock_pool()
        conn.execute.return_value.fetchone.return_value = (42, CREATED)
        repo = PostgresActivityLogRepository(pool=pool)

        log = repo.insert(
            ActivityLogParams(
                action="user_created",
                resource_type="user",
                description="created",
                category=ActivityCategory.USER_MANAGEMENT,
                severity=ActivitySeverity.MEDIUM,
                status=ActivityStatus.SUCCESS,
                metadata={"a": 1},
            )
        )

        sql, params = conn.execute.call_args[0]
        assert "INSERT INTO activity_logs" in sql
        assert "RETURNING id, created_at" in sql
        assert params[3:6] == ("user_management", "medium", "success")
        assert log.id == 42
        assert log.created_at == CREATED
        assert log.metadata == {"a": 1}

    def test_insert_requires_categorization(self):
        pool, _ = _mock_pool()
        repo = PostgresActivityLogRepository(pool=pool)

        with pytest.raises(StoreError):
            repo.insert(ActivityLogParams(action="x", resource_type="y", description="z"))

    def test_db_error_is_wrapped(self):
        pool, conn = _mock_pool()
        conn.execute.side_effect = RuntimeError("connection lost")
        repo = PostgresActivityLogRepository(pool=pool)

        with pytest.raises(StoreError, match="Failed to insert activity"):
            repo.insert(
                ActivityLogParams(
                    action="logout",
                    resource_type="session",
                    description="bye",
                    category=ActivityCategory.AUTHENTICATION,
                    severity=ActivitySeverity.LOW,
                    status=ActivityStatus.SUCCESS,
                )
            )


@pytest.mark.unit
class TestQuery:
    def test_compiles_conditions_search_sort_and_paging(self):
        pool, conn = _mock_pool()
        conn.execute.return_value.fetchall.return_value = [_row()]
        repo = PostgresActivityLogRepository(pool=pool)

        logs = repo.query(
            ActivityQuery(
                conditions=(
                    Condition("category", ConditionOp.EQ, ActivityCategory.AUTHENTICATION),
                    Condition("created_at", ConditionOp.GTE, CREATED),
                ),
                search="50%_off",
                sort_by="created_at",
                sort_order="asc",
                limit=10,
                offset=20,
            )
        )

        sql, params = conn.execute.call_args[0]
        assert "a.category::text = %s" in sql
        assert "a.created_at >= %s" in sql
        assert "ILIKE %s" in sql
        assert "ORDER BY a.created_at ASC, a.id ASC" in sql
        assert "LIMIT %s OFFSET %s" in sql
        assert "LEFT JOIN users" not in sql
        assert params[0] == "authentication"
        assert params[2] == "%50\\%\\_off%"
        assert params[-2:] == (10, 20)

        assert logs[0].category == ActivityCategory.AUTHENTICATION
        assert logs[0].status == ActivityStatus.FAILURE
        assert logs[0].actor is None

    def test_actor_join(self):
        pool, conn = _mock_pool()
        conn.execute.return_value.fetchall.return_value = [
            _row() + ("ana@example.com", "Ana")
        ]
        repo = PostgresActivityLogRepository(pool=pool)

        logs = repo.query(ActivityQuery(include_actor=True))

        sql, _ = conn.execute.call_args[0]
        assert "LEFT JOIN users u ON u.id = a.actor_id" in sql
        assert logs[0].actor.email == "ana@example.com"

    def test_naive_timestamps_become_utc(self):
        pool, conn = _mock_pool()
        conn.execute.return_value.fetchone.return_value = _row(
            created_at=datetime(2025, 3, 10, 12, 0)
        )
        repo = PostgresActivityLogRepository(pool=pool)

        log = repo.find_by_id(1)

        assert log.created_at.tzinfo == timezone.utc

    def test_find_by_id_missing(self):
        pool, conn = _mock_pool()
        conn.execute.return_value.fetchone.return_value = None

        assert PostgresActivityLogRepository(pool=pool).find_by_id(9) is None

    def test_count(self):
        pool, conn = _mock_pool()
        conn.execute.return_value.fetchone.return_value = (17,)
        repo = PostgresActivityLogRepository(pool=pool)

        total = repo.count(ActivityQuery(sort_by="id", limit=5))

        sql, _ = conn.execute.call_args[0]
        assert sql.startswith("SELECT COUNT(*)")
        assert "LIMIT" not in sql
        assert total == 17

    def test_rejects_unknown_sort(self):
        pool, _ = _mock_pool()
        repo = PostgresActivityLogRepository(pool=pool)

        with pytest.raises(StoreError):
            repo.query(ActivityQuery(sort_by="1; DROP TABLE users"))


@pytest.mark.unit
class TestGroupCount:
    def test_group_by_period_and_field(self):
        pool, conn = _mock_pool()
        conn.execute.return_value.fetchall.return_value = [
            (datetime(2025, 3, 1), "security", 4),
        ]
        repo = PostgresActivityLogRepository(pool=pool)

        rows = repo.group_count(
            ActivityQuery(), group_by=[GroupField.CATEGORY], period=StatisticsPeriod.MONTH
        )

        sql, _ = conn.execute.call_args[0]
        assert "date_trunc('month', a.created_at AT TIME ZONE 'UTC')" in sql
        assert "GROUP BY 1, 2" in sql
        assert rows == [
            {
                "period": datetime(2025, 3, 1, tzinfo=timezone.utc),
                "category": "security",
                "count": 4,
            }
        ]

    def test_group_without_fields(self):
        pool, conn = _mock_pool()
        conn.execute.return_value.fetchall.return_value = [(5,)]
        repo = PostgresActivityLogRepository(pool=pool)

        assert repo.group_count(ActivityQuery(), group_by=[]) == [{"count": 5}]
