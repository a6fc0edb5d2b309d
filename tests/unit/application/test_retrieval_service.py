"""
Name: Retrieval Service Tests

Responsibilities:
  - Pagination metadata invariant
  - Input validation messages
  - Store failures become unsuccessful results
"""

from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from audit_core.application.results import ActivityErrorCode
from audit_core.application.retrieval import ActivityRetrievalService
from audit_core.domain import ActivityLogParams, Actor


def _seed(log_service, clock, count=12):
    for i in range(count):
        action = "login_failed" if i % 3 == 0 else "resource_accessed"
        log_service.log_activity(
            ActivityLogParams(
                action=action,
                resource_type="document",
                description=f"event {i}",
                actor_id=1 if i % 2 == 0 else 2,
            )
        )
        clock.advance(minutes=1)


@pytest.mark.unit
class TestPagination:
    @pytest.mark.parametrize("page, limit", [(1, 5), (2, 5), (3, 5), (4, 5), (1, 50)])
    def test_page_info_invariant(self, log_service, retrieval_service, clock, page, limit):
        _seed(log_service, clock)

        result = retrieval_service.get_activity_logs({"page": page, "limit": limit})

        info = result.page_info
        assert result.success is True
        assert info.total == 12
        assert info.total_pages == -(-12 // limit)
        assert info.has_next == (info.page < info.total_pages)
        assert info.has_previous == (info.page > 1)
        assert len(result.activities) == max(0, min(limit, 12 - (page - 1) * limit))

    def test_default_order_is_newest_first(self, log_service, retrieval_service, clock):
        _seed(log_service, clock, count=3)

        result = retrieval_service.get_activity_logs()

        assert [a.id for a in result.activities] == [3, 2, 1]

    def test_filter_and_search(self, log_service, retrieval_service, clock):
        _seed(log_service, clock)

        failed = retrieval_service.get_activity_logs({"status": "failure"})
        searched = retrieval_service.search_activities("EVENT 1")

        assert failed.page_info.total == 4
        assert {a.description for a in searched.activities} == {
            "event 1",
            "event 10",
            "event 11",
        }


@pytest.mark.unit
class TestOperations:
    def test_actor_history(self, log_service, retrieval_service, clock):
        _seed(log_service, clock)

        result = retrieval_service.get_actor_activity_history(2)

        assert result.page_info.total == 6
        assert all(a.actor_id == 2 for a in result.activities)

    def test_actor_history_invalid_id(self, retrieval_service):
        result = retrieval_service.get_actor_activity_history(0)

        assert result.success is False
        assert result.error == "Invalid actor ID provided"
        assert result.error_code == ActivityErrorCode.VALIDATION_ERROR

    def test_get_by_id_with_actor(self, log_service, repository, retrieval_service, clock):
        repository.register_actor(Actor(id=1, email="ana@example.com", name="Ana"))
        _seed(log_service, clock, count=1)

        result = retrieval_service.get_activity_by_id(1)

        assert result.success is True
        assert result.activity.actor.email == "ana@example.com"

    def test_get_by_id_errors(self, retrieval_service):
        assert retrieval_service.get_activity_by_id(-1).error == "Invalid activity ID provided"
        missing = retrieval_service.get_activity_by_id(404)
        assert missing.error == "Activity not found"
        assert missing.error_code == ActivityErrorCode.NOT_FOUND

    def test_search_requires_term(self, retrieval_service):
        assert retrieval_service.search_activities("  ").error == "Search term is required"

    def test_recent(self, log_service, retrieval_service, clock):
        _seed(log_service, clock)

        result = retrieval_service.get_recent_activities()

        assert len(result.activities) == 10
        assert result.activities[0].id == 12

    def test_by_category_and_severity(self, log_service, retrieval_service, clock):
        _seed(log_service, clock)

        auth = retrieval_service.get_activities_by_category("authentication")
        high = retrieval_service.get_activities_by_severity("high")

        assert auth.page_info.total == 4
        assert high.page_info.total == 4
        assert retrieval_service.get_activities_by_category("x").error == (
            "Invalid category provided"
        )
        assert retrieval_service.get_activities_by_severity("x").error == (
            "Invalid severity provided"
        )

    def test_by_date_range(self, log_service, retrieval_service, clock):
        start = clock()
        _seed(log_service, clock)

        result = retrieval_service.get_activities_by_date_range(
            start, start + timedelta(minutes=2)
        )

        assert result.page_info.total == 3
        assert retrieval_service.get_activities_by_date_range(None, start).error == (
            "Date range required"
        )
        assert retrieval_service.get_activities_by_date_range(
            "2025-02-01", "2025-01-01"
        ).error == "Invalid date range"


@pytest.mark.unit
class TestStoreFailures:
    def test_query_failure(self):
        store = MagicMock()
        store.query.side_effect = RuntimeError("db down")

        result = ActivityRetrievalService(store).get_activity_logs()

        assert result.success is False
        assert result.error == "Failed to retrieve activities"
        assert result.error_code == ActivityErrorCode.STORE_ERROR

    def test_lookup_failure(self):
        store = MagicMock()
        store.find_by_id.side_effect = RuntimeError("db down")

        result = ActivityRetrievalService(store).get_activity_by_id(1)

        assert result.error == "Failed to retrieve activity"
