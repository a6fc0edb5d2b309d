"""
CRC — domain/repositories.py

Name
- Activity Log Store Interface (Protocol)

Responsibilities
- Define the narrow persistence contract the audit core depends on:
  insert / query / count / grouping / lookup-by-id.
- Keep application services independent from the storage engine.

Collaborators
- domain.activity: ActivityLogParams, ActivityLog
- domain.queries: ActivityQuery, GroupField, StatisticsPeriod
- infrastructure.repositories: in_memory and postgres implementations

Constraints
- Append-only: there is no update or delete method.
- Implementations raise crosscutting.exceptions.StoreError on failure.
- Pure interfaces only: no side effects, no SQL.
"""

from datetime import datetime, timedelta
from typing import Any, Optional, Protocol, Sequence

from .activity import ActivityLog, ActivityLogParams
from .queries import ActivityQuery, GroupField, StatisticsPeriod


class ActivityLogRepository(Protocol):
    """R: Interface for activity log persistence."""

    def insert(self, params: ActivityLogParams) -> ActivityLog:
        """
        R: Persist a fully categorized record.

        The store assigns id and created_at.
        """
        ...

    def query(self, query: ActivityQuery) -> list[ActivityLog]:
        """R: Run an ActivityQuery (filters, search, sort, pagination, actor join)."""
        ...

    def count(self, query: ActivityQuery) -> int:
        """R: Count records matching an ActivityQuery (sort/pagination ignored)."""
        ...

    def find_by_id(
        self, activity_id: int, *, include_actor: bool = False
    ) -> Optional[ActivityLog]:
        """R: Fetch a single record or None."""
        ...

    def group_count(
        self,
        query: ActivityQuery,
        *,
        group_by: Sequence[GroupField],
        period: Optional[StatisticsPeriod] = None,
    ) -> list[dict[str, Any]]:
        """
        R: Grouped counts.

        Each row has one key per group field, "period" (period start as
        datetime) when a period is given, and "count". Rows are ordered by
        period, then by the group fields.
        """
        ...


def period_start(value: datetime, period: StatisticsPeriod) -> datetime:
    """
    R: Truncate a timestamp to the start of its period (date_trunc semantics).

    Weeks start on Monday.
    """
    base = value.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == StatisticsPeriod.DAY:
        return base
    if period == StatisticsPeriod.WEEK:
        return base - timedelta(days=base.weekday())
    if period == StatisticsPeriod.MONTH:
        return base.replace(day=1)
    return base.replace(month=1, day=1)
