# =============================================================================
# FILE: infrastructure/repositories/in_memory/activity_log.py
# =============================================================================
"""
In-Memory Activity Log Repository for testing and development.

NOT FOR PRODUCTION USE - data is lost on restart.

Executes ActivityQuery with the same semantics as the Postgres store:
AND of conditions, case-insensitive OR search, stable ordering (id as
tie-break), offset/limit pagination, optional actor join.
"""

from __future__ import annotations

import copy
import threading
from dataclasses import replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from ....domain.activity import Actor, ActivityLog, ActivityLogParams
from ....domain.queries import (
    SEARCH_FIELDS,
    ActivityQuery,
    Condition,
    ConditionOp,
    GroupField,
    StatisticsPeriod,
)
from ....domain.repositories import period_start


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _condition_holds(record: ActivityLog, condition: Condition) -> bool:
    actual = _plain(getattr(record, condition.field))
    expected = _plain(condition.value)
    if condition.op == ConditionOp.EQ:
        return actual == expected
    if actual is None:
        return False
    if condition.op == ConditionOp.GTE:
        return actual >= expected
    if condition.op == ConditionOp.LTE:
        return actual <= expected
    return actual < expected


class InMemoryActivityLogRepository:
    """
    In-memory implementation of ActivityLogRepository.

    Useful for:
      - Unit testing
      - Local development without database
      - Embedding the audit core in a single process
    """

    def __init__(self, *, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._lock = threading.Lock()
        self._records: Dict[int, ActivityLog] = {}  # id -> record
        self._actors: Dict[int, Actor] = {}
        self._next_id = 1
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    # -------------------------------------------------------------------------
    # Escritura (append-only)
    # -------------------------------------------------------------------------
    def insert(self, params: ActivityLogParams) -> ActivityLog:
        """Persist a categorized record; id and created_at are assigned here."""
        if params.category is None or params.severity is None or params.status is None:
            raise ValueError("Activity must be categorized before insert")

        with self._lock:
            record = ActivityLog(
                id=self._next_id,
                created_at=self._clock(),
                action=params.action,
                resource_type=params.resource_type,
                description=params.description,
                category=params.category,
                severity=params.severity,
                status=params.status,
                actor_id=params.actor_id,
                session_id=params.session_id,
                resource_id=params.resource_id,
                resource_uuid=params.resource_uuid,
                old_values=copy.deepcopy(params.old_values),
                new_values=copy.deepcopy(params.new_values),
                metadata=copy.deepcopy(params.metadata) or {},
                ip_address=params.ip_address,
                user_agent=params.user_agent,
            )
            self._records[record.id] = record
            self._next_id += 1
        return record

    def register_actor(self, actor: Actor) -> None:
        """Make an actor available to the optional join."""
        with self._lock:
            self._actors[actor.id] = actor

    # -------------------------------------------------------------------------
    # Lectura
    # -------------------------------------------------------------------------
    def _snapshot(self) -> List[ActivityLog]:
        with self._lock:
            return list(self._records.values())

    def _matches(self, record: ActivityLog, query: ActivityQuery) -> bool:
        if not all(_condition_holds(record, c) for c in query.conditions):
            return False
        if query.search:
            needle = query.search.lower()
            return any(
                needle in str(_plain(getattr(record, name)) or "").lower()
                for name in SEARCH_FIELDS
            )
        return True

    def _with_actor(self, record: ActivityLog) -> ActivityLog:
        if record.actor_id is None:
            return record
        actor = self._actors.get(record.actor_id)
        if actor is None:
            return record
        return replace(record, actor=actor)

    def query(self, query: ActivityQuery) -> List[ActivityLog]:
        results = [r for r in self._snapshot() if self._matches(r, query)]

        if query.sort_by:
            reverse = query.sort_order == "desc"
            sort_by = query.sort_by
            results.sort(
                key=lambda r: (_plain(getattr(r, sort_by)), r.id), reverse=reverse
            )
        else:
            results.sort(key=lambda r: r.id)

        end = None if query.limit is None else query.offset + query.limit
        page = results[query.offset : end]

        if query.include_actor:
            page = [self._with_actor(r) for r in page]
        return page

    def count(self, query: ActivityQuery) -> int:
        return sum(1 for r in self._snapshot() if self._matches(r, query))

    def find_by_id(
        self, activity_id: int, *, include_actor: bool = False
    ) -> Optional[ActivityLog]:
        with self._lock:
            record = self._records.get(activity_id)
        if record is None:
            return None
        return self._with_actor(record) if include_actor else record

    def group_count(
        self,
        query: ActivityQuery,
        *,
        group_by: Sequence[GroupField],
        period: Optional[StatisticsPeriod] = None,
    ) -> List[dict]:
        counts: Dict[tuple, int] = {}
        for record in self._snapshot():
            if not self._matches(record, query):
                continue
            key = tuple(_plain(getattr(record, g.value)) for g in group_by)
            if period is not None:
                key = (period_start(record.created_at, period),) + key
            counts[key] = counts.get(key, 0) + 1

        rows: List[dict] = []
        for key in sorted(counts, key=lambda k: tuple((v is None, v) for v in k)):
            values = list(key)
            row: dict = {}
            if period is not None:
                row["period"] = values.pop(0)
            for g, value in zip(group_by, values):
                row[g.value] = value
            row["count"] = counts[key]
            rows.append(row)
        return rows

    # -------------------------------------------------------------------------
    # Testing helpers
    # -------------------------------------------------------------------------
    def clear(self) -> None:
        """Clear all data (for testing)."""
        with self._lock:
            self._records.clear()
            self._actors.clear()
            self._next_id = 1

    def get_all_records(self) -> List[ActivityLog]:
        """Get all records in insertion order (for testing)."""
        return sorted(self._snapshot(), key=lambda r: r.id)
