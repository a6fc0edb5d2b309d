"""
============================================================
TARJETA CRC — infrastructure/repositories/postgres/activity_log.py
============================================================
Class: PostgresActivityLogRepository

Responsibilities:
  - Persistir registros de actividad en PostgreSQL (tabla activity_logs).
  - Compilar ActivityQuery a SQL parametrizado (filtros, búsqueda, orden,
    paginación, join opcional con users).
  - Conteos agrupados con date_trunc para estadísticas.

Collaborators:
  - domain.activity (ActivityLogParams, ActivityLog, Actor)
  - domain.queries (ActivityQuery, GroupField, StatisticsPeriod)
  - psycopg.types.json.Json (JSONB hacia PostgreSQL)
  - crosscutting.logger / crosscutting.exceptions.StoreError

Constraints / Notes:
  - Append-only: INSERT y SELECT, nunca UPDATE/DELETE.
  - Nombres de columna SIEMPRE desde whitelist (FILTER_FIELDS / SORT_FIELDS);
    los valores siempre como parámetros.
  - Columnas esperadas: id, created_at, action, resource_type, description,
    category, severity, status, actor_id, session_id, resource_id,
    resource_uuid, old_values, new_values, metadata, ip_address, user_agent.
  - Orden estable: <sort> <dir>, id <dir>.
============================================================
"""

from __future__ import annotations

from datetime import timezone
from typing import Any, Iterable, Optional, Sequence

from psycopg.types.json import Json
from psycopg_pool import ConnectionPool

from ....crosscutting.exceptions import StoreError
from ....crosscutting.logger import logger
from ....domain.activity import (
    Actor,
    ActivityCategory,
    ActivityLog,
    ActivityLogParams,
    ActivitySeverity,
    ActivityStatus,
)
from ....domain.queries import (
    FILTER_FIELDS,
    SEARCH_FIELDS,
    SORT_FIELDS,
    SORT_ORDERS,
    ActivityQuery,
    ConditionOp,
    GroupField,
    StatisticsPeriod,
)

_TABLE = "activity_logs"

_COLUMNS = (
    "id",
    "created_at",
    "action",
    "resource_type",
    "description",
    "category",
    "severity",
    "status",
    "actor_id",
    "session_id",
    "resource_id",
    "resource_uuid",
    "old_values",
    "new_values",
    "metadata",
    "ip_address",
    "user_agent",
)

_OPERATORS = {
    ConditionOp.EQ: "=",
    ConditionOp.GTE: ">=",
    ConditionOp.LTE: "<=",
    ConditionOp.LT: "<",
}

# Columnas enum/inet que se comparan como texto.
_TEXT_CAST = frozenset({"category", "severity", "status", "ip_address"})


def _column(name: str) -> str:
    return f"a.{name}::text" if name in _TEXT_CAST else f"a.{name}"


def _plain(value: Any) -> Any:
    return getattr(value, "value", value)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _aware(value):
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class PostgresActivityLogRepository:
    """Repositorio PostgreSQL para el audit trail (activity_logs)."""

    def __init__(self, pool: ConnectionPool | None = None):
        self._pool = pool

    def _get_pool(self):
        """Obtiene el pool: si no fue inyectado, usa la factory global."""
        if self._pool is not None:
            return self._pool

        from ...db.pool import get_pool

        return get_pool()

    # ------------------------------------------------------------
    # Helpers internos (errores/logging consistentes)
    # ------------------------------------------------------------
    def _fetchall(
        self,
        *,
        query: str,
        params: Iterable[object],
        error_message: str,
        extra: dict[str, object],
    ) -> list[tuple]:
        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                return conn.execute(query, tuple(params)).fetchall()
        except Exception as exc:
            logger.exception(error_message, extra={**extra, "error": str(exc)})
            raise StoreError(f"{error_message}: {exc}", original_error=exc) from exc

    def _fetchone(
        self,
        *,
        query: str,
        params: Iterable[object],
        error_message: str,
        extra: dict[str, object],
    ) -> Optional[tuple]:
        try:
            pool = self._get_pool()
            with pool.connection() as conn:
                return conn.execute(query, tuple(params)).fetchone()
        except Exception as exc:
            logger.exception(error_message, extra={**extra, "error": str(exc)})
            raise StoreError(f"{error_message}: {exc}", original_error=exc) from exc

    # ------------------------------------------------------------
    # Compilación de ActivityQuery
    # ------------------------------------------------------------
    def _where(self, query: ActivityQuery) -> tuple[str, list[object]]:
        clauses: list[str] = []
        params: list[object] = []

        for condition in query.conditions:
            if condition.field not in FILTER_FIELDS:
                raise StoreError(f"Unsupported filter field: {condition.field}")
            clauses.append(f"{_column(condition.field)} {_OPERATORS[condition.op]} %s")
            params.append(_plain(condition.value))

        if query.search:
            pattern = f"%{_escape_like(query.search)}%"
            ors = [f"a.{name}::text ILIKE %s ESCAPE '\\'" for name in SEARCH_FIELDS]
            clauses.append(f"({' OR '.join(ors)})")
            params.extend([pattern] * len(SEARCH_FIELDS))

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        return where, params

    def _select_sql(self, query: ActivityQuery) -> tuple[str, list[object]]:
        where, params = self._where(query)
        columns = ", ".join(f"a.{c}" for c in _COLUMNS)
        join = ""
        if query.include_actor:
            columns += ", u.email, u.name"
            join = "LEFT JOIN users u ON u.id = a.actor_id"

        order = ""
        if query.sort_by:
            if query.sort_by not in SORT_FIELDS or query.sort_order not in SORT_ORDERS:
                raise StoreError(f"Unsupported sort: {query.sort_by} {query.sort_order}")
            direction = query.sort_order.upper()
            order = f"ORDER BY a.{query.sort_by} {direction}, a.id {direction}"

        paging = ""
        if query.limit is not None:
            paging = "LIMIT %s OFFSET %s"
            params = [*params, query.limit, query.offset]
        elif query.offset:
            paging = "OFFSET %s"
            params = [*params, query.offset]

        sql = f"""
            SELECT {columns}
            FROM {_TABLE} a
            {join}
            {where}
            {order}
            {paging}
        """
        return sql, params

    @staticmethod
    def _row_to_log(row: tuple, *, include_actor: bool) -> ActivityLog:
        data = dict(zip(_COLUMNS, row[: len(_COLUMNS)]))
        actor = None
        if include_actor and data["actor_id"] is not None:
            email, name = row[len(_COLUMNS)], row[len(_COLUMNS) + 1]
            if email is not None or name is not None:
                actor = Actor(id=data["actor_id"], email=email, name=name)

        return ActivityLog(
            id=data["id"],
            created_at=_aware(data["created_at"]),
            action=data["action"],
            resource_type=data["resource_type"],
            description=data["description"],
            category=ActivityCategory(data["category"]),
            severity=ActivitySeverity(data["severity"]),
            status=ActivityStatus(data["status"]),
            actor_id=data["actor_id"],
            session_id=data["session_id"],
            resource_id=data["resource_id"],
            resource_uuid=str(data["resource_uuid"]) if data["resource_uuid"] else None,
            old_values=data["old_values"],
            new_values=data["new_values"],
            metadata=data["metadata"] or {},
            ip_address=str(data["ip_address"]) if data["ip_address"] else None,
            user_agent=data["user_agent"],
            actor=actor,
        )

    # ------------------------------------------------------------
    # Escritura (append-only)
    # ------------------------------------------------------------
    def insert(self, params: ActivityLogParams) -> ActivityLog:
        """Inserta un registro ya categorizado; id/created_at los asigna la DB."""
        if params.category is None or params.severity is None or params.status is None:
            raise StoreError("Activity must be categorized before insert")

        category = ActivityCategory(params.category)
        severity = ActivitySeverity(params.severity)
        status = ActivityStatus(params.status)

        row = self._fetchone(
            query=f"""
                INSERT INTO {_TABLE} (
                    action, resource_type, description, category, severity, status,
                    actor_id, session_id, resource_id, resource_uuid,
                    old_values, new_values, metadata, ip_address, user_agent
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING id, created_at
            """,
            params=(
                params.action,
                params.resource_type,
                params.description,
                category.value,
                severity.value,
                status.value,
                params.actor_id,
                params.session_id,
                params.resource_id,
                params.resource_uuid,
                Json(params.old_values) if params.old_values is not None else None,
                Json(params.new_values) if params.new_values is not None else None,
                Json(params.metadata or {}),
                params.ip_address,
                params.user_agent,
            ),
            error_message="PostgresActivityLogRepository: Failed to insert activity",
            extra={"action": params.action, "actor_id": params.actor_id},
        )
        if row is None:
            raise StoreError("PostgresActivityLogRepository: INSERT returned no row")

        activity_id, created_at = row
        return ActivityLog(
            id=activity_id,
            created_at=_aware(created_at),
            action=params.action,
            resource_type=params.resource_type,
            description=params.description,
            category=category,
            severity=severity,
            status=status,
            actor_id=params.actor_id,
            session_id=params.session_id,
            resource_id=params.resource_id,
            resource_uuid=params.resource_uuid,
            old_values=params.old_values,
            new_values=params.new_values,
            metadata=params.metadata or {},
            ip_address=params.ip_address,
            user_agent=params.user_agent,
        )

    # ------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------
    def query(self, query: ActivityQuery) -> list[ActivityLog]:
        sql, params = self._select_sql(query)
        rows = self._fetchall(
            query=sql,
            params=params,
            error_message="PostgresActivityLogRepository: Failed to query activities",
            extra={"conditions": len(query.conditions), "limit": query.limit},
        )
        return [self._row_to_log(row, include_actor=query.include_actor) for row in rows]

    def count(self, query: ActivityQuery) -> int:
        where, params = self._where(query)
        row = self._fetchone(
            query=f"SELECT COUNT(*) FROM {_TABLE} a {where}",
            params=params,
            error_message="PostgresActivityLogRepository: Failed to count activities",
            extra={"conditions": len(query.conditions)},
        )
        return int(row[0]) if row else 0

    def find_by_id(
        self, activity_id: int, *, include_actor: bool = False
    ) -> Optional[ActivityLog]:
        columns = ", ".join(f"a.{c}" for c in _COLUMNS)
        join = ""
        if include_actor:
            columns += ", u.email, u.name"
            join = "LEFT JOIN users u ON u.id = a.actor_id"

        row = self._fetchone(
            query=f"SELECT {columns} FROM {_TABLE} a {join} WHERE a.id = %s",
            params=(activity_id,),
            error_message="PostgresActivityLogRepository: Failed to fetch activity",
            extra={"activity_id": activity_id},
        )
        if row is None:
            return None
        return self._row_to_log(row, include_actor=include_actor)

    def group_count(
        self,
        query: ActivityQuery,
        *,
        group_by: Sequence[GroupField],
        period: Optional[StatisticsPeriod] = None,
    ) -> list[dict]:
        where, params = self._where(query)

        selects: list[str] = []
        keys: list[str] = []
        if period is not None:
            trunc = StatisticsPeriod(period).value
            selects.append(f"date_trunc('{trunc}', a.created_at AT TIME ZONE 'UTC')")
            keys.append("period")
        for raw in group_by:
            field = GroupField(raw)
            selects.append(_column(field.value))
            keys.append(field.value)

        positions = ", ".join(str(i + 1) for i in range(len(selects)))
        group_clause = f"GROUP BY {positions}" if selects else ""
        order_clause = f"ORDER BY {positions}" if selects else ""
        select_list = ", ".join([*selects, "COUNT(*)"])

        rows = self._fetchall(
            query=f"""
                SELECT {select_list}
                FROM {_TABLE} a
                {where}
                {group_clause}
                {order_clause}
            """,
            params=params,
            error_message="PostgresActivityLogRepository: Failed to group activities",
            extra={
                "group_by": [GroupField(g).value for g in group_by],
                "period": _plain(period),
            },
        )

        result: list[dict] = []
        for row in rows:
            item = dict(zip(keys, row[:-1]))
            if "period" in item:
                item["period"] = _aware(item["period"])
            item["count"] = int(row[-1])
            result.append(item)
        return result
