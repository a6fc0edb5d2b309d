"""Implementaciones del ActivityLogRepository (memoria / PostgreSQL)."""

from .in_memory import InMemoryActivityLogRepository
from .postgres import PostgresActivityLogRepository

__all__ = ["InMemoryActivityLogRepository", "PostgresActivityLogRepository"]
