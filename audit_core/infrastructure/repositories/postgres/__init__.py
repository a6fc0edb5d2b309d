"""
PostgreSQL Repository Implementations.

psycopg + psycopg_pool; SQL compiled from ActivityQuery.
"""

from .activity_log import PostgresActivityLogRepository

__all__ = ["PostgresActivityLogRepository"]
