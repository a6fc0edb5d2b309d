"""Recuperación del audit trail: normalización de filtros, queries y servicio."""

from .filters import normalize_filters, parse_date, sanitize_search_term
from .query_builder import (
    apply_pagination,
    build_count_query,
    build_query,
    build_recent_activities_query,
    build_single_activity_query,
)
from .service import ActivityRetrievalService

__all__ = [
    "ActivityRetrievalService",
    "normalize_filters",
    "parse_date",
    "sanitize_search_term",
    "build_query",
    "build_count_query",
    "apply_pagination",
    "build_single_activity_query",
    "build_recent_activities_query",
]
