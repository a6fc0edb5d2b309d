"""
===============================================================================
MÓDULO: Paginación por página/límite
===============================================================================

Objetivo
--------
Metadata de paginación consistente para listados del audit trail:
  page, limit, total, total_pages, has_next, has_previous

Invariante:
  total_pages = ceil(total / limit)
  has_next     = page < total_pages
  has_previous = page > 1
===============================================================================
"""

from __future__ import annotations

import math

from pydantic import BaseModel, Field


class PageInfo(BaseModel):
    page: int = Field(ge=1, description="Página actual (1-based)")
    limit: int = Field(ge=1, description="Items por página")
    total: int = Field(ge=0, description="Total de items que matchean el filtro")
    total_pages: int = Field(ge=0, description="ceil(total / limit)")
    has_next: bool = Field(description="Hay más páginas después de esta")
    has_previous: bool = Field(description="Hay páginas antes de esta")


def build_page_info(*, page: int, limit: int, total: int) -> PageInfo:
    """Arma PageInfo a partir de página, límite y total ya normalizados."""
    page = max(1, int(page))
    limit = max(1, int(limit))
    total = max(0, int(total))

    total_pages = math.ceil(total / limit)
    return PageInfo(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_previous=page > 1,
    )


def page_offset(page: int, limit: int) -> int:
    """Offset SQL-style para una página 1-based."""
    return (max(1, int(page)) - 1) * max(1, int(limit))
