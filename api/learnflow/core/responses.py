"""Uniform response envelope and pagination helpers.

Every handler answers with ``{success, data?, message?, pagination?}``.
List operations accept ``page``/``limit`` query parameters and report
``{page, limit, total, total_pages}``.
"""

import math
from collections.abc import Sequence
from typing import Annotated, Generic, TypeVar

from fastapi import Depends, Query
from pydantic import BaseModel, Field

from learnflow.config import get_settings


T = TypeVar("T")


class PaginationMeta(BaseModel):
    """Pagination metadata attached to list responses."""

    page: int
    limit: int
    total: int
    total_pages: int


class ApiResponse(BaseModel, Generic[T]):
    """Response envelope."""

    success: bool = True
    data: T | None = None
    message: str | None = None
    pagination: PaginationMeta | None = None


class PaginationParams(BaseModel):
    """Validated page/limit pair."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def get_pagination(
    page: Annotated[int, Query(ge=1, description="Page number (1-based)")] = 1,
    limit: Annotated[int | None, Query(ge=1, description="Page size")] = None,
) -> PaginationParams:
    """Read pagination query parameters, capping ``limit`` at the configured max."""
    settings = get_settings()
    if limit is None:
        limit = settings.pagination_default_limit
    return PaginationParams(page=page, limit=min(limit, settings.pagination_max_limit))


Pagination = Annotated[PaginationParams, Depends(get_pagination)]


def paginate(items: Sequence[T], params: PaginationParams) -> tuple[list[T], PaginationMeta]:
    """Slice an in-memory result set into one page.

    Cassandra has no OFFSET, so list operations read the partition and page
    it here.
    """
    total = len(items)
    page_items = list(items[params.offset : params.offset + params.limit])
    meta = PaginationMeta(
        page=params.page,
        limit=params.limit,
        total=total,
        total_pages=math.ceil(total / params.limit) if total else 0,
    )
    return page_items, meta


def ok(data: T | None = None, message: str | None = None) -> ApiResponse[T]:
    return ApiResponse(success=True, data=data, message=message)


def paged(items: list[T], meta: PaginationMeta) -> ApiResponse[list[T]]:
    return ApiResponse(success=True, data=items, pagination=meta)
