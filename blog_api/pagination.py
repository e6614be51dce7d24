"""
Pagination helper shared by every list-returning service.

Pure functions of ``(page, limit, total_count)``; nothing here touches
the database.
"""
import math

from blog_api.config import settings
from blog_api.schemas import PaginationMeta

DEFAULT_PAGE = 1


def resolve_page(page: int | None = None, limit: int | None = None) -> tuple[int, int]:
    """
    Return a usable ``(page, limit)`` pair.

    Missing or non-positive values fall back to page 1 and
    ``settings.DEFAULT_PAGE_SIZE``; *limit* is clamped to
    ``settings.MAX_PAGE_SIZE``.
    """
    if page is None or page < 1:
        page = DEFAULT_PAGE
    if limit is None or limit < 1:
        limit = settings.DEFAULT_PAGE_SIZE
    return page, min(limit, settings.MAX_PAGE_SIZE)


def page_offset(page: int, limit: int) -> int:
    """SQL OFFSET for a 1-based *page*."""
    return (page - 1) * limit


def build_pagination(total_count: int, page: int, limit: int) -> PaginationMeta:
    return PaginationMeta(
        total_count=total_count,
        total_pages=math.ceil(total_count / limit) if total_count > 0 else 0,
        current_page=page,
        limit=limit,
    )
