from fastapi import Depends, Query, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.config import settings
from blog_api.database import get_db
from blog_api.errors import UnauthorizedError
from blog_api.models import User
from blog_api.pagination import page_offset, resolve_page


class PaginationParams:
    """
    Reusable FastAPI dependency that parses pagination / sorting query
    parameters.

    Attributes
    ----------
    page:
        1-based page number.
    limit:
        Number of items per page, clamped to ``settings.MAX_PAGE_SIZE``
        regardless of the value supplied by the caller.
    sort_by:
        Sort key.  The service layer maps it onto a whitelisted column
        and falls back to the publish date.
    sort_order:
        ``"asc"`` or ``"desc"`` (enforced by the regex pattern).
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)."),
        limit: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            description="Number of items returned per page.",
        ),
        sort_by: str = Query("date", description="Field to sort results by."),
        sort_order: str = Query(
            "desc",
            pattern="^(asc|desc)$",
            description="Sort direction: 'asc' or 'desc'.",
        ),
    ) -> None:
        self.page, self.limit = resolve_page(page, limit)
        self.sort_by = sort_by
        self.sort_order = sort_order

    @property
    def offset(self) -> int:
        """SQL OFFSET value computed from the current page and limit."""
        return page_offset(self.page, self.limit)


def _read_user_id(request: Request) -> int | None:
    raw = request.headers.get(settings.USER_ID_HEADER)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


async def get_optional_user_id(request: Request) -> int | None:
    """
    Caller id forwarded by the auth gateway, or None for anonymous reads.

    Not checked against the users table: an unknown id simply yields
    ``liked``/``bookmarked`` flags of False.
    """
    return _read_user_id(request)


async def get_current_user_id(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> int:
    """Caller id for mutating endpoints; the user must exist."""
    user_id = _read_user_id(request)
    if user_id is None:
        raise UnauthorizedError("Not authorized")
    result = await db.execute(select(User.id).where(User.id == user_id))
    if result.scalar_one_or_none() is None:
        raise UnauthorizedError("User not found")
    return user_id
