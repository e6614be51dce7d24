"""
Like / bookmark toggles and view recording.

A (blog, user) pair is ACTIVE while its join row exists.  Each toggle
flips the state and returns the blog's count recomputed after the
mutation, so the figure always matches the committed rows (other users'
concurrent toggles may still land in between).
"""
import logging

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.errors import ConflictError, NotFoundError, UnauthorizedError
from blog_api.models import Blog, BlogBookmark, BlogLike, BlogView
from blog_api.services import blog_formatter

logger = logging.getLogger(__name__)


def interaction_id(blog_id: int, user_id: int) -> str:
    """Composite primary key for like/bookmark rows; one value per pair."""
    return f"{blog_id}-{user_id}"


async def _get_blog(db: AsyncSession, blog_id: int) -> Blog:
    result = await db.execute(select(Blog).where(Blog.id == blog_id))
    blog = result.scalar_one_or_none()
    if blog is None:
        raise NotFoundError("Blog not found")
    return blog


async def _find_interaction(db: AsyncSession, model, blog_id: int, user_id: int):
    result = await db.execute(
        select(model).where(model.blog_id == blog_id, model.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def _has_viewed(db: AsyncSession, blog_id: int, user_id: int) -> bool:
    result = await db.execute(
        select(BlogView.id)
        .where(BlogView.blog_id == blog_id, BlogView.user_id == user_id)
        .limit(1)
    )
    return result.scalar_one_or_none() is not None


async def _toggle(db: AsyncSession, model, blog_id: int, user_id: int | None) -> tuple[bool, int]:
    if user_id is None:
        raise UnauthorizedError("Not authorized")
    await _get_blog(db, blog_id)

    existing = await _find_interaction(db, model, blog_id, user_id)

    if existing is not None:
        await db.delete(existing)
        await db.flush()
        active = False
    else:
        try:
            async with db.begin_nested():
                db.add(model(id=interaction_id(blog_id, user_id), blog_id=blog_id, user_id=user_id))
        except IntegrityError as exc:
            raise ConflictError(f"{model.__name__} toggle already in progress") from exc
        active = True

    count = await blog_formatter.count_rows(db, model, blog_id)
    logger.debug("%s blog=%s user=%s active=%s count=%s", model.__name__, blog_id, user_id, active, count)
    return active, count


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def toggle_like(db: AsyncSession, blog_id: int, user_id: int | None) -> dict:
    liked, like_count = await _toggle(db, BlogLike, blog_id, user_id)
    return {"liked": liked, "like_count": like_count}


async def toggle_bookmark(db: AsyncSession, blog_id: int, user_id: int | None) -> dict:
    bookmarked, bookmark_count = await _toggle(db, BlogBookmark, blog_id, user_id)
    return {"bookmarked": bookmarked, "bookmark_count": bookmark_count}


async def record_view(db: AsyncSession, blog_id: int, user_id: int | None) -> dict:
    """
    Record that *user_id* viewed the blog.

    Repeat views by the same user are not counted twice; the unique
    (blog_id, user_id) index settles two first views racing each other.
    A new view also bumps the denormalized ``Blog.view_count`` column.
    """
    if user_id is None:
        raise UnauthorizedError("Not authorized")
    blog = await _get_blog(db, blog_id)

    recorded = False
    if not await _has_viewed(db, blog_id, user_id):
        try:
            async with db.begin_nested():
                db.add(BlogView(blog_id=blog_id, user_id=user_id))
            recorded = True
        except IntegrityError:
            logger.info("View of blog %s by user %s recorded concurrently", blog_id, user_id)

    if recorded:
        await db.execute(
            update(Blog).where(Blog.id == blog.id).values(view_count=Blog.view_count + 1)
        )

    return {"recorded": recorded, "view_count": await blog_formatter.count_views(db, blog_id)}


async def get_interaction_status(db: AsyncSession, blog_id: int, user_id: int | None) -> dict:
    """Counts plus the caller's like/bookmark flags for one blog."""
    await _get_blog(db, blog_id)
    data = await blog_formatter.get_user_interaction(db, blog_id, user_id)
    data.update(await blog_formatter.get_blog_stats(db, blog_id))
    return data
