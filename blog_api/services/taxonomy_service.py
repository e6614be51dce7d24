"""
Category / tag normalizer.

Names are matched exactly (case-sensitive).  Each call to
``link_categories`` / ``link_tags`` creates one join row per supplied
name without de-duplicating: attaching the same name twice yields two
join rows pointing at one entity.  Callers that replace a blog's set
use ``replace_categories`` / ``replace_tags``, which clear the existing
join rows first.

Creating a new name schedules the cached listing for invalidation; the
key is dropped by ``get_db`` only after the request transaction commits,
so a concurrent listing cannot re-cache the pre-commit state.
"""
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.cache import CATEGORIES_KEY, TAGS_KEY, cache
from blog_api.config import settings
from blog_api.errors import NotFoundError
from blog_api.models import Blog, Category, CategoryOnBlog, Tag, TagOnBlog

logger = logging.getLogger(__name__)


async def _ensure_blog(db: AsyncSession, blog_id: int) -> None:
    result = await db.execute(select(Blog.id).where(Blog.id == blog_id))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Blog not found")


async def _get_by_name(db: AsyncSession, model, name: str):
    result = await db.execute(select(model).where(model.name == name))
    return result.scalar_one_or_none()


async def _find_or_create(db: AsyncSession, model, name: str):
    """
    Return ``(entity, created)`` for *name*.

    The insert runs in a SAVEPOINT.  When a concurrent request created
    the same name first, the savepoint is rolled back and the winner's
    row is read instead.
    """
    entity = await _get_by_name(db, model, name)
    if entity is not None:
        return entity, False

    entity = model(name=name)
    try:
        async with db.begin_nested():
            db.add(entity)
    except IntegrityError:
        logger.info("%s %r created concurrently, re-reading", model.__name__, name)
        entity = await _get_by_name(db, model, name)
        if entity is None:
            raise
        return entity, False
    return entity, True


async def _link(db: AsyncSession, blog_id: int, names: list[str], model, link_model, fk: str) -> bool:
    if not names:
        return False
    await _ensure_blog(db, blog_id)

    created_any = False
    for name in names:
        entity, created = await _find_or_create(db, model, name)
        created_any = created_any or created
        db.add(link_model(blog_id=blog_id, **{fk: entity.id}))
    await db.flush()
    return created_any


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def link_categories(db: AsyncSession, blog_id: int, names: list[str]) -> None:
    """Find-or-create each category in *names* and link it to the blog."""
    if await _link(db, blog_id, names, Category, CategoryOnBlog, "category_id"):
        cache.schedule_taxonomy_invalidation(db, categories=True)


async def link_tags(db: AsyncSession, blog_id: int, names: list[str]) -> None:
    """Find-or-create each tag in *names* and link it to the blog."""
    if await _link(db, blog_id, names, Tag, TagOnBlog, "tag_id"):
        cache.schedule_taxonomy_invalidation(db, tags=True)


async def replace_categories(db: AsyncSession, blog_id: int, names: list[str]) -> None:
    await db.execute(delete(CategoryOnBlog).where(CategoryOnBlog.blog_id == blog_id))
    await link_categories(db, blog_id, names)


async def replace_tags(db: AsyncSession, blog_id: int, names: list[str]) -> None:
    await db.execute(delete(TagOnBlog).where(TagOnBlog.blog_id == blog_id))
    await link_tags(db, blog_id, names)


async def _list_names(db: AsyncSession, model, cache_key: str) -> list[dict]:
    cached = await cache.get(cache_key)
    if cached is not None:
        return cached

    result = await db.execute(select(model).order_by(model.name))
    items = [{"id": e.id, "name": e.name} for e in result.scalars().all()]
    await cache.set(cache_key, items, ttl=settings.CACHE_TTL_TAXONOMY)
    return items


async def list_categories(db: AsyncSession) -> list[dict]:
    return await _list_names(db, Category, CATEGORIES_KEY)


async def list_tags(db: AsyncSession) -> list[dict]:
    return await _list_names(db, Tag, TAGS_KEY)
