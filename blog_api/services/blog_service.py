"""
Blog service: business logic for the Blog aggregate.

Design notes
------------
- Every response goes through ``blog_formatter.format_blog`` so detail,
  list and mutation payloads share one shape.
- Mutations run inside the request transaction owned by ``get_db``:
  the field update, slug change and category/tag replacement of an
  update, or the cascade of a delete, commit together.
- Service functions flush but do not commit.
- Failures are raised as ``blog_api.errors`` exceptions; nothing here
  returns None for "not found".
"""
import logging

from sqlalchemy import asc, delete, desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.config import settings
from blog_api.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationFailure,
)
from blog_api.models import (
    Blog,
    BlogBookmark,
    BlogLike,
    BlogView,
    Category,
    CategoryOnBlog,
    Comment,
    Tag,
    TagOnBlog,
)
from blog_api.pagination import build_pagination, page_offset, resolve_page
from blog_api.schemas import BlogCreate, BlogUpdate, parse_name_list
from blog_api.services import taxonomy_service
from blog_api.services.blog_formatter import blog_load_options, format_blog, format_blogs
from blog_api.services.slug_service import generate_unique_slug, slug_taken

logger = logging.getLogger(__name__)

WORDS_PER_MINUTE = 200

# Sort keys accepted from callers; guards against arbitrary attribute access.
_SORTABLE_COLUMNS: frozenset[str] = frozenset({"date", "created_at", "view_count", "title"})


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def estimate_reading_time(content: str) -> int:
    """Minutes needed to read *content* at 200 words per minute (minimum 1)."""
    return max(1, round(len(content.split()) / WORDS_PER_MINUTE))


def _order_by(sort_by: str, sort_order: str) -> tuple:
    column = getattr(Blog, sort_by) if sort_by in _SORTABLE_COLUMNS else Blog.date
    direction = asc if sort_order == "asc" else desc
    return direction(column), direction(Blog.id)


async def _load_blog(db: AsyncSession, *criteria) -> Blog | None:
    q = (
        select(Blog)
        .where(*criteria)
        .options(*blog_load_options())
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.unique().scalar_one_or_none()


async def _get_owned_blog(db: AsyncSession, blog_id: int, user_id: int | None) -> Blog:
    if user_id is None:
        raise UnauthorizedError("Not authorized")
    result = await db.execute(select(Blog).where(Blog.id == blog_id))
    blog = result.scalar_one_or_none()
    if blog is None:
        raise NotFoundError("Blog not found")
    if blog.author_id != user_id:
        raise ForbiddenError("Not authorized to modify this blog")
    return blog


async def paginate_blogs(
    db: AsyncSession,
    criteria: list,
    page: int | None,
    limit: int | None,
    user_id: int | None,
    order_by: tuple | None = None,
) -> dict:
    """
    Count and fetch one page of blogs matching *criteria*.

    Two statements plus the formatter's per-blog counts: COUNT, then
    SELECT with LIMIT/OFFSET and eager-loaded relations.
    """
    page, limit = resolve_page(page, limit)
    count_q = select(func.count()).select_from(Blog).where(*criteria)
    total: int = (await db.execute(count_q)).scalar_one()

    q = (
        select(Blog)
        .where(*criteria)
        .options(*blog_load_options())
        .order_by(*(order_by or _order_by("date", "desc")))
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    blogs = (await db.execute(q)).unique().scalars().all()
    return {
        "blogs": await format_blogs(db, blogs, user_id),
        "pagination": build_pagination(total, page, limit).model_dump(),
    }


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

async def get_blog_by_id(db: AsyncSession, blog_id: int, user_id: int | None = None) -> dict:
    blog = await _load_blog(db, Blog.id == blog_id)
    if blog is None:
        raise NotFoundError("Blog not found")
    return await format_blog(db, blog, user_id)


async def get_blog_by_slug(db: AsyncSession, slug: str, user_id: int | None = None) -> dict:
    blog = await _load_blog(db, Blog.slug == slug)
    if blog is None:
        raise NotFoundError("Blog not found")
    return await format_blog(db, blog, user_id)


async def list_blogs(
    db: AsyncSession,
    page: int | None = None,
    limit: int | None = None,
    sort_by: str = "date",
    sort_order: str = "desc",
    user_id: int | None = None,
) -> dict:
    return await paginate_blogs(db, [], page, limit, user_id, _order_by(sort_by, sort_order))


async def search_blogs(
    db: AsyncSession,
    query: str,
    page: int | None = None,
    limit: int | None = None,
    user_id: int | None = None,
) -> dict:
    """Case-insensitive substring search over title, description and content."""
    query = (query or "").strip()
    if not query:
        raise ValidationFailure("Search query is required")
    pattern = f"%{query}%"
    criteria = [
        or_(
            Blog.title.ilike(pattern),
            Blog.description.ilike(pattern),
            Blog.content.ilike(pattern),
        )
    ]
    data = await paginate_blogs(db, criteria, page, limit, user_id)
    data["query"] = query
    return data


async def list_blogs_by_category(
    db: AsyncSession,
    category: str,
    page: int | None = None,
    limit: int | None = None,
    user_id: int | None = None,
) -> dict:
    """Blogs linked to *category*, matched case-insensitively."""
    result = await db.execute(
        select(Category)
        .where(func.lower(Category.name) == category.strip().lower())
        .order_by(Category.id)
        .limit(1)
    )
    entity = result.scalar_one_or_none()
    if entity is None:
        raise NotFoundError("Category not found")

    linked = select(CategoryOnBlog.blog_id).where(CategoryOnBlog.category_id == entity.id)
    data = await paginate_blogs(db, [Blog.id.in_(linked)], page, limit, user_id)
    return {"category": entity.name, **data}


async def list_blogs_by_tags(
    db: AsyncSession,
    tags,
    page: int | None = None,
    limit: int | None = None,
    user_id: int | None = None,
) -> dict:
    """Blogs carrying any of *tags* (comma-separated string or list)."""
    names = parse_name_list(tags)
    if not names:
        raise ValidationFailure("Tags are required")

    result = await db.execute(select(Tag.id).where(Tag.name.in_(names)))
    tag_ids = result.scalars().all()
    if not tag_ids:
        raise NotFoundError("Tags not found")

    linked = select(TagOnBlog.blog_id).where(TagOnBlog.tag_id.in_(tag_ids))
    return await paginate_blogs(db, [Blog.id.in_(linked)], page, limit, user_id)


async def list_featured_blogs(
    db: AsyncSession, limit: int | None = None, user_id: int | None = None
) -> list[dict]:
    if limit is None or limit < 1:
        limit = settings.FEATURED_LIMIT
    q = (
        select(Blog)
        .where(Blog.featured.is_(True))
        .options(*blog_load_options())
        .order_by(*_order_by("date", "desc"))
        .limit(min(limit, settings.MAX_PAGE_SIZE))
    )
    blogs = (await db.execute(q)).unique().scalars().all()
    return await format_blogs(db, blogs, user_id)


async def list_user_blogs(
    db: AsyncSession, user_id: int, page: int | None = None, limit: int | None = None
) -> dict:
    return await paginate_blogs(db, [Blog.author_id == user_id], page, limit, user_id)


async def list_user_bookmarks(
    db: AsyncSession, user_id: int, page: int | None = None, limit: int | None = None
) -> dict:
    """Blogs bookmarked by *user_id*, most recently bookmarked first."""
    page, limit = resolve_page(page, limit)
    count_q = select(func.count()).select_from(BlogBookmark).where(BlogBookmark.user_id == user_id)
    total: int = (await db.execute(count_q)).scalar_one()

    q = (
        select(Blog)
        .join(BlogBookmark, BlogBookmark.blog_id == Blog.id)
        .where(BlogBookmark.user_id == user_id)
        .options(*blog_load_options())
        .order_by(desc(BlogBookmark.created_at), desc(Blog.id))
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    blogs = (await db.execute(q)).unique().scalars().all()
    return {
        "bookmarks": await format_blogs(db, blogs, user_id),
        "pagination": build_pagination(total, page, limit).model_dump(),
    }


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

async def create_blog(db: AsyncSession, author_id: int | None, data: BlogCreate) -> dict:
    """
    Create a blog authored by *author_id* and return it formatted.

    The slug is checked before insert; if another request takes it in
    between, the insert's uniqueness violation triggers a fresh slug.
    """
    if author_id is None:
        raise UnauthorizedError("Not authorized")

    reading_time = data.reading_time or estimate_reading_time(data.content)
    for _ in range(settings.SLUG_MAX_ATTEMPTS):
        slug = await generate_unique_slug(db, data.title)
        blog = Blog(
            title=data.title,
            slug=slug,
            description=data.description,
            content=data.content,
            image=data.image,
            reading_time=reading_time,
            featured=data.featured,
            author_id=author_id,
        )
        try:
            async with db.begin_nested():
                db.add(blog)
        except IntegrityError:
            if not await slug_taken(db, slug):
                raise
            logger.info("Slug %r taken concurrently, regenerating", slug)
            continue
        break
    else:
        raise ConflictError("A blog with this title is being created concurrently")

    await taxonomy_service.link_categories(db, blog.id, data.categories)
    await taxonomy_service.link_tags(db, blog.id, data.tags)
    logger.info("Blog %s created by user %s with slug %r", blog.id, author_id, blog.slug)
    return await get_blog_by_id(db, blog.id, author_id)


async def update_blog(
    db: AsyncSession, blog_id: int, user_id: int | None, data: BlogUpdate
) -> dict:
    """
    Apply the fields present in *data* to the caller's blog.

    The slug is re-derived only when the title actually changes.  If
    another writer claims the new slug first, ConflictError is raised
    and the blog keeps its previous values.
    """
    blog = await _get_owned_blog(db, blog_id, user_id)

    changes = data.model_dump(exclude_unset=True)
    categories: list[str] | None = changes.pop("categories", None)
    tags: list[str] | None = changes.pop("tags", None)

    title = changes.get("title")
    new_slug = None
    if title is not None and title != blog.title:
        new_slug = await generate_unique_slug(db, title, exclude_id=blog.id)

    try:
        async with db.begin_nested():
            if new_slug is not None:
                blog.slug = new_slug
            for field, value in changes.items():
                if value is not None:
                    setattr(blog, field, value)
    except IntegrityError as exc:
        logger.info("Slug %r taken concurrently while updating blog %s", new_slug, blog_id)
        raise ConflictError("A blog with this slug already exists") from exc

    if categories is not None:
        await taxonomy_service.replace_categories(db, blog_id, categories)
    if tags is not None:
        await taxonomy_service.replace_tags(db, blog_id, tags)

    logger.info("Blog %s updated by user %s", blog_id, user_id)
    return await get_blog_by_id(db, blog_id, user_id)


async def delete_blog(db: AsyncSession, blog_id: int, user_id: int | None) -> dict:
    """Delete the caller's blog together with every row that references it."""
    blog = await _get_owned_blog(db, blog_id, user_id)

    for model in (CategoryOnBlog, TagOnBlog, Comment, BlogView, BlogLike, BlogBookmark):
        await db.execute(delete(model).where(model.blog_id == blog_id))
    await db.execute(delete(Blog).where(Blog.id == blog.id))
    await db.flush()

    logger.info("Blog %s deleted by user %s", blog_id, user_id)
    return {"deleted_blog_id": blog_id}
