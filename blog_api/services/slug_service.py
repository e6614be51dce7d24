"""
Slug generation for blog posts.

``generate_unique_slug`` is a check-then-use helper: two requests may
pick the same candidate at the same instant.  The unique index on
``blogs.slug`` is the authority, and ``blog_service`` regenerates the
slug when its insert hits a uniqueness violation.
"""
import re
import unicodedata

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.models import Blog

_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SPACE_RE = re.compile(r"[\s_]+")
_SLUG_DASH_RE = re.compile(r"-+")

FALLBACK_SLUG = "blog"


def slugify(text: str) -> str:
    """Return a lowercase, URL-safe ASCII slug derived from *text*."""
    text = unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    text = _SLUG_STRIP_RE.sub("", text.lower().strip())
    text = _SLUG_SPACE_RE.sub("-", text)
    return _SLUG_DASH_RE.sub("-", text).strip("-") or FALLBACK_SLUG


async def slug_taken(db: AsyncSession, slug: str, exclude_id: int | None = None) -> bool:
    q = select(Blog.id).where(Blog.slug == slug)
    if exclude_id is not None:
        q = q.where(Blog.id != exclude_id)
    result = await db.execute(q.limit(1))
    return result.scalar_one_or_none() is not None


async def generate_unique_slug(
    db: AsyncSession, title: str, exclude_id: int | None = None
) -> str:
    """
    Return the first free slug among ``base``, ``base-1``, ``base-2``, …

    *exclude_id* lets an updated blog keep its own slug.
    """
    base = slugify(title)
    slug = base
    counter = 1
    while await slug_taken(db, slug, exclude_id):
        slug = f"{base}-{counter}"
        counter += 1
    return slug
