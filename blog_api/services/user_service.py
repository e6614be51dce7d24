"""
User service: accounts, public profiles and follow relations.

Credentials live with the upstream identity provider; this service only
stores the profile fields the blog needs.
"""
import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.errors import ConflictError, NotFoundError, UnauthorizedError, ValidationFailure
from blog_api.models import Blog, Follow, User
from blog_api.pagination import build_pagination, page_offset, resolve_page
from blog_api.schemas import UserCreate
from blog_api.services import blog_service

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Serialisation helpers
# ---------------------------------------------------------------------------

def _user_to_dict(user: User) -> dict:
    """Serialise a User ORM instance to a plain dict (list view)."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "name": user.name,
        "bio": user.bio,
        "avatar": user.avatar,
        "created_at": user.created_at.isoformat() if user.created_at else None,
    }


async def _get_user(db: AsyncSession, *criteria) -> User:
    result = await db.execute(select(User).where(*criteria))
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")
    return user


async def _count_follows(db: AsyncSession, column, user_id: int) -> int:
    q = select(func.count()).select_from(Follow).where(column == user_id)
    return (await db.execute(q)).scalar_one()


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create_user(db: AsyncSession, data: UserCreate) -> dict:
    """
    Create a new user and return its serialised dict.

    Username and email uniqueness is enforced by the database; a
    violation is reported as ``ConflictError``.
    """
    user = User(
        username=data.username,
        email=data.email,
        name=data.name or data.username,
        bio=data.bio,
        avatar=data.avatar,
    )
    try:
        async with db.begin_nested():
            db.add(user)
    except IntegrityError as exc:
        raise ConflictError("A user with this username or email already exists") from exc
    logger.info("User %s created (%s)", user.id, user.username)
    return _user_to_dict(user)


async def list_users(db: AsyncSession, page: int | None = None, limit: int | None = None) -> dict:
    page, limit = resolve_page(page, limit)
    total: int = (await db.execute(select(func.count()).select_from(User))).scalar_one()
    q = (
        select(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    users = (await db.execute(q)).scalars().all()
    return {
        "users": [_user_to_dict(u) for u in users],
        "pagination": build_pagination(total, page, limit).model_dump(),
    }


async def _profile(
    db: AsyncSession, user: User, viewer_id: int | None, page: int | None, limit: int | None
) -> dict:
    total_views = (
        await db.execute(
            select(func.coalesce(func.sum(Blog.view_count), 0)).where(Blog.author_id == user.id)
        )
    ).scalar_one()

    data = _user_to_dict(user)
    data["follower_count"] = await _count_follows(db, Follow.following_id, user.id)
    data["following_count"] = await _count_follows(db, Follow.follower_id, user.id)
    data["total_views"] = int(total_views)

    blogs = await blog_service.paginate_blogs(
        db, [Blog.author_id == user.id], page, limit, viewer_id
    )
    data["blog_count"] = blogs["pagination"]["total_count"]
    data["blogs"] = blogs
    return data


async def get_user_profile(
    db: AsyncSession,
    user_id: int,
    viewer_id: int | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> dict:
    """
    Public profile: follow counts, blog count, total views and one page
    of the user's formatted blogs.
    """
    user = await _get_user(db, User.id == user_id)
    return await _profile(db, user, viewer_id, page, limit)


async def get_user_profile_by_username(
    db: AsyncSession,
    username: str,
    viewer_id: int | None = None,
    page: int | None = None,
    limit: int | None = None,
) -> dict:
    user = await _get_user(db, User.username == username)
    return await _profile(db, user, viewer_id, page, limit)


async def follow_user(db: AsyncSession, follower_id: int | None, user_id: int) -> dict:
    if follower_id is None:
        raise UnauthorizedError("Not authorized")
    if follower_id == user_id:
        raise ValidationFailure("Cannot follow yourself")
    await _get_user(db, User.id == user_id)

    existing = await db.get(Follow, (follower_id, user_id))
    if existing is not None:
        raise ConflictError("Already following this user")
    try:
        async with db.begin_nested():
            db.add(Follow(follower_id=follower_id, following_id=user_id))
    except IntegrityError as exc:
        raise ConflictError("Already following this user") from exc

    return {
        "is_following": True,
        "follower_count": await _count_follows(db, Follow.following_id, user_id),
    }


async def unfollow_user(db: AsyncSession, follower_id: int | None, user_id: int) -> dict:
    if follower_id is None:
        raise UnauthorizedError("Not authorized")
    follow = await db.get(Follow, (follower_id, user_id))
    if follow is None:
        raise NotFoundError("Not following this user")
    await db.delete(follow)
    await db.flush()

    return {
        "is_following": False,
        "follower_count": await _count_follows(db, Follow.following_id, user_id),
    }


async def get_follow_status(db: AsyncSession, follower_id: int | None, user_id: int) -> dict:
    if follower_id is None:
        raise UnauthorizedError("Not authorized")
    if follower_id == user_id:
        raise ValidationFailure("Cannot check follow status for yourself")
    follow = await db.get(Follow, (follower_id, user_id))
    return {"is_following": follow is not None}
