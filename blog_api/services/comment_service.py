"""
Comment service: threaded comments on a blog.

Comments form a tree through ``parent_id`` but only one level of
replies is rendered: top-level comments are paginated and each carries
its direct replies.  Editing and deleting are restricted to the
comment's author.
"""
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import joinedload, selectinload

from blog_api.errors import ForbiddenError, NotFoundError, UnauthorizedError
from blog_api.models import Blog, Comment
from blog_api.pagination import build_pagination, page_offset, resolve_page
from blog_api.schemas import CommentCreate, CommentUpdate


def _serialize_comment_author(author) -> dict | None:
    if author is None:
        return None
    return {
        "id": author.id,
        "name": author.name,
        "username": author.username,
        "avatar": author.avatar,
    }


def _comment_to_dict(comment: Comment, replies: list | None = None) -> dict:
    data = {
        "id": comment.id,
        "content": comment.content,
        "blog_id": comment.blog_id,
        "author_id": comment.author_id,
        "parent_id": comment.parent_id,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
        "updated_at": comment.updated_at.isoformat() if comment.updated_at else None,
        "author": _serialize_comment_author(comment.author),
    }
    if replies is not None:
        data["replies"] = [_comment_to_dict(r) for r in replies]
    return data


async def _load_comment(db: AsyncSession, comment_id: int) -> Comment | None:
    q = (
        select(Comment)
        .where(Comment.id == comment_id)
        .options(joinedload(Comment.author))
        .execution_options(populate_existing=True)
    )
    return (await db.execute(q)).unique().scalar_one_or_none()


async def _get_own_comment(db: AsyncSession, comment_id: int, user_id: int | None) -> Comment:
    if user_id is None:
        raise UnauthorizedError("Not authorized")
    comment = await _load_comment(db, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    if comment.author_id != user_id:
        raise ForbiddenError("Not authorized to modify this comment")
    return comment


async def create_comment(
    db: AsyncSession, blog_id: int, author_id: int | None, data: CommentCreate
) -> dict:
    """
    Add a comment (or a reply when ``parent_id`` is set) to a blog.

    The parent must be a comment on the same blog.
    """
    if author_id is None:
        raise UnauthorizedError("Not authorized")
    blog = (await db.execute(select(Blog.id).where(Blog.id == blog_id))).scalar_one_or_none()
    if blog is None:
        raise NotFoundError("Blog not found")

    if data.parent_id is not None:
        parent = await db.execute(
            select(Comment.id).where(Comment.id == data.parent_id, Comment.blog_id == blog_id)
        )
        if parent.scalar_one_or_none() is None:
            raise NotFoundError("Parent comment not found")

    comment = Comment(
        content=data.content,
        blog_id=blog_id,
        author_id=author_id,
        parent_id=data.parent_id,
    )
    db.add(comment)
    await db.flush()

    comment = await _load_comment(db, comment.id)
    return _comment_to_dict(comment, replies=[])


async def update_comment(
    db: AsyncSession, comment_id: int, user_id: int | None, data: CommentUpdate
) -> dict:
    comment = await _get_own_comment(db, comment_id, user_id)
    comment.content = data.content
    await db.flush()
    return _comment_to_dict(comment)


async def delete_comment(db: AsyncSession, comment_id: int, user_id: int | None) -> None:
    """Delete the caller's comment and its direct replies."""
    comment = await _get_own_comment(db, comment_id, user_id)
    await db.execute(delete(Comment).where(Comment.parent_id == comment.id))
    await db.delete(comment)
    await db.flush()


async def list_comments(
    db: AsyncSession, blog_id: int, page: int | None = None, limit: int | None = None
) -> dict:
    """Top-level comments of a blog, newest first, each with its replies."""
    page, limit = resolve_page(page, limit)
    criteria = (Comment.blog_id == blog_id, Comment.parent_id.is_(None))

    total: int = (
        await db.execute(select(func.count()).select_from(Comment).where(*criteria))
    ).scalar_one()

    q = (
        select(Comment)
        .where(*criteria)
        .options(
            joinedload(Comment.author),
            selectinload(Comment.replies).joinedload(Comment.author),
        )
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .offset(page_offset(page, limit))
        .limit(limit)
    )
    comments = (await db.execute(q)).unique().scalars().all()
    return {
        "comments": [_comment_to_dict(c, replies=c.replies) for c in comments],
        "pagination": build_pagination(total, page, limit).model_dump(),
    }
