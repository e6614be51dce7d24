from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.dependencies import PaginationParams, get_current_user_id, get_optional_user_id
from blog_api.schemas import BlogCreate, BlogUpdate, CommentCreate
from blog_api.services import blog_service, comment_service, interaction_service

router = APIRouter(prefix="/api/v1/blogs", tags=["blogs"])


# --- Collection routes ---

@router.get("")
async def list_blogs(
    pagination: PaginationParams = Depends(),
    user_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await blog_service.list_blogs(
        db, pagination.page, pagination.limit, pagination.sort_by, pagination.sort_order, user_id
    )

@router.post("", status_code=201)
async def create_blog(
    data: BlogCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"message": "Blog created successfully", "blog": await blog_service.create_blog(db, user_id, data)}

@router.get("/search")
async def search_blogs(
    query: str = Query("", description="Text matched against title, description and content."),
    pagination: PaginationParams = Depends(),
    user_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await blog_service.search_blogs(db, query, pagination.page, pagination.limit, user_id)

@router.get("/featured")
async def featured_blogs(
    limit: int | None = Query(None, ge=1),
    user_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"featured_blogs": await blog_service.list_featured_blogs(db, limit, user_id)}

@router.get("/category/{category}")
async def blogs_by_category(
    category: str,
    pagination: PaginationParams = Depends(),
    user_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await blog_service.list_blogs_by_category(
        db, category, pagination.page, pagination.limit, user_id
    )

@router.get("/tags/{tags}")
async def blogs_by_tags(
    tags: str,
    pagination: PaginationParams = Depends(),
    user_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await blog_service.list_blogs_by_tags(db, tags, pagination.page, pagination.limit, user_id)

@router.get("/slug/{slug}")
async def get_blog_by_slug(
    slug: str,
    user_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await blog_service.get_blog_by_slug(db, slug, user_id)


# --- Document routes ---

@router.get("/{blog_id}")
async def get_blog(
    blog_id: int,
    user_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await blog_service.get_blog_by_id(db, blog_id, user_id)

@router.put("/{blog_id}")
async def update_blog(
    blog_id: int,
    data: BlogUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return {"message": "Blog updated successfully", "blog": await blog_service.update_blog(db, blog_id, user_id, data)}

@router.delete("/{blog_id}")
async def delete_blog(
    blog_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    result = await blog_service.delete_blog(db, blog_id, user_id)
    return {"message": "Blog deleted successfully", **result}


# --- Interaction routes ---

@router.post("/{blog_id}/view")
async def record_view(
    blog_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await interaction_service.record_view(db, blog_id, user_id)

@router.post("/{blog_id}/like")
async def toggle_like(
    blog_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await interaction_service.toggle_like(db, blog_id, user_id)

@router.post("/{blog_id}/bookmark")
async def toggle_bookmark(
    blog_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await interaction_service.toggle_bookmark(db, blog_id, user_id)

@router.get("/{blog_id}/interaction")
async def interaction_status(
    blog_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await interaction_service.get_interaction_status(db, blog_id, user_id)


# --- Comments ---

@router.get("/{blog_id}/comments")
async def list_comments(
    blog_id: int,
    pagination: PaginationParams = Depends(),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.list_comments(db, blog_id, pagination.page, pagination.limit)

@router.post("/{blog_id}/comments", status_code=201)
async def create_comment(
    blog_id: int,
    data: CommentCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.create_comment(db, blog_id, user_id, data)
