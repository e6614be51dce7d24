from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.dependencies import PaginationParams, get_current_user_id, get_optional_user_id
from blog_api.schemas import UserCreate
from blog_api.services import blog_service, user_service

router = APIRouter(prefix="/api/v1/users", tags=["users"])

@router.get("")
async def list_users(pagination: PaginationParams = Depends(), db: AsyncSession = Depends(get_db)):
    return await user_service.list_users(db, pagination.page, pagination.limit)

@router.post("", status_code=201)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    return await user_service.create_user(db, data)

# "/me" routes are declared before "/{user_id}" so they are matched first.
@router.get("/me/blogs")
async def my_blogs(
    pagination: PaginationParams = Depends(),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await blog_service.list_user_blogs(db, user_id, pagination.page, pagination.limit)

@router.get("/me/bookmarks")
async def my_bookmarks(
    pagination: PaginationParams = Depends(),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await blog_service.list_user_bookmarks(db, user_id, pagination.page, pagination.limit)

@router.get("/by-username/{username}")
async def get_user_by_username(
    username: str,
    pagination: PaginationParams = Depends(),
    viewer_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_user_profile_by_username(
        db, username, viewer_id, pagination.page, pagination.limit
    )

@router.get("/{user_id}")
async def get_user(
    user_id: int,
    pagination: PaginationParams = Depends(),
    viewer_id: int | None = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_user_profile(db, user_id, viewer_id, pagination.page, pagination.limit)

@router.post("/{user_id}/follow")
async def follow_user(
    user_id: int,
    follower_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.follow_user(db, follower_id, user_id)

@router.delete("/{user_id}/follow")
async def unfollow_user(
    user_id: int,
    follower_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.unfollow_user(db, follower_id, user_id)

@router.get("/{user_id}/follow-status")
async def follow_status(
    user_id: int,
    follower_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.get_follow_status(db, follower_id, user_id)
