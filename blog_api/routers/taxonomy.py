from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from blog_api.database import get_db
from blog_api.services import taxonomy_service

router = APIRouter(prefix="/api/v1", tags=["taxonomy"])

@router.get("/categories")
async def list_categories(db: AsyncSession = Depends(get_db)):
    return await taxonomy_service.list_categories(db)

@router.get("/tags")
async def list_tags(db: AsyncSession = Depends(get_db)):
    return await taxonomy_service.list_tags(db)
