"""
Category endpoints - hot, recent and default lists (Redis-cached).
"""

from fastapi import APIRouter, Query

from lendhub.core.dependencies import ServicesDep
from lendhub.schemas.category import CategoryList

router = APIRouter()


@router.get("/hot", response_model=CategoryList)
async def hot_categories(services: ServicesDep, limit: int = Query(20, ge=1, le=100)):
    return CategoryList(categories=await services.categories.hot_categories(limit))


@router.get("/recent", response_model=CategoryList)
async def recent_categories(services: ServicesDep, limit: int = Query(20, ge=1, le=100)):
    return CategoryList(categories=await services.categories.recent_categories(limit))


@router.get("/default", response_model=CategoryList)
async def default_categories(services: ServicesDep):
    return CategoryList(categories=await services.categories.default_categories())
