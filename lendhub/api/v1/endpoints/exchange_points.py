"""
Exchange point endpoints - list points and the items available at each.
"""

from fastapi import APIRouter, Query

from lendhub.config import get_settings
from lendhub.core.dependencies import ServicesDep
from lendhub.schemas.category import CategoryCounts
from lendhub.schemas.item import ItemResponse
from lendhub.schemas.user import UserResponse

router = APIRouter()
settings = get_settings()


@router.get("", response_model=list[UserResponse])
async def list_exchange_points(
    services: ServicesDep,
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    return await services.exchange_points.list_exchange_points(skip=skip, limit=limit)


@router.get("/{exchange_point_id}/items", response_model=list[ItemResponse])
async def exchange_point_items(
    services: ServicesDep,
    exchange_point_id: int,
    category: list[str] | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    """Items contributed by users who nominated this exchange point."""
    ids = await services.exchange_points.item_ids(exchange_point_id, categories=category, skip=skip, limit=limit)
    return await services.items.repo.get_by_ids(ids)


@router.get("/{exchange_point_id}/categories", response_model=CategoryCounts)
async def exchange_point_categories(services: ServicesDep, exchange_point_id: int):
    counts = await services.exchange_points.combined_categories(exchange_point_id)
    return CategoryCounts(user_id=exchange_point_id, counts=counts)
