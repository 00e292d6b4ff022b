"""
Item endpoints - create/update with category accounting, radius and per-user listings.
Challenge: Pagination, auth, validation, 404 handling.
Design: Thin controller; service layer holds business logic, domain errors map to status codes in main.
"""

from fastapi import APIRouter, Query, status

from lendhub.config import get_settings
from lendhub.core.dependencies import CurrentUser, ServicesDep
from lendhub.core.exceptions import NotFoundError
from lendhub.db.models.enums import ItemStatus
from lendhub.schemas.item import ItemCreate, ItemResponse, ItemUpdate, NearbyItemResponse

router = APIRouter()
settings = get_settings()


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
async def create_item(services: ServicesDep, data: ItemCreate, user: CurrentUser):
    """Create item owned by the caller, placed at the caller's location."""
    return await services.items.create(user, data)


@router.get("/nearby", response_model=list[NearbyItemResponse])
async def nearby_items(
    services: ServicesDep,
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
    radius_km: float = Query(settings.default_radius_km, gt=0, le=500),
    category: list[str] | None = Query(None),
    item_status: ItemStatus | None = Query(None, alias="status"),
    keyword: str | None = Query(None, min_length=1),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    """Items within radius_km of (lat, lon), nearest first."""
    matches = await services.items.items_by_radius(
        (lat, lon), radius_km, categories=category, status=item_status, keyword=keyword, skip=skip, limit=limit
    )
    return [
        NearbyItemResponse(**ItemResponse.model_validate(item).model_dump(), distance_km=round(distance, 3))
        for item, distance in matches
    ]


@router.get("/recent", response_model=list[ItemResponse])
async def recent_items(
    services: ServicesDep,
    category: list[str] | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    return await services.items.recent_items(skip=skip, limit=limit, categories=category)


@router.get("/by-user/{user_id}", response_model=list[ItemResponse])
async def items_by_user(
    services: ServicesDep,
    user_id: int,
    category: list[str] | None = Query(None),
    item_status: ItemStatus | None = Query(None, alias="status"),
    keyword: str | None = Query(None, min_length=1),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    """A user's items; for an exchange point, the items available there."""
    user = await services.users.repo.get_by_id(user_id)
    if user is None:
        raise NotFoundError(f"User {user_id} not found")
    return await services.items.items_by_user(
        user,
        categories=category,
        status=item_status,
        keyword=keyword,
        skip=skip,
        limit=limit,
        exchange_point=user.is_exchange_point,
    )


@router.get("/{item_id}", response_model=ItemResponse)
async def get_item(services: ServicesDep, item_id: int):
    return await services.items.get_by_id(item_id)


@router.patch("/{item_id}", response_model=ItemResponse)
async def update_item(services: ServicesDep, item_id: int, data: ItemUpdate, user: CurrentUser):
    """Owner-only update. Category changes move the ledger and exchange point caches."""
    return await services.items.update(item_id, user, data)
