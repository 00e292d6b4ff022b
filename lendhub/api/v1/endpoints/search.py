"""
Search endpoint - Elasticsearch keyword search over items.
Challenge: Expose search API, pagination, graceful fallback if ES down.
"""

from fastapi import APIRouter, Query

from lendhub.config import get_settings
from lendhub.db.models.enums import ItemStatus
from lendhub.search.elasticsearch_client import search_items

router = APIRouter()
settings = get_settings()


@router.get("/items")
async def search_items_endpoint(
    q: str = Query(..., min_length=1),
    category: list[str] | None = Query(None),
    item_status: ItemStatus | None = Query(None, alias="status"),
    lat: float | None = Query(None, ge=-90, le=90),
    lon: float | None = Query(None, ge=-180, le=180),
    radius_km: float | None = Query(None, gt=0, le=500),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
):
    """Full-text search on name and description, optionally within a radius."""
    center = (lat, lon) if lat is not None and lon is not None else None
    hits = await search_items(
        query=q,
        skip=skip,
        limit=limit,
        categories=category,
        status=item_status.value if item_status else None,
        center=center,
        radius_km=radius_km,
    )
    return {"query": q, "results": hits, "count": len(hits)}
