"""Item request/response schemas - REST API contract."""

from datetime import datetime

from pydantic import BaseModel, Field

from lendhub.db.models.enums import ItemCondition, ItemStatus


class ItemBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    condition: ItemCondition | None = None
    status: ItemStatus = ItemStatus.AVAILABLE
    categories: list[str] = Field(default_factory=list)
    images: list[str] = Field(default_factory=list)
    published_year: int | None = None
    language: str | None = Field(None, max_length=20)


class ItemCreate(ItemBase):
    """Owner and location come from the authenticated user, never from the body."""


class ItemUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    condition: ItemCondition | None = None
    status: ItemStatus | None = None
    categories: list[str] | None = None
    images: list[str] | None = None
    published_year: int | None = None
    language: str | None = Field(None, max_length=20)


class ItemResponse(ItemBase):
    id: int
    owner_id: int
    holder_id: int | None = None
    latitude: float | None = None
    longitude: float | None = None
    geohash: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class NearbyItemResponse(ItemResponse):
    distance_km: float
