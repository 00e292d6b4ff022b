"""Category list and count schemas."""

from pydantic import BaseModel


class CategoryList(BaseModel):
    categories: list[str]


class CategoryCounts(BaseModel):
    user_id: int
    counts: dict[str, int]
