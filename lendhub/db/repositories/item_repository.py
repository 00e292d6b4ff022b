"""
Item repository - item data access and query optimization (SOLID: Single Responsibility).
Challenge: Geohash range scans, category filters and holder/location bulk updates in SQL.
"""

from typing import Any

from sqlalchemy import Select, func, select, update

from lendhub.db.models.enums import ItemStatus
from lendhub.db.models.item import Item, ItemCategory
from lendhub.db.repositories.base_repository import BaseRepository
from lendhub.geo.geohash import PREFIX_END, GeohashRange


class ItemRepository(BaseRepository[Item]):
    """Item-specific queries. Categories are eagerly loaded (selectin) with every item."""

    def __init__(self, session):
        super().__init__(session, Item)

    @staticmethod
    def _apply_filters(
        stmt: Select,
        categories: list[str] | None = None,
        status: ItemStatus | None = None,
        keyword: str | None = None,
    ) -> Select:
        if categories:
            stmt = stmt.where(
                Item.id.in_(select(ItemCategory.item_id).where(ItemCategory.label.in_(categories)))
            )
        if status is not None:
            stmt = stmt.where(Item.status == status)
        if keyword:
            stmt = stmt.where(Item.name.startswith(keyword, autoescape=True))
        return stmt

    async def get_for_update(self, id: int) -> Item | None:
        """Row-locked read (SELECT ... FOR UPDATE); serializes writers on one item."""
        result = await self.session.execute(select(Item).where(Item.id == id).with_for_update())
        return result.scalar_one_or_none()

    async def in_geohash_range(
        self,
        rng: GeohashRange,
        categories: list[str] | None = None,
        status: ItemStatus | None = None,
        keyword: str | None = None,
    ) -> list[Item]:
        """One ordered range scan over the geohash index (inclusive bounds)."""
        low, high = rng
        stmt = select(Item).where(Item.geohash.is_not(None), Item.geohash >= low)
        if high.endswith(PREFIX_END):
            stmt = stmt.where(Item.geohash.startswith(high[: -len(PREFIX_END)], autoescape=True))
        else:
            stmt = stmt.where(Item.geohash <= high)
        stmt = self._apply_filters(stmt, categories, status, keyword).order_by(Item.geohash)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def by_owner(
        self,
        owner_id: int,
        categories: list[str] | None = None,
        status: ItemStatus | None = None,
        keyword: str | None = None,
        skip: int = 0,
        limit: int | None = 20,
    ) -> list[Item]:
        stmt = select(Item).where(Item.owner_id == owner_id)
        stmt = self._apply_filters(stmt, categories, status, keyword)
        stmt = stmt.order_by(Item.updated_at.desc(), Item.id.desc()).offset(skip)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def recent(self, skip: int = 0, limit: int = 20, categories: list[str] | None = None) -> list[Item]:
        stmt = self._apply_filters(select(Item), categories)
        stmt = stmt.order_by(Item.created_at.desc(), Item.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def category_counts_for_owner(self, owner_id: int, exclude_item_id: int | None = None) -> dict[str, int]:
        """Authoritative recount of an owner's categories (one aggregate query)."""
        stmt = (
            select(ItemCategory.label, func.count(ItemCategory.item_id))
            .join(Item, Item.id == ItemCategory.item_id)
            .where(Item.owner_id == owner_id)
            .group_by(ItemCategory.label)
        )
        if exclude_item_id is not None:
            stmt = stmt.where(Item.id != exclude_item_id)
        result = await self.session.execute(stmt)
        return {label: count for label, count in result.all()}

    async def _bulk_update(self, stmt, values: dict[str, Any]) -> int:
        """Apply values and return the number of rows touched (counted from RETURNING)."""
        result = await self.session.execute(
            stmt.values(**values).returning(Item.id).execution_options(synchronize_session="fetch")
        )
        return len(result.all())

    async def relocate_owned_and_held(self, user_id: int, values: dict[str, Any]) -> int:
        """Items the user owns and currently holds (holder_id NULL)."""
        stmt = update(Item).where(Item.owner_id == user_id, Item.holder_id.is_(None))
        return await self._bulk_update(stmt, values)

    async def relocate_held_not_owned(self, user_id: int, values: dict[str, Any]) -> int:
        """Items the user holds on behalf of another owner."""
        stmt = update(Item).where(Item.holder_id == user_id, Item.owner_id != user_id)
        return await self._bulk_update(stmt, values)
