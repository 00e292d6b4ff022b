"""
Item service - business logic for items (SOLID: Single Responsibility).
Challenge: Keep category counters, exchange point caches, location and the search index
in step with every item write; keep controllers thin.
Design: Service depends on repositories and narrow collaborators; side effects that may
fail (search indexing) are queued, never awaited.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from lendhub.core.exceptions import NotFoundError, UnauthorizedError, UninitializedLedgerError, ValidationError
from lendhub.db.base import utcnow
from lendhub.db.models.enums import ItemStatus
from lendhub.db.models.item import Item
from lendhub.db.models.user import User
from lendhub.db.repositories.item_repository import ItemRepository
from lendhub.geo import geohash
from lendhub.schemas.item import ItemCreate, ItemUpdate
from lendhub.search.indexer import SearchIndexer
from lendhub.services.category_ledger import CategoryLedger
from lendhub.services.exchange_point_service import ExchangePointService

logger = logging.getLogger(__name__)

MAX_CATEGORY_LENGTH = 100


def normalize_categories(labels: list[str]) -> list[str]:
    """Trim and de-duplicate labels, keeping first-seen order. Empty labels are rejected."""
    result: list[str] = []
    for label in labels:
        cleaned = label.strip()
        if not cleaned:
            raise ValidationError("Category labels must be non-empty")
        if len(cleaned) > MAX_CATEGORY_LENGTH:
            raise ValidationError(f"Category label longer than {MAX_CATEGORY_LENGTH} characters")
        if cleaned not in result:
            result.append(cleaned)
    return result


def location_values(location: geohash.Point | None) -> dict:
    """Column values for a location; None clears it."""
    if location is None:
        return {"latitude": None, "longitude": None, "geohash": None}
    return {
        "latitude": location[0],
        "longitude": location[1],
        "geohash": geohash.encode(location[0], location[1]),
    }


class ItemService:
    """Handles item use cases: create/update with ledger accounting, location, radius queries."""

    def __init__(
        self,
        session: AsyncSession,
        ledger: CategoryLedger,
        exchange_points: ExchangePointService,
        indexer: SearchIndexer,
        repo: ItemRepository | None = None,
    ):
        self.session = session
        self.repo = repo or ItemRepository(session)
        self.ledger = ledger
        self.exchange_points = exchange_points
        self.indexer = indexer

    async def _ensure_ledger_ready(self, owner: User, exclude_item_id: int | None = None) -> None:
        try:
            await self.ledger.require_ready(owner.id)
        except UninitializedLedgerError:
            logger.info("user %s has no category ledger yet, backfilling", owner.id)
            await self.ledger.backfill_user(owner.id, exclude_item_id=exclude_item_id)

    async def create(self, owner: User, data: ItemCreate) -> Item:
        """Persist the item at the owner's location, then count its categories."""
        categories = normalize_categories(data.categories)
        item = Item(
            owner_id=owner.id,
            name=data.name,
            description=data.description,
            condition=data.condition,
            status=data.status,
            images=list(data.images),
            published_year=data.published_year,
            language=data.language,
            **location_values(owner.location),
        )
        item.set_categories(categories)
        item = await self.repo.add(item)

        if categories:
            await self._ensure_ledger_ready(owner, exclude_item_id=item.id)
            await self.ledger.apply_item_delta(owner, added=categories, removed=[])
        await self.exchange_points.add_item(owner, item)
        self.indexer.index(item)
        logger.info("item %s created by user %s with categories %s", item.id, owner.id, categories)
        return item

    async def update(self, item_id: int, actor: User, data: ItemUpdate) -> Item:
        """Owner-only update. Removed categories are decremented before added ones are incremented."""
        item = await self.get_by_id(item_id)
        if item.owner_id != actor.id:
            raise UnauthorizedError(f"User {actor.id} does not own item {item_id}")

        added: list[str] = []
        removed: list[str] = []
        if data.categories is not None:
            new = normalize_categories(data.categories)
            old = item.categories
            removed = [c for c in old if c not in new]
            added = [c for c in new if c not in old]
            if added or removed:
                # Backfill must see the pre-update categories
                await self._ensure_ledger_ready(actor)
            item.set_categories(new)

        for field in ("name", "description", "condition", "status", "published_year", "language"):
            value = getattr(data, field)
            if value is not None:
                setattr(item, field, value)
        if data.images is not None:
            item.images = list(data.images)
        item.updated_at = utcnow()
        await self.session.flush()

        if added or removed:
            await self.ledger.apply_item_delta(actor, added=added, removed=removed)
            await self.exchange_points.add_item(actor, item)
        self.indexer.index(item)
        return item

    async def propagate_location(self, user_id: int, location: geohash.Point | None) -> int:
        """Move the items travelling with this user to their new location. Returns rows touched."""
        if location is None:
            logger.debug("user %s has no location, nothing to propagate", user_id)
            return 0
        values = {**location_values(location), "updated_at": utcnow()}
        owned = await self.repo.relocate_owned_and_held(user_id, values)
        held = await self.repo.relocate_held_not_owned(user_id, values)
        logger.info("user %s moved: relocated %d owned and %d held items", user_id, owned, held)
        return owned + held

    async def update_holder(self, item: Item, holder: User) -> Item:
        """Hand the item to ``holder``; it then sits at the holder's location."""
        item.holder_id = None if holder.id == item.owner_id else holder.id
        for column, value in location_values(holder.location).items():
            setattr(item, column, value)
        item.updated_at = utcnow()
        await self.session.flush()
        self.indexer.index(item)
        return item

    async def items_by_radius(
        self,
        center: geohash.Point,
        radius_km: float,
        categories: list[str] | None = None,
        status: ItemStatus | None = None,
        keyword: str | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[tuple[Item, float]]:
        """
        Items within ``radius_km`` of ``center`` as (item, distance_km), nearest first.

        One range scan per geohash box, then the exact distance check drops the
        corners the boxes cover but the disc does not.
        """
        seen: set[int] = set()
        matches: list[tuple[Item, float]] = []
        for rng in geohash.bounding_boxes(center, radius_km):
            for item in await self.repo.in_geohash_range(rng, categories, status, keyword):
                if item.id in seen or item.location is None:
                    continue
                seen.add(item.id)
                distance = geohash.distance_km(item.location, center)
                if distance <= radius_km:
                    matches.append((item, distance))
        matches.sort(key=lambda match: (match[1], match[0].id))
        if limit is None:
            return matches[skip:]
        return matches[skip : skip + limit]

    async def get_by_id(self, id: int) -> Item:
        item = await self.repo.get_by_id(id)
        if item is None:
            raise NotFoundError(f"Item {id} not found")
        return item

    async def items_by_user(
        self,
        user: User,
        categories: list[str] | None = None,
        status: ItemStatus | None = None,
        keyword: str | None = None,
        skip: int = 0,
        limit: int = 20,
        exchange_point: bool = False,
    ) -> list[Item]:
        """A user's own items, or for an exchange point the items cached there."""
        if not exchange_point:
            return await self.repo.by_owner(user.id, categories, status, keyword, skip=skip, limit=limit)
        ids = await self.exchange_points.item_ids(user.id, categories=categories)
        items = await self.repo.get_by_ids(ids)
        if status is not None:
            items = [i for i in items if i.status == status]
        if keyword:
            items = [i for i in items if i.name.startswith(keyword)]
        return items[skip : skip + limit]

    async def recent_items(self, skip: int = 0, limit: int = 20, categories: list[str] | None = None) -> list[Item]:
        return await self.repo.recent(skip=skip, limit=limit, categories=categories)
