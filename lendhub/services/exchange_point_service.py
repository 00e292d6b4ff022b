"""
Exchange point service - the denormalized item cache behind "what can I pick up here".
Challenge: Answer per-exchange-point item and category queries without scanning every user.
Design: Each nominating user contributes (item id -> categories) entries plus counts in the
exchange point's ledger scope. Entries are keyed by contributor so un-nomination is one delete.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from lendhub.core.exceptions import NotFoundError
from lendhub.db.models.item import Item
from lendhub.db.models.user import User
from lendhub.db.repositories.exchange_point_repository import ExchangePointRepository
from lendhub.db.repositories.user_repository import UserRepository
from lendhub.services.category_ledger import CategoryLedger, exchange_point_scope, user_scope

logger = logging.getLogger(__name__)


class ExchangePointService:
    def __init__(self, session: AsyncSession, ledger: CategoryLedger):
        self.session = session
        self.repo = ExchangePointRepository(session)
        self.users = UserRepository(session)
        self.ledger = ledger

    async def add_items(self, exchange_point_id: int, contributor_id: int, entries: dict[int, list[str]]) -> None:
        """Insert or overwrite cache entries. Counters are not touched here."""
        if entries:
            await self.repo.upsert_items(exchange_point_id, contributor_id, entries)

    async def remove_items(self, exchange_point_id: int, item_ids: list[int]) -> int:
        return await self.repo.remove_items(exchange_point_id, item_ids)

    async def add_item(self, contributor: User, item: Item) -> None:
        """Register a new or re-categorized item with every exchange point its owner nominated."""
        for exchange_point_id in contributor.exchange_point_ids:
            await self.add_items(exchange_point_id, contributor.id, {item.id: item.categories})

    async def attach_contributor(
        self, exchange_point_id: int, contributor_id: int, entries: dict[int, list[str]], counts: dict[str, int]
    ) -> None:
        """A user nominated this exchange point: copy their items and counts in."""
        await self.add_items(exchange_point_id, contributor_id, entries)
        await self.ledger.adjust_scope(exchange_point_scope(exchange_point_id), counts, sign=1)
        logger.info(
            "exchange point %s: attached user %s (%d items)", exchange_point_id, contributor_id, len(entries)
        )

    async def detach_contributor(self, exchange_point_id: int, contributor_id: int, counts: dict[str, int]) -> None:
        """A user withdrew the nomination: drop their entries and subtract their counts."""
        removed = await self.repo.remove_contributor(exchange_point_id, contributor_id)
        await self.ledger.adjust_scope(exchange_point_scope(exchange_point_id), counts, sign=-1)
        logger.info("exchange point %s: detached user %s (%d items)", exchange_point_id, contributor_id, removed)

    async def item_ids(
        self,
        exchange_point_id: int,
        categories: list[str] | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[int]:
        """Cached item ids, optionally limited to entries sharing a category."""
        entries = await self.repo.entries(exchange_point_id)
        if categories:
            wanted = set(categories)
            entries = [e for e in entries if wanted.intersection(e.categories)]
        ids = [e.item_id for e in entries]
        if limit is None:
            return ids[skip:]
        return ids[skip : skip + limit]

    async def list_exchange_points(self, skip: int = 0, limit: int = 20) -> list[User]:
        return await self.users.exchange_points(skip=skip, limit=limit)

    async def combined_categories(self, exchange_point_id: int) -> dict[str, int]:
        """The exchange point's own item counts plus everything contributed to it."""
        user = await self.users.get_by_id(exchange_point_id)
        if user is None or not user.is_exchange_point:
            raise NotFoundError(f"Exchange point {exchange_point_id} not found")
        combined = dict(await self.ledger.counts(user_scope(exchange_point_id)))
        for category, count in (await self.ledger.counts(exchange_point_scope(exchange_point_id))).items():
            combined[category] = combined.get(category, 0) + count
        return dict(sorted(combined.items()))
