"""
Exchange point cache repository - denormalized item entries per exchange point.
"""

from sqlalchemy import delete, select

from lendhub.db.models.exchange_point import ExchangePointItem


class ExchangePointRepository:
    def __init__(self, session):
        self.session = session

    async def upsert_items(self, exchange_point_id: int, contributor_id: int, entries: dict[int, list[str]]) -> None:
        """Insert or overwrite (item id -> categories) entries."""
        for item_id, categories in entries.items():
            await self.session.merge(
                ExchangePointItem(
                    exchange_point_id=exchange_point_id,
                    item_id=item_id,
                    contributor_id=contributor_id,
                    categories=list(categories),
                )
            )
        await self.session.flush()

    async def remove_items(self, exchange_point_id: int, item_ids: list[int]) -> int:
        if not item_ids:
            return 0
        result = await self.session.execute(
            delete(ExchangePointItem)
            .where(
                ExchangePointItem.exchange_point_id == exchange_point_id,
                ExchangePointItem.item_id.in_(item_ids),
            )
            .returning(ExchangePointItem.item_id)
            .execution_options(synchronize_session="fetch")
        )
        return len(result.all())

    async def entries(self, exchange_point_id: int) -> list[ExchangePointItem]:
        result = await self.session.execute(
            select(ExchangePointItem)
            .where(ExchangePointItem.exchange_point_id == exchange_point_id)
            .order_by(ExchangePointItem.item_id)
        )
        return list(result.scalars().all())

    async def remove_contributor(self, exchange_point_id: int, contributor_id: int) -> int:
        """Drop every entry one user contributed to an exchange point."""
        result = await self.session.execute(
            delete(ExchangePointItem)
            .where(
                ExchangePointItem.exchange_point_id == exchange_point_id,
                ExchangePointItem.contributor_id == contributor_id,
            )
            .returning(ExchangePointItem.item_id)
            .execution_options(synchronize_session="fetch")
        )
        return len(result.all())
