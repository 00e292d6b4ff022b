"""
Transaction repository - lending request persistence and conditional status writes.
"""

from sqlalchemy import func, select, update

from lendhub.db.base import utcnow
from lendhub.db.models.enums import OPEN_STATUSES, TransactionStatus
from lendhub.db.models.transaction import Transaction
from lendhub.db.repositories.base_repository import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    def __init__(self, session):
        super().__init__(session, Transaction)

    async def count_open(self, item_id: int) -> int:
        result = await self.session.execute(
            select(func.count(Transaction.id)).where(
                Transaction.item_id == item_id, Transaction.status.in_(list(OPEN_STATUSES))
            )
        )
        return result.scalar_one()

    async def by_item(self, item_id: int, exclude_statuses: frozenset[TransactionStatus] = frozenset()) -> list[Transaction]:
        stmt = select(Transaction).where(Transaction.item_id == item_id)
        if exclude_statuses:
            stmt = stmt.where(Transaction.status.not_in(list(exclude_statuses)))
        stmt = stmt.order_by(Transaction.updated_at.desc(), Transaction.id.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def compare_and_set_status(
        self, id: int, expected: TransactionStatus, new: TransactionStatus
    ) -> bool:
        """Apply ``expected -> new`` only if the row is still in ``expected``."""
        result = await self.session.execute(
            update(Transaction)
            .where(Transaction.id == id, Transaction.status == expected)
            .values(status=new, updated_at=utcnow())
            .returning(Transaction.id)
            .execution_options(synchronize_session="fetch")
        )
        return len(result.all()) == 1
