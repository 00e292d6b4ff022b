"""
Category counter repository - atomic counter primitives over (scope, category) rows.
Challenge: Many items share one category row; concurrent writers must not lose updates.
Design: Counters change only through single-statement increments (native upsert) and
conditional decrements; no client-side read-modify-write.
"""

from sqlalchemy import delete, insert, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from lendhub.db.base import utcnow
from lendhub.db.batch import BatchOp
from lendhub.db.models.category_counter import CategoryCounter, RecommendedCategory

counters = CategoryCounter.__table__
COUNT = counters.c["count"]

_UPSERT_INSERTS = {"postgresql": pg_insert, "sqlite": sqlite_insert}


class CategoryRepository:
    """Counter statements and read views. Write helpers return ops for a BatchWriter."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _dialect_name(self) -> str:
        return self.session.bind.dialect.name

    def increment_op(self, scope: str, category: str, amount: int) -> BatchOp:
        """Add ``amount`` to the row, creating it if absent."""
        upsert_insert = _UPSERT_INSERTS.get(self._dialect_name())

        async def _run(session: AsyncSession) -> None:
            now = utcnow()
            if upsert_insert is not None:
                stmt = upsert_insert(counters).values(scope=scope, category=category, count=amount, updated_at=now)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[counters.c.scope, counters.c.category],
                    set_={"count": COUNT + stmt.excluded["count"], "updated_at": stmt.excluded["updated_at"]},
                )
                await session.execute(stmt)
                return
            # Generic dialects: atomic in-place increment, insert only when the row is missing
            result = await session.execute(
                update(counters)
                .where(counters.c.scope == scope, counters.c.category == category)
                .values(count=COUNT + amount, updated_at=now)
            )
            if result.rowcount == 0:
                await session.execute(
                    insert(counters).values(scope=scope, category=category, count=amount, updated_at=now)
                )

        return _run

    def decrement_op(self, scope: str, category: str, amount: int) -> BatchOp:
        """Subtract ``amount``; delete the row instead of writing a count <= 0."""

        async def _run(session: AsyncSession) -> None:
            result = await session.execute(
                update(counters)
                .where(
                    counters.c.scope == scope,
                    counters.c.category == category,
                    COUNT > amount,
                )
                .values(count=COUNT - amount, updated_at=utcnow())
            )
            if result.rowcount == 0:
                await session.execute(
                    delete(counters).where(
                        counters.c.scope == scope,
                        counters.c.category == category,
                        COUNT <= amount,
                    )
                )

        return _run

    def clear_scope_op(self, scope: str) -> BatchOp:
        async def _run(session: AsyncSession) -> None:
            await session.execute(delete(counters).where(counters.c.scope == scope))

        return _run

    def set_op(self, scope: str, category: str, count: int) -> BatchOp:
        async def _run(session: AsyncSession) -> None:
            await session.execute(
                insert(counters).values(scope=scope, category=category, count=count, updated_at=utcnow())
            )

        return _run

    async def counts(self, scope: str) -> dict[str, int]:
        result = await self.session.execute(
            select(counters.c.category, COUNT)
            .where(counters.c.scope == scope)
            .order_by(counters.c.category)
        )
        return {category: count for category, count in result.all()}

    async def top_by_count(self, scope: str, limit: int) -> list[str]:
        result = await self.session.execute(
            select(counters.c.category)
            .where(counters.c.scope == scope)
            .order_by(COUNT.desc(), counters.c.category)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def top_by_recency(self, scope: str, limit: int) -> list[str]:
        result = await self.session.execute(
            select(counters.c.category)
            .where(counters.c.scope == scope)
            .order_by(counters.c.updated_at.desc(), counters.c.category)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def recommended(self) -> list[str]:
        result = await self.session.execute(
            select(RecommendedCategory.label).order_by(RecommendedCategory.position, RecommendedCategory.label)
        )
        return list(result.scalars().all())
