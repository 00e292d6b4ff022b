"""
User repository - encapsulates all user data access (SOLID: Single Responsibility).
Challenge: Keep queries in one place for optimization and reuse.
"""

from sqlalchemy import select, update

from lendhub.db.models.enums import LedgerState, Role
from lendhub.db.models.user import User
from lendhub.db.repositories.base_repository import BaseRepository


class UserRepository(BaseRepository[User]):
    """User-specific queries. Extends base CRUD with domain logic."""

    def __init__(self, session):
        super().__init__(session, User)

    async def get_by_email(self, email: str) -> User | None:
        """Find user by email - used for authentication."""
        result = await self.session.execute(select(User).where(User.email == email))
        return result.scalar_one_or_none()

    async def exchange_points(self, skip: int = 0, limit: int = 20) -> list[User]:
        result = await self.session.execute(
            select(User)
            .where(User.role == Role.EXCHANGE_POINT)
            .order_by(User.created_at.desc(), User.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return list(result.scalars().all())

    async def exchange_point_ids_among(self, ids: list[int]) -> set[int]:
        """Subset of ``ids`` that belong to exchange points."""
        if not ids:
            return set()
        result = await self.session.execute(
            select(User.id).where(User.id.in_(ids), User.role == Role.EXCHANGE_POINT)
        )
        return set(result.scalars().all())

    async def ledger_state(self, user_id: int) -> LedgerState | None:
        result = await self.session.execute(select(User.ledger_state).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def transition_ledger_state(self, user_id: int, expected: LedgerState, new: LedgerState) -> bool:
        """Compare-and-set on the ledger state. True if this call made the change."""
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id, User.ledger_state == expected)
            .values(ledger_state=new)
            .returning(User.id)
            .execution_options(synchronize_session="fetch")
        )
        return len(result.all()) == 1
