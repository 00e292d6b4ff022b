"""
Base repository - generic CRUD interface (SOLID: Interface Segregation, Dependency Inversion).
Challenge: Consistent data access, testability via mocks, query optimization in one place.
"""

from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from lendhub.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseRepository(Generic[ModelType]):
    """Generic async repository. Subclasses define model-specific methods."""

    def __init__(self, session: AsyncSession, model: type[ModelType]):
        self.session = session
        self.model = model

    async def get_by_id(self, id: int) -> ModelType | None:
        """Fetch single entity by primary key. Used for detail endpoints."""
        result = await self.session.execute(select(self.model).where(self.model.id == id))
        return result.scalar_one_or_none()

    async def get_by_ids(self, ids: list[int]) -> list[ModelType]:
        """Fetch many by primary key, preserving the order of ``ids``."""
        if not ids:
            return []
        result = await self.session.execute(select(self.model).where(self.model.id.in_(ids)))
        by_id = {entity.id: entity for entity in result.scalars().all()}
        return [by_id[i] for i in ids if i in by_id]

    async def add(self, entity: ModelType) -> ModelType:
        """Persist new entity. Caller commits session."""
        self.session.add(entity)
        await self.session.flush()  # Get ID without committing
        await self.session.refresh(entity)
        return entity
