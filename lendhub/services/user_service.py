"""
User service - registration, profile updates and exchange point nominations.
Challenge: A profile change can move items, re-shape exchange point caches and stale the
in-process user cache at once.
Design: Location changes are propagated through ItemService; nomination changes go
through ExchangePointService; the cached snapshot is dropped after every write.
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from lendhub.cache.user_cache import UserCache
from lendhub.core.exceptions import ConflictError, NotFoundError, UnauthorizedError, ValidationError
from lendhub.core.security import hash_password, verify_password
from lendhub.db.models.enums import LedgerState
from lendhub.db.models.exchange_point import ExchangePointNomination
from lendhub.db.models.user import User
from lendhub.db.repositories.user_repository import UserRepository
from lendhub.schemas.user import UserCreate, UserResponse, UserUpdate
from lendhub.services.category_ledger import CategoryLedger, user_scope
from lendhub.services.exchange_point_service import ExchangePointService
from lendhub.services.item_service import ItemService, location_values

logger = logging.getLogger(__name__)


class UserService:
    def __init__(
        self,
        session: AsyncSession,
        ledger: CategoryLedger,
        exchange_points: ExchangePointService,
        items: ItemService,
        cache: UserCache[UserResponse],
    ):
        self.session = session
        self.repo = UserRepository(session)
        self.ledger = ledger
        self.exchange_points = exchange_points
        self.items = items
        self.cache = cache

    async def register(self, data: UserCreate) -> User:
        if await self.repo.get_by_email(data.email):
            raise ConflictError("Email already registered")
        location = (data.latitude, data.longitude) if data.latitude is not None and data.longitude is not None else None
        user = User(
            email=data.email,
            hashed_password=hash_password(data.password),
            nickname=data.nickname,
            role=data.role,
            address=data.address,
            **location_values(location),
        )
        return await self.repo.add(user)

    async def authenticate(self, email: str, password: str) -> User:
        user = await self.repo.get_by_email(email)
        if not user or not verify_password(password, user.hashed_password):
            raise UnauthorizedError("Invalid email or password")
        if not user.is_active:
            raise UnauthorizedError("User inactive")
        return user

    async def get_user(self, user_id: int) -> UserResponse:
        """Read-through the in-process cache."""
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached
        user = await self.repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        snapshot = UserResponse.model_validate(user)
        self.cache.set(user_id, snapshot)
        return snapshot

    async def own_categories(self, user_id: int) -> dict[str, int]:
        """The user's counters, backfilled on first read."""
        state = await self.repo.ledger_state(user_id)
        if state is None:
            raise NotFoundError(f"User {user_id} not found")
        if state != LedgerState.READY:
            return await self.ledger.backfill_user(user_id)
        return await self.ledger.counts(user_scope(user_id))

    async def get_or_compute_categories(self, user_id: int) -> dict[str, int]:
        """Category counts for a user; exchange points also include contributed items."""
        user = await self.repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found")
        own = await self.own_categories(user_id)
        if not user.is_exchange_point:
            return own
        return await self.exchange_points.combined_categories(user_id)

    async def update_profile(self, user: User, data: UserUpdate) -> User:
        if data.nickname is not None:
            user.nickname = data.nickname
        if data.address is not None:
            user.address = data.address
        if data.latitude is not None and data.longitude is not None:
            new_location = (data.latitude, data.longitude)
            if new_location != user.location:
                for column, value in location_values(new_location).items():
                    setattr(user, column, value)
                await self.session.flush()
                await self.items.propagate_location(user.id, new_location)
        if data.exchange_point_ids is not None:
            await self._update_nominations(user, data.exchange_point_ids)
        await self.session.flush()
        self.cache.invalidate(user.id)
        return user

    async def _update_nominations(self, user: User, requested: list[int]) -> None:
        requested = [i for i in dict.fromkeys(requested) if i != user.id]
        valid = await self.repo.exchange_point_ids_among(requested)
        if requested and not valid:
            raise ValidationError("None of the nominated users is an exchange point")
        wanted = [i for i in requested if i in valid]
        current = set(user.exchange_point_ids)
        added = [i for i in wanted if i not in current]
        removed = sorted(current - set(wanted))
        if not added and not removed:
            return

        counts = await self.own_categories(user.id)
        if added:
            owned = await self.items.repo.by_owner(user.id, limit=None)
            entries = {item.id: item.categories for item in owned}
            for exchange_point_id in added:
                await self.exchange_points.attach_contributor(exchange_point_id, user.id, entries, counts)
                user.nominations.append(ExchangePointNomination(user_id=user.id, exchange_point_id=exchange_point_id))
        for exchange_point_id in removed:
            await self.exchange_points.detach_contributor(exchange_point_id, user.id, counts)
            for nomination in [n for n in user.nominations if n.exchange_point_id == exchange_point_id]:
                user.nominations.remove(nomination)
        logger.info("user %s nominations: +%s -%s", user.id, added, removed)
