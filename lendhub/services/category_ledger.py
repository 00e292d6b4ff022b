"""
Category ledger - how many items carry each category, globally, per user and per exchange point.
Challenge: Keep aggregate counters exact under concurrent item writes without full recounts.
Design: Counters move only through atomic increment/decrement statements grouped into
bounded batches. A user's counters are trusted only after a one-time backfill marks the
user ledger READY; until then user-scoped writes raise UninitializedLedgerError.
"""

import logging
from typing import Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from lendhub.config import get_settings
from lendhub.core.exceptions import (
    LedgerBusyError,
    NotFoundError,
    PartialBatchFailureError,
    UninitializedLedgerError,
)
from lendhub.db.batch import BatchResult, BatchWriter
from lendhub.db.models.enums import LedgerState
from lendhub.db.models.user import User
from lendhub.db.repositories.category_repository import CategoryRepository
from lendhub.db.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

GLOBAL_SCOPE = "global"
USER_SCOPE_PREFIX = "user:"
EXCHANGE_POINT_SCOPE_PREFIX = "exchange_point:"


def user_scope(user_id: int) -> str:
    return f"{USER_SCOPE_PREFIX}{user_id}"


def exchange_point_scope(exchange_point_id: int) -> str:
    return f"{EXCHANGE_POINT_SCOPE_PREFIX}{exchange_point_id}"


def _unique(categories: list[str]) -> list[str]:
    return list(dict.fromkeys(categories))


class ItemCategoryReader(Protocol):
    """Narrow read the ledger needs from item storage (authoritative recount)."""

    async def category_counts_for_owner(
        self, owner_id: int, exclude_item_id: int | None = None
    ) -> dict[str, int]: ...


class CategoryLedger:
    def __init__(self, session: AsyncSession, item_reader: ItemCategoryReader, batch_size: int | None = None):
        self.session = session
        self.repo = CategoryRepository(session)
        self.users = UserRepository(session)
        self.item_reader = item_reader
        self.batch_size = batch_size or get_settings().ledger_batch_size

    def batch(self, label: str = "ledger") -> BatchWriter:
        return BatchWriter(self.session, max_batch_size=self.batch_size, label=label)

    async def require_ready(self, user_id: int) -> None:
        state = await self.users.ledger_state(user_id)
        if state is None:
            raise NotFoundError(f"User {user_id} not found")
        if state != LedgerState.READY:
            raise UninitializedLedgerError(user_id)

    async def _check_scope(self, scope: str) -> None:
        if scope.startswith(USER_SCOPE_PREFIX):
            await self.require_ready(int(scope[len(USER_SCOPE_PREFIX) :]))

    async def increment(self, batch: BatchWriter, scope: str, categories: list[str], amount: int = 1) -> None:
        """Queue +amount for each category in scope."""
        if amount <= 0:
            raise ValueError(f"amount must be positive, got {amount}")
        await self._check_scope(scope)
        for category in _unique(categories):
            batch.add(self.repo.increment_op(scope, category, amount))

    async def decrement(self, batch: BatchWriter, scope: str, categories: list[str], amount: int = 1) -> None:
        """Queue -amount for each category in scope; rows reaching zero are deleted."""
        if amount <= 0:
            raise ValueError(f"amount must be positive, got {amount}")
        await self._check_scope(scope)
        for category in _unique(categories):
            batch.add(self.repo.decrement_op(scope, category, amount))

    def reconcile(self, batch: BatchWriter, scope: str, full_counts: dict[str, int]) -> None:
        """Queue a replacement of every counter in scope with ``full_counts``."""
        batch.add(self.repo.clear_scope_op(scope))
        for category, count in sorted(full_counts.items()):
            if count > 0:
                batch.add(self.repo.set_op(scope, category, count))

    async def commit(self, batch: BatchWriter) -> BatchResult:
        result = await batch.commit()
        if not result.ok:
            raise PartialBatchFailureError(
                f"{batch.label}: {result.failed} ledger writes not applied",
                committed=result.committed,
                failed=result.failed,
            )
        return result

    async def backfill_user(self, user_id: int, exclude_item_id: int | None = None) -> dict[str, int]:
        """
        Recount a user's categories from their items and mark the ledger READY.

        The recount is also added to the global scope. Returns the user's counts.
        Raises LedgerBusyError while another request holds the initialization claim.
        """
        claimed = await self.users.transition_ledger_state(
            user_id, LedgerState.UNINITIALIZED, LedgerState.INITIALIZING
        )
        if not claimed:
            state = await self.users.ledger_state(user_id)
            if state is None:
                raise NotFoundError(f"User {user_id} not found")
            if state == LedgerState.READY:
                return await self.repo.counts(user_scope(user_id))
            raise LedgerBusyError(f"Category ledger for user {user_id} is being initialized")

        counts = await self.item_reader.category_counts_for_owner(user_id, exclude_item_id=exclude_item_id)
        batch = self.batch(f"backfill user {user_id}")
        self.reconcile(batch, user_scope(user_id), counts)
        for category, count in sorted(counts.items()):
            batch.add(self.repo.increment_op(GLOBAL_SCOPE, category, count))
        await self.commit(batch)
        await self.users.transition_ledger_state(user_id, LedgerState.INITIALIZING, LedgerState.READY)
        logger.info("category ledger for user %s initialized with %d categories", user_id, len(counts))
        return counts

    async def apply_item_delta(self, user: User, added: list[str], removed: list[str]) -> None:
        """
        Move the global and user scopes by one item's category change, then fan out.
        Removals commit before additions.
        """
        await self.require_ready(user.id)
        added, removed = _unique(added), _unique(removed)
        if removed:
            present = await self.repo.counts(user_scope(user.id))
            missing = [c for c in removed if c not in present]
            if missing:
                logger.warning("user %s: skipping decrement of uncounted categories %s", user.id, missing)
            removed = [c for c in removed if c in present]
        if removed:
            batch = self.batch(f"remove categories user {user.id}")
            await self.decrement(batch, GLOBAL_SCOPE, removed)
            await self.decrement(batch, user_scope(user.id), removed)
            await self.commit(batch)
        if added:
            batch = self.batch(f"add categories user {user.id}")
            await self.increment(batch, GLOBAL_SCOPE, added)
            await self.increment(batch, user_scope(user.id), added)
            await self.commit(batch)
        await self.fan_out_to_exchange_points(user, added, removed)

    async def fan_out_to_exchange_points(self, user: User, added: list[str], removed: list[str]) -> None:
        for exchange_point_id in user.exchange_point_ids:
            scope = exchange_point_scope(exchange_point_id)
            batch = self.batch(f"fan out user {user.id} -> exchange point {exchange_point_id}")
            if removed:
                await self.decrement(batch, scope, removed)
            if added:
                await self.increment(batch, scope, added)
            await self.commit(batch)

    async def adjust_scope(self, scope: str, counts: dict[str, int], sign: int) -> None:
        """Add (sign=1) or subtract (sign=-1) a whole count map, e.g. on (un)nomination."""
        batch = self.batch(f"adjust {scope}")
        for category, count in sorted(counts.items()):
            if count <= 0:
                continue
            if sign > 0:
                await self.increment(batch, scope, [category], amount=count)
            else:
                await self.decrement(batch, scope, [category], amount=count)
        await self.commit(batch)

    async def top_by_count(self, limit: int = 20) -> list[str]:
        return await self.repo.top_by_count(GLOBAL_SCOPE, limit)

    async def top_by_recency(self, limit: int = 20) -> list[str]:
        return await self.repo.top_by_recency(GLOBAL_SCOPE, limit)

    async def default_categories(self) -> list[str]:
        return await self.repo.recommended()

    async def counts(self, scope: str) -> dict[str, int]:
        return await self.repo.counts(scope)
