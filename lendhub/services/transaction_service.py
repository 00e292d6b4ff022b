"""
Transaction service - the lend/borrow state machine.
Challenge: Two borrowers, an owner and a holder act on the same item concurrently.
Design: Legal moves live in one table. Creation locks the item row before counting open
requests; every transition is a compare-and-set on the current status. Notifications go
out after the write and never fail the transition.
"""

import logging

from prometheus_client import Counter
from sqlalchemy.ext.asyncio import AsyncSession

from lendhub.config import get_settings
from lendhub.core.exceptions import (
    CapacityExceededError,
    InvalidStateTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from lendhub.db.models.enums import TERMINAL_STATUSES, TransactionStatus
from lendhub.db.models.item import Item
from lendhub.db.models.transaction import Transaction
from lendhub.db.models.user import User
from lendhub.db.repositories.transaction_repository import TransactionRepository
from lendhub.notifications.notifier import Notifier, unique_recipients
from lendhub.services.item_service import ItemService
from lendhub.services.user_service import UserService

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[TransactionStatus, frozenset[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({TransactionStatus.APPROVED, TransactionStatus.CANCELLED}),
    TransactionStatus.APPROVED: frozenset({TransactionStatus.TRANSFERRED, TransactionStatus.CANCELLED}),
    TransactionStatus.TRANSFERRED: frozenset({TransactionStatus.COMPLETED, TransactionStatus.CANCELLED}),
    TransactionStatus.COMPLETED: frozenset(),
    TransactionStatus.CANCELLED: frozenset(),
}

TRANSITIONS = Counter(
    "lendhub_transaction_transitions_total",
    "Transaction state changes by resulting status",
    ["status"],
)


def can_transition(current: TransactionStatus, target: TransactionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class TransactionService:
    def __init__(
        self,
        session: AsyncSession,
        items: ItemService,
        users: UserService,
        notifier: Notifier,
        max_open: int | None = None,
    ):
        self.session = session
        self.repo = TransactionRepository(session)
        self.items = items
        self.users = users
        self.notifier = notifier
        self.max_open = max_open or get_settings().max_open_transactions_per_item

    async def get_by_id(self, id: int) -> Transaction:
        transaction = await self.repo.get_by_id(id)
        if transaction is None:
            raise NotFoundError(f"Transaction {id} not found")
        return transaction

    async def by_item(self, item_id: int, open_only: bool = False) -> list[Transaction]:
        await self.items.get_by_id(item_id)
        exclude = TERMINAL_STATUSES if open_only else frozenset()
        return await self.repo.by_item(item_id, exclude_statuses=exclude)

    async def create(self, requestor: User, item_id: int) -> Transaction:
        """Open a request on an item; at most ``max_open`` may be open at once."""
        item = await self.items.repo.get_for_update(item_id)
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        open_count = await self.repo.count_open(item_id)
        if open_count >= self.max_open:
            raise CapacityExceededError(f"Item {item_id} already has {open_count} open transactions")

        transaction = await self.repo.add(
            Transaction(item_id=item_id, requestor_id=requestor.id, status=TransactionStatus.PENDING)
        )
        TRANSITIONS.labels(status=TransactionStatus.PENDING.value).inc()
        logger.info("transaction %s: user %s requested item %s", transaction.id, requestor.id, item_id)
        await self._notify(
            transaction,
            item,
            "New Transaction Request",
            f"You have a new transaction request for item {item.name} from {requestor.nickname}.",
        )
        return transaction

    async def approve(self, actor: User, id: int) -> Transaction:
        transaction, item = await self._load(id, TransactionStatus.APPROVED)
        if actor.id != item.owner_id:
            raise UnauthorizedError(f"Only the owner can approve transaction {id}")
        await self._advance(transaction, TransactionStatus.APPROVED)
        await self._notify(
            transaction,
            item,
            f"Transaction Approved for Item: {item.name}",
            f"Your transaction request for item {item.name} has been approved by {actor.nickname}. "
            "Please proceed with the next steps.",
        )
        return transaction

    async def cancel(self, actor: User, id: int) -> Transaction:
        transaction, item = await self._load(id, TransactionStatus.CANCELLED)
        if actor.id not in (item.owner_id, transaction.requestor_id):
            raise UnauthorizedError(f"Only the owner or requestor can cancel transaction {id}")
        await self._advance(transaction, TransactionStatus.CANCELLED)
        await self._notify(
            transaction,
            item,
            f"Transaction Cancelled for Item: {item.name}",
            f"Your transaction request for item {item.name} has been cancelled by {actor.nickname}.",
        )
        return transaction

    async def transfer(self, actor: User, id: int) -> Transaction:
        """Holder hands the item over. Holdership moves only on receive."""
        transaction, item = await self._load(id, TransactionStatus.TRANSFERRED)
        if actor.id != item.current_holder_id:
            raise UnauthorizedError(f"Only the current holder can transfer transaction {id}")
        await self._advance(transaction, TransactionStatus.TRANSFERRED)
        await self._notify(
            transaction,
            item,
            f"Transaction Transferred for Item: {item.name}",
            f"Your transaction request for item {item.name} has been transferred by {actor.nickname}.",
        )
        return transaction

    async def receive(self, actor: User, id: int) -> Transaction:
        """
        Requestor confirms receipt: the item moves to them and the transaction completes.

        Refused while the requestor has no location; the transaction then stays transferred.
        """
        transaction, item = await self._load(id, TransactionStatus.COMPLETED)
        if actor.id != transaction.requestor_id:
            raise UnauthorizedError(f"Only the requestor can receive transaction {id}")
        if actor.location is None:
            raise ValidationError(f"Set a location before receiving the item of transaction {id}")
        recipients = await self._recipients(transaction, item)
        await self._advance(transaction, TransactionStatus.COMPLETED)
        await self.items.update_holder(item, actor)
        self._send(
            recipients,
            f"Transaction Received for Item: {item.name}",
            f"Your transaction request for item {item.name} has been received.",
        )
        return transaction

    async def _load(self, id: int, target: TransactionStatus) -> tuple[Transaction, Item]:
        transaction = await self.get_by_id(id)
        if not can_transition(transaction.status, target):
            raise InvalidStateTransitionError(
                f"Transaction {id} cannot move from {transaction.status.value} to {target.value}",
                current=transaction.status.value,
                target=target.value,
            )
        item = await self.items.get_by_id(transaction.item_id)
        return transaction, item

    async def _advance(self, transaction: Transaction, target: TransactionStatus) -> None:
        current = transaction.status
        if not await self.repo.compare_and_set_status(transaction.id, current, target):
            raise InvalidStateTransitionError(
                f"Transaction {transaction.id} changed concurrently; expected {current.value}",
                current=current.value,
                target=target.value,
            )
        await self.session.refresh(transaction)
        TRANSITIONS.labels(status=target.value).inc()
        logger.info("transaction %s: %s -> %s", transaction.id, current.value, target.value)

    async def _recipients(self, transaction: Transaction, item: Item) -> list[str]:
        """Requestor, owner and holder (when set), deduplicated."""
        emails: list[str | None] = []
        for user_id in (transaction.requestor_id, item.owner_id, item.holder_id):
            if user_id is None:
                continue
            try:
                emails.append((await self.users.get_user(user_id)).email)
            except NotFoundError:
                logger.warning("transaction %s: party %s not found, not notified", transaction.id, user_id)
        return unique_recipients(emails)

    async def _notify(self, transaction: Transaction, item: Item, subject: str, body: str) -> None:
        self._send(await self._recipients(transaction, item), subject, body)

    def _send(self, recipients: list[str], subject: str, body: str) -> None:
        try:
            self.notifier.send(recipients, [], subject, body)
        except Exception as exc:
            logger.warning("notification %r failed: %s", subject, exc)
