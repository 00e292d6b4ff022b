"""
Transaction state machine tests - legal moves, permissions, capacity and holder hand-off.
"""

import pytest
import pytest_asyncio
from sqlalchemy import update

from lendhub.cache.user_cache import UserCache
from lendhub.core.exceptions import (
    CapacityExceededError,
    InvalidStateTransitionError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from lendhub.db.models import Transaction, TransactionStatus
from lendhub.services.factory import build_services
from lendhub.services.transaction_service import ALLOWED_TRANSITIONS, can_transition
from tests.fakes import RecordingIndexer, RecordingNotifier

OWNER_HOME = (52.37, 4.89)
BORROWER_HOME = (52.09, 5.12)


@pytest_asyncio.fixture
async def lending(make_user, make_legacy_item):
    owner = await make_user("Olivia", location=OWNER_HOME)
    borrower = await make_user("Bram", location=BORROWER_HOME)
    item = await make_legacy_item(owner, "Ladder", ["Tools"])
    return owner, borrower, item


def test_transition_table():
    assert can_transition(TransactionStatus.PENDING, TransactionStatus.APPROVED)
    assert not can_transition(TransactionStatus.PENDING, TransactionStatus.TRANSFERRED)
    assert not can_transition(TransactionStatus.APPROVED, TransactionStatus.COMPLETED)
    for terminal in (TransactionStatus.COMPLETED, TransactionStatus.CANCELLED):
        assert ALLOWED_TRANSITIONS[terminal] == frozenset()


@pytest.mark.asyncio
async def test_full_lifecycle_moves_item_to_borrower(services, lending, notifier, indexer):
    owner, borrower, item = lending
    txs = services.transactions

    tx = await txs.create(borrower, item.id)
    assert tx.status == TransactionStatus.PENDING
    await txs.approve(owner, tx.id)
    await txs.transfer(owner, tx.id)
    # Holdership only moves on receipt
    assert item.holder_id is None
    done = await txs.receive(borrower, tx.id)

    assert done.status == TransactionStatus.COMPLETED
    assert item.holder_id == borrower.id
    assert item.location == BORROWER_HOME
    assert item.id in indexer.indexed
    assert notifier.subjects == [
        "New Transaction Request",
        "Transaction Approved for Item: Ladder",
        "Transaction Transferred for Item: Ladder",
        "Transaction Received for Item: Ladder",
    ]
    assert sorted(notifier.sent[0]["to"]) == sorted([borrower.email, owner.email])
    assert notifier.sent[-1]["cc"] == []


@pytest.mark.asyncio
async def test_receive_without_location_is_refused(services, make_user, make_legacy_item, session):
    owner = await make_user("Olivia", location=OWNER_HOME)
    nomad = await make_user("Nomad")
    item = await make_legacy_item(owner, "Tent", ["Outdoor"])
    txs = services.transactions
    tx = await txs.create(nomad, item.id)
    await txs.approve(owner, tx.id)
    await txs.transfer(owner, tx.id)

    with pytest.raises(ValidationError):
        await txs.receive(nomad, tx.id)

    await session.refresh(tx)
    assert tx.status == TransactionStatus.TRANSFERRED
    assert item.holder_id is None
    assert item.location == OWNER_HOME
    nearby = await services.items.items_by_radius(OWNER_HOME, 1)
    assert [found.id for found, _ in nearby] == [item.id]


@pytest.mark.asyncio
async def test_owner_receiving_back_clears_holder(services, lending, make_user):
    owner, borrower, item = lending
    txs = services.transactions
    first = await txs.create(borrower, item.id)
    await txs.approve(owner, first.id)
    await txs.transfer(owner, first.id)
    await txs.receive(borrower, first.id)

    back = await txs.create(owner, item.id)
    await txs.approve(owner, back.id)
    with pytest.raises(UnauthorizedError):
        # The owner no longer physically has it
        await txs.transfer(owner, back.id)
    await txs.transfer(borrower, back.id)
    await txs.receive(owner, back.id)

    assert item.holder_id is None
    assert item.location == OWNER_HOME


@pytest.mark.asyncio
@pytest.mark.parametrize("move", ["transfer", "receive"])
async def test_pending_cannot_skip_ahead(services, lending, move):
    owner, borrower, item = lending
    tx = await services.transactions.create(borrower, item.id)
    actor = owner if move == "transfer" else borrower

    with pytest.raises(InvalidStateTransitionError) as excinfo:
        await getattr(services.transactions, move)(actor, tx.id)
    assert excinfo.value.current == "pending"
    assert tx.status == TransactionStatus.PENDING


@pytest.mark.asyncio
async def test_only_owner_approves(services, lending):
    owner, borrower, item = lending
    tx = await services.transactions.create(borrower, item.id)
    with pytest.raises(UnauthorizedError):
        await services.transactions.approve(borrower, tx.id)


@pytest.mark.asyncio
async def test_cancel_permissions(services, lending, make_user):
    owner, borrower, item = lending
    stranger = await make_user("Sam")
    txs = services.transactions

    first = await txs.create(borrower, item.id)
    with pytest.raises(UnauthorizedError):
        await txs.cancel(stranger, first.id)
    assert (await txs.cancel(borrower, first.id)).status == TransactionStatus.CANCELLED

    second = await txs.create(borrower, item.id)
    await txs.approve(owner, second.id)
    assert (await txs.cancel(owner, second.id)).status == TransactionStatus.CANCELLED


@pytest.mark.asyncio
async def test_terminal_transactions_reject_every_move(services, lending):
    owner, borrower, item = lending
    txs = services.transactions
    tx = await txs.create(borrower, item.id)
    await txs.cancel(owner, tx.id)

    for move, actor in [("approve", owner), ("cancel", owner), ("transfer", owner), ("receive", borrower)]:
        with pytest.raises(InvalidStateTransitionError):
            await getattr(txs, move)(actor, tx.id)


@pytest.mark.asyncio
async def test_capacity_frees_up_after_cancel(services, lending, make_user):
    owner, borrower, item = lending
    other = await make_user("Noor")
    third = await make_user("Ines")
    txs = services.transactions

    first = await txs.create(borrower, item.id)
    await txs.create(other, item.id)
    with pytest.raises(CapacityExceededError):
        await txs.create(third, item.id)

    await txs.cancel(borrower, first.id)
    created = await txs.create(third, item.id)

    assert created.status == TransactionStatus.PENDING
    open_ids = [t.id for t in await txs.by_item(item.id, open_only=True)]
    assert created.id in open_ids
    assert first.id not in open_ids
    assert len(await txs.by_item(item.id)) == 3


@pytest.mark.asyncio
async def test_missing_item_and_transaction(services, lending):
    owner, borrower, item = lending
    with pytest.raises(NotFoundError):
        await services.transactions.create(borrower, 999)
    with pytest.raises(NotFoundError):
        await services.transactions.approve(owner, 999)


@pytest.mark.asyncio
async def test_notifier_failure_does_not_block_transition(session, lending):
    owner, borrower, item = lending
    services = build_services(
        session,
        notifier=RecordingNotifier(fail=True),
        indexer=RecordingIndexer(),
        user_cache=UserCache(),
        category_cache_ttl=0,
    )

    tx = await services.transactions.create(borrower, item.id)
    approved = await services.transactions.approve(owner, tx.id)

    assert approved.status == TransactionStatus.APPROVED


@pytest.mark.asyncio
async def test_concurrent_change_loses_compare_and_set(services, lending, session):
    owner, borrower, item = lending
    tx = await services.transactions.create(borrower, item.id)
    # Another writer cancels behind this session's back
    await session.execute(
        update(Transaction)
        .where(Transaction.id == tx.id)
        .values(status=TransactionStatus.CANCELLED)
        .execution_options(synchronize_session=False)
    )

    with pytest.raises(InvalidStateTransitionError):
        await services.transactions.approve(owner, tx.id)
