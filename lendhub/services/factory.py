"""
Service wiring - builds the request-scoped service graph over one session.
Challenge: Items need the ledger and exchange points; users need items; the ledger needs
an item recount. Design: the ledger gets the item repository as a narrow reader, so the
graph is built bottom-up with no back-references.
"""

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from lendhub.cache.user_cache import UserCache
from lendhub.db.repositories.item_repository import ItemRepository
from lendhub.notifications.notifier import Notifier
from lendhub.search.indexer import SearchIndexer
from lendhub.services.category_ledger import CategoryLedger
from lendhub.services.category_service import CategoryService
from lendhub.services.exchange_point_service import ExchangePointService
from lendhub.services.item_service import ItemService
from lendhub.services.transaction_service import TransactionService
from lendhub.services.user_service import UserService


@dataclass
class Services:
    ledger: CategoryLedger
    categories: CategoryService
    exchange_points: ExchangePointService
    items: ItemService
    users: UserService
    transactions: TransactionService


def build_services(
    session: AsyncSession,
    *,
    notifier: Notifier,
    indexer: SearchIndexer,
    user_cache: UserCache,
    batch_size: int | None = None,
    category_cache_ttl: int | None = None,
) -> Services:
    item_repo = ItemRepository(session)
    ledger = CategoryLedger(session, item_reader=item_repo, batch_size=batch_size)
    exchange_points = ExchangePointService(session, ledger)
    items = ItemService(session, ledger, exchange_points, indexer, repo=item_repo)
    users = UserService(session, ledger, exchange_points, items, user_cache)
    transactions = TransactionService(session, items, users, notifier)
    return Services(
        ledger=ledger,
        categories=CategoryService(ledger, ttl_seconds=category_cache_ttl),
        exchange_points=exchange_points,
        items=items,
        users=users,
        transactions=transactions,
    )
