# Repository pattern: abstract data access (SOLID - Dependency Inversion)

from lendhub.db.repositories.category_repository import CategoryRepository
from lendhub.db.repositories.exchange_point_repository import ExchangePointRepository
from lendhub.db.repositories.item_repository import ItemRepository
from lendhub.db.repositories.transaction_repository import TransactionRepository
from lendhub.db.repositories.user_repository import UserRepository

__all__ = [
    "CategoryRepository",
    "ExchangePointRepository",
    "ItemRepository",
    "TransactionRepository",
    "UserRepository",
]
