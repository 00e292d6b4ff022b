# ORM models - importing this package registers every table on Base.metadata

from lendhub.db.models.category_counter import CategoryCounter, RecommendedCategory
from lendhub.db.models.enums import (
    ItemCondition,
    ItemStatus,
    LedgerState,
    Role,
    TransactionStatus,
)
from lendhub.db.models.exchange_point import ExchangePointItem, ExchangePointNomination
from lendhub.db.models.item import Item, ItemCategory
from lendhub.db.models.mail import MailMessage
from lendhub.db.models.transaction import Transaction
from lendhub.db.models.user import User

__all__ = [
    "CategoryCounter",
    "ExchangePointItem",
    "ExchangePointNomination",
    "Item",
    "ItemCategory",
    "ItemCondition",
    "ItemStatus",
    "LedgerState",
    "MailMessage",
    "RecommendedCategory",
    "Role",
    "Transaction",
    "TransactionStatus",
    "User",
]
