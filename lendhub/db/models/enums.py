"""Enumerations shared by ORM models, schemas and services."""

import enum


class Role(str, enum.Enum):
    USER = "user"
    EXCHANGE_POINT = "exchange_point"


class LedgerState(str, enum.Enum):
    """Per-user category ledger lifecycle: counters are trusted only when READY."""

    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class ItemStatus(str, enum.Enum):
    AVAILABLE = "available"
    EXCHANGEABLE = "exchangeable"
    GIFT = "gift"
    RESERVED = "reserved"
    TRANSFERRED = "transferred"


class ItemCondition(str, enum.Enum):
    NEW = "new"
    LIKE_NEW = "like_new"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    TRANSFERRED = "transferred"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({TransactionStatus.COMPLETED, TransactionStatus.CANCELLED})
OPEN_STATUSES = frozenset(set(TransactionStatus) - TERMINAL_STATUSES)


def enum_values(enum_cls) -> list[str]:
    """Persist enum values (not names) in non-native enum columns."""
    return [member.value for member in enum_cls]
