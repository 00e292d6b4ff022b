"""
Transaction model - one borrow/lend request moving an item between holders.
"""

from sqlalchemy import Enum, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from lendhub.db.base import Base, TimestampMixin
from lendhub.db.models.enums import TransactionStatus, enum_values


class Transaction(TimestampMixin, Base):
    """Lending request. Status changes only through the transaction state machine."""

    __tablename__ = "transactions"
    __table_args__ = (Index("ix_transactions_item_status", "item_id", "status"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id"), nullable=False, index=True)
    requestor_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus, native_enum=False, length=20, values_callable=enum_values),
        default=TransactionStatus.PENDING,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Transaction(id={self.id}, item_id={self.item_id}, status={self.status})>"
