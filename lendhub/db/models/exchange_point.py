"""
Exchange point models - nominations and the denormalized item cache.
Challenge: Answer "items available at this exchange point" without scanning every user.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, ForeignKey, Index
from sqlalchemy.orm import Mapped, mapped_column

from lendhub.db.base import Base, utcnow


class ExchangePointNomination(Base):
    """A user nominating an exchange point as a place their items can be picked up."""

    __tablename__ = "exchange_point_nominations"

    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    exchange_point_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True, index=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class ExchangePointItem(Base):
    """Cached (item id -> categories) entry contributed to an exchange point."""

    __tablename__ = "exchange_point_items"
    __table_args__ = (Index("ix_exchange_point_items_contributor", "exchange_point_id", "contributor_id"),)

    exchange_point_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), primary_key=True)
    contributor_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    categories: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<ExchangePointItem(exchange_point_id={self.exchange_point_id}, item_id={self.item_id})>"
