"""
Category counter model - one row per (scope, category).
Scopes: "global", "user:<id>", "exchange_point:<id>". A row is never stored with count <= 0.
"""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from lendhub.db.base import Base, utcnow


class CategoryCounter(Base):
    __tablename__ = "category_counters"
    __table_args__ = (
        CheckConstraint("count > 0", name="ck_category_counters_positive"),
        Index("ix_category_counters_scope_count", "scope", "count"),
        Index("ix_category_counters_scope_updated", "scope", "updated_at"),
    )

    scope: Mapped[str] = mapped_column(String(64), primary_key=True)
    category: Mapped[str] = mapped_column(String(100), primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<CategoryCounter({self.scope}/{self.category}={self.count})>"


class RecommendedCategory(Base):
    """Curated default categories offered to users creating their first item."""

    __tablename__ = "recommended_categories"

    label: Mapped[str] = mapped_column(String(100), primary_key=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
