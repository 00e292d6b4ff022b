"""
User model - lenders, borrowers and exchange points.
"""

from typing import TYPE_CHECKING

from sqlalchemy import Enum, Float, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lendhub.db.base import Base, TimestampMixin
from lendhub.db.models.enums import LedgerState, Role, enum_values

if TYPE_CHECKING:
    from lendhub.db.models.exchange_point import ExchangePointNomination


class User(TimestampMixin, Base):
    """User entity. An exchange point is a user with the EXCHANGE_POINT role."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)
    nickname: Mapped[str] = mapped_column(String(100), nullable=False)
    role: Mapped[Role] = mapped_column(
        Enum(Role, native_enum=False, length=20, values_callable=enum_values),
        default=Role.USER,
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)

    address: Mapped[str | None] = mapped_column(String(255), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    geohash: Mapped[str | None] = mapped_column(String(22), nullable=True, index=True)

    ledger_state: Mapped[LedgerState] = mapped_column(
        Enum(LedgerState, native_enum=False, length=20, values_callable=enum_values),
        default=LedgerState.UNINITIALIZED,
        nullable=False,
    )

    nominations: Mapped[list["ExchangePointNomination"]] = relationship(
        "ExchangePointNomination",
        foreign_keys="ExchangePointNomination.user_id",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def exchange_point_ids(self) -> list[int]:
        return sorted(n.exchange_point_id for n in self.nominations)

    @property
    def location(self) -> tuple[float, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @property
    def is_exchange_point(self) -> bool:
        return self.role == Role.EXCHANGE_POINT

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
