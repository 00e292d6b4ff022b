"""
Item model - a physical object listed for lending, with owner, holder and location.
"""

from sqlalchemy import JSON, Enum, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lendhub.db.base import Base, TimestampMixin
from lendhub.db.models.enums import ItemCondition, ItemStatus, enum_values


class ItemCategory(Base):
    """One category label on an item. Rows make category filters plain indexed SQL."""

    __tablename__ = "item_categories"

    item_id: Mapped[int] = mapped_column(ForeignKey("items.id", ondelete="CASCADE"), primary_key=True)
    label: Mapped[str] = mapped_column(String(100), primary_key=True, index=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Item(TimestampMixin, Base):
    """
    Item entity. owner_id never changes; holder_id is the current custodian when it is
    not the owner (NULL while the owner holds it). Location follows whoever holds it.
    """

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    owner_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    holder_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"), nullable=True, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    condition: Mapped[ItemCondition | None] = mapped_column(
        Enum(ItemCondition, native_enum=False, length=20, values_callable=enum_values), nullable=True
    )
    status: Mapped[ItemStatus] = mapped_column(
        Enum(ItemStatus, native_enum=False, length=20, values_callable=enum_values),
        default=ItemStatus.AVAILABLE,
        nullable=False,
        index=True,
    )
    images: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    published_year: Mapped[int | None] = mapped_column(Integer, nullable=True)
    language: Mapped[str | None] = mapped_column(String(20), nullable=True)

    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    geohash: Mapped[str | None] = mapped_column(String(22), nullable=True, index=True)

    category_links: Mapped[list[ItemCategory]] = relationship(
        ItemCategory,
        cascade="all, delete-orphan",
        order_by=ItemCategory.position,
        lazy="selectin",
    )

    @property
    def categories(self) -> list[str]:
        return [link.label for link in self.category_links]

    def set_categories(self, labels: list[str]) -> None:
        """Replace categories in place (delete + re-insert of the same key would collide in one flush)."""
        wanted = {label: pos for pos, label in enumerate(labels)}
        for link in list(self.category_links):
            if link.label not in wanted:
                self.category_links.remove(link)
        existing = {link.label: link for link in self.category_links}
        for label, pos in wanted.items():
            if label in existing:
                existing[label].position = pos
            else:
                self.category_links.append(ItemCategory(label=label, position=pos))
        self.category_links.sort(key=lambda link: link.position)

    @property
    def location(self) -> tuple[float, float] | None:
        if self.latitude is None or self.longitude is None:
            return None
        return (self.latitude, self.longitude)

    @property
    def current_holder_id(self) -> int:
        """Who physically has the item: the holder, or the owner when unheld."""
        return self.holder_id if self.holder_id is not None else self.owner_id

    def __repr__(self) -> str:
        return f"<Item(id={self.id}, name={self.name}, owner_id={self.owner_id}, holder_id={self.holder_id})>"
