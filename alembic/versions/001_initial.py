"""Initial schema: users, items, transactions, category counters, exchange point cache, mail outbox

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("nickname", sa.String(100), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="user"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("geohash", sa.String(22), nullable=True),
        sa.Column("ledger_state", sa.String(20), nullable=False, server_default="uninitialized"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"])
    op.create_index("ix_users_geohash", "users", ["geohash"])

    op.create_table(
        "exchange_point_nominations",
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("exchange_point_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], name="fk_exchange_point_nominations_user_id_users", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["exchange_point_id"],
            ["users.id"],
            name="fk_exchange_point_nominations_exchange_point_id_users",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("user_id", "exchange_point_id", name="pk_exchange_point_nominations"),
    )
    op.create_index(
        "ix_exchange_point_nominations_exchange_point_id", "exchange_point_nominations", ["exchange_point_id"]
    )

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.Integer(), nullable=False),
        sa.Column("holder_id", sa.Integer(), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("condition", sa.String(20), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="available"),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("published_year", sa.Integer(), nullable=True),
        sa.Column("language", sa.String(20), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("geohash", sa.String(22), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["owner_id"], ["users.id"], name="fk_items_owner_id_users"),
        sa.ForeignKeyConstraint(["holder_id"], ["users.id"], name="fk_items_holder_id_users"),
        sa.PrimaryKeyConstraint("id", name="pk_items"),
    )
    op.create_index("ix_items_owner_id", "items", ["owner_id"])
    op.create_index("ix_items_holder_id", "items", ["holder_id"])
    op.create_index("ix_items_name", "items", ["name"])
    op.create_index("ix_items_status", "items", ["status"])
    op.create_index("ix_items_geohash", "items", ["geohash"])

    op.create_table(
        "item_categories",
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("label", sa.String(100), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(
            ["item_id"], ["items.id"], name="fk_item_categories_item_id_items", ondelete="CASCADE"
        ),
        sa.PrimaryKeyConstraint("item_id", "label", name="pk_item_categories"),
    )
    op.create_index("ix_item_categories_label", "item_categories", ["label"])

    op.create_table(
        "exchange_point_items",
        sa.Column("exchange_point_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("contributor_id", sa.Integer(), nullable=False),
        sa.Column("categories", sa.JSON(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(
            ["exchange_point_id"],
            ["users.id"],
            name="fk_exchange_point_items_exchange_point_id_users",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["item_id"], ["items.id"], name="fk_exchange_point_items_item_id_items", ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["contributor_id"],
            ["users.id"],
            name="fk_exchange_point_items_contributor_id_users",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("exchange_point_id", "item_id", name="pk_exchange_point_items"),
    )
    op.create_index(
        "ix_exchange_point_items_contributor", "exchange_point_items", ["exchange_point_id", "contributor_id"]
    )

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("requestor_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.ForeignKeyConstraint(["item_id"], ["items.id"], name="fk_transactions_item_id_items"),
        sa.ForeignKeyConstraint(["requestor_id"], ["users.id"], name="fk_transactions_requestor_id_users"),
        sa.PrimaryKeyConstraint("id", name="pk_transactions"),
    )
    op.create_index("ix_transactions_item_id", "transactions", ["item_id"])
    op.create_index("ix_transactions_requestor_id", "transactions", ["requestor_id"])
    op.create_index("ix_transactions_item_status", "transactions", ["item_id", "status"])

    op.create_table(
        "category_counters",
        sa.Column("scope", sa.String(64), nullable=False),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("count", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.CheckConstraint("count > 0", name="ck_category_counters_positive"),
        sa.PrimaryKeyConstraint("scope", "category", name="pk_category_counters"),
    )
    op.create_index("ix_category_counters_scope_count", "category_counters", ["scope", "count"])
    op.create_index("ix_category_counters_scope_updated", "category_counters", ["scope", "updated_at"])

    recommended = op.create_table(
        "recommended_categories",
        sa.Column("label", sa.String(100), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.PrimaryKeyConstraint("label", name="pk_recommended_categories"),
    )
    op.bulk_insert(
        recommended,
        [
            {"label": label, "position": position}
            for position, label in enumerate(["Books", "Tools", "Toys", "Kitchen", "Electronics", "Clothing"])
        ],
    )

    op.create_table(
        "mail_outbox",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("to", sa.JSON(), nullable=False),
        sa.Column("cc", sa.JSON(), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_mail_outbox"),
    )


def downgrade() -> None:
    op.drop_table("mail_outbox")
    op.drop_table("recommended_categories")
    op.drop_index("ix_category_counters_scope_updated", "category_counters")
    op.drop_index("ix_category_counters_scope_count", "category_counters")
    op.drop_table("category_counters")
    op.drop_index("ix_transactions_item_status", "transactions")
    op.drop_index("ix_transactions_requestor_id", "transactions")
    op.drop_index("ix_transactions_item_id", "transactions")
    op.drop_table("transactions")
    op.drop_index("ix_exchange_point_items_contributor", "exchange_point_items")
    op.drop_table("exchange_point_items")
    op.drop_index("ix_item_categories_label", "item_categories")
    op.drop_table("item_categories")
    for index in ("ix_items_geohash", "ix_items_status", "ix_items_name", "ix_items_holder_id", "ix_items_owner_id"):
        op.drop_index(index, "items")
    op.drop_table("items")
    op.drop_index("ix_exchange_point_nominations_exchange_point_id", "exchange_point_nominations")
    op.drop_table("exchange_point_nominations")
    op.drop_index("ix_users_geohash", "users")
    op.drop_index("ix_users_role", "users")
    op.drop_index("ix_users_email", "users")
    op.drop_table("users")
