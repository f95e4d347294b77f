"""initial schema

Revision ID: 3f1c2a9d7b10
Revises:
"""
from alembic import op
import sqlalchemy as sa

revision = "3f1c2a9d7b10"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100)),
        sa.Column("mobile", sa.String(20), nullable=False, unique=True),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "contacts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.String(20)),
        sa.Column("mobile", sa.String(20)),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "groups",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id")),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "group_members",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.UniqueConstraint("group_id", "user_id", name="uq_group_member"),
    )
    op.create_table(
        "settlement_intents",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("contact_id", sa.Integer(), sa.ForeignKey("contacts.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("note", sa.String(255)),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("contact_id", sa.Integer(), sa.ForeignKey("contacts.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("transaction_type", sa.String(10), nullable=False),
        sa.Column("note", sa.String(255)),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(40)),
        sa.Column("intent_id", sa.Integer(), sa.ForeignKey("settlement_intents.id")),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id"), nullable=False),
        sa.Column("description", sa.String(255)),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("paid_by", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("split_between", sa.JSON(), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(40)),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_table(
        "settlements",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("group_id", sa.Integer(), sa.ForeignKey("groups.id"), nullable=False),
        sa.Column("from_user", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("to_user", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("status", sa.String(20)),
        sa.Column("paid_at", sa.DateTime()),
        sa.Column("intent_id", sa.Integer(), sa.ForeignKey("settlement_intents.id")),
    )
    op.create_index("ix_transactions_contact_date", "transactions", ["contact_id", "date"])
    op.create_index("ix_expenses_group_date", "expenses", ["group_id", "date"])


def downgrade():
    op.drop_index("ix_expenses_group_date", table_name="expenses")
    op.drop_index("ix_transactions_contact_date", table_name="transactions")
    op.drop_table("settlements")
    op.drop_table("expenses")
    op.drop_table("transactions")
    op.drop_table("settlement_intents")
    op.drop_table("group_members")
    op.drop_table("groups")
    op.drop_table("contacts")
    op.drop_table("users")
