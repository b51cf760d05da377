"""Initial schema — users, friendships, invitations and expenses.

Revision: 001_initial_schema

Append-only:
  This file must NEVER be edited after it has been applied to any database.
  If a schema change is required, create a NEW migration file.

Creation order:
  Tables in FK dependency order (users → friend_links, friend_invitations,
  personal_expenses, shared_expenses → shared_expense_splits), then indexes.

Category columns are plain VARCHAR(20) (non-native enum) so the same schema
runs on PostgreSQL and SQLite.

ON DELETE policies:
  friend_links.user_id               → CASCADE   (links owned by user)
  friend_invitations.inviter_id      → CASCADE
  personal_expenses.user_id          → CASCADE
  shared_expenses.creator_id         → CASCADE
  shared_expense_splits.expense_id   → CASCADE   (splits owned by expense)
  shared_expense_splits.user_id      → RESTRICT  (cannot delete a participant)
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None      # first migration — no parent
branch_labels: tuple | None = None
depends_on: tuple | None = None


def _timestamps(with_updated: bool = True) -> list[sa.Column]:
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
    ]
    if with_updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def upgrade() -> None:

    # ── users ──────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(20), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_users_name_nonempty"),
    )
    op.create_index("ix_users_phone", "users", ["phone"], unique=True)

    # ── friend_links ───────────────────────────────────────────────────────
    # No FK to the counterpart: it is resolved through phone_number on demand.
    op.create_table(
        "friend_links",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("phone_number", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("status", sa.String(20), server_default="accepted", nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_friend_links"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_friend_links_user_id",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "status IS NULL OR status IN ('pending', 'accepted')",
            name="ck_friend_links_status",
        ),
        sa.CheckConstraint("LENGTH(TRIM(name)) > 0", name="ck_friend_links_name_nonempty"),
    )
    op.create_index("ix_friend_links_user_id", "friend_links", ["user_id"])
    op.create_index("ix_friend_links_phone_number", "friend_links", ["phone_number"])

    # ── friend_invitations ─────────────────────────────────────────────────
    op.create_table(
        "friend_invitations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("inviter_id", sa.Integer(), nullable=False),
        sa.Column("inviter_name", sa.String(255), nullable=False),
        sa.Column("friend_phone", sa.String(20), nullable=False),
        sa.Column("friend_name", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), server_default="pending", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_friend_invitations"),
        sa.ForeignKeyConstraint(
            ["inviter_id"], ["users.id"],
            name="fk_friend_invitations_inviter_id",
            ondelete="CASCADE",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'accepted')",
            name="ck_friend_invitations_status",
        ),
    )
    op.create_index("ix_friend_invitations_inviter_id", "friend_invitations", ["inviter_id"])
    op.create_index(
        "idx_friend_invitations_phone_status",
        "friend_invitations",
        ["friend_phone", "status"],
    )

    # ── personal_expenses ──────────────────────────────────────────────────
    op.create_table(
        "personal_expenses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(20), server_default="other", nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_personal_expenses"),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_personal_expenses_user_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_personal_expenses_user_id", "personal_expenses", ["user_id"])

    # ── shared_expenses ────────────────────────────────────────────────────
    op.create_table(
        "shared_expenses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("creator_id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("category", sa.String(20), server_default="other", nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        *_timestamps(with_updated=False),
        sa.PrimaryKeyConstraint("id", name="pk_shared_expenses"),
        sa.ForeignKeyConstraint(
            ["creator_id"], ["users.id"],
            name="fk_shared_expenses_creator_id",
            ondelete="CASCADE",
        ),
    )
    op.create_index("ix_shared_expenses_creator_id", "shared_expenses", ["creator_id"])

    # ── shared_expense_splits ──────────────────────────────────────────────
    op.create_table(
        "shared_expense_splits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("shared_expense_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(12, 2), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_shared_expense_splits"),
        sa.ForeignKeyConstraint(
            ["shared_expense_id"], ["shared_expenses.id"],
            name="fk_shared_expense_splits_expense_id",
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"],
            name="fk_shared_expense_splits_user_id",
            ondelete="RESTRICT",
        ),
        sa.UniqueConstraint(
            "shared_expense_id", "user_id",
            name="uq_shared_expense_splits_expense_user",
        ),
    )
    op.create_index(
        "ix_shared_expense_splits_shared_expense_id",
        "shared_expense_splits",
        ["shared_expense_id"],
    )
    op.create_index("ix_shared_expense_splits_user_id", "shared_expense_splits", ["user_id"])


def downgrade() -> None:
    """Drops everything in reverse dependency order."""
    op.drop_table("shared_expense_splits")
    op.drop_table("shared_expenses")
    op.drop_table("personal_expenses")
    op.drop_table("friend_invitations")
    op.drop_table("friend_links")
    op.drop_table("users")
