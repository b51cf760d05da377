"""
models/shared_expense.py — SharedExpense table definition.

The participant set and the split map are not stored as columns. Both are
read off the child SharedExpenseSplit rows (models/split.py), one row per
participant, so a split key can never name a non-participant.

Amounts are NOT validated against the total: the creator's split is whatever
is left of `amount` after the friends' shares, and may be negative.
"""

from __future__ import annotations

import datetime as dt
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_tracker.app.extensions import db
from expense_tracker.app.models.expense import Category, category_column


class SharedExpense(db.Model):
    __tablename__ = "shared_expenses"

    id: Mapped[int] = mapped_column(primary_key=True)

    creator_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    category: Mapped[Category] = mapped_column(
        category_column(),
        nullable=False,
        default=Category.OTHER,
        server_default=Category.OTHER.value,
    )

    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────

    creator: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[creator_id],
    )

    # ON DELETE CASCADE — splits are owned by their expense.
    splits: Mapped[list["SharedExpenseSplit"]] = relationship(  # noqa: F821
        "SharedExpenseSplit",
        back_populates="expense",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="SharedExpenseSplit.id",
    )

    # ── Convenience properties ─────────────────────────────────────────────
    # Read-only views over the split rows.

    @property
    def participants(self) -> list[int]:
        """User ids sharing this expense, creator first."""
        return [s.user_id for s in self.splits]

    @property
    def split_map(self) -> dict[int, Decimal]:
        """Mapping participant user id -> owed amount."""
        return {s.user_id: s.amount for s in self.splits}

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<SharedExpense id={self.id} "
            f"creator_id={self.creator_id} "
            f"amount={self.amount}>"
        )
