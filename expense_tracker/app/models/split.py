"""
models/split.py — SharedExpenseSplit table definition.

One row per participant of a shared expense.
  - shared_expense_id is ON DELETE CASCADE — splits are owned by their expense.
  - user_id is ON DELETE RESTRICT — cannot delete a user who owes a share.
  - UNIQUE(shared_expense_id, user_id) keeps the split map a proper mapping.

There is no CHECK(amount > 0): the creator's imputed share is not validated
and can legitimately come out as zero or negative.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import ForeignKey, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_tracker.app.extensions import db


class SharedExpenseSplit(db.Model):
    __tablename__ = "shared_expense_splits"

    __table_args__ = (
        UniqueConstraint(
            "shared_expense_id",
            "user_id",
            name="uq_shared_expense_splits_expense_user",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    shared_expense_id: Mapped[int] = mapped_column(
        ForeignKey("shared_expenses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Indexed: "expenses I participate in" is a lookup by user_id.
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )

    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    expense: Mapped["SharedExpense"] = relationship(  # noqa: F821
        "SharedExpense",
        back_populates="splits",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<SharedExpenseSplit id={self.id} "
            f"shared_expense_id={self.shared_expense_id} "
            f"user_id={self.user_id} "
            f"amount={self.amount}>"
        )
