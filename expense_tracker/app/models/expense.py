"""
models/expense.py — PersonalExpense table and shared enum definitions.

Key design points:
  - `amount` uses Numeric(12, 2) — never Float.
  - Category is a Python enum stored as its value (VARCHAR + CHECK), so the
    same model works on PostgreSQL and on the SQLite test database.
  - Personal expenses are hard-deleted; only their owner can see them.
"""

from __future__ import annotations

import datetime as dt
import enum
from datetime import datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Enum, ForeignKey, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_tracker.app.extensions import db


# ── Enum Definitions ───────────────────────────────────────────────────────
# Defined here so they can be imported by schemas and services without
# pulling in the full model.

class Category(str, enum.Enum):
    FOOD           = "food"
    TRANSPORTATION = "transportation"
    ENTERTAINMENT  = "entertainment"
    SHOPPING       = "shopping"
    BILLS          = "bills"
    HEALTHCARE     = "healthcare"
    EDUCATION      = "education"
    TRAVEL         = "travel"
    OTHER          = "other"


class ExpenseType(str, enum.Enum):
    PERSONAL = "personal"
    SHARED   = "shared"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    """Ensure SQLAlchemy stores enum values (e.g., 'food'), not names ('FOOD')."""
    return [member.value for member in enum_cls]


def category_column() -> Enum:
    """Column type shared by personal and shared expenses."""
    return Enum(
        Category,
        name="category_enum",
        native_enum=False,
        length=20,
        values_callable=_enum_values,
        validate_strings=True,
    )


# ── Model ──────────────────────────────────────────────────────────────────

class PersonalExpense(db.Model):
    __tablename__ = "personal_expenses"

    id: Mapped[int] = mapped_column(primary_key=True)

    user_id: Mapped[int] = mapped_column(
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

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    owner: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="personal_expenses",
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<PersonalExpense id={self.id} "
            f"user_id={self.user_id} "
            f"amount={self.amount}>"
        )
