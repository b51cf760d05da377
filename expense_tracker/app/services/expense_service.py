"""
services/expense_service.py — Personal expenses and the combined expense views.

Authorization rules:
  - A personal expense is visible to, and editable by, its owner only.
    Somebody else's expense is reported as EXPENSE_NOT_FOUND (404).

The general create_expense() entry point dispatches on `type`:
  - 'shared' with a non-empty shared_with list -> shared_expense_service
  - anything else                              -> personal expense

Layer rules:
  - No Flask imports. Receives plain ints and dicts; returns dicts or ORM
    objects, or raises AppError.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_tracker.app.errors import AppError, ErrorCode
from expense_tracker.app.models.expense import Category, ExpenseType, PersonalExpense
from expense_tracker.app.services import shared_expense_service

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = ("title", "amount", "date", "category", "note")

CENT = Decimal("0.01")


# ── Private helpers ────────────────────────────────────────────────────────

def _get_owned_expense_or_404(user_id: int, expense_id: int, session: Session) -> PersonalExpense:
    expense = session.execute(
        select(PersonalExpense).where(
            PersonalExpense.id == expense_id,
            PersonalExpense.user_id == user_id,
        )
    ).scalar_one_or_none()

    if expense is None:
        raise AppError(
            ErrorCode.EXPENSE_NOT_FOUND,
            f"Expense {expense_id} not found.",
            404,
        )
    return expense


def build_personal_expense_dict(expense: PersonalExpense) -> dict:
    return {
        "id": expense.id,
        "title": expense.title,
        "amount": expense.amount,
        "date": expense.date.isoformat(),
        "category": expense.category.value,
        "note": expense.note,
        "created_at": expense.created_at.isoformat() if expense.created_at else None,
        "updated_at": expense.updated_at.isoformat() if expense.updated_at else None,
    }


# ── Personal expenses ──────────────────────────────────────────────────────

def create_personal_expense(user_id: int, data: dict, session: Session) -> PersonalExpense:
    expense = PersonalExpense(
        user_id=user_id,
        title=data["title"],
        amount=data["amount"].quantize(CENT),
        date=data.get("date") or date.today(),
        category=data.get("category") or Category.OTHER,
        note=data.get("note"),
    )
    session.add(expense)
    session.flush()

    logger.info("User %s added personal expense %s", user_id, expense.id)
    return expense


def list_personal_expenses(user_id: int, session: Session) -> list[dict]:
    stmt = (
        select(PersonalExpense)
        .where(PersonalExpense.user_id == user_id)
        .order_by(
            PersonalExpense.date.desc(),
            PersonalExpense.created_at.desc(),
            PersonalExpense.id.desc(),
        )
    )
    return [build_personal_expense_dict(e) for e in session.execute(stmt).scalars().all()]


def update_personal_expense(
        user_id: int,
        expense_id: int,
        data: dict,
        session: Session,
) -> PersonalExpense:
    """
    Partial update: keys absent from `data` keep their value.

    Raises:
      AppError(EXPENSE_NOT_FOUND, 404) — no such expense owned by user_id.
    """
    expense = _get_owned_expense_or_404(user_id, expense_id, session)

    if data.get("amount") is not None:
        data = {**data, "amount": data["amount"].quantize(CENT)}
    for key in _EDITABLE_FIELDS:
        if key in data and (data[key] is not None or key == "note"):
            setattr(expense, key, data[key])
    expense.updated_at = datetime.now(timezone.utc)
    session.flush()

    return expense


def delete_personal_expense(user_id: int, expense_id: int, session: Session) -> None:
    """
    Raises:
      AppError(EXPENSE_NOT_FOUND, 404) — no such expense owned by user_id.
    """
    expense = _get_owned_expense_or_404(user_id, expense_id, session)
    session.delete(expense)
    session.flush()
    logger.info("User %s deleted personal expense %s", user_id, expense_id)


# ── Combined views ─────────────────────────────────────────────────────────

def create_expense(user_id: int, data: dict, session: Session) -> dict:
    """
    General entry point behind POST /expenses.

    Returns: {"id", "type", "expense", "warnings"} where `warnings` lists
    unresolved shares for shared expenses.
    """
    shares = data.get("shared_with") or []

    if data.get("type") == ExpenseType.SHARED and shares:
        expense, warnings = shared_expense_service.create_shared_expense(
            creator_id=user_id,
            title=data["description"],
            amount=data["amount"],
            shares=shares,
            expense_date=data.get("date"),
            category=data.get("category") or Category.OTHER,
            note=data.get("note"),
            session=session,
        )
        return {
            "id": expense.id,
            "type": ExpenseType.SHARED.value,
            "expense": shared_expense_service.build_shared_expense_dict(expense),
            "warnings": warnings,
        }

    expense = create_personal_expense(
        user_id,
        {
            "title": data["description"],
            "amount": data["amount"],
            "date": data.get("date"),
            "category": data.get("category"),
            "note": data.get("note"),
        },
        session,
    )
    return {
        "id": expense.id,
        "type": ExpenseType.PERSONAL.value,
        "expense": build_personal_expense_dict(expense),
        "warnings": [],
    }


def list_all_expenses(user_id: int, session: Session) -> list[dict]:
    """
    Personal and shared expenses merged, newest first.

    Every row carries `type`; shared rows also carry `role`
    ('created' or 'participant').
    """
    rows = []
    for item in list_personal_expenses(user_id, session):
        rows.append({**item, "type": ExpenseType.PERSONAL.value})
    for item in shared_expense_service.list_shared_for_user(user_id, session):
        role = "created" if item["creator_id"] == user_id else "participant"
        rows.append({**item, "type": ExpenseType.SHARED.value, "role": role})

    # ISO dates and timestamps sort correctly as strings.
    rows.sort(key=lambda r: (r["date"], r["created_at"] or "", r["id"]), reverse=True)
    return rows
