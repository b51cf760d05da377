"""
services/shared_expense_service.py — Shared Expense Ledger.

Creating a shared expense:
  Each share names one of the creator's friend links. The link is resolved
  to a registered user through its phone number
  (friendship_service.resolve_counterpart). Shares whose link is missing, or
  whose phone nobody has registered, are left out of the expense and reported
  back as UNRESOLVED_SHARE warnings. If no share resolves at all, nothing is
  written and NO_RESOLVABLE_SHARES (422) is raised.

Split map:
  participants = [creator] + resolved friend users
  splits       = {creator: amount - sum(resolved shares), friend: share, ...}

  Only resolved shares are subtracted, so the split map always sums to
  `amount`. The creator's share itself is not validated: shares larger than
  the total leave the creator with a negative amount.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from expense_tracker.app.errors import AppError, ErrorCode, WarningCode
from expense_tracker.app.models.expense import Category
from expense_tracker.app.models.shared_expense import SharedExpense
from expense_tracker.app.models.split import SharedExpenseSplit
from expense_tracker.app.models.user import User
from expense_tracker.app.services import friendship_service
from expense_tracker.app.services.friendship_service import Linked

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


# ── Private helpers ────────────────────────────────────────────────────────

def _resolve_shares(
        creator_id: int,
        shares: list[dict],
        session: Session,
) -> tuple[dict[int, Decimal], list[dict]]:
    """
    Maps each share to a registered user id.

    Returns (resolved, warnings) where `resolved` is {friend_user_id: amount}.
    Two links resolving to the same user are merged into one entry.
    """
    resolved: dict[int, Decimal] = {}
    warnings: list[dict] = []

    for share in shares:
        link_id = share["friend_link_id"]
        link = friendship_service.get_owned_link(creator_id, link_id, session)
        counterpart = (
            friendship_service.resolve_counterpart(link, session)
            if link is not None
            else None
        )

        if not isinstance(counterpart, Linked):
            logger.warning(
                "Skipping share for friend link %s of user %s: no registered user",
                link_id, creator_id,
            )
            warnings.append({
                "code": WarningCode.UNRESOLVED_SHARE,
                "message": (
                    f"Friend {link_id} is not a registered user; "
                    f"their share was not recorded."
                ),
                "friend_link_id": link_id,
            })
            continue

        resolved[counterpart.user_id] = (
            resolved.get(counterpart.user_id, Decimal("0")) + share["amount"].quantize(CENT)
        )

    return resolved, warnings


def compute_splits(
        creator_id: int,
        amount: Decimal,
        friend_shares: dict[int, Decimal],
) -> dict[int, Decimal]:
    """
    Builds the split map: the creator gets whatever the friends' shares leave
    of `amount`. A share that resolved to the creator folds into the creator's
    entry.
    """
    others = {uid: amt for uid, amt in friend_shares.items() if uid != creator_id}
    splits = {creator_id: amount - sum(others.values(), Decimal("0"))}
    splits.update(others)
    return splits


def build_shared_expense_dict(expense: SharedExpense, creator_name: str | None = None) -> dict:
    return {
        "id": expense.id,
        "title": expense.title,
        "amount": expense.amount,
        "date": expense.date.isoformat(),
        "category": expense.category.value,
        "creator_id": expense.creator_id,
        "creator_name": creator_name if creator_name is not None else expense.creator.name,
        "participants": expense.participants,
        # JSON object keys are strings.
        "splits": {str(uid): amt for uid, amt in expense.split_map.items()},
        "note": expense.note,
        "created_at": expense.created_at.isoformat() if expense.created_at else None,
    }


# ── Public service functions ───────────────────────────────────────────────

def create_shared_expense(
        creator_id: int,
        title: str,
        amount: Decimal,
        shares: list[dict],
        session: Session,
        expense_date: date | None = None,
        category: Category = Category.OTHER,
        note: str | None = None,
) -> tuple[SharedExpense, list[dict]]:
    """
    Records one shared expense for the creator and every resolvable friend.

    Raises:
      AppError(NO_RESOLVABLE_SHARES, 422) — no share maps to a registered user.

    Returns: (expense, warnings)
    """
    amount = amount.quantize(CENT)
    resolved, warnings = _resolve_shares(creator_id, shares, session)

    if not any(uid != creator_id for uid in resolved):
        raise AppError(
            ErrorCode.NO_RESOLVABLE_SHARES,
            "None of the selected friends has a registered account, "
            "so there is nobody to share this expense with.",
            422,
            field="shares",
        )

    splits = compute_splits(creator_id, amount, resolved)

    expense = SharedExpense(
        creator_id=creator_id,
        title=title,
        amount=amount,
        date=expense_date or date.today(),
        category=category,
        note=note,
    )
    # Creator first so `participants` lists them first.
    expense.splits = [
        SharedExpenseSplit(user_id=uid, amount=amt) for uid, amt in splits.items()
    ]
    session.add(expense)
    session.flush()

    logger.info(
        "User %s created shared expense %s with %d participant(s)",
        creator_id, expense.id, len(splits),
    )
    return expense, warnings


def list_shared_for_user(user_id: int, session: Session) -> list[dict]:
    """
    Shared expenses the user created or participates in, newest first
    (date, then creation time), each with the creator's display name.
    """
    participant_expense_ids = (
        select(SharedExpenseSplit.shared_expense_id)
        .where(SharedExpenseSplit.user_id == user_id)
    )
    stmt = (
        select(SharedExpense, User.name)
        .join(User, SharedExpense.creator_id == User.id)
        .where(
            or_(
                SharedExpense.creator_id == user_id,
                SharedExpense.id.in_(participant_expense_ids),
            )
        )
        .options(selectinload(SharedExpense.splits))
        .order_by(
            SharedExpense.date.desc(),
            SharedExpense.created_at.desc(),
            SharedExpense.id.desc(),
        )
    )
    return [
        build_shared_expense_dict(expense, creator_name)
        for expense, creator_name in session.execute(stmt).all()
    ]
