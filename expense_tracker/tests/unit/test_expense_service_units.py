"""
Unit tests for expense_service: ownership, dispatch and the merged listing.
"""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from expense_tracker.app.errors import AppError, ErrorCode
from expense_tracker.app.models.expense import Category, ExpenseType
from expense_tracker.app.services import expense_service


def _session_without_expense() -> MagicMock:
    session = MagicMock()
    session.execute.return_value.scalar_one_or_none.return_value = None
    return session


def test_update_foreign_expense_raises_not_found():
    session = _session_without_expense()
    with pytest.raises(AppError) as exc_info:
        expense_service.update_personal_expense(1, 99, {"title": "x"}, session)

    err = exc_info.value
    assert err.code == ErrorCode.EXPENSE_NOT_FOUND
    assert err.http_status == 404
    session.flush.assert_not_called()


def test_delete_foreign_expense_raises_not_found():
    session = _session_without_expense()
    with pytest.raises(AppError):
        expense_service.delete_personal_expense(1, 99, session)
    session.delete.assert_not_called()


def test_update_ignores_none_for_required_columns():
    session = MagicMock()
    expense = SimpleNamespace(title="Coffee", amount=Decimal("3.50"), date=None,
                              category=Category.FOOD, note="x", updated_at=None)
    session.execute.return_value.scalar_one_or_none.return_value = expense

    expense_service.update_personal_expense(
        1, 5, {"title": None, "amount": Decimal("4"), "note": None}, session,
    )

    assert expense.title == "Coffee"
    assert expense.amount == Decimal("4.00")
    assert expense.note is None
    assert expense.updated_at is not None


def _general(**overrides) -> dict:
    data = {
        "description": "Taxi",
        "amount": Decimal("40"),
        "category": Category.TRANSPORTATION,
        "type": ExpenseType.SHARED,
        "shared_with": [{"friend_link_id": 3, "amount": Decimal("15")}],
        "date": None,
        "note": None,
    }
    data.update(overrides)
    return data


def test_create_expense_dispatches_shared():
    fake = SimpleNamespace(id=11)
    with patch.object(expense_service.shared_expense_service, "create_shared_expense",
                      return_value=(fake, ["w"])) as create, \
         patch.object(expense_service.shared_expense_service, "build_shared_expense_dict",
                      return_value={"id": 11}):
        result = expense_service.create_expense(1, _general(), MagicMock())

    assert result == {"id": 11, "type": "shared", "expense": {"id": 11}, "warnings": ["w"]}
    assert create.call_args.kwargs["title"] == "Taxi"
    assert create.call_args.kwargs["shares"] == [{"friend_link_id": 3, "amount": Decimal("15")}]


def test_create_expense_shared_without_shares_is_personal():
    with patch.object(expense_service, "create_personal_expense",
                      return_value=SimpleNamespace(id=4)) as create, \
         patch.object(expense_service, "build_personal_expense_dict", return_value={"id": 4}), \
         patch.object(expense_service.shared_expense_service, "create_shared_expense") as shared:
        result = expense_service.create_expense(1, _general(shared_with=[]), MagicMock())

    shared.assert_not_called()
    assert result["type"] == "personal"
    assert create.call_args.args[1]["title"] == "Taxi"


def test_list_all_expenses_merges_newest_first_with_roles():
    personal = [
        {"id": 1, "title": "Coffee", "date": "2026-01-02", "created_at": "2026-01-02T08:00:00"},
    ]
    shared = [
        {"id": 7, "title": "Dinner", "creator_id": 1, "date": "2026-01-03",
         "created_at": "2026-01-03T20:00:00"},
        {"id": 5, "title": "Taxi", "creator_id": 2, "date": "2026-01-01",
         "created_at": "2026-01-01T10:00:00"},
    ]
    with patch.object(expense_service, "list_personal_expenses", return_value=personal), \
         patch.object(expense_service.shared_expense_service, "list_shared_for_user",
                      return_value=shared):
        rows = expense_service.list_all_expenses(1, MagicMock())

    assert [(r["title"], r["type"], r.get("role")) for r in rows] == [
        ("Dinner", "shared", "created"),
        ("Coffee", "personal", None),
        ("Taxi", "shared", "participant"),
    ]
