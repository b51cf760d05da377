"""
routes/expenses.py — Expense route handlers.

Registered at url_prefix=/api/v1 (not /api/v1/expenses) because this blueprint
owns BOTH /expenses[...] and /personal-expenses[...].

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.
  - Unresolved shares come back in the envelope's `warnings` array; the
    request still succeeds.
  - shared_expense_added is broadcast after the commit.

Endpoints:
  GET    /expenses                 → 200  personal + shared, newest first
  POST   /expenses                 → 201  personal, or shared when type='shared'
  GET    /expenses/shared          → 200  shared expenses the caller is part of
  POST   /expenses/shared          → 201  create a shared expense
  GET    /personal-expenses        → 200  caller's personal expenses
  POST   /personal-expenses        → 201  create
  PUT    /personal-expenses/:id    → 200  partial update
  DELETE /personal-expenses/:id    → 200  delete
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from expense_tracker.app.extensions import db
from expense_tracker.app.middleware.auth_middleware import require_auth
from expense_tracker.app.models.expense import ExpenseType
from expense_tracker.app.schemas.expense_schema import (
    CreateExpenseSchema,
    CreateSharedExpenseSchema,
    PersonalExpenseSchema,
)
from expense_tracker.app.services import expense_service, fanout_service, shared_expense_service

expenses_bp = Blueprint("expenses", __name__)


def _announce_shared_expense(payload: dict) -> None:
    fanout_service.broadcast(
        fanout_service.get_registry(),
        g.user_id,
        fanout_service.build_event("shared_expense_added", payload, g.user_id),
    )


# ── Combined expense routes ────────────────────────────────────────────────

@expenses_bp.route("/expenses", methods=["GET"])
@require_auth
def list_expenses():
    """GET /expenses — Personal and shared expenses merged, newest first."""
    result = expense_service.list_all_expenses(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@expenses_bp.route("/expenses", methods=["POST"])
@require_auth
def create_expense():
    """POST /expenses — Record a personal expense, or a shared one when type='shared'."""
    data = CreateExpenseSchema().load(request.get_json(force=True) or {})
    result = expense_service.create_expense(
        user_id=g.user_id,
        data=data,
        session=db.session,
    )
    db.session.commit()

    warnings = result.pop("warnings")
    if result["type"] == ExpenseType.SHARED.value:
        _announce_shared_expense(result["expense"])
    return jsonify({"data": result, "warnings": warnings}), 201


# ── Shared expense routes ──────────────────────────────────────────────────

@expenses_bp.route("/expenses/shared", methods=["GET"])
@require_auth
def list_shared_expenses():
    result = shared_expense_service.list_shared_for_user(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@expenses_bp.route("/expenses/shared", methods=["POST"])
@require_auth
def create_shared_expense():
    """
    POST /expenses/shared — Split an expense with friends.
    The caller's own share is whatever the friends' shares leave of the total.
    """
    data = CreateSharedExpenseSchema().load(request.get_json(force=True) or {})
    expense, warnings = shared_expense_service.create_shared_expense(
        creator_id=g.user_id,
        title=data["title"],
        amount=data["amount"],
        shares=data["shares"],
        expense_date=data["date"],
        category=data["category"],
        note=data["note"],
        session=db.session,
    )
    payload = shared_expense_service.build_shared_expense_dict(expense)
    db.session.commit()

    _announce_shared_expense(payload)
    return jsonify({"data": payload, "warnings": warnings}), 201


# ── Personal expense routes ────────────────────────────────────────────────

@expenses_bp.route("/personal-expenses", methods=["GET"])
@require_auth
def list_personal_expenses():
    result = expense_service.list_personal_expenses(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@expenses_bp.route("/personal-expenses", methods=["POST"])
@require_auth
def create_personal_expense():
    data = PersonalExpenseSchema().load(request.get_json(force=True) or {})
    expense = expense_service.create_personal_expense(
        user_id=g.user_id,
        data=data,
        session=db.session,
    )
    payload = expense_service.build_personal_expense_dict(expense)
    db.session.commit()
    return jsonify({"data": payload, "warnings": []}), 201


@expenses_bp.route("/personal-expenses/<int:expense_id>", methods=["PUT"])
@require_auth
def update_personal_expense(expense_id: int):
    """PUT /personal-expenses/:id — Omitted fields keep their current value."""
    data = PersonalExpenseSchema(partial=True).load(request.get_json(force=True) or {})
    expense = expense_service.update_personal_expense(
        user_id=g.user_id,
        expense_id=expense_id,
        data=data,
        session=db.session,
    )
    payload = expense_service.build_personal_expense_dict(expense)
    db.session.commit()
    return jsonify({"data": payload, "warnings": []}), 200


@expenses_bp.route("/personal-expenses/<int:expense_id>", methods=["DELETE"])
@require_auth
def delete_personal_expense(expense_id: int):
    expense_service.delete_personal_expense(
        user_id=g.user_id,
        expense_id=expense_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "expense_id": expense_id,
        },
        "warnings": [],
    }), 200
