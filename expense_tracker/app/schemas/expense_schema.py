"""
schemas/expense_schema.py — Marshmallow schemas for expense endpoints.

Validation responsibility:
  - This file:
      - Field types, lengths, enum values, decimal precision
      - Non-empty-after-trim enforcement for titles
      - DUPLICATE share targets inside one request
  - services/shared_expense_service.py:
      - Resolving each share's friend link to a registered user
      - NO_RESOLVABLE_SHARES (422) when none resolves
  - services/expense_service.py:
      - EXPENSE_NOT_FOUND (404) for personal expenses the caller does not own

Share amounts are NOT checked against the expense total. The creator's share
is imputed as the remainder and may be negative.

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from decimal import Decimal

from marshmallow import (
    Schema,
    ValidationError,
    fields,
    validate,
    validates_schema,
)

from expense_tracker.app.errors import ErrorCode
from expense_tracker.app.models.expense import Category, ExpenseType
from expense_tracker.app.schemas.auth_schema import _validate_non_empty_after_trim


# ── Shared monetary amount validator ──────────────────────────────────────
#
# Strictly positive, at most 2 decimal places. Input with more than 2 decimal
# places is REJECTED with INVALID_AMOUNT_PRECISION, never rounded.
# ──────────────────────────────────────────────────────────────────────────

def _validate_monetary_amount(value: Decimal) -> None:
    if value <= Decimal("0"):
        raise ValidationError("Amount must be greater than zero.")

    # Decimal("10.123").as_tuple().exponent == -3  → 3 dp → REJECT
    if value.as_tuple().exponent < -2:
        raise ValidationError(ErrorCode.INVALID_AMOUNT_PRECISION)


def _amount_field(required: bool = True) -> fields.Decimal:
    return fields.Decimal(
        required=required,
        validate=_validate_monetary_amount,
    )


def _title_field(required: bool = True) -> fields.Str:
    return fields.Str(
        required=required,
        validate=[
            validate.Length(
                min=1,
                max=255,
                error="Title must be between 1 and 255 characters.",
            ),
            _validate_non_empty_after_trim,
        ],
    )


def _category_field(**kwargs) -> fields.Enum:
    return fields.Enum(
        Category,
        by_value=True,
        error_messages={"unknown": ErrorCode.INVALID_CATEGORY},
        **kwargs,
    )


def _reject_duplicate_shares(shares: list[dict] | None, field_name: str) -> None:
    if not shares:
        return
    link_ids = [s["friend_link_id"] for s in shares]
    if len(link_ids) != len(set(link_ids)):
        raise ValidationError(
            {field_name: ["The same friend_link_id appears more than once."]}
        )


# ── Sub-schema: one entry in a shares array ───────────────────────────────

class ShareInputSchema(Schema):
    """
    One friend's share of a shared expense.

    friend_link_id refers to one of the CALLER's friend links; the service
    resolves it to a registered user through the link's phone number.
    """

    friend_link_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="friend_link_id must be a positive integer."),
    )

    amount = _amount_field()


# ── Shared expense ─────────────────────────────────────────────────────────

class CreateSharedExpenseSchema(Schema):
    """POST /expenses/shared"""

    title = _title_field()
    amount = _amount_field()
    shares = fields.List(
        fields.Nested(ShareInputSchema),
        required=True,
        validate=validate.Length(min=1, error="At least one share is required."),
    )
    date = fields.Date(load_default=None)
    category = _category_field(load_default=Category.OTHER)
    note = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=2000))

    @validates_schema
    def validate_unique_shares(self, data: dict, **kwargs) -> None:
        _reject_duplicate_shares(data.get("shares"), "shares")


# ── General expense endpoint ───────────────────────────────────────────────

class CreateExpenseSchema(Schema):
    """
    POST /expenses

    type='shared' with a non-empty shared_with list creates a shared expense;
    anything else creates a personal expense (shared_with is then ignored).
    """

    description = _title_field()
    amount = _amount_field()
    category = _category_field(load_default=Category.OTHER)
    type = fields.Enum(
        ExpenseType,
        by_value=True,
        load_default=ExpenseType.PERSONAL,
        error_messages={"unknown": ErrorCode.INVALID_EXPENSE_TYPE},
    )
    shared_with = fields.List(fields.Nested(ShareInputSchema), load_default=list)
    date = fields.Date(load_default=None)
    note = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=2000))

    @validates_schema
    def validate_unique_shares(self, data: dict, **kwargs) -> None:
        _reject_duplicate_shares(data.get("shared_with"), "shared_with")


# ── Personal expense ───────────────────────────────────────────────────────

class PersonalExpenseSchema(Schema):
    """
    POST /personal-expenses and PUT /personal-expenses/:id.

    PUT loads with partial=True: omitted fields keep their current value.
    """

    title = _title_field()
    amount = _amount_field()
    date = fields.Date(load_default=None)
    category = _category_field(load_default=Category.OTHER)
    note = fields.Str(load_default=None, allow_none=True, validate=validate.Length(max=2000))
