"""
schemas/friend_schema.py — Marshmallow schemas for friend and invitation endpoints.

Validation responsibility:
  - This file: field types, lengths, phone format, non-empty names.
  - services/friendship_service.py: FRIEND_NOT_FOUND (ownership lookup).
  - services/settlement_service.py: INVITATION_NOT_FOUND (conditional update).

IMPORTANT: Inherits from marshmallow.Schema directly — never ma.Schema.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates_schema

from expense_tracker.app.schemas.auth_schema import (
    PHONE_PATTERN,
    _validate_non_empty_after_trim,
    phone_field,
)


def _name_field(required: bool = True) -> fields.Str:
    return fields.Str(
        required=required,
        validate=[
            validate.Length(min=1, max=255, error="Name must be between 1 and 255 characters."),
            _validate_non_empty_after_trim,
        ],
    )


class AddFriendSchema(Schema):
    """POST /friends — add an already-known contact as an accepted friend."""

    name = _name_field()
    phone_number = phone_field()
    email = fields.Email(load_default=None, allow_none=True, validate=validate.Length(max=255))


class UpdateFriendSchema(Schema):
    """
    PUT /friends/:id

    Omitted fields keep their current value. At least one field is required.
    """

    name = _name_field(required=False)
    phone_number = fields.Str(
        allow_none=True,
        validate=validate.Regexp(
            PHONE_PATTERN,
            error="Phone number must contain 3 to 19 digits, optionally prefixed with '+'.",
        ),
    )
    email = fields.Email(allow_none=True, validate=validate.Length(max=255))

    @validates_schema
    def validate_not_empty(self, data: dict, **kwargs) -> None:
        if not data:
            raise ValidationError("Provide at least one of name, phone_number or email.")


class InviteFriendSchema(Schema):
    """POST /friends/invite"""

    friend_phone = phone_field()
    friend_name = _name_field()


class AcceptInvitationSchema(Schema):
    """POST /friends/accept"""

    invitation_id = fields.Int(
        required=True,
        strict=True,
        validate=validate.Range(min=1, error="invitation_id must be a positive integer."),
    )
