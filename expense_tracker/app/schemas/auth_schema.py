"""
schemas/auth_schema.py — Marshmallow schemas for account endpoints.

Validation responsibility:
  - This file: field types, lengths, formats, regex patterns.
  - services/auth_service.py and services/identity_service.py:
    DUPLICATE_PHONE (cross-entity: requires a DB lookup — not a schema concern).

IMPORTANT: All schemas inherit from marshmallow.Schema directly.
           Do NOT use ma.Schema — see extensions.py.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates


# Digits with an optional leading '+'. Spaces and dashes are not stripped:
# the phone string is a lookup key and must match byte for byte.
PHONE_PATTERN = r"^\+?[0-9]{3,19}$"


def phone_field(**kwargs) -> fields.Str:
    """A required phone-number field shared by every schema that takes one."""
    return fields.Str(
        required=True,
        validate=validate.Regexp(
            PHONE_PATTERN,
            error="Phone number must contain 3 to 19 digits, optionally prefixed with '+'.",
        ),
        **kwargs,
    )


def _validate_non_empty_after_trim(value: str) -> None:
    """Mirrors the DB CHECK(LENGTH(TRIM(...)) > 0) constraint at the API layer."""
    if not value.strip():
        raise ValidationError("This field must not be blank or contain only whitespace.")


def _validate_password_strength(value: str) -> None:
    """Min 8 chars, at least one letter and one digit."""
    if len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long.")
    if not any(c.isalpha() for c in value):
        raise ValidationError("Password must contain at least one letter.")
    if not any(c.isdigit() for c in value):
        raise ValidationError("Password must contain at least one digit.")


class RegisterSchema(Schema):
    """
    POST /auth/register

    Phone uniqueness is enforced in identity_service.create_user(), not here,
    because it requires a DB query.
    """

    name = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=255, error="Name must be between 1 and 255 characters."),
            _validate_non_empty_after_trim,
        ],
    )

    phone = phone_field()

    email = fields.Email(
        load_default=None,
        allow_none=True,
        validate=validate.Length(max=255),
    )

    password = fields.Str(required=True, load_only=True)

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        _validate_password_strength(value)


class LoginSchema(Schema):
    """
    POST /auth/login

    Credential correctness is checked in auth_service.py (INVALID_CREDENTIALS, 401).
    """

    phone = fields.Str(required=True)
    password = fields.Str(required=True, load_only=True)


class UpdateProfileSchema(Schema):
    """PUT /auth/profile — omitted fields keep their current value."""

    name = fields.Str(
        validate=[
            validate.Length(min=1, max=255),
            _validate_non_empty_after_trim,
        ],
    )
    email = fields.Email(allow_none=True, validate=validate.Length(max=255))


class ChangePasswordSchema(Schema):
    """PUT /auth/change-password"""

    current_password = fields.Str(
        required=True,
        load_only=True,
    )
    new_password = fields.Str(
        required=True,
        load_only=True,
    )

    @validates("new_password")
    def validate_new_password_strength(self, value: str, **kwargs) -> None:
        _validate_password_strength(value)


class PhoneLookupSchema(Schema):
    """POST /auth/verify-phone, /users/check, /users/by-phone"""

    phone = fields.Str(required=True, validate=validate.Length(min=1, max=20))


class SearchUsersSchema(Schema):
    """POST /users/search"""

    query = fields.Str(
        required=True,
        validate=[
            validate.Length(min=1, max=255),
            _validate_non_empty_after_trim,
        ],
    )
