"""
middleware/auth_middleware.py — JWT authentication decorator.

The @require_auth decorator:
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Decodes and verifies the JWT signature and expiry
  3. Attaches user_id (int) to flask.g for the duration of the request
  4. Raises TOKEN_MISSING / TOKEN_INVALID (401) if any step fails

Expired and tampered tokens both surface as TOKEN_INVALID; clients only need
to know that they must log in again.

Strict responsibility boundary:
  - This middleware attaches user_id to flask.g ONLY. It does no DB lookups.
  - Ownership checks belong in the service layer, which receives user_id as a
    plain integer argument with no knowledge of JWT or HTTP headers.
"""

from __future__ import annotations

import functools
from typing import Callable

import jwt
from flask import current_app, g, request

from expense_tracker.app.errors import AppError, ErrorCode


def require_auth(f: Callable) -> Callable:
    """
    Route decorator that enforces JWT authentication.

    Usage:
        @friends_bp.route("/")
        @require_auth
        def list_friends():
            user_id = g.user_id  # always an int when this runs
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        _authenticate_request()
        return f(*args, **kwargs)

    return decorated


def decode_token(raw_token: str) -> int:
    """
    Verifies a bearer token and returns the user id bound to it.

    Raises AppError(TOKEN_INVALID, 401) for every kind of rejection:
    bad signature, malformed token, expired token, or a bad `sub` claim.
    """
    try:
        payload = jwt.decode(
            raw_token,
            current_app.config["JWT_SECRET_KEY"],
            algorithms=[current_app.config.get("JWT_ALGORITHM", "HS256")],
        )
    except jwt.InvalidTokenError:
        # ExpiredSignatureError is a subclass; reported the same way.
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has expired. Please log in again.",
            401,
        )

    sub = payload.get("sub")
    try:
        return int(sub)
    except (TypeError, ValueError):
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "The access token is invalid or has expired. Please log in again.",
            401,
        )


def _authenticate_request() -> None:
    """
    Performs the full JWT authentication sequence and sets flask.g.user_id.

    Separated from the decorator wrapper for testability.
    Raises AppError on any authentication failure.
    """
    auth_header = request.headers.get("Authorization", "")

    if not auth_header:
        raise AppError(
            ErrorCode.TOKEN_MISSING,
            "Authentication required. Provide a Bearer token in the Authorization header.",
            401,
        )

    parts = auth_header.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AppError(
            ErrorCode.TOKEN_INVALID,
            "Authorization header must be in the format: Bearer <token>.",
            401,
        )

    g.user_id = decode_token(parts[1])
