"""
services/auth_service.py — Account business logic.

Responsibilities:
  - Registration, login, profile read/update, password change
  - JWT session token creation (HS256, 30-day TTL by default)
  - Password hashing (bcrypt) and verification

Layer rules:
  - No imports from routes or schemas
  - No use of flask.request, flask.g, or HTTP status codes beyond AppError
  - current_app.config is used ONLY to read the JWT secret/expiry and the
    bcrypt cost factor, so secrets never bypass config validation.

Password storage:
  - Hashed with bcrypt (cost factor from config BCRYPT_LOG_ROUNDS)
  - Raw password is never stored, never logged
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone

import bcrypt
import jwt
from flask import current_app
from sqlalchemy.orm import Session

from expense_tracker.app.errors import AppError, ErrorCode
from expense_tracker.app.models.user import User
from expense_tracker.app.services import identity_service

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    rounds = current_app.config.get("BCRYPT_LOG_ROUNDS", 12)
    return bcrypt.hashpw(
        password.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """
    Constant-time comparison via bcrypt.checkpw.
    A corrupt or foreign hash format counts as "no match".
    """
    try:
        return bcrypt.checkpw(
            password.encode("utf-8"),
            password_hash.encode("utf-8"),
        )
    except ValueError:
        return False


def _create_access_token(user: User) -> str:
    """
    Creates a signed JWT session token.
    Payload: sub (user_id as str), phone, iat, exp, jti.
    """
    now = datetime.now(timezone.utc)
    expiry = now + current_app.config["JWT_ACCESS_TOKEN_EXPIRES"]
    payload = {
        "sub": str(user.id),
        "phone": user.phone,
        "iat": now,
        "exp": expiry,
        # Guarantees each issued token is unique even if generated in the same second.
        "jti": secrets.token_hex(8),
    }
    return jwt.encode(
        payload,
        current_app.config["JWT_SECRET_KEY"],
        algorithm=current_app.config.get("JWT_ALGORITHM", "HS256"),
    )


def _invalid_credentials() -> AppError:
    return AppError(
        ErrorCode.INVALID_CREDENTIALS,
        "Invalid phone number or password.",
        401,
    )


# ── Public service functions ───────────────────────────────────────────────

def register_user(
        name: str,
        phone: str,
        password: str,
        session: Session,
        email: str | None = None,
) -> dict:
    """
    Creates a new account and issues a session token.

    Raises:
      AppError(DUPLICATE_PHONE, 409) — phone already registered; the existing
      record is left untouched.

    Returns: {"user": {...}, "token": "..."}
    """
    user = identity_service.create_user(
        name=name,
        phone=phone,
        password_hash=hash_password(password),
        email=email,
        session=session,
    )
    return {
        "user": identity_service.build_user_dict(user),
        "token": _create_access_token(user),
    }


def login_user(phone: str, password: str, session: Session) -> dict:
    """
    Validates credentials and issues a new session token.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — phone not found or password wrong.
      Same error for both to avoid phone enumeration.
    """
    user = identity_service.find_by_phone(phone, session)
    if user is None or not verify_password(password, user.password_hash):
        raise _invalid_credentials()

    logger.info("User %s logged in", user.id)
    return {
        "user": identity_service.build_user_dict(user),
        "token": _create_access_token(user),
    }


def get_profile(user_id: int, session: Session) -> dict:
    user = identity_service.get_user_or_404(user_id, session)
    return identity_service.build_user_dict(user)


def update_profile(user_id: int, data: dict, session: Session) -> dict:
    """
    Updates name and/or email. Keys absent from `data` keep their value;
    an explicit email of None clears it. The phone cannot be changed here.
    """
    user = identity_service.get_user_or_404(user_id, session)

    if "name" in data:
        user.name = data["name"]
    if "email" in data:
        user.email = data["email"]
    user.updated_at = datetime.now(timezone.utc)
    session.flush()

    return identity_service.build_user_dict(user)


def change_password(
        user_id: int,
        current_password: str,
        new_password: str,
        session: Session,
) -> None:
    """
    Raises:
      AppError(INVALID_CREDENTIALS, 401) — current password is wrong.
    """
    user = identity_service.get_user_or_404(user_id, session)

    if not verify_password(current_password, user.password_hash):
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "Current password is incorrect.",
            401,
            field="current_password",
        )

    user.password_hash = hash_password(new_password)
    user.updated_at = datetime.now(timezone.utc)
    session.flush()
    logger.info("Password changed for user %s", user.id)


def verify_phone(phone: str, session: Session) -> dict:
    """Tells a signing-up client whether the phone is already taken."""
    return {"phone": phone, "exists": identity_service.exists(phone, session)}
