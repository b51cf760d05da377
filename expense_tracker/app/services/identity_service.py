"""
services/identity_service.py — Identity Store.

User records keyed by phone number. The phone is the address invitations are
sent to, so every lookup here is by phone except get_user_or_404().

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from expense_tracker.app.errors import AppError, ErrorCode
from expense_tracker.app.models.user import User

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 50


def _duplicate_phone_error(phone: str) -> AppError:
    return AppError(
        ErrorCode.DUPLICATE_PHONE,
        f"A user with phone number '{phone}' is already registered.",
        409,
        field="phone",
    )


def build_user_dict(user: User) -> dict:
    """Serialises a User to a plain dict. The password hash never leaves here."""
    return {
        "id": user.id,
        "name": user.name,
        "phone": user.phone,
        "email": user.email,
        "created_at": user.created_at.isoformat() if user.created_at else None,
        "updated_at": user.updated_at.isoformat() if user.updated_at else None,
    }


def find_by_phone(phone: str, session: Session) -> User | None:
    return session.execute(
        select(User).where(User.phone == phone)
    ).scalar_one_or_none()


def exists(phone: str, session: Session) -> bool:
    return find_by_phone(phone, session) is not None


def get_user_by_phone(phone: str, session: Session) -> User:
    user = find_by_phone(phone, session)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"No user is registered with phone number '{phone}'.",
            404,
            field="phone",
        )
    return user


def get_user_or_404(user_id: int, session: Session) -> User:
    """
    Returns the User or raises USER_NOT_FOUND (404).

    Reached when a token outlives its user; the caller sees 404, not 500.
    """
    user = session.get(User, user_id)
    if user is None:
        raise AppError(
            ErrorCode.USER_NOT_FOUND,
            f"User {user_id} not found.",
            404,
        )
    return user


def create_user(
        name: str,
        phone: str,
        password_hash: str,
        session: Session,
        email: str | None = None,
) -> User:
    """
    Inserts a new user.

    Raises:
      AppError(DUPLICATE_PHONE, 409) — phone already registered. The pre-check
      gives a clean error on the common path; the UNIQUE constraint catches
      two registrations racing past it.
    """
    if exists(phone, session):
        raise _duplicate_phone_error(phone)

    user = User(
        name=name,
        phone=phone,
        email=email,
        password_hash=password_hash,
    )
    session.add(user)
    try:
        session.flush()
    except IntegrityError:
        # Registration is the only write in its transaction; nothing else is lost.
        session.rollback()
        raise _duplicate_phone_error(phone)

    logger.info("Registered user %s (%s)", user.id, phone)
    return user


def search_users(
        query: str,
        exclude_user_id: int,
        session: Session,
        limit: int = DEFAULT_SEARCH_LIMIT,
) -> list[User]:
    """
    Case-insensitive substring match on name or email, raw substring match on
    phone. The caller is never part of the result, whatever their own
    name/phone/email contains. Ordered by name, at most `limit` rows.
    """
    # `%` and `_` in the query match literally.
    needle = query.lower()
    stmt = (
        select(User)
        .where(
            User.id != exclude_user_id,
            or_(
                func.lower(User.name).contains(needle, autoescape=True),
                func.lower(User.email).contains(needle, autoescape=True),
                User.phone.contains(query, autoescape=True),
            ),
        )
        .order_by(User.name.asc(), User.id.asc())
        .limit(limit)
    )
    return list(session.execute(stmt).scalars().all())
