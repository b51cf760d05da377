"""
services/friendship_service.py — Friendship Ledger.

Holds each user's FriendLinks (accepted and pending) and the invitation queue
keyed by invitee phone number.

Counterpart resolution:
  A FriendLink never stores the friend's user id. Whether it points at a real
  account is decided on demand by resolve_counterpart(), a pure lookup from
  phone number to identity that returns either Linked(user_id) or
  Placeholder(phone, name). It is re-run every time it matters (invitation
  acceptance, shared expense creation) so links created before the friend
  registered start resolving as soon as they do.

Authorization rules:
  - Only the owner may update or remove a link. A link owned by someone else
    is reported as FRIEND_NOT_FOUND, exactly like a missing one.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here. The invitation
    row and its placeholder link are therefore committed together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from expense_tracker.app.errors import AppError, ErrorCode
from expense_tracker.app.models.friend_link import FriendLink, FriendStatus
from expense_tracker.app.models.invitation import Invitation, InvitationStatus
from expense_tracker.app.models.user import User
from expense_tracker.app.services import identity_service

logger = logging.getLogger(__name__)


# ── Counterpart resolution ─────────────────────────────────────────────────

@dataclass(frozen=True)
class Linked:
    """The link's phone belongs to a registered user."""
    user_id: int


@dataclass(frozen=True)
class Placeholder:
    """Nobody has registered the link's phone (yet)."""
    phone: str | None
    name: str


Counterpart = Linked | Placeholder


def resolve_counterpart(link: FriendLink, session: Session) -> Counterpart:
    if link.phone_number:
        user = identity_service.find_by_phone(link.phone_number, session)
        if user is not None:
            return Linked(user_id=user.id)
    return Placeholder(phone=link.phone_number, name=link.name)


# ── Private helpers ────────────────────────────────────────────────────────

def _get_owned_link_or_404(user_id: int, friend_link_id: int, session: Session) -> FriendLink:
    link = get_owned_link(user_id, friend_link_id, session)

    if link is None:
        raise AppError(
            ErrorCode.FRIEND_NOT_FOUND,
            f"Friend {friend_link_id} not found.",
            404,
        )
    return link


# ── Public service functions ───────────────────────────────────────────────

def build_friend_dict(link: FriendLink) -> dict:
    return {
        "id": link.id,
        "name": link.name,
        "phone_number": link.phone_number,
        "email": link.email,
        "status": link.display_status,
    }


def get_owned_link(user_id: int, friend_link_id: int, session: Session) -> FriendLink | None:
    """The caller's link with this id, or None. Used by share resolution."""
    return session.execute(
        select(FriendLink).where(
            FriendLink.id == friend_link_id,
            FriendLink.user_id == user_id,
        )
    ).scalar_one_or_none()


def list_friends(user_id: int, session: Session) -> list[dict]:
    """All of the user's links, accepted and pending, ordered by name."""
    stmt = (
        select(FriendLink)
        .where(FriendLink.user_id == user_id)
        .order_by(FriendLink.name.asc(), FriendLink.id.asc())
    )
    return [build_friend_dict(link) for link in session.execute(stmt).scalars().all()]


def add_direct(
        user_id: int,
        name: str,
        phone_number: str,
        session: Session,
        email: str | None = None,
) -> dict:
    """
    Adds an already-known contact as an accepted friend, skipping the
    invitation round-trip. The route broadcasts `friend_added` after commit.
    """
    link = FriendLink(
        user_id=user_id,
        name=name,
        phone_number=phone_number,
        email=email,
        status=FriendStatus.ACCEPTED.value,
    )
    session.add(link)
    session.flush()

    logger.info("User %s added friend %s directly", user_id, link.id)
    return build_friend_dict(link)


def update_direct(user_id: int, friend_link_id: int, fields: dict, session: Session) -> dict:
    """
    Updates name / phone_number / email on one of the caller's links.

    Raises:
      AppError(FRIEND_NOT_FOUND, 404) — no such link owned by user_id.
    """
    link = _get_owned_link_or_404(user_id, friend_link_id, session)

    for key in ("name", "phone_number", "email"):
        if key in fields:
            setattr(link, key, fields[key])
    link.updated_at = datetime.now(timezone.utc)
    session.flush()

    return build_friend_dict(link)


def remove_direct(user_id: int, friend_link_id: int, session: Session) -> None:
    """
    Raises:
      AppError(FRIEND_NOT_FOUND, 404) — no such link owned by user_id.
    """
    link = _get_owned_link_or_404(user_id, friend_link_id, session)
    session.delete(link)
    session.flush()
    logger.info("User %s removed friend %s", user_id, friend_link_id)


def create_invitation(
        inviter_id: int,
        friend_phone: str,
        friend_name: str,
        session: Session,
) -> dict:
    """
    Records a pending invitation to `friend_phone` and the inviter's pending
    placeholder link for it.

    Both rows are flushed in the caller's transaction, so they commit or roll
    back together. Repeated invitations to the same phone are not
    deduplicated; each call adds a new pair.

    Returns: {"invitation_id": int, "friend_link_id": int}
    """
    inviter = identity_service.get_user_or_404(inviter_id, session)

    invitation = Invitation(
        inviter_id=inviter.id,
        inviter_name=inviter.name,
        friend_phone=friend_phone,
        friend_name=friend_name,
        status=InvitationStatus.PENDING.value,
    )
    placeholder = FriendLink(
        user_id=inviter.id,
        name=friend_name,
        phone_number=friend_phone,
        email=None,
        status=FriendStatus.PENDING.value,
    )
    session.add_all([invitation, placeholder])
    session.flush()

    logger.info(
        "User %s invited %s (invitation %s, placeholder %s)",
        inviter.id, friend_phone, invitation.id, placeholder.id,
    )
    return {
        "invitation_id": invitation.id,
        "friend_link_id": placeholder.id,
    }


def list_pending_invitations(phone: str, session: Session) -> list[dict]:
    """
    Pending invitations addressed to `phone`, newest first, with the
    inviter's current display name and email.
    """
    stmt = (
        select(Invitation, User)
        .join(User, Invitation.inviter_id == User.id)
        .where(
            Invitation.friend_phone == phone,
            Invitation.status == InvitationStatus.PENDING.value,
        )
        .order_by(Invitation.created_at.desc(), Invitation.id.desc())
    )
    rows = session.execute(stmt).all()

    return [
        {
            "id": invitation.id,
            "inviter_id": invitation.inviter_id,
            "inviter_name": inviter.name,
            "inviter_email": inviter.email,
            "friend_name": invitation.friend_name,
            "created_at": invitation.created_at.isoformat() if invitation.created_at else None,
        }
        for invitation, inviter in rows
    ]


def list_pending_for_user(user_id: int, session: Session) -> list[dict]:
    """Pending invitations for the phone number of the authenticated user."""
    user = identity_service.get_user_or_404(user_id, session)
    return list_pending_invitations(user.phone, session)
