"""
services/settlement_service.py — Settlement Resolver.

Turns an accepted invitation into a mutual friendship:
  1. Claim the invitation with a conditional UPDATE
     (status 'pending' -> 'accepted', addressed to the acceptor's phone).
  2. Look up the inviter's identity.
  3. Give the acceptor an accepted FriendLink to the inviter, reusing one
     that already points at the inviter's phone.
  4. Promote the inviter's placeholder link for the acceptor's phone to
     accepted, refreshing name/email from the acceptor's account.

Repeated invitations to one phone are allowed, but accepting them adds no
duplicate links: surplus placeholders for the same phone are deleted when the
first invitation is accepted, and later accepts reuse the settled links.

All four steps share the route's transaction; nothing is committed here.

Concurrency:
  The conditional UPDATE in step 1 is the only guard. When two accepts race,
  the database serialises the two UPDATEs on the invitation row; the loser
  re-evaluates `status = 'pending'`, matches zero rows and gets
  INVITATION_NOT_FOUND. A zero row count is authoritative; there is no
  separate existence check that could go stale.

Failure modes:
  INVITATION_NOT_FOUND (404) — missing, already accepted, or addressed to
                               another phone. Terminal; callers must not retry.
  INTERNAL_ERROR (500)       — the inviter's account has vanished. The whole
                               transaction is abandoned, including step 1.

Layer rules:
  - No Flask imports. Pure Python with a SQLAlchemy session parameter.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from expense_tracker.app.errors import AppError, ErrorCode
from expense_tracker.app.models.friend_link import FriendLink, FriendStatus
from expense_tracker.app.models.invitation import Invitation, InvitationStatus
from expense_tracker.app.models.user import User
from expense_tracker.app.services import identity_service

logger = logging.getLogger(__name__)


# ── Private helpers ────────────────────────────────────────────────────────

def _claim_invitation(invitation_id: int, acceptor: User, now: datetime, session: Session) -> None:
    """
    Flips the invitation to accepted iff it is still pending and addressed to
    the acceptor. Raises INVITATION_NOT_FOUND (404) when no row matched.
    """
    result = session.execute(
        update(Invitation)
        .where(
            Invitation.id == invitation_id,
            Invitation.status == InvitationStatus.PENDING.value,
            Invitation.friend_phone == acceptor.phone,
        )
        .values(status=InvitationStatus.ACCEPTED.value, updated_at=now)
        .execution_options(synchronize_session=False)
    )

    if result.rowcount == 0:
        raise AppError(
            ErrorCode.INVITATION_NOT_FOUND,
            f"Invitation {invitation_id} not found.",
            404,
        )


def _get_inviter_or_500(invitation_id: int, session: Session) -> tuple[User, str]:
    """
    Returns (inviter, inviter_name_snapshot). A missing inviter is a data
    integrity violation, not a client error.
    """
    inviter_id, inviter_name = session.execute(
        select(Invitation.inviter_id, Invitation.inviter_name)
        .where(Invitation.id == invitation_id)
    ).one()

    inviter = session.get(User, inviter_id)
    if inviter is None:
        logger.error(
            "Invitation %s references missing inviter %s; aborting accept",
            invitation_id, inviter_id,
        )
        raise AppError(
            ErrorCode.INTERNAL_ERROR,
            "The invitation could not be accepted. Please try again later.",
            500,
        )
    return inviter, inviter_name


def _links_for_phone(owner_id: int, phone: str, session: Session) -> list[FriendLink]:
    return list(session.execute(
        select(FriendLink)
        .where(
            FriendLink.user_id == owner_id,
            FriendLink.phone_number == phone,
        )
        .order_by(FriendLink.id.asc())
    ).scalars().all())


def _collapse_placeholders(links: list[FriendLink], session: Session) -> list[FriendLink]:
    """
    Keeps every established link to the phone, or the oldest placeholder when
    there is none, and deletes the remaining placeholders. Repeated
    invitations to one phone therefore settle into a single friendship.
    """
    established = [link for link in links if link.status != FriendStatus.PENDING.value]
    kept = established or links[:1]
    for link in links:
        if link not in kept:
            session.delete(link)
    return kept


def _link_acceptor(
        acceptor: User,
        inviter: User,
        inviter_name: str,
        now: datetime,
        session: Session,
) -> FriendLink:
    """
    The acceptor's link to the inviter. An existing link to the inviter's
    phone is reused (and accepted if it was a placeholder) instead of adding
    a second one.
    """
    kept = _collapse_placeholders(_links_for_phone(acceptor.id, inviter.phone, session), session)
    if kept:
        link = kept[0]
        if link.status == FriendStatus.PENDING.value:
            link.status = FriendStatus.ACCEPTED.value
            link.updated_at = now
        return link

    link = FriendLink(
        user_id=acceptor.id,
        name=inviter_name,
        phone_number=inviter.phone,
        email=inviter.email,
        status=FriendStatus.ACCEPTED.value,
    )
    session.add(link)
    return link


def _promote_placeholders(
        inviter: User,
        acceptor: User,
        now: datetime,
        session: Session,
) -> list[FriendLink]:
    """
    Marks the inviter's link for the acceptor's phone as accepted, refreshing
    name/email from the acceptor's account. If the inviter deleted the
    placeholder meanwhile, a fresh accepted link is added so the friendship
    stays mutual.
    """
    links = _links_for_phone(inviter.id, acceptor.phone, session)

    if not links:
        link = FriendLink(
            user_id=inviter.id,
            name=acceptor.name,
            phone_number=acceptor.phone,
            email=acceptor.email,
            status=FriendStatus.ACCEPTED.value,
        )
        session.add(link)
        return [link]

    kept = _collapse_placeholders(links, session)
    for link in kept:
        link.name = acceptor.name
        link.email = acceptor.email
        link.status = FriendStatus.ACCEPTED.value
        link.updated_at = now
    return kept


# ── Public service functions ───────────────────────────────────────────────

def accept_invitation(accepting_user_id: int, invitation_id: int, session: Session) -> dict:
    """
    Accepts a pending invitation on behalf of `accepting_user_id`.

    Returns: {"invitation_id": int, "friend_link_id": int,
              "inviter_link_ids": [int, ...]}
    """
    acceptor = identity_service.get_user_or_404(accepting_user_id, session)
    now = datetime.now(timezone.utc)

    _claim_invitation(invitation_id, acceptor, now, session)
    inviter, inviter_name = _get_inviter_or_500(invitation_id, session)

    own_link = _link_acceptor(acceptor, inviter, inviter_name, now, session)
    inviter_links = _promote_placeholders(inviter, acceptor, now, session)
    session.flush()

    logger.info(
        "User %s accepted invitation %s from user %s",
        acceptor.id, invitation_id, inviter.id,
    )
    return {
        "invitation_id": invitation_id,
        "friend_link_id": own_link.id,
        "inviter_link_ids": [link.id for link in inviter_links],
    }
