"""
models/invitation.py — Invitation table definition.

An invitation is addressed to a phone number, not to a user id, so it can be
created before the invitee registers. Accepted invitations are kept as a
record and never physically removed.

The pending -> accepted flip is done with a conditional UPDATE in
settlement_service.accept_invitation(); that UPDATE's row count is the only
concurrency guard on acceptance.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_tracker.app.extensions import db


class InvitationStatus(str, enum.Enum):
    PENDING  = "pending"
    ACCEPTED = "accepted"


class Invitation(db.Model):
    __tablename__ = "friend_invitations"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'accepted')",
            name="ck_friend_invitations_status",
        ),
        # Pending-invitation lookups always filter on both columns.
        Index("idx_friend_invitations_phone_status", "friend_phone", "status"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    inviter_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Snapshot of the inviter's name at invite time.
    inviter_name: Mapped[str] = mapped_column(String(255), nullable=False)

    friend_phone: Mapped[str] = mapped_column(String(20), nullable=False)

    friend_name: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=InvitationStatus.PENDING.value,
        server_default=InvitationStatus.PENDING.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    inviter: Mapped["User"] = relationship(  # noqa: F821
        "User",
        foreign_keys=[inviter_id],
    )

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Invitation id={self.id} "
            f"inviter_id={self.inviter_id} "
            f"friend_phone={self.friend_phone!r} "
            f"status={self.status}>"
        )
