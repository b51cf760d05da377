"""
models/friend_link.py — FriendLink and FriendStatus definitions.

A FriendLink is owned by exactly one user and points at the friend through a
denormalised name/phone/email snapshot. There is deliberately no foreign key
to the friend's User row: the friend may not have registered yet. Whether a
link resolves to a real account is answered at read time by
services.friendship_service.resolve_counterpart().

`status` is nullable because rows created before invitations existed carry
no status; those are displayed as 'accepted'.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, String, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_tracker.app.extensions import db


class FriendStatus(str, enum.Enum):
    PENDING  = "pending"
    ACCEPTED = "accepted"


class FriendLink(db.Model):
    __tablename__ = "friend_links"

    __table_args__ = (
        CheckConstraint(
            "status IS NULL OR status IN ('pending', 'accepted')",
            name="ck_friend_links_status",
        ),
        CheckConstraint(
            "LENGTH(TRIM(name)) > 0",
            name="ck_friend_links_name_nonempty",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    # ON DELETE CASCADE — links are owned by their user.
    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Matched against users.phone at accept time and at shared-expense time.
    phone_number: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        index=True,
    )

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    status: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
        default=FriendStatus.ACCEPTED.value,
        server_default=FriendStatus.ACCEPTED.value,
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

    owner: Mapped["User"] = relationship(  # noqa: F821
        "User",
        back_populates="friend_links",
    )

    @property
    def display_status(self) -> str:
        """Status as shown to clients; legacy NULL rows count as accepted."""
        return self.status or FriendStatus.ACCEPTED.value

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<FriendLink id={self.id} "
            f"user_id={self.user_id} "
            f"status={self.status}>"
        )
