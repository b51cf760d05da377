"""
Unit tests for settlement_service: the conditional claim and its failure modes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from expense_tracker.app.errors import AppError, ErrorCode
from expense_tracker.app.models.friend_link import FriendLink
from expense_tracker.app.services import settlement_service

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _acceptor() -> SimpleNamespace:
    return SimpleNamespace(id=2, name="Bob", phone="+2000", email="bob@test.com")


def test_claim_with_zero_rows_raises_invitation_not_found():
    session = MagicMock()
    session.execute.return_value.rowcount = 0

    with pytest.raises(AppError) as exc_info:
        settlement_service._claim_invitation(77, _acceptor(), NOW, session)

    err = exc_info.value
    assert err.code == ErrorCode.INVITATION_NOT_FOUND
    assert err.http_status == 404


def test_claim_statement_is_conditional_on_pending_and_phone():
    session = MagicMock()
    session.execute.return_value.rowcount = 1

    settlement_service._claim_invitation(77, _acceptor(), NOW, session)

    compiled = session.execute.call_args.args[0].compile()
    sql = str(compiled)
    assert sql.startswith("UPDATE friend_invitations")
    assert "WHERE friend_invitations.id = " in sql
    assert "friend_invitations.status = " in sql
    assert "friend_invitations.friend_phone = " in sql
    assert {77, "pending", "accepted", "+2000"} <= set(compiled.params.values())


def test_accept_stops_before_writing_when_claim_fails():
    session = MagicMock()
    session.get.return_value = _acceptor()
    session.execute.return_value.rowcount = 0

    with pytest.raises(AppError):
        settlement_service.accept_invitation(2, 77, session)

    session.add.assert_not_called()
    session.flush.assert_not_called()


def test_missing_inviter_is_internal_error():
    session = MagicMock()
    session.execute.return_value.one.return_value = (1, "Alice")
    session.get.return_value = None

    with pytest.raises(AppError) as exc_info:
        settlement_service._get_inviter_or_500(77, session)

    err = exc_info.value
    assert err.code == ErrorCode.INTERNAL_ERROR
    assert err.http_status == 500


def _session_with_links(links: list) -> MagicMock:
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = links
    return session


def test_promote_keeps_oldest_placeholder_and_deletes_the_rest():
    placeholders = [
        FriendLink(id=1, user_id=1, name="Bobby", phone_number="+2000", status="pending"),
        FriendLink(id=2, user_id=1, name="B", phone_number="+2000", status="pending"),
    ]
    session = _session_with_links(placeholders)

    result = settlement_service._promote_placeholders(
        SimpleNamespace(id=1), _acceptor(), NOW, session,
    )

    assert result == [placeholders[0]]
    assert (result[0].name, result[0].email, result[0].status, result[0].updated_at) == (
        "Bob", "bob@test.com", "accepted", NOW,
    )
    session.delete.assert_called_once_with(placeholders[1])
    session.add.assert_not_called()


def test_promote_prefers_established_link_over_placeholder():
    established = FriendLink(id=1, user_id=1, name="Bob", phone_number="+2000", status="accepted")
    placeholder = FriendLink(id=2, user_id=1, name="Bob", phone_number="+2000", status="pending")
    session = _session_with_links([established, placeholder])

    result = settlement_service._promote_placeholders(
        SimpleNamespace(id=1), _acceptor(), NOW, session,
    )

    assert result == [established]
    session.delete.assert_called_once_with(placeholder)


def test_acceptor_reuses_existing_link_to_inviter():
    existing = FriendLink(id=9, user_id=2, name="Ali", phone_number="+1000", status="accepted")
    session = _session_with_links([existing])
    inviter = SimpleNamespace(id=1, phone="+1000", email="alice@test.com")

    link = settlement_service._link_acceptor(_acceptor(), inviter, "Alice", NOW, session)

    assert link is existing
    assert link.name == "Ali"
    session.add.assert_not_called()
    session.delete.assert_not_called()


def test_acceptor_placeholder_for_inviter_is_accepted():
    placeholder = FriendLink(id=9, user_id=2, name="Alice", phone_number="+1000", status="pending")
    session = _session_with_links([placeholder])
    inviter = SimpleNamespace(id=1, phone="+1000", email="alice@test.com")

    link = settlement_service._link_acceptor(_acceptor(), inviter, "Alice", NOW, session)

    assert link is placeholder
    assert (link.status, link.updated_at) == ("accepted", NOW)


def test_acceptor_without_link_gets_a_new_one():
    session = _session_with_links([])
    inviter = SimpleNamespace(id=1, phone="+1000", email="alice@test.com")

    link = settlement_service._link_acceptor(_acceptor(), inviter, "Alice", NOW, session)

    session.add.assert_called_once_with(link)
    assert (link.user_id, link.name, link.phone_number, link.email, link.status) == (
        2, "Alice", "+1000", "alice@test.com", "accepted",
    )


def test_promote_recreates_deleted_placeholder():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = []

    (link,) = settlement_service._promote_placeholders(
        SimpleNamespace(id=1), _acceptor(), NOW, session,
    )

    session.add.assert_called_once_with(link)
    assert (link.user_id, link.name, link.phone_number, link.status) == (
        1, "Bob", "+2000", "accepted",
    )
