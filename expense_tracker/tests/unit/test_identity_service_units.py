"""
Unit tests for identity_service.
"""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import IntegrityError

from expense_tracker.app.errors import AppError, ErrorCode
from expense_tracker.app.services import identity_service


def _mock_scalar_one_or_none(session: MagicMock, value) -> None:
    session.execute.return_value.scalar_one_or_none.return_value = value


def test_create_user_rejects_registered_phone_before_insert():
    session = MagicMock()
    _mock_scalar_one_or_none(session, SimpleNamespace(id=1, phone="+1000"))

    with pytest.raises(AppError) as exc_info:
        identity_service.create_user("Alice", "+1000", "hash", session)

    err = exc_info.value
    assert err.code == ErrorCode.DUPLICATE_PHONE
    assert err.http_status == 409
    assert err.field == "phone"
    session.add.assert_not_called()


def test_create_user_translates_unique_violation():
    session = MagicMock()
    _mock_scalar_one_or_none(session, None)
    session.flush.side_effect = IntegrityError("INSERT", {}, Exception("unique"))

    with pytest.raises(AppError) as exc_info:
        identity_service.create_user("Alice", "+1000", "hash", session)

    assert exc_info.value.code == ErrorCode.DUPLICATE_PHONE
    session.rollback.assert_called_once()


def test_create_user_adds_and_flushes():
    session = MagicMock()
    _mock_scalar_one_or_none(session, None)

    user = identity_service.create_user("Alice", "+1000", "hash", session, email="a@test.com")

    session.add.assert_called_once_with(user)
    session.flush.assert_called_once()
    assert (user.name, user.phone, user.email) == ("Alice", "+1000", "a@test.com")


def test_get_user_by_phone_raises_when_missing():
    session = MagicMock()
    _mock_scalar_one_or_none(session, None)

    with pytest.raises(AppError) as exc_info:
        identity_service.get_user_by_phone("+1000", session)

    assert exc_info.value.code == ErrorCode.USER_NOT_FOUND
    assert exc_info.value.http_status == 404


def test_exists_follows_lookup():
    session = MagicMock()
    _mock_scalar_one_or_none(session, SimpleNamespace(id=1))
    assert identity_service.exists("+1000", session) is True

    _mock_scalar_one_or_none(session, None)
    assert identity_service.exists("+1000", session) is False


def test_search_query_excludes_caller_and_is_limited():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = []

    identity_service.search_users("john", exclude_user_id=42, session=session, limit=5)

    stmt = session.execute.call_args.args[0]
    compiled = stmt.compile(compile_kwargs={"literal_binds": True})
    sql = str(compiled)
    assert "users.id != 42" in sql
    assert "LIMIT 5" in sql
    assert "lower(users.name) LIKE" in sql
    assert "ESCAPE '/'" in sql


def test_search_wildcards_are_escaped():
    session = MagicMock()
    session.execute.return_value.scalars.return_value.all.return_value = []

    identity_service.search_users("A_b%", exclude_user_id=1, session=session)

    compiled = session.execute.call_args.args[0].compile()
    values = set(compiled.params.values())
    assert "a/_b/%" in values
    assert "A/_b/%" in values
