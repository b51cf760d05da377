"""
Unit tests for fanout_service: the connection registry, broadcast and the
inbound auth frame.
"""

from __future__ import annotations

import json
from decimal import Decimal

import pytest
from simple_websocket import ConnectionClosed

from expense_tracker.app.services.fanout_service import (
    ConnectionRegistry,
    broadcast,
    build_event,
    handle_message,
)


class _Conn:
    def __init__(self, fail_with: Exception | None = None):
        self.sent: list[str] = []
        self._fail_with = fail_with

    def send(self, data: str) -> None:
        if self._fail_with is not None:
            raise self._fail_with
        self.sent.append(data)


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


class TestRegistry:

    def test_add_and_remove(self, registry):
        registry.add("h1", _Conn(), 1)
        assert len(registry) == 1
        assert registry.remove("h1") is True
        assert registry.remove("h1") is False
        assert len(registry) == 0

    def test_re_adding_a_handle_rebinds_user(self, registry):
        conn = _Conn()
        registry.add("h1", conn, 1)
        registry.add("h1", conn, 2)
        assert [s.user_id for s in registry.snapshot()] == [2]


class TestBroadcast:

    def test_skips_every_session_of_the_originator(self, registry):
        mine_a, mine_b, theirs = _Conn(), _Conn(), _Conn()
        registry.add("a", mine_a, 1)
        registry.add("b", mine_b, 1)
        registry.add("c", theirs, 2)

        delivered = broadcast(registry, 1, build_event("friend_added", {"id": 5}, 1))

        assert delivered == 1
        assert mine_a.sent == mine_b.sent == []
        assert json.loads(theirs.sent[0]) == {
            "type": "friend_added", "data": {"id": 5}, "user_id": 1,
        }

    def test_decimal_payloads_serialize_as_strings(self, registry):
        conn = _Conn()
        registry.add("c", conn, 2)
        broadcast(registry, 1, build_event("shared_expense_added", {"amount": Decimal("1.50")}, 1))
        assert json.loads(conn.sent[0])["data"]["amount"] == "1.50"

    @pytest.mark.parametrize("error", [OSError("broken pipe"), ConnectionClosed()])
    def test_failed_session_is_dropped_and_others_still_served(self, registry, error):
        broken, healthy = _Conn(fail_with=error), _Conn()
        registry.add("broken", broken, 2)
        registry.add("healthy", healthy, 3)

        delivered = broadcast(registry, 1, build_event("friend_added", {}, 1))

        assert delivered == 1
        assert len(healthy.sent) == 1
        assert [s.handle for s in registry.snapshot()] == ["healthy"]

    def test_empty_registry_delivers_nothing(self, registry):
        assert broadcast(registry, 1, build_event("friend_added", {}, 1)) == 0


class TestHandleMessage:

    @pytest.mark.parametrize("key", ["userId", "user_id"])
    def test_auth_registers_and_acknowledges(self, registry, key):
        conn = _Conn()
        assert handle_message(registry, "h", conn, json.dumps({"type": "auth", key: 7})) is True
        assert [s.user_id for s in registry.snapshot()] == [7]
        assert json.loads(conn.sent[0]) == {"type": "auth_success"}

    def test_numeric_string_user_id_is_accepted(self, registry):
        assert handle_message(registry, "h", _Conn(), '{"type": "auth", "userId": "7"}') is True
        assert registry.snapshot()[0].user_id == 7

    @pytest.mark.parametrize("raw", [
        "not json",
        "[1, 2]",
        '{"type": "ping"}',
        '{"type": "auth"}',
        '{"type": "auth", "userId": true}',
        '{"type": "auth", "userId": "abc"}',
    ])
    def test_other_frames_are_ignored(self, registry, raw):
        conn = _Conn()
        assert handle_message(registry, "h", conn, raw) is False
        assert len(registry) == 0
        assert conn.sent == []
