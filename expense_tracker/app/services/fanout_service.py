"""
services/fanout_service.py — Notification Fanout.

Keeps the set of live realtime sessions and pushes change events to every
session that does not belong to the user who caused the change.

Delivery is best-effort:
  - No replay. A client that is offline when an event fires never sees it.
  - No acknowledgment. A send that fails drops the session from the registry.

The registry is per-process, in-memory state. The app factory creates one per
application and stores it in app.extensions["connection_registry"]; the
WebSocket route and the broadcasting routes both read it from there.

Handshake protocol (client -> server, JSON text frames):
  {"type": "auth", "userId": 7}    (the key "user_id" is accepted too)
  -> {"type": "auth_success"}
Any other frame is logged and ignored.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Protocol

from flask import current_app
from simple_websocket import ConnectionClosed

logger = logging.getLogger(__name__)

REGISTRY_KEY = "connection_registry"


class Connection(Protocol):
    def send(self, data: str) -> None: ...


@dataclass(frozen=True)
class Session:
    handle: str
    connection: Connection
    user_id: int


class ConnectionRegistry:
    """Thread-safe map of handle -> (connection, user_id)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: dict[str, Session] = {}

    def add(self, handle: str, connection: Connection, user_id: int) -> None:
        # A second auth frame on the same connection rebinds it.
        with self._lock:
            self._sessions[handle] = Session(handle, connection, user_id)

    def remove(self, handle: str) -> bool:
        with self._lock:
            return self._sessions.pop(handle, None) is not None

    def snapshot(self) -> list[Session]:
        with self._lock:
            return list(self._sessions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


def get_registry() -> ConnectionRegistry:
    return current_app.extensions[REGISTRY_KEY]


def build_event(event_type: str, data: Any, user_id: int) -> dict:
    return {"type": event_type, "data": data, "user_id": user_id}


def broadcast(registry: ConnectionRegistry, originator_id: int, event: dict) -> int:
    """
    Sends `event` to every registered session whose user is not the
    originator. Returns the number of sessions the frame was sent to.
    """
    frame = json.dumps(event, default=str)
    delivered = 0

    for session in registry.snapshot():
        if session.user_id == originator_id:
            continue
        try:
            session.connection.send(frame)
        except (ConnectionClosed, OSError) as exc:
            registry.remove(session.handle)
            logger.warning(
                "Dropping realtime session %s of user %s: %s",
                session.handle, session.user_id, exc,
            )
            continue
        delivered += 1

    logger.info("Broadcast %s to %d session(s)", event.get("type"), delivered)
    return delivered


def _parse_user_id(message: dict) -> int | None:
    raw = message.get("userId", message.get("user_id"))
    if isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def handle_message(
        registry: ConnectionRegistry,
        handle: str,
        connection: Connection,
        raw: str | bytes,
) -> bool:
    """
    Processes one inbound frame. Returns True when the frame authenticated
    the connection.
    """
    try:
        message = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed realtime frame on %s", handle)
        return False

    if not isinstance(message, dict) or message.get("type") != "auth":
        logger.debug("Ignoring realtime frame on %s: %r", handle, message)
        return False

    user_id = _parse_user_id(message)
    if user_id is None:
        logger.warning("Ignoring auth frame without a user id on %s", handle)
        return False

    registry.add(handle, connection, user_id)
    connection.send(json.dumps({"type": "auth_success"}))
    logger.info("Realtime session %s authenticated as user %s", handle, user_id)
    return True
