"""
routes/realtime.py — WebSocket endpoint for change notifications.

  WS /ws  (no /api/v1 prefix)

Each connection gets a random handle. Frames are handed to
fanout_service.handle_message(); the connection joins the registry once it
sends a valid auth frame and leaves it when the socket closes, whatever the
reason.
"""

from __future__ import annotations

import secrets

from flask import Blueprint, current_app
from simple_websocket import ConnectionClosed

from expense_tracker.app.extensions import sock
from expense_tracker.app.services import fanout_service

realtime_bp = Blueprint("realtime", __name__)


@sock.route("/ws", bp=realtime_bp)
def realtime(ws):
    registry = fanout_service.get_registry()
    handle = secrets.token_hex(8)
    current_app.logger.info("Realtime connection %s opened", handle)

    try:
        while True:
            raw = ws.receive()
            if raw is None:
                continue
            fanout_service.handle_message(registry, handle, ws, raw)
    except ConnectionClosed as exc:
        current_app.logger.info("Realtime connection %s closed (%s)", handle, exc.reason)
    finally:
        registry.remove(handle)
