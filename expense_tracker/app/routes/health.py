"""
routes/health.py — Liveness check.

  GET /health → 200 {"status": "OK", "timestamp": "<ISO-8601 UTC>"}

No auth and no database access: the check reports that the process serves
requests, nothing more.
"""

from __future__ import annotations

from datetime import datetime, timezone

from flask import Blueprint, jsonify

health_bp = Blueprint("health", __name__)


@health_bp.route("/health", methods=["GET"])
def health():
    return jsonify({
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }), 200
