"""
routes/users.py — User lookup route handlers.

Endpoints (base url_prefix=/api/v1/users, all require auth):
  POST   /users/check      → 200  {"phone", "exists"}
  POST   /users/by-phone   → 200  user, or 404 USER_NOT_FOUND
  POST   /users/search     → 200  matching users, never including the caller
"""

from __future__ import annotations

from flask import Blueprint, current_app, g, jsonify, request

from expense_tracker.app.extensions import db
from expense_tracker.app.middleware.auth_middleware import require_auth
from expense_tracker.app.schemas.auth_schema import PhoneLookupSchema, SearchUsersSchema
from expense_tracker.app.services import identity_service

users_bp = Blueprint("users", __name__)


def _serialize_public_user(user) -> dict:
    # Timestamps stay private to the account owner.
    return {
        "id": user.id,
        "name": user.name,
        "phone": user.phone,
        "email": user.email,
    }


@users_bp.route("/check", methods=["POST"])
@require_auth
def check_user():
    data = PhoneLookupSchema().load(request.get_json(force=True) or {})
    exists = identity_service.exists(data["phone"], db.session)
    return jsonify({"data": {"phone": data["phone"], "exists": exists}, "warnings": []}), 200


@users_bp.route("/by-phone", methods=["POST"])
@require_auth
def get_user_by_phone():
    data = PhoneLookupSchema().load(request.get_json(force=True) or {})
    user = identity_service.get_user_by_phone(data["phone"], db.session)
    return jsonify({"data": _serialize_public_user(user), "warnings": []}), 200


@users_bp.route("/search", methods=["POST"])
@require_auth
def search_users():
    """POST /users/search — Substring search on name, email or phone."""
    data = SearchUsersSchema().load(request.get_json(force=True) or {})
    users = identity_service.search_users(
        query=data["query"].strip(),
        exclude_user_id=g.user_id,
        session=db.session,
        limit=current_app.config.get("SEARCH_RESULT_LIMIT", identity_service.DEFAULT_SEARCH_LIMIT),
    )
    return jsonify({"data": [_serialize_public_user(u) for u in users], "warnings": []}), 200
