"""
routes/auth.py — Account route handlers.

Layer rules:
  - Parse request body
  - Validate with the appropriate schema (raises ValidationError on bad input)
  - Call exactly ONE service function
  - Commit the DB session
  - Return the standard response envelope: {"data": {...}, "warnings": []}

No business logic here. No DB queries. No bare SQL.
AppError propagates to the global error handler in app/__init__.py — routes
never catch it.

Endpoints (base url_prefix=/api/v1/auth):
  POST   /auth/register         → 201
  POST   /auth/login            → 200
  GET    /auth/profile          → 200
  PUT    /auth/profile          → 200
  PUT    /auth/change-password  → 200
  POST   /auth/verify-phone     → 200
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from expense_tracker.app.extensions import db
from expense_tracker.app.middleware.auth_middleware import require_auth
from expense_tracker.app.schemas.auth_schema import (
    ChangePasswordSchema,
    LoginSchema,
    PhoneLookupSchema,
    RegisterSchema,
    UpdateProfileSchema,
)
from expense_tracker.app.services import auth_service

auth_bp = Blueprint("auth", __name__)


@auth_bp.route("/register", methods=["POST"])
def register():
    """POST /auth/register — Create account; return user and token. (No auth required.)"""
    data = RegisterSchema().load(request.get_json(force=True) or {})
    result = auth_service.register_user(
        name=data["name"],
        phone=data["phone"],
        password=data["password"],
        email=data["email"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@auth_bp.route("/login", methods=["POST"])
def login():
    """POST /auth/login — Authenticate by phone; return user and token. (No auth required.)"""
    data = LoginSchema().load(request.get_json(force=True) or {})
    result = auth_service.login_user(
        phone=data["phone"],
        password=data["password"],
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/profile", methods=["GET"])
@require_auth
def get_profile():
    """GET /auth/profile — Return current user profile. (Auth required.)"""
    result = auth_service.get_profile(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/profile", methods=["PUT"])
@require_auth
def update_profile():
    """PUT /auth/profile — Change display name and/or email. (Auth required.)"""
    data = UpdateProfileSchema().load(request.get_json(force=True) or {})
    result = auth_service.update_profile(
        user_id=g.user_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@auth_bp.route("/change-password", methods=["PUT"])
@require_auth
def change_password():
    """PUT /auth/change-password — Requires the current password. (Auth required.)"""
    data = ChangePasswordSchema().load(request.get_json(force=True) or {})
    auth_service.change_password(
        user_id=g.user_id,
        current_password=data["current_password"],
        new_password=data["new_password"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": {"message": "Password updated successfully."}, "warnings": []}), 200


@auth_bp.route("/verify-phone", methods=["POST"])
def verify_phone():
    """POST /auth/verify-phone — Is this phone already registered? (No auth required.)"""
    data = PhoneLookupSchema().load(request.get_json(force=True) or {})
    result = auth_service.verify_phone(
        phone=data["phone"],
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200
