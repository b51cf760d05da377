"""
routes/friends.py — Friend and invitation route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - Realtime events are broadcast only AFTER the commit succeeds, so clients
    never hear about rows that were rolled back.

Endpoints (base url_prefix=/api/v1/friends, all require auth):
  GET    /friends           → 200  caller's links, accepted and pending
  POST   /friends           → 201  add an accepted friend directly
  PUT    /friends/:id       → 200  edit one of the caller's links
  DELETE /friends/:id       → 200  remove one of the caller's links
  POST   /friends/invite    → 201  invitation + pending placeholder link
  GET    /friends/pending   → 200  invitations addressed to the caller's phone
  POST   /friends/accept    → 200  accept an invitation
"""

from __future__ import annotations

from flask import Blueprint, g, jsonify, request

from expense_tracker.app.extensions import db
from expense_tracker.app.middleware.auth_middleware import require_auth
from expense_tracker.app.schemas.friend_schema import (
    AcceptInvitationSchema,
    AddFriendSchema,
    InviteFriendSchema,
    UpdateFriendSchema,
)
from expense_tracker.app.services import fanout_service, friendship_service, settlement_service

friends_bp = Blueprint("friends", __name__)


@friends_bp.route("", methods=["GET"])
@require_auth
def list_friends():
    result = friendship_service.list_friends(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@friends_bp.route("", methods=["POST"])
@require_auth
def add_friend():
    """POST /friends — Add a known contact as an accepted friend and notify others."""
    data = AddFriendSchema().load(request.get_json(force=True) or {})
    result = friendship_service.add_direct(
        user_id=g.user_id,
        name=data["name"],
        phone_number=data["phone_number"],
        email=data["email"],
        session=db.session,
    )
    db.session.commit()

    fanout_service.broadcast(
        fanout_service.get_registry(),
        g.user_id,
        fanout_service.build_event(
            "friend_added",
            {k: result[k] for k in ("id", "name", "phone_number", "email")},
            g.user_id,
        ),
    )
    return jsonify({"data": result, "warnings": []}), 201


@friends_bp.route("/<int:friend_link_id>", methods=["PUT"])
@require_auth
def update_friend(friend_link_id: int):
    data = UpdateFriendSchema().load(request.get_json(force=True) or {})
    result = friendship_service.update_direct(
        user_id=g.user_id,
        friend_link_id=friend_link_id,
        fields=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200


@friends_bp.route("/<int:friend_link_id>", methods=["DELETE"])
@require_auth
def remove_friend(friend_link_id: int):
    friendship_service.remove_direct(
        user_id=g.user_id,
        friend_link_id=friend_link_id,
        session=db.session,
    )
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "friend_link_id": friend_link_id,
        },
        "warnings": [],
    }), 200


@friends_bp.route("/invite", methods=["POST"])
@require_auth
def invite_friend():
    """
    POST /friends/invite — Invite a phone number. The invitation and the
    caller's pending placeholder link are committed together.
    """
    data = InviteFriendSchema().load(request.get_json(force=True) or {})
    result = friendship_service.create_invitation(
        inviter_id=g.user_id,
        friend_phone=data["friend_phone"],
        friend_name=data["friend_name"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 201


@friends_bp.route("/pending", methods=["GET"])
@require_auth
def list_pending():
    result = friendship_service.list_pending_for_user(
        user_id=g.user_id,
        session=db.session,
    )
    return jsonify({"data": result, "warnings": []}), 200


@friends_bp.route("/accept", methods=["POST"])
@require_auth
def accept_invitation():
    """
    POST /friends/accept — Accept a pending invitation addressed to the
    caller's phone. A second accept of the same invitation gets 404.
    """
    data = AcceptInvitationSchema().load(request.get_json(force=True) or {})
    result = settlement_service.accept_invitation(
        accepting_user_id=g.user_id,
        invitation_id=data["invitation_id"],
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": result, "warnings": []}), 200
