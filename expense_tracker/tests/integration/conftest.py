"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against TEST_DATABASE_URL, which defaults to in-memory SQLite
    (one shared connection through StaticPool). The concurrent-accept test
    builds its own file-backed SQLite app unless this is PostgreSQL.
  - The app is created once per session using create_app("testing").
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)       → dict with user + token
  - login(client, ...)          → dict with user + token
  - auth_headers(token)         → {"Authorization": "Bearer <token>"}
  - add_friend(client, ...)     → friend link dict
  - invite(client, ...)         → {"invitation_id", "friend_link_id"}
  - pending(client, token)      → list of pending invitations

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test.
"""

from __future__ import annotations

import pytest

from expense_tracker.app import create_app
from expense_tracker.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire
    test session, with every table created up front and dropped at the end.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test, children before parents.

    Also empties the realtime registry so fake connections registered by one
    test never receive another test's events.
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            for table in reversed(_db.metadata.sorted_tables):
                conn.execute(table.delete())
            conn.commit()

    registry = app.extensions["connection_registry"]
    for session in registry.snapshot():
        registry.remove(session.handle)


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


@pytest.fixture
def registry(app):
    """The app's realtime connection registry."""
    return app.extensions["connection_registry"]


class FakeConnection:
    """Stands in for a WebSocket: records every frame sent to it."""

    def __init__(self) -> None:
        self.sent: list[str] = []

    def send(self, data: str) -> None:
        self.sent.append(data)


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    name: str = "Alice",
    phone: str = "+15550000001",
    email: str | None = None,
    password: str = "Password1",
) -> dict:
    """
    Registers a new user and returns the full response data dict.
    Returns: {"user": {...}, "token": "..."}
    """
    payload = {"name": name, "phone": phone, "password": password}
    if email is not None:
        payload["email"] = email
    resp = client.post("/api/v1/auth/register", json=payload)
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, phone: str, password: str = "Password1") -> dict:
    """Returns: {"user": {...}, "token": "..."}"""
    resp = client.post(
        "/api/v1/auth/login",
        json={"phone": phone, "password": password},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def add_friend(client, token: str, name: str, phone_number: str, email: str | None = None) -> dict:
    """Adds an accepted friend link directly and returns it."""
    payload = {"name": name, "phone_number": phone_number}
    if email is not None:
        payload["email"] = email
    resp = client.post("/api/v1/friends", json=payload, headers=auth_headers(token))
    assert resp.status_code == 201, f"add_friend failed: {resp.get_json()}"
    return resp.get_json()["data"]


def invite(client, token: str, friend_phone: str, friend_name: str) -> dict:
    """Returns: {"invitation_id": int, "friend_link_id": int}"""
    resp = client.post(
        "/api/v1/friends/invite",
        json={"friend_phone": friend_phone, "friend_name": friend_name},
        headers=auth_headers(token),
    )
    assert resp.status_code == 201, f"invite failed: {resp.get_json()}"
    return resp.get_json()["data"]


def pending(client, token: str) -> list[dict]:
    resp = client.get("/api/v1/friends/pending", headers=auth_headers(token))
    assert resp.status_code == 200, f"pending failed: {resp.get_json()}"
    return resp.get_json()["data"]


def friends(client, token: str) -> list[dict]:
    resp = client.get("/api/v1/friends", headers=auth_headers(token))
    assert resp.status_code == 200, f"friends failed: {resp.get_json()}"
    return resp.get_json()["data"]
