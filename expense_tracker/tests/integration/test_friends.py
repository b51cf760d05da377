"""
tests/integration/test_friends.py — Direct friend management.

  GET    /friends
  POST   /friends        (broadcasts friend_added to other users' sessions)
  PUT    /friends/:id
  DELETE /friends/:id

Ownership failures are reported as FRIEND_NOT_FOUND (404), never 403.
"""

from __future__ import annotations

import json

from .conftest import FakeConnection, add_friend, auth_headers, friends, invite, register


class TestListFriends:

    def test_direct_add_and_invitation_listed_by_name(self, client):
        token = register(client, "Alice", "+15550000001")["token"]
        add_friend(client, token, "Zoe", "+15550000010")
        invite(client, token, "+15550000011", "Bob")

        rows = friends(client, token)

        assert [(r["name"], r["status"]) for r in rows] == [
            ("Bob", "pending"),
            ("Zoe", "accepted"),
        ]

    def test_friends_are_private_to_owner(self, client):
        alice = register(client, "Alice", "+15550000001")["token"]
        bob = register(client, "Bob", "+15550000002")["token"]
        add_friend(client, alice, "Carol", "+15550000003")

        assert friends(client, bob) == []


class TestAddFriend:

    def test_add_returns_accepted_link(self, client):
        token = register(client, "Alice", "+15550000001")["token"]
        link = add_friend(client, token, "Carol", "+15550000003", email="carol@test.com")

        assert link["name"] == "Carol"
        assert link["phone_number"] == "+15550000003"
        assert link["email"] == "carol@test.com"
        assert link["status"] == "accepted"

    def test_add_broadcasts_to_other_users_only(self, client, registry):
        alice = register(client, "Alice", "+15550000001")
        bob = register(client, "Bob", "+15550000002")
        alice_conn, bob_conn = FakeConnection(), FakeConnection()
        registry.add("alice-tab", alice_conn, alice["user"]["id"])
        registry.add("bob-tab", bob_conn, bob["user"]["id"])

        link = add_friend(client, alice["token"], "Carol", "+15550000003")

        assert alice_conn.sent == []
        assert len(bob_conn.sent) == 1
        event = json.loads(bob_conn.sent[0])
        assert event["type"] == "friend_added"
        assert event["user_id"] == alice["user"]["id"]
        assert event["data"] == {
            "id": link["id"],
            "name": "Carol",
            "phone_number": "+15550000003",
            "email": None,
        }

    def test_invalid_phone_returns_400(self, client):
        token = register(client)["token"]
        resp = client.post(
            "/api/v1/friends",
            json={"name": "Carol", "phone_number": "call me"},
            headers=auth_headers(token),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "phone_number"


class TestUpdateAndRemove:

    def test_update_changes_only_given_fields(self, client):
        token = register(client)["token"]
        link = add_friend(client, token, "Carol", "+15550000003", email="carol@test.com")

        resp = client.put(
            f"/api/v1/friends/{link['id']}",
            json={"name": "Caroline"},
            headers=auth_headers(token),
        )
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["name"] == "Caroline"
        assert data["phone_number"] == "+15550000003"
        assert data["email"] == "carol@test.com"

    def test_empty_update_returns_400(self, client):
        token = register(client)["token"]
        link = add_friend(client, token, "Carol", "+15550000003")
        resp = client.put(f"/api/v1/friends/{link['id']}", json={}, headers=auth_headers(token))
        assert resp.status_code == 400

    def test_update_someone_elses_link_returns_404(self, client):
        alice = register(client, "Alice", "+15550000001")["token"]
        bob = register(client, "Bob", "+15550000002")["token"]
        link = add_friend(client, alice, "Carol", "+15550000003")

        resp = client.put(
            f"/api/v1/friends/{link['id']}",
            json={"name": "Hijacked"},
            headers=auth_headers(bob),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "FRIEND_NOT_FOUND"
        assert friends(client, alice)[0]["name"] == "Carol"

    def test_remove(self, client):
        token = register(client)["token"]
        link = add_friend(client, token, "Carol", "+15550000003")

        resp = client.delete(f"/api/v1/friends/{link['id']}", headers=auth_headers(token))
        assert resp.status_code == 200
        assert resp.get_json()["data"] == {"deleted": True, "friend_link_id": link["id"]}
        assert friends(client, token) == []

    def test_remove_someone_elses_link_returns_404(self, client):
        alice = register(client, "Alice", "+15550000001")["token"]
        bob = register(client, "Bob", "+15550000002")["token"]
        link = add_friend(client, alice, "Carol", "+15550000003")

        resp = client.delete(f"/api/v1/friends/{link['id']}", headers=auth_headers(bob))
        assert resp.status_code == 404
        assert len(friends(client, alice)) == 1

    def test_remove_missing_link_returns_404(self, client):
        token = register(client)["token"]
        resp = client.delete("/api/v1/friends/99999", headers=auth_headers(token))
        assert resp.status_code == 404
