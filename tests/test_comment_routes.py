"""
tests/test_comment_routes.py -- Integration tests for /api/comments.

Coverage:
  - GET is public and newest-first
  - POST requires auth (three distinct 401 messages), validates content,
    and takes the author from the token, never the body
  - DELETE: 401 -> 404 -> 403 -> 200 precedence, owner-only
  - malformed comment id -> 400 validation error
  - unexpected storage failure -> 500 {"message"} envelope
"""

from __future__ import annotations

from fastapi.testclient import TestClient

from api.main import app
from auth.tokens import create_access_token
from conftest import _patch_lifespan, bearer, register


def _post_comment(client: TestClient, token: str, content: str = "Hello world") -> dict:
    resp = client.post("/api/comments", json={"content": content}, headers=bearer(token))
    assert resp.status_code == 201, resp.text
    return resp.json()


class TestListComments:
    def test_empty_feed_is_public(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/comments")
        assert resp.status_code == 200
        assert resp.json() == []

    def test_newest_first(self, api_client: TestClient) -> None:
        token = register(api_client, "poster")["token"]
        ids = [_post_comment(api_client, token, f"comment {i}")["id"] for i in range(3)]

        feed = api_client.get("/api/comments").json()

        assert [c["id"] for c in feed] == list(reversed(ids))

    def test_wire_shape(self, api_client: TestClient) -> None:
        user = register(api_client, "shaper")
        _post_comment(api_client, user["token"], "shape check")

        comment = api_client.get("/api/comments").json()[0]

        assert set(comment) == {"id", "content", "author", "authorUsername", "createdAt", "updatedAt"}
        assert comment["author"] == user["id"]
        assert comment["authorUsername"] == "shaper"


class TestCreateComment:
    def test_create(self, api_client: TestClient) -> None:
        user = register(api_client, "writer")
        comment = _post_comment(api_client, user["token"], "  First post  ")
        assert comment["content"] == "First post"
        assert comment["author"] == user["id"]
        assert comment["authorUsername"] == "writer"

    def test_author_comes_from_token(self, api_client: TestClient) -> None:
        user = register(api_client, "honest")
        resp = api_client.post(
            "/api/comments",
            json={"content": "spoof attempt", "author": 999, "authorUsername": "mallory"},
            headers=bearer(user["token"]),
        )
        assert resp.status_code == 201
        assert resp.json()["author"] == user["id"]
        assert resp.json()["authorUsername"] == "honest"

    def test_no_token(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/comments", json={"content": "x"})
        assert resp.status_code == 401
        assert resp.json() == {"message": "Not authorized, no token"}

    def test_malformed_header(self, api_client: TestClient) -> None:
        token = register(api_client, "malformed")["token"]
        resp = api_client.post("/api/comments", json={"content": "x"}, headers={"Authorization": f"Token {token}"})
        assert resp.status_code == 401
        assert resp.json() == {"message": "Not authorized, no token"}

    def test_invalid_token(self, api_client: TestClient) -> None:
        resp = api_client.post("/api/comments", json={"content": "x"}, headers=bearer("invalid.token.here"))
        assert resp.status_code == 401
        assert resp.json() == {"message": "Not authorized, invalid token"}

    def test_expired_token(self, api_client: TestClient) -> None:
        user = register(api_client, "expired")
        expired = create_access_token(user["id"], expire_seconds=-10)
        resp = api_client.post("/api/comments", json={"content": "x"}, headers=bearer(expired))
        assert resp.status_code == 401
        assert resp.json() == {"message": "Not authorized, invalid token"}

    def test_deleted_user(self, api_client: TestClient, stores) -> None:
        user_store, comment_store = stores
        user = register(api_client, "vanishing")
        user_store.delete_user(user["id"])

        resp = api_client.post("/api/comments", json={"content": "ghost"}, headers=bearer(user["token"]))

        assert resp.status_code == 401
        assert resp.json() == {"message": "User not found"}
        assert comment_store.list_comments() == []

    def test_empty_content(self, api_client: TestClient) -> None:
        token = register(api_client, "blank")["token"]
        resp = api_client.post("/api/comments", json={"content": "    "}, headers=bearer(token))
        assert resp.status_code == 400
        assert resp.json() == {"errors": [{"field": "content", "msg": "Content is required"}]}

    def test_missing_content(self, api_client: TestClient) -> None:
        token = register(api_client, "nocontent")["token"]
        resp = api_client.post("/api/comments", json={}, headers=bearer(token))
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "content"

    def test_content_too_long(self, api_client: TestClient) -> None:
        token = register(api_client, "verbose")["token"]
        resp = api_client.post("/api/comments", json={"content": "a" * 1001}, headers=bearer(token))
        assert resp.status_code == 400
        assert resp.json() == {"errors": [{"field": "content", "msg": "Comment cannot exceed 1000 characters"}]}

    def test_content_at_limit(self, api_client: TestClient) -> None:
        token = register(api_client, "exact")["token"]
        comment = _post_comment(api_client, token, "a" * 1000)
        assert len(comment["content"]) == 1000

    def test_limit_counts_trimmed_content(self, api_client: TestClient) -> None:
        token = register(api_client, "padded")["token"]
        comment = _post_comment(api_client, token, "  " + "a" * 1000 + "  ")
        assert len(comment["content"]) == 1000


class TestDeleteComment:
    def test_owner_deletes(self, api_client: TestClient) -> None:
        token = register(api_client, "owner")["token"]
        comment = _post_comment(api_client, token)

        resp = api_client.delete(f"/api/comments/{comment['id']}", headers=bearer(token))

        assert resp.status_code == 200
        assert resp.json() == {"message": "Comment deleted"}
        assert api_client.get("/api/comments").json() == []

    def test_other_user_forbidden(self, api_client: TestClient) -> None:
        owner = register(api_client, "owner1")
        intruder = register(api_client, "intruder")
        comment = _post_comment(api_client, owner["token"])

        resp = api_client.delete(f"/api/comments/{comment['id']}", headers=bearer(intruder["token"]))

        assert resp.status_code == 403
        assert resp.json() == {"message": "Not authorized to delete this comment"}
        assert [c["id"] for c in api_client.get("/api/comments").json()] == [comment["id"]]

    def test_not_found(self, api_client: TestClient) -> None:
        token = register(api_client, "seeker")["token"]
        resp = api_client.delete("/api/comments/99999", headers=bearer(token))
        assert resp.status_code == 404
        assert resp.json() == {"message": "Comment not found"}

    def test_not_found_before_forbidden(self, api_client: TestClient) -> None:
        owner = register(api_client, "owner2")
        other = register(api_client, "other2")
        comment = _post_comment(api_client, owner["token"])
        api_client.delete(f"/api/comments/{comment['id']}", headers=bearer(owner["token"]))

        resp = api_client.delete(f"/api/comments/{comment['id']}", headers=bearer(other["token"]))

        assert resp.status_code == 404

    def test_requires_auth(self, api_client: TestClient) -> None:
        token = register(api_client, "owner3")["token"]
        comment = _post_comment(api_client, token)

        resp = api_client.delete(f"/api/comments/{comment['id']}")

        assert resp.status_code == 401
        assert resp.json() == {"message": "Not authorized, no token"}
        assert len(api_client.get("/api/comments").json()) == 1

    def test_malformed_id(self, api_client: TestClient) -> None:
        token = register(api_client, "typo")["token"]
        resp = api_client.delete("/api/comments/not-an-id", headers=bearer(token))
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["field"] == "comment_id"


class TestErrorEnvelopes:
    def test_unknown_route(self, api_client: TestClient) -> None:
        resp = api_client.get("/api/does-not-exist")
        assert resp.status_code == 404
        assert resp.json() == {"message": "Route not found"}

    def test_storage_failure_is_500(self, stores, monkeypatch) -> None:
        user_store, comment_store = stores

        def boom():
            raise RuntimeError("database unavailable")

        monkeypatch.setattr(comment_store, "list_comments", boom)
        app.router.lifespan_context = _patch_lifespan(user_store, comment_store)

        with TestClient(app, raise_server_exceptions=False) as client:
            resp = client.get("/api/comments")

        assert resp.status_code == 500
        body = resp.json()
        assert body["message"] == "Internal server error"
        # Tests run with DEBUG=true, which echoes the exception text.
        assert body["error"] == "database unavailable"
