"""
Murmur Backend — API Endpoint Tests
====================================

What:  HTTP-level behavior: status codes, error body shape, camelCase
       payloads, auth, and id parsing.
How:   httpx AsyncClient over ASGITransport; requests share the test's
       in-memory database session (see conftest.py).
"""

import uuid
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession


def assert_error(response, status, code):
    assert response.status_code == status, response.text
    body = response.json()
    assert body["error"] == code
    assert body["message"]
    assert "request_id" in body


class TestAuthEndpoints:

    @pytest.mark.asyncio
    async def test_register_then_login_then_me(self, client):
        registered = await client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "secret1"},
        )
        assert registered.status_code == 201
        body = registered.json()
        assert body["token"]
        assert body["user"]["username"] == "alice"
        assert "passwordHash" not in body["user"]
        assert "password_hash" not in body["user"]

        login = await client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "secret1"}
        )
        assert login.status_code == 200
        token = login.json()["token"]

        me = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["username"] == "alice"
        assert me.json()["followers"] == []
        assert me.json()["following"] == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"username": "al", "email": "al@example.com", "password": "secret1"},
        {"username": "alice", "email": "not-an-email", "password": "secret1"},
        {"username": "alice", "email": "alice@example.com", "password": "12345"},
    ])
    async def test_register_field_rules(self, client, payload):
        response = await client.post("/api/auth/register", json=payload)

        assert_error(response, 400, "validation_error")

    @pytest.mark.asyncio
    async def test_register_duplicate(self, client, make_user):
        await make_user("alice", email="alice@example.com")

        response = await client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "new@example.com", "password": "secret1"},
        )

        assert_error(response, 400, "duplicate_identity")

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client):
        await client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "secret1"},
        )

        response = await client.post(
            "/api/auth/login", json={"email": "alice@example.com", "password": "wrong-one"}
        )

        assert_error(response, 400, "invalid_credentials")

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/auth/me")

        assert_error(response, 401, "unauthenticated")
        assert response.json()["message"] == "No token, authorization denied"

    @pytest.mark.asyncio
    async def test_garbage_token(self, client):
        response = await client.get(
            "/api/posts", headers={"Authorization": "Bearer not.a.token"}
        )

        assert_error(response, 401, "unauthenticated")


class TestUserEndpoints:

    @pytest.mark.asyncio
    async def test_follow_response_shape_and_toggle(self, client, make_user, auth_headers):
        alice = await make_user("alice")
        bob = await make_user("bob")

        first = await client.post(f"/api/users/{bob.id}/follow", headers=auth_headers(alice))
        assert first.status_code == 200
        assert first.json() == {
            "message": "Followed successfully",
            "isFollowing": True,
            "followersCount": 1,
        }

        second = await client.post(f"/api/users/{bob.id}/follow", headers=auth_headers(alice))
        assert second.json() == {
            "message": "Unfollowed successfully",
            "isFollowing": False,
            "followersCount": 0,
        }

    @pytest.mark.asyncio
    async def test_follow_with_explicit_state(self, client, make_user, auth_headers):
        alice = await make_user("alice")
        bob = await make_user("bob")

        for _ in range(2):
            response = await client.post(
                f"/api/users/{bob.id}/follow?state=true", headers=auth_headers(alice)
            )
            assert response.json()["isFollowing"] is True
            assert response.json()["followersCount"] == 1

    @pytest.mark.asyncio
    async def test_self_follow_is_400(self, client, make_user, auth_headers):
        alice = await make_user("alice")

        response = await client.post(f"/api/users/{alice.id}/follow", headers=auth_headers(alice))

        assert_error(response, 400, "validation_error")
        assert "details" not in response.json()
        assert str(alice.id) not in response.text

    @pytest.mark.asyncio
    async def test_follow_unknown_user_is_404(self, client, make_user, auth_headers):
        alice = await make_user("alice")

        response = await client.post(f"/api/users/{uuid.uuid4()}/follow", headers=auth_headers(alice))

        assert_error(response, 404, "not_found")

    @pytest.mark.asyncio
    async def test_malformed_id_is_400(self, client, make_user, auth_headers):
        alice = await make_user("alice")

        response = await client.get("/api/users/not-a-uuid", headers=auth_headers(alice))

        assert_error(response, 400, "validation_error")

    @pytest.mark.asyncio
    async def test_user_detail_includes_posts(self, client, make_user, auth_headers):
        alice = await make_user("alice")
        await client.post("/api/posts", json={"content": "hello"}, headers=auth_headers(alice))

        response = await client.get(f"/api/users/{alice.id}", headers=auth_headers(alice))

        assert response.status_code == 200
        body = response.json()
        assert body["user"]["username"] == "alice"
        assert [p["content"] for p in body["posts"]] == ["hello"]
        assert body["posts"][0]["author"]["username"] == "alice"

    @pytest.mark.asyncio
    async def test_my_follow_lists(self, client, make_user, follow, auth_headers):
        alice = await make_user("alice")
        bob = await make_user("bob", avatar="https://img.example/bob.png")
        await follow(bob, alice)

        response = await client.get("/api/users/me/follow", headers=auth_headers(alice))

        assert response.status_code == 200
        assert response.json() == {
            "followers": [
                {"id": str(bob.id), "username": "bob", "avatar": "https://img.example/bob.png"}
            ],
            "following": [],
        }

    @pytest.mark.asyncio
    async def test_search(self, client, make_user, auth_headers):
        alice = await make_user("alice")
        await make_user("alicia")

        ok = await client.get("/api/users/search/ALI", headers=auth_headers(alice))
        short = await client.get("/api/users/search/a", headers=auth_headers(alice))

        assert [u["username"] for u in ok.json()] == ["alicia"]
        assert_error(short, 400, "validation_error")

    @pytest.mark.asyncio
    async def test_update_profile(self, client, make_user, auth_headers):
        alice = await make_user("alice")
        await make_user("bob")

        empty = await client.put("/api/users/profile", json={}, headers=auth_headers(alice))
        taken = await client.put(
            "/api/users/profile", json={"username": "bob"}, headers=auth_headers(alice)
        )
        ok = await client.put(
            "/api/users/profile", json={"bio": "hello there"}, headers=auth_headers(alice)
        )

        assert_error(empty, 400, "validation_error")
        assert_error(taken, 400, "duplicate_identity")
        assert taken.json()["details"] == {"field": "username"}
        assert ok.status_code == 200
        assert ok.json()["bio"] == "hello there"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("username", ["ab", "   "])
    async def test_update_profile_rejects_short_username(
        self, client, make_user, auth_headers, username
    ):
        alice = await make_user("alice")

        response = await client.put(
            "/api/users/profile", json={"username": username}, headers=auth_headers(alice)
        )
        me = await client.get("/api/auth/me", headers=auth_headers(alice))

        assert_error(response, 400, "validation_error")
        assert response.json()["details"] == {"field": "username"}
        assert me.json()["username"] == "alice"


class TestPostEndpoints:

    @pytest.mark.asyncio
    async def test_unconnected_like_is_403_then_allowed_after_follow(
        self, client, make_user, auth_headers
    ):
        u1 = await make_user("u1")
        u2 = await make_user("u2")
        created = await client.post("/api/posts", json={"content": "hello"}, headers=auth_headers(u1))
        assert created.status_code == 201
        post = created.json()
        assert post["likes"] == [] and post["comments"] == []

        denied = await client.post(f"/api/posts/{post['id']}/like", headers=auth_headers(u2))
        assert_error(denied, 403, "not_authorized")

        await client.post(f"/api/users/{u1.id}/follow", headers=auth_headers(u2))
        liked = await client.post(f"/api/posts/{post['id']}/like", headers=auth_headers(u2))
        assert liked.json()["likes"] == [str(u2.id)]
        assert liked.json()["likesCount"] == 1

        unliked = await client.post(f"/api/posts/{post['id']}/like", headers=auth_headers(u2))
        assert unliked.json()["likes"] == []

    @pytest.mark.asyncio
    async def test_comment_flow(self, client, make_user, follow, auth_headers):
        alice = await make_user("alice")
        bob = await make_user("bob")
        await follow(bob, alice)
        post = (await client.post(
            "/api/posts", json={"content": "hello"}, headers=auth_headers(alice)
        )).json()

        commented = await client.post(
            f"/api/posts/{post['id']}/comment", json={"content": "nice"}, headers=auth_headers(bob)
        )
        comment = commented.json()["comments"][0]
        assert comment["user"]["username"] == "bob"
        assert comment["content"] == "nice"

        by_author = await client.delete(
            f"/api/posts/{post['id']}/comments/{comment['id']}", headers=auth_headers(alice)
        )
        assert_error(by_author, 403, "not_authorized")

        by_commenter = await client.delete(
            f"/api/posts/{post['id']}/comments/{comment['id']}", headers=auth_headers(bob)
        )
        assert by_commenter.status_code == 200
        assert by_commenter.json() == {"message": "Comment deleted"}

    @pytest.mark.asyncio
    async def test_update_and_delete_by_non_author(self, client, make_user, auth_headers):
        alice = await make_user("alice")
        bob = await make_user("bob")
        post = (await client.post(
            "/api/posts", json={"content": "hello"}, headers=auth_headers(alice)
        )).json()

        edit = await client.put(
            f"/api/posts/{post['id']}", json={"content": "mine"}, headers=auth_headers(bob)
        )
        delete = await client.delete(f"/api/posts/{post['id']}", headers=auth_headers(bob))

        assert_error(edit, 403, "not_authorized")
        assert_error(delete, 403, "not_authorized")

    @pytest.mark.asyncio
    async def test_empty_post_rejected(self, client, make_user, auth_headers):
        alice = await make_user("alice")

        response = await client.post("/api/posts", json={"content": ""}, headers=auth_headers(alice))

        assert_error(response, 400, "validation_error")

    @pytest.mark.asyncio
    async def test_malformed_post_id(self, client, make_user, auth_headers):
        alice = await make_user("alice")

        response = await client.post("/api/posts/12345/like", headers=auth_headers(alice))

        assert_error(response, 400, "validation_error")


class TestNoteEndpoints:

    @pytest.mark.asyncio
    async def test_note_crud_uses_camel_case(self, client, make_user, auth_headers):
        alice = await make_user("alice")

        created = await client.post(
            "/api/notes",
            json={"title": "Trip", "content": "pack", "tags": ["travel"], "isPinned": True},
            headers=auth_headers(alice),
        )
        assert created.status_code == 201
        note = created.json()
        assert note["isPinned"] is True
        assert note["tags"] == ["travel"]
        assert note["user"] == str(alice.id)
        assert "createdAt" in note

        updated = await client.put(
            f"/api/notes/{note['id']}",
            json={"title": "Trip", "content": "pack more"},
            headers=auth_headers(alice),
        )
        assert updated.json()["isPinned"] is True
        assert updated.json()["tags"] == []

        listed = await client.get("/api/notes", headers=auth_headers(alice))
        assert [n["id"] for n in listed.json()] == [note["id"]]

        deleted = await client.delete(f"/api/notes/{note['id']}", headers=auth_headers(alice))
        assert deleted.json() == {"message": "Note deleted"}

    @pytest.mark.asyncio
    async def test_other_users_note_is_403(self, client, make_user, auth_headers):
        alice = await make_user("alice")
        bob = await make_user("bob")
        note = (await client.post(
            "/api/notes", json={"title": "t", "content": "c"}, headers=auth_headers(alice)
        )).json()

        response = await client.delete(f"/api/notes/{note['id']}", headers=auth_headers(bob))

        assert_error(response, 403, "not_authorized")

    @pytest.mark.asyncio
    async def test_unknown_note_is_404(self, client, make_user, auth_headers):
        alice = await make_user("alice")

        response = await client.put(
            f"/api/notes/{uuid.uuid4()}",
            json={"title": "t", "content": "c"},
            headers=auth_headers(alice),
        )

        assert_error(response, 404, "not_found")


class TestHealthEndpoint:

    @pytest.mark.asyncio
    async def test_health_reports_database(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-ID": "abc123"})

        assert response.headers["X-Request-ID"] == "abc123"


class TestRequestTransaction:

    @pytest.mark.asyncio
    async def test_failed_commit_is_transient_error_and_nothing_stored(self, app, client):
        # Real per-request sessions on the test engine, committing for real
        app.dependency_overrides.clear()
        registered = await client.post(
            "/api/auth/register",
            json={"username": "alice", "email": "alice@example.com", "password": "secret1"},
        )
        headers = {"Authorization": f"Bearer {registered.json()['token']}"}

        failing_commit = AsyncMock(
            side_effect=OperationalError("COMMIT", {}, Exception("connection lost"))
        )
        with patch.object(AsyncSession, "commit", failing_commit):
            response = await client.post(
                "/api/notes", json={"title": "t", "content": "c"}, headers=headers
            )

        assert_error(response, 500, "transient_error")
        assert "connection lost" not in response.text
        failing_commit.assert_awaited_once()

        listed = await client.get("/api/notes", headers=headers)
        assert listed.status_code == 200
        assert listed.json() == []
