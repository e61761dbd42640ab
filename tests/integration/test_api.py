"""
Integration tests for the HTTP API

Drives the FastAPI app end to end through httpx with an in-memory database.
All state is created through the API itself.
"""
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from skillswap import config

pytestmark = pytest.mark.integration

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


async def register(client, username, is_admin=False, **extra):
    response = await client.post(
        "/api/auth/register",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": "password123",
            "full_name": username.title(),
            "is_admin": is_admin,
            **extra,
        },
    )
    assert response.status_code == 201, response.text
    body = response.json()
    return body["user"], {"Authorization": f"Bearer {body['token']}"}


async def add_skill(client, headers, name, skill_type):
    response = await client.post(
        "/api/skills",
        json={"skill_name": name, "skill_type": skill_type, "proficiency_level": "Intermediate"},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["skill"]


@pytest.fixture
async def matched_pair(client):
    """alice offers Guitar and wants Python; bob the reverse"""
    alice, alice_headers = await register(client, "alice")
    bob, bob_headers = await register(client, "bob")
    await add_skill(client, alice_headers, "Guitar", "OFFER")
    await add_skill(client, alice_headers, "Python", "WANT")
    await add_skill(client, bob_headers, "Python", "OFFER")
    await add_skill(client, bob_headers, "guitar", "WANT")
    return alice, alice_headers, bob, bob_headers


async def run_swap_to_completion(client, alice, alice_headers, bob, bob_headers):
    response = await client.post(f"/api/swap-requests/propose/{bob['id']}", headers=alice_headers)
    assert response.status_code == 201, response.text
    request_id = response.json()["swap_request"]["id"]

    response = await client.post(f"/api/swap-requests/{request_id}/accept", headers=bob_headers)
    assert response.status_code == 200, response.text
    swap_id = response.json()["swap_session"]["id"]

    response = await client.post(f"/api/swap-sessions/{swap_id}/complete", headers=alice_headers)
    assert response.status_code == 200, response.text
    return swap_id


class TestAuth:
    """Test registration, login and token handling"""

    @pytest.mark.asyncio
    async def test_register_login_me(self, client):
        user, _ = await register(client, "ada")

        assert "password_hash" not in user
        assert user["rating"] == 0.0
        assert user["total_swaps"] == 0

        response = await client.post("/api/auth/login", json={"email": "ADA@example.com", "password": "password123"})
        assert response.status_code == 200
        token = response.json()["token"]

        response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 200
        assert response.json()["user"]["username"] == "ada"

    @pytest.mark.asyncio
    async def test_duplicate_registration(self, client):
        await register(client, "ada")

        response = await client.post(
            "/api/auth/register",
            json={"username": "ada", "email": "other@example.com", "password": "x"},
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "CONFLICT"

    @pytest.mark.asyncio
    async def test_wrong_password(self, client):
        await register(client, "ada")

        response = await client.post("/api/auth/login", json={"email": "ada@example.com", "password": "nope"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_and_invalid_token(self, client):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_001"
        assert response.headers["www-authenticate"] == "Bearer"

        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_002"

    @pytest.mark.asyncio
    async def test_admin_registration_disabled_by_default(self, client, monkeypatch):
        monkeypatch.setattr(config, "ALLOW_ADMIN_REGISTRATION", False)

        response = await client.post(
            "/api/auth/register",
            json={"username": "root", "email": "root@example.com", "password": "x", "is_admin": True},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_request_validation_error_shape(self, client):
        response = await client.post("/api/auth/register", json={"username": "ada"})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert any(detail["loc"][-1] == "email" for detail in error["details"])


class TestProfiles:
    @pytest.mark.asyncio
    async def test_profile_read_and_update(self, client):
        ada, ada_headers = await register(client, "ada")
        _, bob_headers = await register(client, "bob")
        await add_skill(client, ada_headers, "Rust", "OFFER")

        response = await client.get(f"/api/users/{ada['id']}", headers=bob_headers)
        assert response.status_code == 200
        assert [s["skill_name"] for s in response.json()["skills"]] == ["Rust"]

        response = await client.put(f"/api/users/{ada['id']}", json={"bio": "hi"}, headers=bob_headers)
        assert response.status_code == 403

        response = await client.put(f"/api/users/{ada['id']}", json={"bio": "hi"}, headers=ada_headers)
        assert response.status_code == 200
        assert response.json()["user"]["bio"] == "hi"

        response = await client.get("/api/users/9999", headers=ada_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_profile_picture_upload(self, client):
        _, headers = await register(client, "ada")

        response = await client.post(
            "/api/upload/profile-pic",
            files={"profile_pic": ("me.png", PNG_BYTES, "image/png")},
            headers=headers,
        )
        assert response.status_code == 200, response.text
        ref = response.json()["profile_pic"]
        assert ref.startswith("/uploads/profile_pics/profile-")

        me = (await client.get("/api/auth/me", headers=headers)).json()["user"]
        assert me["profile_pic"] == ref

        response = await client.post(
            "/api/upload/profile-pic",
            files={"profile_pic": ("notes.txt", b"hello", "text/plain")},
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "UPLOAD_REJECTED"


class TestSkills:
    @pytest.mark.asyncio
    async def test_skill_crud(self, client):
        _, ada_headers = await register(client, "ada")
        _, bob_headers = await register(client, "bob")
        skill = await add_skill(client, ada_headers, "Rust", "OFFER")

        response = await client.put(f"/api/skills/{skill['id']}", json={"description": "Systems"}, headers=bob_headers)
        assert response.status_code == 403

        response = await client.put(f"/api/skills/{skill['id']}", json={"description": "Systems"}, headers=ada_headers)
        assert response.status_code == 200
        assert response.json()["skill"]["skill_name"] == "Rust"
        assert response.json()["skill"]["description"] == "Systems"

        response = await client.get("/api/skills", headers=bob_headers)
        assert response.json()["skills"][0]["username"] == "ada"

        response = await client.delete(f"/api/skills/{skill['id']}", headers=ada_headers)
        assert response.status_code == 200
        response = await client.delete(f"/api/skills/{skill['id']}", headers=ada_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_failed_commit_is_reported_as_storage_failure(self, client, monkeypatch):
        _, headers = await register(client, "ada")

        async def failing_commit(self):
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        with monkeypatch.context() as patch:
            patch.setattr(AsyncSession, "commit", failing_commit)
            response = await client.post(
                "/api/skills",
                json={"skill_name": "Rust", "skill_type": "OFFER", "proficiency_level": "Expert"},
                headers=headers,
            )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "STORAGE_FAILURE"

        response = await client.get("/api/skills", headers=headers)
        assert response.json()["skills"] == []

    @pytest.mark.asyncio
    async def test_invalid_skill_type(self, client):
        _, headers = await register(client, "ada")

        response = await client.post("/api/skills", json={"skill_name": "Rust", "skill_type": "SELL"}, headers=headers)

        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "skill_type"


class TestSwapFlow:
    """Test the full match, request, swap, review path"""

    @pytest.mark.asyncio
    async def test_matches_and_detail(self, client, matched_pair):
        alice, alice_headers, bob, _ = matched_pair

        response = await client.get("/api/matching/matches", headers=alice_headers)
        assert response.status_code == 200
        [match] = response.json()["matches"]
        assert match["user"]["username"] == "bob"
        assert match["matching_skills"]["they_offer_that_i_want"] == ["Python"]
        assert match["matching_skills"]["i_offer_that_they_want"] == ["Guitar"]
        assert match["relationship"]["status"] == "NONE"

        response = await client.get(f"/api/matching/details/{bob['id']}", headers=alice_headers)
        assert response.status_code == 200
        assert response.json()["all_their_offers"][0]["skill_name"] == "Python"

    @pytest.mark.asyncio
    async def test_request_accept_complete_review(self, client, matched_pair):
        alice, alice_headers, bob, bob_headers = matched_pair

        swap_id = await run_swap_to_completion(client, alice, alice_headers, bob, bob_headers)

        response = await client.get(f"/api/swap-sessions/{swap_id}", headers=bob_headers)
        assert response.json()["swap_session"]["status"] == "COMPLETED"

        response = await client.post(
            "/api/reviews",
            json={"swap_session_id": swap_id, "reviewee_id": bob["id"], "rating": 5, "comment": "Great"},
            headers=alice_headers,
        )
        assert response.status_code == 201, response.text

        response = await client.get(f"/api/users/{bob['id']}", headers=alice_headers)
        profile = response.json()["user"]
        assert profile["rating"] == 5.0
        assert profile["total_swaps"] == 1

        response = await client.post(
            "/api/reviews",
            json={"swap_session_id": swap_id, "reviewee_id": bob["id"], "rating": 4},
            headers=alice_headers,
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_rate_direct_status_codes(self, client, matched_pair):
        alice, alice_headers, bob, bob_headers = matched_pair

        response = await client.post(f"/api/reviews/rate/{bob['id']}", json={"rating": 4}, headers=alice_headers)
        assert response.status_code == 409

        await run_swap_to_completion(client, alice, alice_headers, bob, bob_headers)

        response = await client.post(f"/api/reviews/rate/{bob['id']}", json={"rating": 4}, headers=alice_headers)
        assert response.status_code == 201
        response = await client.post(f"/api/reviews/rate/{bob['id']}", json={"rating": 2}, headers=alice_headers)
        assert response.status_code == 200

        response = await client.get(f"/api/reviews/user/{bob['id']}", headers=alice_headers)
        assert [r["rating"] for r in response.json()["reviews"]] == [2]

        response = await client.post(f"/api/reviews/rate/{bob['id']}", json={"rating": 7}, headers=alice_headers)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_request_conflicts_and_permissions(self, client, matched_pair):
        alice, alice_headers, bob, bob_headers = matched_pair

        response = await client.post(f"/api/swap-requests/propose/{bob['id']}", headers=alice_headers)
        request_id = response.json()["swap_request"]["id"]

        response = await client.post(f"/api/swap-requests/propose/{bob['id']}", headers=alice_headers)
        assert response.status_code == 409

        response = await client.post(f"/api/swap-requests/{request_id}/accept", headers=alice_headers)
        assert response.status_code == 403

        response = await client.get("/api/swap-requests?type=received", headers=bob_headers)
        assert [r["id"] for r in response.json()["swap_requests"]] == [request_id]

        response = await client.get("/api/swap-requests?type=bogus", headers=bob_headers)
        assert response.status_code == 400

        response = await client.post(f"/api/swap-requests/{request_id}/reject", headers=bob_headers)
        assert response.json()["swap_request"]["status"] == "REJECTED"

        response = await client.post(f"/api/swap-requests/{request_id}/accept", headers=bob_headers)
        assert response.status_code == 409
        assert response.json()["error"]["details"]["status"] == "REJECTED"

    @pytest.mark.asyncio
    async def test_session_activity_endpoints(self, client, matched_pair):
        alice, alice_headers, bob, bob_headers = matched_pair
        response = await client.post(f"/api/swap-requests/propose/{bob['id']}", headers=alice_headers)
        request_id = response.json()["swap_request"]["id"]
        response = await client.post(f"/api/swap-requests/{request_id}/accept", headers=bob_headers)
        swap_id = response.json()["swap_session"]["id"]

        response = await client.post(
            "/api/learning-sessions",
            json={
                "swap_session_id": swap_id,
                "teacher_id": alice["id"],
                "student_id": bob["id"],
                "topic": "Chords",
                "session_type": "Offline",
                "scheduled_date": "2030-01-01T10:00:00Z",
                "place": "Cafe",
            },
            headers=bob_headers,
        )
        assert response.status_code == 201, response.text
        lesson_id = response.json()["session"]["id"]

        response = await client.put(
            f"/api/learning-sessions/{lesson_id}", json={"status": "COMPLETED"}, headers=alice_headers
        )
        assert response.status_code == 200, response.text

        response = await client.post(
            "/api/resources",
            json={"swap_session_id": swap_id, "resource_type": "Link", "title": "Tabs", "content": "https://tabs"},
            headers=alice_headers,
        )
        assert response.status_code == 201, response.text

        response = await client.post(
            "/api/messages", json={"swap_session_id": swap_id, "message_text": "See you!"}, headers=bob_headers
        )
        assert response.status_code == 201, response.text

        response = await client.get(f"/api/swap-sessions/{swap_id}", headers=alice_headers)
        detail = response.json()["swap_session"]
        assert [s["status"] for s in detail["learning_sessions"]] == ["COMPLETED"]
        assert [r["title"] for r in detail["resources"]] == ["Tabs"]
        assert [m["message_text"] for m in detail["messages"]] == ["See you!"]

        response = await client.get("/api/swap-sessions", headers=bob_headers)
        assert [s["id"] for s in response.json()["swap_sessions"]] == [swap_id]


class TestAdmin:
    @pytest.mark.asyncio
    async def test_admin_endpoints(self, client, matched_pair, monkeypatch):
        alice, alice_headers, bob, bob_headers = matched_pair
        monkeypatch.setattr(config, "ALLOW_ADMIN_REGISTRATION", True)
        admin, admin_headers = await register(client, "root", is_admin=True)

        response = await client.get("/api/admin/stats", headers=alice_headers)
        assert response.status_code == 403

        response = await client.post(f"/api/swap-requests/propose/{bob['id']}", headers=alice_headers)
        request_id = response.json()["swap_request"]["id"]
        response = await client.post(f"/api/swap-requests/{request_id}/accept", headers=bob_headers)
        swap_id = response.json()["swap_session"]["id"]

        response = await client.post(f"/api/admin/swap-sessions/{swap_id}/cancel", headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["swap_session"]["status"] == "CANCELLED"

        response = await client.get("/api/admin/stats", headers=admin_headers)
        stats = response.json()["stats"]
        assert stats["total_users"] == 3
        assert stats["cancelled_swaps"] == 1
        assert stats["total_skills"] == 4

        response = await client.delete(f"/api/admin/users/{admin['id']}", headers=admin_headers)
        assert response.status_code == 400

        response = await client.delete(f"/api/admin/users/{bob['id']}", headers=admin_headers)
        assert response.status_code == 200

        response = await client.get("/api/admin/swap-sessions", headers=admin_headers)
        assert response.json()["swap_sessions"] == []

        # Tokens of deleted users stop working
        response = await client.get("/api/auth/me", headers=bob_headers)
        assert response.status_code == 401
