"""
End-to-end tests through the HTTP surface.
"""
import re

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vidshare.web.app.db import get_db
from vidshare.web.app.dependencies import get_mailer, get_storage
from vidshare.web.app.main import app

from tests.mocks.mock_collaborators import RecordingEmailSender, RecordingMediaStorage

PASSWORD = "secret123"


@pytest.fixture
def storage():
    return RecordingMediaStorage()


@pytest.fixture
def mailer():
    return RecordingEmailSender()


@pytest.fixture
async def client(db_engine, storage, mailer):
    """HTTP client with a fresh session per request and recording collaborators."""
    session_factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_mailer] = lambda: mailer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client

    app.dependency_overrides.clear()


async def signup(client: AsyncClient, username: str) -> dict:
    """Register and log in; returns the user id and auth headers."""
    response = await client.post("/api/users/register", json={
        "username": username,
        "email": f"{username}@example.com",
        "fullName": username.title(),
        "password": PASSWORD,
        "avatar": {"url": f"https://cdn.example.com/{username}.png", "externalId": f"avatars/{username}"},
    })
    assert response.status_code == 201, response.text
    user_id = response.json()["data"]["id"]

    response = await client.post("/api/users/login", json={"username": username, "password": PASSWORD})
    assert response.status_code == 200, response.text
    token = response.json()["data"]["accessToken"]
    return {"id": user_id, "headers": {"Authorization": f"Bearer {token}"}}


async def publish(client: AsyncClient, user: dict, title: str = "v1", duration: float = 120) -> str:
    response = await client.post("/api/videos", headers=user["headers"], json={
        "title": title,
        "description": f"{title} description",
        "videoFile": {"url": f"https://cdn.example.com/{title}.mp4", "externalId": f"videos/{title}"},
        "thumbnail": {"url": f"https://cdn.example.com/{title}.jpg", "externalId": f"thumbs/{title}"},
        "duration": duration,
    })
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]


class TestEnvelopes:
    """Response and error envelopes."""

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_success_envelope(self, client):
        user = await signup(client, "alice")

        response = await client.get("/api/users/me", headers=user["headers"])
        body = response.json()

        assert body["statusCode"] == 200
        assert body["success"] is True
        assert body["data"]["username"] == "alice"
        assert "password_hash" not in body["data"]

    async def test_missing_identity(self, client):
        response = await client.get("/api/likes/liked-videos")
        body = response.json()

        assert response.status_code == 401
        assert body == {"statusCode": 401, "message": "Unauthorized request", "success": False, "errors": []}

    async def test_invalid_token(self, client):
        response = await client.get("/api/likes/liked-videos", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401

    async def test_malformed_id(self, client):
        response = await client.get("/api/videos/not-a-uuid")
        body = response.json()

        assert response.status_code == 400
        assert body["success"] is False
        assert body["message"] == "Invalid video ID"

    async def test_body_type_errors_use_error_envelope(self, client):
        user = await signup(client, "alice")

        response = await client.post("/api/videos", headers=user["headers"], json={"duration": "long"})

        assert response.status_code == 400
        assert response.json()["success"] is False
        assert response.json()["errors"]


class TestScenarios:
    """The behaviour a client sees across several calls."""

    async def test_view_and_like(self, client):
        alice = await signup(client, "alice")
        bob = await signup(client, "bob")
        video_id = await publish(client, alice)

        response = await client.get(f"/api/videos/{video_id}", headers=bob["headers"])
        detail = response.json()["data"]
        assert detail["views"] == 1
        assert detail["isLiked"] is False
        assert detail["owner"]["isSubscribed"] is False

        response = await client.post(f"/api/likes/video/{video_id}", headers=bob["headers"])
        assert response.json()["data"] == {"isLiked": True}
        response = await client.post(f"/api/likes/video/{video_id}", headers=bob["headers"])
        assert response.json()["data"] == {"isLiked": False}

        response = await client.get(f"/api/videos/{video_id}", headers=bob["headers"])
        assert response.json()["data"]["views"] == 2

        response = await client.get("/api/users/watch-history", headers=bob["headers"])
        assert [doc["id"] for doc in response.json()["data"]["docs"]] == [video_id]

    async def test_anonymous_video_detail(self, client):
        alice = await signup(client, "alice")
        video_id = await publish(client, alice)

        response = await client.get(f"/api/videos/{video_id}")

        assert response.status_code == 200
        assert response.json()["data"]["isLiked"] is False

    async def test_subscribe_updates_about(self, client):
        alice = await signup(client, "alice")
        carol = await signup(client, "carol")

        response = await client.post(f"/api/subscriptions/channel/{alice['id']}", headers=carol["headers"])
        assert response.json()["data"] == {"Subscribed": True}

        response = await client.get("/api/channels/alice/about")
        assert response.json()["data"]["subscribersCount"] == 1

        response = await client.get(f"/api/subscriptions/channel/{alice['id']}", headers=alice["headers"])
        data = response.json()["data"]
        assert data["totalSubscribers"] == 1
        assert data["subscribers"][0]["username"] == "carol"

        response = await client.get("/api/subscriptions/subscribed-channels", headers=carol["headers"])
        assert response.json()["data"]["subscribedChannels"][0]["username"] == "alice"

    async def test_self_subscription(self, client):
        alice = await signup(client, "alice")

        response = await client.post(f"/api/subscriptions/channel/{alice['id']}", headers=alice["headers"])

        assert response.status_code == 400
        assert response.json()["message"] == "You cannot subscribe to yourself"

    async def test_delete_video_cascades(self, client, storage):
        alice = await signup(client, "alice")
        bob = await signup(client, "bob")
        video_id = await publish(client, alice)

        response = await client.post(f"/api/comments/{video_id}", headers=bob["headers"], json={"content": "nice"})
        assert response.status_code == 201
        comment_id = response.json()["data"]["id"]
        await client.post(f"/api/likes/comment/{comment_id}", headers=alice["headers"])
        await client.post(f"/api/likes/video/{video_id}", headers=bob["headers"])

        response = await client.delete(f"/api/videos/{video_id}", headers=bob["headers"])
        assert response.status_code == 403

        response = await client.delete(f"/api/videos/{video_id}", headers=alice["headers"])
        assert response.status_code == 200
        assert sorted(storage.deleted) == ["thumbs/v1", "videos/v1"]

        response = await client.get(f"/api/videos/{video_id}", headers=bob["headers"])
        assert response.status_code == 404
        assert response.json()["message"] == "Video not found"

        response = await client.post(f"/api/likes/comment/{comment_id}", headers=alice["headers"])
        assert response.status_code == 404
        response = await client.get("/api/likes/liked-videos", headers=bob["headers"])
        assert response.json()["data"]["totalDocs"] == 0

    async def test_search_and_page_clamping(self, client):
        alice = await signup(client, "alice")
        await publish(client, alice, title="Cooking pasta")
        await publish(client, alice, title="Fixing bikes")

        response = await client.get("/api/videos/search", params={"query": "PASTA", "page": "abc", "limit": "1000"})
        data = response.json()["data"]

        assert response.status_code == 200
        assert [doc["title"] for doc in data["docs"]] == ["Cooking pasta"]
        assert data["page"] == 1
        assert data["limit"] == 100

    async def test_comment_threads(self, client):
        alice = await signup(client, "alice")
        bob = await signup(client, "bob")
        video_id = await publish(client, alice)

        response = await client.post(f"/api/comments/{video_id}", headers=alice["headers"], json={"content": "root"})
        root_id = response.json()["data"]["id"]
        response = await client.post(f"/api/comments/{video_id}", headers=bob["headers"],
                                     json={"content": "reply", "parentCommentId": root_id})
        assert response.status_code == 201

        response = await client.get(f"/api/comments/video/{video_id}", headers=bob["headers"])
        docs = response.json()["data"]["docs"]
        assert [doc["content"] for doc in docs] == ["root"]
        assert docs[0]["repliesCount"] == 1

        response = await client.get(f"/api/comments/{root_id}/replies", headers=bob["headers"])
        assert [doc["content"] for doc in response.json()["data"]["docs"]] == ["reply"]

        response = await client.patch(f"/api/comments/{root_id}", headers=bob["headers"], json={"content": "mine"})
        assert response.status_code == 403

    async def test_playlist_flow(self, client):
        alice = await signup(client, "alice")
        video_id = await publish(client, alice)

        response = await client.post("/api/playlists", headers=alice["headers"], json={"name": "Faves"})
        playlist_id = response.json()["data"]["id"]

        response = await client.patch(f"/api/playlists/{playlist_id}/videos/{video_id}", headers=alice["headers"])
        assert response.json()["data"]["totalVideos"] == 1

        response = await client.get("/api/playlists/user-playlists", headers=alice["headers"])
        assert response.json()["data"]["docs"][0]["name"] == "Faves"

        response = await client.delete(f"/api/playlists/{playlist_id}/videos/{video_id}", headers=alice["headers"])
        assert response.json()["data"]["videos"] == []

    async def test_tweets(self, client):
        alice = await signup(client, "alice")
        bob = await signup(client, "bob")

        response = await client.post("/api/tweets", headers=alice["headers"], json={"content": "first post"})
        tweet_id = response.json()["data"]["id"]
        await client.post(f"/api/likes/tweet/{tweet_id}", headers=bob["headers"])

        response = await client.get(f"/api/tweets/user/{alice['id']}", headers=bob["headers"])
        doc = response.json()["data"]["docs"][0]
        assert doc["likesCount"] == 1
        assert doc["isLiked"] is True

    async def test_password_reset(self, client, mailer):
        await signup(client, "alice")

        response = await client.post("/api/password-reset/forgot-password", json={"email": "alice@example.com"})
        assert response.status_code == 200
        assert response.json()["data"] is None
        otp = re.search(r"\b(\d{6})\b", mailer.sent[-1][2]).group(1)

        response = await client.post("/api/password-reset/reset-password", json={
            "email": "alice@example.com", "otp": otp, "newPassword": "brandnew",
        })
        assert response.status_code == 200

        response = await client.post("/api/users/login", json={"username": "alice", "password": "brandnew"})
        assert response.status_code == 200

    async def test_delete_account(self, client):
        alice = await signup(client, "alice")
        await publish(client, alice)

        response = await client.post("/api/users/delete-account", headers=alice["headers"])
        assert response.status_code == 200

        response = await client.get("/api/channels/alice/about")
        assert response.status_code == 404
        response = await client.get("/api/users/me", headers=alice["headers"])
        assert response.status_code == 401
