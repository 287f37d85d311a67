import pytest
import pytest_asyncio
from types import SimpleNamespace
from typing import AsyncGenerator

import firebase_admin
import httpx
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# --- App Imports ---
from main import app
from app.config import Settings, get_settings
from app.controllers.media import get_http_transport
from app.database.models import Base
from app.services.dispatch import DispatchResult, FailureKind, get_dispatch_client
from app.services.firebase_app import get_firebase_app
from app.services.token_store import InMemoryTokenStore, SqlTokenStore, get_token_store


class FakeDispatcher:
    """Stands in for FcmDispatchClient and records every message it is asked to send."""

    def __init__(self):
        self.result = DispatchResult.ok("projects/jibzo/messages/1")
        self.error = None
        self.sent = []

    async def send(self, message):
        self.sent.append(message)
        if self.error:
            raise self.error
        return self.result


# --- CORE FIXTURES ---

@pytest.fixture
def token_store():
    return InMemoryTokenStore()


@pytest.fixture
def dispatcher():
    return FakeDispatcher()


@pytest.fixture
def test_settings():
    return Settings(
        app_url="https://jibzo.test",
        email_user="app@jibzo.test",
        email_pass="app-password",
        music_client_id="client-id",
        music_client_secret="client-secret",
    )


@pytest_asyncio.fixture(scope="function")
async def client(token_store, dispatcher, test_settings) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_token_store] = lambda: token_store
    app.dependency_overrides[get_dispatch_client] = lambda: dispatcher
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_firebase_app] = lambda: None
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


def use_outbound(handler):
    """Routes the app's third-party HTTP calls to `handler`."""
    app.dependency_overrides[get_http_transport] = lambda: httpx.MockTransport(handler)


# --- Integration Test Cases ---

@pytest.mark.asyncio
async def test_itc_001_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["message"] == "Jibzo API is running"


@pytest.mark.asyncio
async def test_itc_002_save_token(client: AsyncClient, token_store):
    """Tests ITC-002: registering a token stores it and reports the count."""
    response = await client.post("/api/save-token", json={"userId": "user-1", "token": "token-a"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Token saved successfully", "tokensCount": 1}
    assert await token_store.lookup("user-1") == "token-a"


@pytest.mark.asyncio
async def test_itc_003_save_token_legacy_path_and_field(client: AsyncClient, token_store):
    await client.post("/api/save-token", json={"userId": "user-1", "fcmToken": "token-a"})
    response = await client.post("/api/saveToken", json={"userId": "user-1", "token": "token-b"})
    assert response.status_code == 200
    assert response.json()["tokensCount"] == 1
    assert await token_store.lookup("user-1") == "token-b"


@pytest.mark.asyncio
async def test_itc_004_save_token_missing_fields(client: AsyncClient, token_store):
    response = await client.post("/api/save-token", json={"userId": "user-1"})
    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert "token" in body["message"]
    assert await token_store.count() == 0


@pytest.mark.asyncio
async def test_itc_005_wrong_method_is_rejected(client: AsyncClient, token_store):
    """Tests ITC-005: a disallowed method gets 405 and touches nothing."""
    response = await client.get("/api/save-token")
    assert response.status_code == 405
    assert response.json()["success"] is False
    assert response.headers["access-control-allow-origin"] == "*"
    assert await token_store.count() == 0

    response = await client.post("/api/spotify")
    assert response.status_code == 405


@pytest.mark.asyncio
async def test_itc_006_preflight_returns_cors_headers(client: AsyncClient, token_store, dispatcher):
    """Tests ITC-006: OPTIONS answers 200 with CORS headers and runs no handler."""
    for path in ("/api/save-token", "/api/send-notification", "/api/spotify"):
        response = await client.options(path)
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]
        assert "Content-Type" in response.headers["access-control-allow-headers"]

    assert await token_store.count() == 0
    assert dispatcher.sent == []


@pytest.mark.asyncio
async def test_itc_007_send_notification(client: AsyncClient, token_store, dispatcher):
    await token_store.register("user-2", "token-b")
    payload = {"recipientId": "user-2", "senderId": "user-1", "message": "hello", "senderName": "Asha"}

    response = await client.post("/api/send-notification", json=payload)

    assert response.status_code == 200
    assert response.json()["success"] is True
    assert response.json()["messageId"] == "projects/jibzo/messages/1"
    assert response.headers["access-control-allow-origin"] == "*"
    assert len(dispatcher.sent) == 1
    assert dispatcher.sent[0].token == "token-b"
    assert dispatcher.sent[0].webpush.fcm_options.link == "https://jibzo.test/messages/user-1"


@pytest.mark.asyncio
async def test_itc_008_send_to_unregistered_user(client: AsyncClient, dispatcher):
    """Tests ITC-008: no registration means 404 and no provider call."""
    response = await client.post("/api/send-notification", json={"recipientId": "ghost", "message": "hi"})
    assert response.status_code == 404
    assert response.json()["success"] is False
    assert dispatcher.sent == []


@pytest.mark.asyncio
async def test_itc_009_send_truncates_long_message(client: AsyncClient, token_store, dispatcher):
    await token_store.register("user-2", "token-b")
    response = await client.post("/api/send-notification", json={"recipientId": "user-2", "message": "m" * 80})
    assert response.status_code == 200
    assert len(dispatcher.sent[0].notification.body) <= 53


@pytest.mark.asyncio
async def test_itc_010_invalid_token_is_evicted(client: AsyncClient, token_store, dispatcher):
    """Tests ITC-010: a token FCM no longer knows is removed and the send reports 404."""
    await token_store.register("user-2", "stale-token")
    dispatcher.result = DispatchResult.failure(FailureKind.INVALID_RECIPIENT_TOKEN, "Requested entity was not found.")

    response = await client.post("/api/send-notification", json={"recipientId": "user-2", "message": "hi"})

    assert response.status_code == 404
    assert response.json()["success"] is False
    assert await token_store.lookup("user-2") is None


@pytest.mark.asyncio
async def test_itc_011_provider_errors(client: AsyncClient, token_store, dispatcher):
    await token_store.register("user-2", "token-b")

    dispatcher.result = DispatchResult.failure(FailureKind.TRANSIENT_PROVIDER_ERROR, "Service unavailable")
    response = await client.post("/api/send-notification", json={"recipientId": "user-2", "message": "hi"})
    assert response.status_code == 500
    assert "Service unavailable" in response.json()["message"]

    dispatcher.result = DispatchResult.failure(FailureKind.VALIDATION_ERROR, "bad payload")
    response = await client.post("/api/send-notification", json={"recipientId": "user-2", "message": "hi"})
    assert response.status_code == 400

    assert await token_store.lookup("user-2") == "token-b"


@pytest.mark.asyncio
async def test_itc_012_send_missing_fields(client: AsyncClient, dispatcher):
    response = await client.post("/api/send-notification", json={"recipientId": "user-2"})
    assert response.status_code == 400
    assert "message" in response.json()["message"]
    assert dispatcher.sent == []


@pytest.mark.asyncio
async def test_itc_013_unexpected_error_becomes_500(client: AsyncClient, token_store, dispatcher):
    await token_store.register("user-2", "token-b")
    dispatcher.error = RuntimeError("boom")

    response = await client.post("/api/send-notification", json={"recipientId": "user-2", "message": "hi"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Internal server error"}
    assert response.headers["access-control-allow-origin"] == "*"


@pytest.mark.asyncio
async def test_itc_014_send_push_direct(client: AsyncClient, dispatcher):
    response = await client.post("/api/sendPush", json={"token": "device-token", "title": "Hi", "body": "There"})
    assert response.status_code == 200
    assert response.json() == {"success": True, "messageId": "projects/jibzo/messages/1"}
    assert dispatcher.sent[0].token == "device-token"


@pytest.mark.asyncio
async def test_itc_015_database_backed_store(client: AsyncClient):
    """Tests ITC-015: the same flow against the SQL token store."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    store = SqlTokenStore(async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False))
    app.dependency_overrides[get_token_store] = lambda: store

    response = await client.post("/api/save-token", json={"userId": "user-9", "token": "token-z"})
    assert response.status_code == 200
    assert response.json()["tokensCount"] == 1

    response = await client.post("/api/send-notification", json={"recipientId": "user-9", "message": "hi"})
    assert response.status_code == 200
    assert await store.lookup("user-9") == "token-z"

    await engine.dispose()


@pytest.mark.asyncio
async def test_itc_016_reset_password(client: AsyncClient, mocker):
    mocker.patch("firebase_admin.auth.get_user_by_email", return_value=SimpleNamespace(uid="uid-1"))
    mock_update = mocker.patch("firebase_admin.auth.update_user")

    response = await client.post("/api/reset-password", json={"email": "user@example.com", "newPassword": "secret99"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Password updated!"}
    mock_update.assert_called_once_with("uid-1", password="secret99", app=None)


@pytest.mark.asyncio
async def test_itc_017_reset_password_bad_input(client: AsyncClient):
    response = await client.post("/api/reset-password", json={"email": "not-an-email", "newPassword": "secret99"})
    assert response.status_code == 400
    response = await client.post("/api/reset-password", json={"email": "user@example.com"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_itc_018_send_otp_email(client: AsyncClient, mocker):
    mock_smtp = mocker.patch("app.services.mailer.smtplib.SMTP")
    server = mock_smtp.return_value.__enter__.return_value

    response = await client.post("/api/sendemail", json={"email": "user@example.com", "username": "Asha", "otp": "123456"})

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "OTP sent successfully!"}
    server.send_message.assert_called_once()


@pytest.mark.asyncio
async def test_itc_019_send_otp_email_missing_otp(client: AsyncClient):
    response = await client.post("/api/sendemail", json={"email": "user@example.com"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_itc_020_spotify_songs(client: AsyncClient):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "accounts.spotify.com":
            assert request.headers["Authorization"].startswith("Basic ")
            return httpx.Response(200, json={"access_token": "spotify-token"})
        assert request.headers["Authorization"] == "Bearer spotify-token"
        assert request.url.path == "/v1/playlists/37i9dQZF1DX4WYpdgoIcn6/tracks"
        return httpx.Response(200, json={"items": [
            {"track": {
                "name": "Song A",
                "artists": [{"name": "Artist 1"}, {"name": "Artist 2"}],
                "preview_url": "https://p.example.com/a.mp3",
                "album": {"images": [{"url": "https://i.example.com/a.jpg"}]},
            }},
            {"track": None},
            {"track": {"name": "Song B", "artists": [], "preview_url": None, "album": {"images": []}}},
        ]})

    use_outbound(handler)
    response = await client.get("/api/spotify")

    assert response.status_code == 200
    assert response.json() == [
        {"id": 1, "name": "Song A", "artist": "Artist 1, Artist 2",
         "preview_url": "https://p.example.com/a.mp3", "image": "https://i.example.com/a.jpg"},
        {"id": 2, "name": "Song B", "artist": "", "preview_url": None, "image": ""},
    ]


@pytest.mark.asyncio
async def test_itc_021_spotify_failure(client: AsyncClient):
    use_outbound(lambda request: httpx.Response(401, json={"error": "invalid_client"}))
    response = await client.get("/api/spotify")
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Failed to fetch songs"}


@pytest.mark.asyncio
async def test_itc_022_video_proxy(client: AsyncClient):
    use_outbound(lambda request: httpx.Response(200, content=b"video-bytes"))
    response = await client.get("/api/proxy", params={"url": "https://cdn.example.com/clip.mp4"})

    assert response.status_code == 200
    assert response.content == b"video-bytes"
    assert response.headers["content-type"] == "video/mp4"
    assert response.headers["content-disposition"] == 'attachment; filename="video.mp4"'


@pytest.mark.asyncio
async def test_itc_023_video_proxy_errors(client: AsyncClient):
    response = await client.get("/api/proxy")
    assert response.status_code == 400

    response = await client.get("/api/proxy", params={"url": "file:///etc/passwd"})
    assert response.status_code == 400

    use_outbound(lambda request: httpx.Response(404))
    response = await client.get("/api/proxy", params={"url": "https://cdn.example.com/missing.mp4"})
    assert response.status_code == 500
    assert response.json()["message"] == "Failed to fetch video"


@pytest.mark.asyncio
async def test_itc_024_instagram_download(client: AsyncClient):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "www.instagram.com":
            return httpx.Response(
                200, text='<meta property="og:video" content="https://cdn.example.com/reel.mp4">'
            )
        return httpx.Response(200, content=b"reel-bytes")

    use_outbound(handler)
    response = await client.get("/api/instagram", params={"url": "https://www.instagram.com/reel/abc/"})

    assert response.status_code == 200
    assert response.content == b"reel-bytes"
    assert response.headers["content-disposition"] == 'attachment; filename="instagram_video.mp4"'


@pytest.mark.asyncio
async def test_itc_025_instagram_without_video(client: AsyncClient):
    use_outbound(lambda request: httpx.Response(200, text="<html>private account</html>"))
    response = await client.get("/api/instagram", params={"url": "https://www.instagram.com/p/xyz/"})
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Failed to download video"}


@pytest.mark.asyncio
async def test_itc_026_status_endpoint(client: AsyncClient):
    response = await client.get("/api/test")
    assert response.status_code == 200
    assert response.json()["status"] == "active"


@pytest.mark.asyncio
async def test_itc_027_unconfigured_firebase_only_fails_dispatch(client: AsyncClient, token_store, monkeypatch):
    """Tests ITC-027: validation and lookup still answer 400/404 without Firebase credentials."""
    monkeypatch.setattr(firebase_admin, "_apps", {})
    app.dependency_overrides.pop(get_dispatch_client)
    app.dependency_overrides.pop(get_firebase_app)
    app.dependency_overrides[get_settings] = lambda: Settings(
        app_url="https://jibzo.test", firebase_credentials_file="/nonexistent/serviceAccountKey.json"
    )

    response = await client.post("/api/send-notification", json={"recipientId": "user-2"})
    assert response.status_code == 400

    response = await client.post("/api/send-notification", json={"recipientId": "ghost", "message": "hi"})
    assert response.status_code == 404

    await token_store.register("user-2", "token-a")
    response = await client.post("/api/send-notification", json={"recipientId": "user-2", "message": "hi"})
    assert response.status_code == 500
    assert "Firebase is not configured" in response.json()["message"]
    assert await token_store.lookup("user-2") == "token-a"


@pytest.mark.asyncio
async def test_itc_028_spotify_malformed_tracks(client: AsyncClient):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "accounts.spotify.com":
            return httpx.Response(200, json={"access_token": "spotify-token"})
        return httpx.Response(200, json={"items": [
            {"track": {"name": "x", "artists": [{"id": "1"}], "album": None}},
        ]})

    use_outbound(handler)
    response = await client.get("/api/spotify")
    assert response.status_code == 200
    assert response.json() == [{"id": 1, "name": "x", "artist": "", "preview_url": None, "image": ""}]

    use_outbound(lambda request: httpx.Response(200, json={"access_token": "t", "items": ["not-a-track"]}))
    response = await client.get("/api/spotify")
    assert response.status_code == 500
    assert response.json() == {"success": False, "message": "Failed to fetch songs"}
