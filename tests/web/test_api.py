"""Tests for the HTTP API."""

import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from qrtransfer.core.modules.relay.models import ContentKind
from qrtransfer.core.modules.session.models import SessionId
from qrtransfer.core.modules.stream.models import ClosedEvent, CloseReason, ContentEvent, HeartbeatEvent
from qrtransfer.web.server import create_fastapi_app
from qrtransfer.web.sse import SSE_HEADERS, SSE_MEDIA_TYPE, format_event


@pytest.fixture
def client(app, config):
    with TestClient(create_fastapi_app(app, config)) as test_client:
        yield test_client


@pytest.fixture
def session_data(client):
    response = client.post("/api/session")
    assert response.status_code == 201
    return response.json()


class TestSessions:
    def test_create_session(self, session_data):
        assert set(session_data) == {"sessionId", "encodedToken", "createdAt", "expiresAt", "state"}
        assert session_data["state"] == "active"
        assert session_data["encodedToken"] == f"https://qr.example.com/send?session={session_data['sessionId']}"

    def test_get_session_is_idempotent(self, client, session_data):
        first = client.get(f"/api/session/{session_data['sessionId']}")
        second = client.get(f"/api/session/{session_data['sessionId']}")

        assert first.status_code == second.status_code == 200
        assert first.json() == second.json() == session_data

    def test_unknown_session(self, client):
        response = client.get("/api/session/unknown-session-id-0000")
        assert response.status_code == 404
        assert response.json()["type"] == "not_found"

    def test_expired_session(self, client, app, session_data, expire):
        """Test that an expired session answers 410 once, then 404."""
        session_id = session_data["sessionId"]
        expire(app._core.services.session._sessions[SessionId(session_id)])

        response = client.get(f"/api/session/{session_id}")
        assert response.status_code == 410
        assert response.json()["type"] == "session_expired"

        assert client.get(f"/api/session/{session_id}").status_code == 404

    def test_replace_session(self, client, session_data):
        response = client.post("/api/session", json={"replaces": session_data["sessionId"]})

        assert response.status_code == 201
        assert response.json()["sessionId"] != session_data["sessionId"]
        assert client.get(f"/api/session/{session_data['sessionId']}").status_code == 404

    def test_capacity(self, client, config):
        for _ in range(config.max_sessions):
            assert client.post("/api/session").status_code == 201

        response = client.post("/api/session")
        assert response.status_code == 503
        assert response.json()["type"] == "resource_exhausted"


class TestSend:
    def test_send_link(self, client, session_data):
        response = client.post("/api/send", json={"sessionId": session_data["sessionId"], "content": "https://a.co"})

        assert response.status_code == 202
        body = response.json()
        assert body["accepted"] is True
        assert body["contentType"] == "link"
        assert body["number"] == 1
        assert {"itemId", "receivedAt"} <= set(body)

    def test_send_with_token(self, client, session_data):
        response = client.post("/api/send", json={"token": session_data["encodedToken"], "content": "hello world"})

        assert response.status_code == 202
        assert response.json()["contentType"] == "text"

    def test_send_without_session(self, client):
        response = client.post("/api/send", json={"content": "hello"})
        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"

    def test_send_empty(self, client, session_data):
        response = client.post("/api/send", json={"sessionId": session_data["sessionId"], "content": "  "})
        assert response.status_code == 400

    def test_send_to_unknown_session(self, client):
        response = client.post("/api/send", json={"sessionId": "unknown-session-id-0000", "content": "hello"})
        assert response.status_code == 404

    def test_send_to_expired_session(self, client, app, session_data, expire):
        expire(app._core.services.session._sessions[SessionId(session_data["sessionId"])])

        response = client.post("/api/send", json={"sessionId": session_data["sessionId"], "content": "late"})
        assert response.status_code == 410

    def test_queue_full(self, client, session_data, config):
        for i in range(config.max_queue_depth):
            client.post("/api/send", json={"sessionId": session_data["sessionId"], "content": f"item {i}"})

        response = client.post("/api/send", json={"sessionId": session_data["sessionId"], "content": "overflow"})
        assert response.status_code == 503


class TestListen:
    def test_listen_unknown_session(self, client):
        response = client.get("/api/listen/unknown-session-id-0000")
        assert response.status_code == 404
        assert response.json()["type"] == "not_found"

    @pytest.mark.asyncio
    async def test_listen_streams_frames_and_releases_slot_on_disconnect(self, app, config):
        """Test the event stream over ASGI: headers, connected and content frames, then cleanup on disconnect."""
        fastapi_app = create_fastapi_app(app, config)
        fastapi_app.state.app = app

        async with app.lifespan():
            view = await app.create_session()
            await app.submit_content("https://a.co", session_id=view.session_id)

            messages: asyncio.Queue[dict] = asyncio.Queue()
            disconnected = asyncio.Event()
            request_sent = False

            async def receive() -> dict:
                nonlocal request_sent
                if not request_sent:
                    request_sent = True
                    return {"type": "http.request", "body": b"", "more_body": False}
                await disconnected.wait()
                return {"type": "http.disconnect"}

            async def send(message: dict) -> None:
                await messages.put(message)

            path = f"/api/listen/{view.session_id}"
            scope = {
                "type": "http",
                "asgi": {"version": "3.0"},
                "http_version": "1.1",
                "method": "GET",
                "scheme": "http",
                "path": path,
                "raw_path": path.encode(),
                "root_path": "",
                "query_string": b"",
                "headers": [(b"host", b"testserver")],
                "client": ("127.0.0.1", 50000),
                "server": ("testserver", 80),
            }
            request = asyncio.create_task(fastapi_app(scope, receive, send))

            start = await asyncio.wait_for(messages.get(), timeout=1)
            assert start["type"] == "http.response.start"
            assert start["status"] == 200
            headers = {name.decode(): value.decode() for name, value in start["headers"]}
            assert headers["content-type"].startswith(SSE_MEDIA_TYPE)
            for name, value in SSE_HEADERS.items():
                assert headers[name.lower()] == value

            frames = []
            for _ in range(2):
                message = await asyncio.wait_for(messages.get(), timeout=1)
                frame = message["body"].decode()
                assert frame.startswith("data: ")
                assert frame.endswith("\n\n")
                frames.append(json.loads(frame.removeprefix("data: ")))

            assert frames[0] == {"type": "connected", "sessionId": view.session_id}
            assert frames[1]["type"] == "content"
            assert frames[1]["contentType"] == "link"
            assert frames[1]["content"] == "https://a.co"
            assert frames[1]["number"] == 1
            assert app.get_stats()["subscribers"] == 1

            disconnected.set()
            await asyncio.wait_for(request, timeout=1)

            assert app._core.services.relay.depth(view.session_id) == 0
            assert app._core.services.stream.count() == 0
            assert app.get_stats() == {"sessions": 1, "subscribers": 0}

    @pytest.mark.asyncio
    async def test_listen_unknown_session_yields_not_found(self, app):
        """Test that a session gone before the stream starts ends the stream with a closed event."""
        events = [event async for event in app.listen(SessionId("unknown-session-id-0000"))]
        assert events == [ClosedEvent(reason=CloseReason.SESSION_NOT_FOUND)]

    @pytest.mark.asyncio
    async def test_listen_expired_session_yields_expired(self, app, expire):
        view = await app.create_session()
        expire(app._core.services.session._sessions[view.session_id])

        events = [event async for event in app.listen(view.session_id)]
        assert events == [ClosedEvent(reason=CloseReason.SESSION_EXPIRED)]


class TestHealth:
    def test_health(self, client, session_data):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "sessions": 1, "subscribers": 0}

    def test_health_without_sessions(self, client):
        assert client.get("/health").json() == {"status": "healthy", "sessions": 0, "subscribers": 0}


class TestEventFraming:
    def test_content_event(self):
        event = ContentEvent(
            content_type=ContentKind.LINK,
            content="https://a.co",
            id="5b1f0c1e-8a43-4a8e-9c47-2d1f0e6b7a10",
            number=1,
            received_at="2025-01-01T00:00:00Z",
        )
        frame = format_event(event)

        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        data = json.loads(frame.removeprefix("data: "))
        assert data["type"] == "content"
        assert data["contentType"] == "link"
        assert data["content"] == "https://a.co"

    def test_multiline_content_stays_on_one_data_line(self):
        event = ContentEvent(
            content_type=ContentKind.TEXT,
            content="line1\nline2",
            id="5b1f0c1e-8a43-4a8e-9c47-2d1f0e6b7a10",
            number=2,
            received_at="2025-01-01T00:00:00Z",
        )
        frame = format_event(event)
        assert frame.count("\n") == 2
        assert json.loads(frame.removeprefix("data: "))["content"] == "line1\nline2"

    def test_heartbeat_event(self):
        assert format_event(HeartbeatEvent()) == 'data: {"type":"heartbeat"}\n\n'
