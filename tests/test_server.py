import json

import pytest
from fastapi.testclient import TestClient
from unittest.mock import AsyncMock, MagicMock

from conftest import agen, gemini_response
from vertexmux.client import ChatStream, VertexGateway
from vertexmux.errors import AuthenticationError
from vertexmux.responses import DONE_FRAME
from vertexmux.server import _sse_frames, create_app


@pytest.fixture
def client(settings, mock_auth):
    app = create_app(settings, VertexGateway(settings, mock_auth))
    return TestClient(app)


class TestInfoRoutes:

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "vertexmux"
        assert body["status"] == "operational"
        assert body["endpoints"]["chat"] == "/v1/chat/completions"

    @pytest.mark.parametrize("path", ["/health", "/v1/health"])
    def test_health(self, client, path):
        body = client.get(path).json()
        assert body["status"] == "healthy"
        assert body["project_id"] == "test-project"
        assert body["location"] == "us-central1"

    def test_models(self, client):
        body = client.get("/v1/models").json()
        assert body["object"] == "list"
        assert {"gemini-1.5-pro", "claude-3-opus-20240229"} <= {m["id"] for m in body["data"]}

    def test_model_detail(self, client):
        body = client.get("/v1/models/gemini-1.5-flash").json()
        assert body["id"] == "gemini-1.5-flash"
        assert body["capabilities"]["streaming"] is True

    def test_model_detail_unknown(self, client):
        response = client.get("/v1/models/gpt-4o")
        assert response.status_code == 404
        assert response.json()["error"]["type"] == "model_not_found_error"

    def test_unknown_route(self, client):
        response = client.get("/v2/nothing")
        assert response.status_code == 404
        error = response.json()["error"]
        assert error["type"] == "not_found_error"
        assert "POST /v1/chat/completions" in error["available_endpoints"]


class TestChatRoutes:

    def test_chat_completion(self, client, genai_client):
        genai_client.aio.models.generate_content.return_value = gemini_response("Hello from Gemini")
        response = client.post("/v1/chat/completions", json={
            "model": "gemini-1.5-pro",
            "messages": [{"role": "user", "content": "hi"}],
        })
        assert response.status_code == 200
        body = response.json()
        assert body["object"] == "chat.completion"
        assert body["choices"][0]["message"]["content"] == "Hello from Gemini"

    def test_streaming(self, client, genai_client):
        genai_client.aio.models.generate_content_stream.return_value = agen([
            gemini_response("Hello"), gemini_response(" world"),
        ])
        response = client.post("/v1/chat/completions", json={
            "model": "gemini-1.5-flash",
            "messages": [{"role": "user", "content": "hi"}],
            "stream": True,
        })
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        frames = [f"{block}\n\n" for block in response.text.split("\n\n") if block]
        assert frames[-1] == DONE_FRAME
        payloads = [json.loads(frame[len("data: "):]) for frame in frames[:-1]]
        assert "".join(p["choices"][0]["delta"].get("content") or "" for p in payloads) == "Hello world"

    def test_validation_error(self, client):
        response = client.post("/v1/chat/completions", json={"model": "gemini-1.5-pro", "messages": []})
        assert response.status_code == 400
        assert response.json() == {
            "error": {
                "message": "Messages array cannot be empty",
                "type": "invalid_request_error",
                "code": 400,
            }
        }

    def test_unknown_model(self, client):
        response = client.post("/v1/chat/completions", json={
            "model": "gpt-4o", "messages": [{"role": "user", "content": "hi"}],
        })
        assert response.status_code == 400
        assert "not supported" in response.json()["error"]["message"]

    def test_invalid_json(self, client):
        response = client.post(
            "/v1/chat/completions", content=b"{not json", headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["type"] == "invalid_request_error"

    def test_authentication_error(self, client, mock_auth):
        mock_auth.get_client.side_effect = AuthenticationError("Vertex AI not initialized. Call initialize() first.")
        response = client.post("/v1/chat/completions", json={
            "model": "gemini-1.5-pro", "messages": [{"role": "user", "content": "hi"}],
        })
        assert response.status_code == 401
        assert response.json()["error"]["type"] == "authentication_error"

    def test_rate_limited(self, client, genai_client):
        genai_client.aio.models.generate_content.side_effect = RuntimeError("429 RESOURCE_EXHAUSTED: quota")
        response = client.post("/v1/chat/completions", json={
            "model": "gemini-1.5-pro", "messages": [{"role": "user", "content": "hi"}],
        })
        assert response.status_code == 429

    def test_legacy_completions(self, client, genai_client):
        genai_client.aio.models.generate_content.return_value = gemini_response("legacy ok")
        response = client.post("/v1/completions", json={"model": "gemini-1.5-pro", "prompt": "Say ok"})
        assert response.status_code == 200
        assert response.json()["choices"][0]["message"]["content"] == "legacy ok"
        contents = genai_client.aio.models.generate_content.call_args.kwargs["contents"]
        assert contents[0].parts[0].text == "Say ok"

    def test_cors_headers(self, client):
        response = client.options("/v1/chat/completions", headers={
            "Origin": "https://app.example",
            "Access-Control-Request-Method": "POST",
        })
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] in ("*", "https://app.example")


class TestSseFrames:

    @pytest.mark.asyncio
    async def test_client_disconnect_stops_stream(self):
        closed = []

        async def frames():
            try:
                for frame in ("data: 1\n\n", "data: 2\n\n", "data: 3\n\n"):
                    yield frame
            finally:
                closed.append(True)

        request = MagicMock()
        request.is_disconnected = AsyncMock(side_effect=[False, True])

        sent = [frame async for frame in _sse_frames(request, ChatStream("gemini-1.5-flash", frames()))]

        assert sent == ["data: 1\n\n"]
        assert closed == [True]
        assert request.is_disconnected.await_count == 2
