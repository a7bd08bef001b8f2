import pytest
from unittest.mock import MagicMock, AsyncMock

from vertexmux.config import Settings
from vertexmux.messages import create_tool


@pytest.fixture
def settings():
    """Settings with streaming delays disabled."""
    return Settings(project_id="test-project", stream_word_delay=0.0)


@pytest.fixture
def genai_client():
    """A google-genai client double exposing the async model calls."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock()
    client.aio.models.generate_content_stream = AsyncMock()
    return client


@pytest.fixture
def mock_auth(genai_client):
    """Initialized VertexAuth double."""
    auth = MagicMock()
    auth.project_id = "test-project"
    auth.location = "us-central1"
    auth.initialized = True
    auth.get_client.return_value = genai_client
    auth.health.return_value = {
        "status": "connected",
        "project_id": "test-project",
        "location": "us-central1",
    }
    return auth


@pytest.fixture
def agent_tools():
    """Tools declared by a coding agent."""
    return [
        create_tool("builtin_read_file", "Read a file", {"filepath": {"type": "string"}}, ["filepath"]),
        create_tool("builtin_edit_existing_file", "Edit a file", {"filepath": {"type": "string"}}, ["filepath"]),
        create_tool("builtin_list_directory", "List a directory", {"dirpath": {"type": "string"}}),
    ]


def gemini_response(text="", function_calls=None, finish_reason="STOP", usage=None):
    """Build a Gemini REST-shaped response."""
    parts = []
    if text:
        parts.append({"text": text})
    for name, args in (function_calls or []):
        parts.append({"functionCall": {"name": name, "args": args}})
    response = {
        "candidates": [{
            "content": {"role": "model", "parts": parts},
            "finishReason": finish_reason,
        }],
    }
    if usage:
        response["usageMetadata"] = usage
    return response


async def agen(items):
    """Async generator over a fixed list of items."""
    for item in items:
        yield item


async def failing_agen(items, error):
    for item in items:
        yield item
    raise error
