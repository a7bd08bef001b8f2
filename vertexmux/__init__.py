from .client import VertexGateway, ChatStream
from .config import Settings, load_settings
from .errors import (
    GatewayError,
    InvalidRequestError,
    AuthenticationError,
    RateLimitedError,
    ModelNotFoundError,
    InternalError,
)
from .types import Message, Tool, ToolCall, TextContent, Provider, ModelSpec

__all__ = [
    "VertexGateway",
    "ChatStream",
    "Settings",
    "load_settings",
    "GatewayError",
    "InvalidRequestError",
    "AuthenticationError",
    "RateLimitedError",
    "ModelNotFoundError",
    "InternalError",
    "Message",
    "Tool",
    "ToolCall",
    "TextContent",
    "Provider",
    "ModelSpec",
]
