import logging
import time
from dataclasses import dataclass
from typing import Optional, Dict, List, Any, AsyncIterator, Union

from .auth import VertexAuth
from .config import Settings, load_settings
from .continuation import with_continuation_instruction
from .errors import GatewayError, InvalidRequestError, ModelNotFoundError, translate_backend_error
from .messages import clean_orphaned_tool_messages, validate_messages
from .models import describe_model, get_model_spec, list_models
from .params import parse_chat_request
from .providers import BaseProvider, build_providers
from .responses import stream_chat_completion
from .tool_selection import ToolRotationState

logger = logging.getLogger(__name__)


@dataclass
class ChatStream:
    """
    A streaming chat completion: SSE frames ready to be written as-is.
    """
    model: str
    frames: AsyncIterator[str]


class VertexGateway:
    """
    OpenAI-compatible chat completions backed by Vertex AI.

    Routes each request to the provider serving its model: native Gemini
    models through the google-genai SDK, third-party Model Garden models
    through their payload builders.
    """

    def __init__(self, settings: Optional[Settings] = None, auth: Optional[VertexAuth] = None):
        """
        Args:
            settings (Settings, optional): Defaults to `load_settings()`.
            auth (VertexAuth, optional): Defaults to a new, uninitialized
                `VertexAuth` for the settings.
        """
        self.settings = settings or load_settings()
        self.auth = auth or VertexAuth(self.settings)
        # Shared by every request so fallback rotation spans the process
        self.rotation = ToolRotationState()
        self.providers: Dict[str, BaseProvider] = build_providers(self.auth, self.rotation)

    # ==========================================================================
    # Models
    # ==========================================================================

    @staticmethod
    def list_models() -> List[Dict[str, Any]]:
        return list_models()

    @staticmethod
    def describe_model(model_id: str) -> Dict[str, Any]:
        """
        Raises:
            ModelNotFoundError: If the id is not registered.
        """
        record = describe_model(model_id)
        if record is None:
            raise ModelNotFoundError(f"Model '{model_id}' not found")
        return record

    def health(self) -> Dict[str, Any]:
        return self.auth.health()

    # ==========================================================================
    # Chat
    # ==========================================================================

    async def chat_completion(self, body: Any) -> Union[Dict[str, Any], ChatStream]:
        """
        Run one chat completion request.

        The body is parsed with OpenAI defaults, orphaned tool results are
        dropped, and the messages are validated before the provider is called.
        When tools are in play and the conversation shows unfinished work, a
        continuation instruction is appended.

        Args:
            body (Any): Decoded JSON request body.

        Returns:
            Union[Dict[str, Any], ChatStream]: A `chat.completion` object, or
            a `ChatStream` when streaming was requested and the model
            supports it.

        Raises:
            GatewayError: Validation failures and translated backend errors.
        """
        start = time.perf_counter()
        request = parse_chat_request(body)

        messages = request["messages"]
        if isinstance(messages, list):
            messages = clean_orphaned_tool_messages(messages)
        validate_messages(messages)

        model = request["model"]
        spec = get_model_spec(model)
        if spec is None:
            raise InvalidRequestError(f"Model '{model}' not supported. Check /v1/models for available models.")

        if request["tools"] and self.settings.task_continuation:
            messages = with_continuation_instruction(messages, request["tools"])
        request["messages"] = messages

        provider = self.providers[spec.provider]
        streaming = request["stream"] and spec.supports_streaming
        logger.info(
            "Chat completion request (model=%s, provider=%s, messages=%d, stream=%s, tools=%d, tool_choice=%s)",
            model, spec.provider, len(messages), streaming, len(request["tools"] or []), request["tool_choice"],
        )

        try:
            if streaming:
                upstream = await provider.stream(spec, request)
                frames = stream_chat_completion(
                    upstream,
                    spec.public_id,
                    word_delay=self.settings.stream_word_delay,
                    word_split=self.settings.stream_split_words,
                )
                return ChatStream(model=spec.public_id, frames=frames)

            result = await provider.chat(spec, request)
        except GatewayError:
            raise
        except Exception as e:
            logger.error("Chat completion error (model=%s, provider=%s): %s", model, spec.provider, e)
            raise translate_backend_error(e) from e

        logger.info(
            "Chat completion completed (model=%s, provider=%s, duration_ms=%.1f)",
            model, spec.provider, (time.perf_counter() - start) * 1000.0,
        )
        return result
