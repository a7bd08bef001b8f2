from abc import ABC, abstractmethod
from typing import Dict, Any, List, AsyncIterator, Optional

from ..params import SamplingBounds, SamplingParams, clamp_params, sampling_params
from ..types import ChatCompletionRequest, Message, ModelSpec, Tool, ToolChoice


class BaseProvider(ABC):
    """
    Abstract base class for a backend reachable through Vertex AI.

    A provider owns the translation of an OpenAI-style request into its
    native payload and the normalization of the result back into a chat
    completion.
    """

    name: str = "generic"
    bounds: SamplingBounds

    def __init__(self, auth: Optional[Any] = None):
        self.auth = auth

    @abstractmethod
    def convert_messages(self, messages: List[Message]) -> Any:
        """
        Convert normalized messages into the provider's native message shape.
        """

    @abstractmethod
    def build_request(
        self,
        messages: List[Message],
        params: SamplingParams,
        *,
        tools: Optional[List[Tool]] = None,
        tool_choice: Optional[ToolChoice] = None,
        stream: bool = False,
    ) -> Dict[str, Any]:
        """
        Build the native request payload.

        Args:
            messages (List[Message]): Cleaned and validated conversation.
            params (SamplingParams): Sampling parameters, already clamped.
            tools (List[Tool], optional): OpenAI tool declarations.
            tool_choice (ToolChoice, optional): OpenAI tool_choice.
            stream (bool): Whether the caller asked for streaming.

        Returns:
            Dict[str, Any]: The provider payload.
        """

    def request_params(self, request: ChatCompletionRequest) -> SamplingParams:
        return clamp_params(sampling_params(request), self.bounds)

    def build_from_request(self, request: ChatCompletionRequest) -> Dict[str, Any]:
        return self.build_request(
            request["messages"],
            self.request_params(request),
            tools=request.get("tools"),
            tool_choice=request.get("tool_choice"),
            stream=request.get("stream", False),
        )

    @abstractmethod
    async def chat(self, spec: ModelSpec, request: ChatCompletionRequest) -> Dict[str, Any]:
        """
        Run a non-streaming completion.

        Returns:
            Dict[str, Any]: OpenAI `chat.completion` object.
        """

    @abstractmethod
    async def stream(self, spec: ModelSpec, request: ChatCompletionRequest) -> AsyncIterator[Any]:
        """
        Start a streaming completion.

        Returns:
            AsyncIterator[Any]: Native chunks, to be adapted with
            `responses.stream_chat_completion`.
        """
