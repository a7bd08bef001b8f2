import json
import logging
from typing import Dict, Any, List, AsyncIterator, Optional

from .base import BaseProvider
from ..messages import extract_content
from ..params import THIRD_PARTY_BOUNDS, SamplingParams
from ..responses import build_completion, word_stream
from ..types import ChatCompletionRequest, Message, ModelSpec, Tool, ToolChoice

logger = logging.getLogger(__name__)

_ENABLE_STEPS = (
    "1. Go to Vertex AI Model Garden in Google Cloud Console\n"
    "2. Find and enable {family} models\n"
    "3. Accept {terms}\n"
    "4. The model will be available for use"
)

_HELP_MESSAGES = {
    "anthropic": ("Claude", "the terms and conditions", "\n\nNote: Availability may vary by region."),
    "meta": ("Llama", "Meta's terms and conditions", ""),
    "mistral": ("Mistral", "the terms and conditions", ""),
    "cohere": ("Cohere", "the terms and conditions", ""),
}


def third_party_help_message(provider: str, model: str) -> str:
    """
    Operator instructions for enabling a Model Garden provider.
    """
    if provider not in _HELP_MESSAGES:
        return (
            f"{provider} models are available through Vertex AI Model Garden. "
            "Please enable them in the Google Cloud Console."
        )
    family, terms, note = _HELP_MESSAGES[provider]
    steps = _ENABLE_STEPS.format(family=family, terms=terms)
    return (
        f"{family} models ({model}) are available through Vertex AI Model Garden. "
        f"To enable:\n\n{steps}{note}"
    )


class ModelGardenProvider(BaseProvider):
    """
    Base class for third-party models published in Vertex AI Model Garden.

    The native payload is built and logged for every call, but no prediction
    request is sent: the completion is an informational message telling the
    operator how to enable the model. Streaming replays that message word by
    word.
    """

    bounds = THIRD_PARTY_BOUNDS

    def convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        return [{"role": m.get("role"), "content": extract_content(m)} for m in messages]

    def endpoint(self, spec: ModelSpec) -> str:
        project = getattr(self.auth, "project_id", None) or "unset"
        location = getattr(self.auth, "location", None) or "us-central1"
        return f"projects/{project}/locations/{location}/publishers/{self.name}/models/{spec.backend_id}"

    async def chat(self, spec: ModelSpec, request: ChatCompletionRequest) -> Dict[str, Any]:
        payload = self.build_from_request(request)
        logger.info(
            "Third-party model request (provider=%s, model=%s, endpoint=%s, tools=%s, payload=%s)",
            self.name, spec.backend_id, self.endpoint(spec), bool(request.get("tools")),
            json.dumps(payload, default=str)[:300],
        )
        logger.warning(
            "Third-party model call attempted (provider=%s, model=%s): Model Garden models require "
            "specific setup and may not be available in all regions",
            self.name, spec.public_id,
        )
        return build_completion(spec.public_id, third_party_help_message(self.name, spec.public_id))

    async def stream(self, spec: ModelSpec, request: ChatCompletionRequest) -> AsyncIterator[Any]:
        completion = await self.chat(spec, request)
        return word_stream(completion["choices"][0]["message"]["content"])


class GenericProvider(ModelGardenProvider):
    """
    Fallback for providers without a dedicated payload shape.
    """

    name = "generic"

    def build_request(
        self,
        messages: List[Message],
        params: SamplingParams,
        *,
        tools: Optional[List[Tool]] = None,
        tool_choice: Optional[ToolChoice] = None,
        stream: bool = False,
    ) -> Dict[str, Any]:
        return {
            "messages": self.convert_messages(messages),
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "stream": stream,
        }
