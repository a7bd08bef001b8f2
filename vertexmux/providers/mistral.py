from typing import Dict, Any, List, Optional

from .garden import ModelGardenProvider
from ..params import SamplingParams
from ..types import Message, Tool, ToolChoice


class MistralProvider(ModelGardenProvider):
    """
    Mistral models on Vertex AI Model Garden. Messages keep the OpenAI shape.
    """

    name = "mistral"

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
