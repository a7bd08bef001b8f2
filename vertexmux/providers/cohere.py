from typing import Dict, Any, List, Optional, Tuple

from .garden import ModelGardenProvider
from ..messages import extract_content
from ..params import SamplingParams
from ..types import Message, Tool, ToolChoice


class CohereProvider(ModelGardenProvider):
    """
    Command models on Vertex AI Model Garden.

    Cohere's chat API takes the current message separately from the history,
    with its own role names.
    """

    name = "cohere"

    def split_history(self, messages: List[Message]) -> Tuple[str, List[Dict[str, str]]]:
        """
        Returns:
            Tuple containing:
            - message: Text of the last message ("" for an empty list)
            - chat_history: Earlier turns as CHATBOT/USER entries
        """
        if not messages:
            return "", []
        return extract_content(messages[-1]), self.convert_messages(messages[:-1])

    def convert_messages(self, messages: List[Message]) -> List[Dict[str, str]]:
        return [
            {
                "role": "CHATBOT" if m.get("role") == "assistant" else "USER",
                "message": extract_content(m),
            }
            for m in messages
        ]

    def build_request(
        self,
        messages: List[Message],
        params: SamplingParams,
        *,
        tools: Optional[List[Tool]] = None,
        tool_choice: Optional[ToolChoice] = None,
        stream: bool = False,
    ) -> Dict[str, Any]:
        message, history = self.split_history(messages)
        return {
            "message": message,
            "chat_history": history,
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "stream": stream,
        }
