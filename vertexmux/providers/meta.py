from typing import Dict, Any, List, Optional

from .garden import ModelGardenProvider
from ..messages import extract_content
from ..params import SamplingParams
from ..types import Message, Tool, ToolChoice

LLAMA_TOP_P = 0.9


class MetaProvider(ModelGardenProvider):
    """
    Llama models on Vertex AI Model Garden (text-generation payload).
    """

    name = "meta"

    def convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        """
        Map to user/assistant turns, folding the system text into the first
        user turn when the conversation opens with one.
        """
        system_text = next((extract_content(m) for m in messages if m.get("role") == "system"), "")
        converted = [
            {"role": "assistant" if m.get("role") == "assistant" else "user", "content": extract_content(m)}
            for m in messages
            if m.get("role") != "system"
        ]
        if system_text and converted and converted[0]["role"] == "user":
            converted[0]["content"] = f"{system_text}\n\n{converted[0]['content']}"
        return converted

    def build_request(
        self,
        messages: List[Message],
        params: SamplingParams,
        *,
        tools: Optional[List[Tool]] = None,
        tool_choice: Optional[ToolChoice] = None,
        stream: bool = False,
    ) -> Dict[str, Any]:
        # Roles are dropped: the prompt is the plain concatenation of turns
        return {
            "inputs": "\n".join(m["content"] for m in self.convert_messages(messages)),
            "parameters": {
                "temperature": params.temperature,
                "max_new_tokens": params.max_tokens,
                "do_sample": True,
                "top_p": LLAMA_TOP_P,
            },
        }
