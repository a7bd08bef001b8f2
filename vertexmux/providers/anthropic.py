from typing import Dict, Any, List, Optional, Tuple

from anthropic.types import MessageParam, ToolChoiceParam, ToolParam

from .garden import ModelGardenProvider
from ..messages import extract_content, parse_tool_arguments
from ..params import SamplingParams
from ..types import Message, Tool, ToolChoice

ANTHROPIC_VERSION = "vertex-2023-10-16"


class AnthropicProvider(ModelGardenProvider):
    """
    Claude models on Vertex AI Model Garden.
    """

    name = "anthropic"

    def split_system(self, messages: List[Message]) -> Tuple[Optional[str], List[MessageParam]]:
        """
        Convert messages to Claude format.

        Claude takes the system prompt as a separate top-level parameter, so
        system messages are pulled out of the list. Tool results become
        `tool_result` blocks on a user turn and assistant tool calls become
        `tool_use` blocks.

        Args:
            messages (List[Message]): Internal message list.

        Returns:
            Tuple containing:
            - system_text: Joined system prompt (or None)
            - converted: Message params for the API
        """
        system_parts = []
        converted: List[MessageParam] = []

        for message in messages:
            role = message.get("role")
            content = extract_content(message)

            if role == "system":
                system_parts.append(content)
            elif role == "tool":
                converted.append({
                    "role": "user",
                    "content": [{
                        "type": "tool_result",
                        "tool_use_id": message.get("tool_call_id", ""),
                        "content": content,
                    }],
                })
            elif role == "assistant" and message.get("tool_calls"):
                blocks: List[Dict[str, Any]] = []
                if content.strip():
                    blocks.append({"type": "text", "text": content})
                for tool_call in message["tool_calls"]:
                    blocks.append({
                        "type": "tool_use",
                        "id": tool_call["id"],
                        "name": tool_call["function"]["name"],
                        "input": parse_tool_arguments(tool_call),
                    })
                converted.append({"role": "assistant", "content": blocks})
            else:
                converted.append({"role": role, "content": content})

        system_text = "\n\n".join(part for part in system_parts if part) or None
        return system_text, converted

    def convert_messages(self, messages: List[Message]) -> List[MessageParam]:
        return self.split_system(messages)[1]

    @staticmethod
    def convert_tools(tools: List[Tool]) -> List[ToolParam]:
        """
        Convert OpenAI-format tools to Claude format.

        Claude uses 'input_schema' instead of 'parameters'.
        """
        claude_tools: List[ToolParam] = []
        for tool in tools:
            func = tool.get("function", {})
            claude_tools.append({
                "name": func.get("name", ""),
                "description": func.get("description", ""),
                "input_schema": func.get("parameters") or {"type": "object", "properties": {}},
            })
        return claude_tools

    @staticmethod
    def convert_tool_choice(tool_choice: Optional[ToolChoice]) -> Optional[ToolChoiceParam]:
        if tool_choice == "auto":
            return {"type": "auto"}
        if tool_choice == "none":
            return {"type": "none"}
        if tool_choice == "required":
            return {"type": "any"}
        if isinstance(tool_choice, dict) and tool_choice.get("type") == "function":
            return {"type": "tool", "name": tool_choice["function"]["name"]}
        return None

    def build_request(
        self,
        messages: List[Message],
        params: SamplingParams,
        *,
        tools: Optional[List[Tool]] = None,
        tool_choice: Optional[ToolChoice] = None,
        stream: bool = False,
    ) -> Dict[str, Any]:
        system_text, converted = self.split_system(messages)

        payload: Dict[str, Any] = {
            "anthropic_version": ANTHROPIC_VERSION,
            "messages": converted,
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "stream": stream,
        }
        if system_text:
            payload["system"] = system_text

        if tools:
            payload["tools"] = self.convert_tools(tools)
            choice = self.convert_tool_choice(tool_choice)
            if choice:
                payload["tool_choice"] = choice

        return payload
