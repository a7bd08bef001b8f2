import json
import logging
import math
from typing import Union, List, Optional, Dict, Any, Literal, Iterable

from .errors import InvalidRequestError
from .types import Message, TextContent, Tool, ToolCall

logger = logging.getLogger(__name__)

VALID_ROLES = ("system", "user", "assistant", "tool")

# =============================================================================
# Content Extraction
# =============================================================================

def _part_text(part: Any) -> str:
    if isinstance(part, str):
        return part
    if isinstance(part, dict):
        if part.get("type") == "text" and isinstance(part.get("text"), str):
            return part["text"]
        if isinstance(part.get("text"), str):
            return part["text"]
    return ""


def extract_content(message: Message) -> str:
    """
    Resolve a message's polymorphic content to a single string.

    Resolution order:
    - a string is returned unchanged;
    - a list has each element mapped (strings verbatim, text-bearing objects
      to their text, anything else to "") and joined with a single space, then
      trimmed;
    - an object yields its `text` field, then its `content` field, and only
      then a JSON dump of the whole object;
    - missing content yields "".

    Args:
        message (Message): The message to read.

    Returns:
        str: The textual content.
    """
    content = message.get("content")

    if isinstance(content, str):
        return content

    if isinstance(content, list):
        return " ".join(_part_text(part) for part in content).strip()

    if isinstance(content, dict):
        for key in ("text", "content"):
            value = content.get(key)
            if isinstance(value, str):
                return value
            if value is not None:
                return json.dumps(value)
        logger.warning("Object content could not be extracted, using JSON (role=%s)", message.get("role"))
        return json.dumps(content)

    if content is None:
        return ""
    return str(content)


# =============================================================================
# Validation and Cleaning
# =============================================================================

def validate_messages(messages: Any) -> None:
    """
    Check a message array against the role and tool-call structure rules.

    Raises:
        InvalidRequestError: On the first violation found.
    """
    if not isinstance(messages, list):
        raise InvalidRequestError("Messages must be an array")
    if not messages:
        raise InvalidRequestError("Messages array cannot be empty")

    for message in messages:
        if not isinstance(message, dict) or not message.get("role"):
            raise InvalidRequestError("Each message must have a role property")

        role = message["role"]
        if role not in VALID_ROLES:
            raise InvalidRequestError("Message role must be system, user, assistant, or tool")

        if role == "tool":
            if not message.get("content"):
                raise InvalidRequestError("Tool messages must have content")
            if not message.get("tool_call_id"):
                raise InvalidRequestError("Tool messages must have tool_call_id")

        elif role == "assistant" and message.get("tool_calls"):
            # Content is optional when the assistant is calling tools
            tool_calls = message["tool_calls"]
            if not isinstance(tool_calls, list):
                raise InvalidRequestError("tool_calls must be an array")
            for tool_call in tool_calls:
                if not isinstance(tool_call, dict) or not tool_call.get("id") or not tool_call.get("type") \
                        or not isinstance(tool_call.get("function"), dict):
                    raise InvalidRequestError("Each tool call must have id, type, and function properties")
                if tool_call["type"] != "function":
                    raise InvalidRequestError("Only function tool calls are supported")
                if not tool_call["function"].get("name"):
                    raise InvalidRequestError("Function tool calls must have a name")

        else:
            content = message.get("content")
            if not content:
                raise InvalidRequestError("Messages must have content property")
            # String or multimodal array
            if not isinstance(content, (str, list)):
                raise InvalidRequestError("Message content must be a string or array")


def clean_orphaned_tool_messages(messages: List[Message]) -> List[Message]:
    """
    Drop tool results that answer a tool call no assistant message made.

    Args:
        messages (List[Message]): The conversation.

    Returns:
        List[Message]: A filtered copy; non-tool messages are kept as-is.
    """
    known_ids = set()
    for message in messages:
        if isinstance(message, dict) and message.get("role") == "assistant":
            for tool_call in message.get("tool_calls") or []:
                if isinstance(tool_call, dict) and tool_call.get("id"):
                    known_ids.add(tool_call["id"])

    cleaned = []
    for message in messages:
        if isinstance(message, dict) and message.get("role") == "tool" \
                and message.get("tool_call_id") not in known_ids:
            logger.warning("Removing orphaned tool message (tool_call_id=%s)", message.get("tool_call_id"))
            continue
        cleaned.append(message)
    return cleaned


def validate_tools(tools: Any, tool_choice: Any = None) -> None:
    """
    Check caller-supplied tool declarations and tool_choice.

    Raises:
        InvalidRequestError: If a declaration or the choice is malformed.
    """
    if tools is not None:
        if not isinstance(tools, list):
            raise InvalidRequestError("Tools must be an array")
        for tool in tools:
            if not isinstance(tool, dict) or tool.get("type") != "function":
                raise InvalidRequestError("Only function tools are supported")
            function = tool.get("function")
            if not isinstance(function, dict) or not function.get("name"):
                raise InvalidRequestError("Function tools must have a name")
            if function.get("parameters") is not None and not isinstance(function["parameters"], dict):
                raise InvalidRequestError(f"Parameters of tool '{function['name']}' must be an object")

    if tool_choice is None:
        return
    if not tools:
        raise InvalidRequestError("tool_choice requires tools to be provided")
    if tool_choice in ("auto", "none", "required"):
        return
    if isinstance(tool_choice, dict) and tool_choice.get("type") == "function" \
            and isinstance(tool_choice.get("function"), dict) and tool_choice["function"].get("name"):
        return
    raise InvalidRequestError("tool_choice must be 'auto', 'none', 'required' or a function selection")


# =============================================================================
# Conversation Helpers
# =============================================================================

def get_last_user_message(messages: Iterable[Message]) -> Optional[Message]:
    last = None
    for message in messages:
        if message.get("role") == "user":
            last = message
    return last


def estimate_token_count(messages: Iterable[Message]) -> int:
    """
    Rough token estimate: one token per four characters of extracted content.
    """
    return sum(math.ceil(len(extract_content(message)) / 4) for message in messages)


def parse_tool_arguments(tool_call: ToolCall) -> Dict[str, Any]:
    """
    Parse the JSON-encoded arguments of a caller-supplied tool call.

    Raises:
        InvalidRequestError: If the arguments are not a JSON object.
    """
    function = tool_call.get("function", {})
    raw = function.get("arguments") or "{}"
    if isinstance(raw, dict):
        return raw
    try:
        args = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise InvalidRequestError(
            f"Invalid JSON in arguments of tool call '{tool_call.get('id', '')}' "
            f"({function.get('name', '')}): {e}"
        ) from e
    if not isinstance(args, dict):
        raise InvalidRequestError(f"Arguments of tool call '{tool_call.get('id', '')}' must be a JSON object")
    return args


def create_text_content(text: str) -> TextContent:
    """
    Create a standardized simple text content part.

    Args:
        text (str): The text message content.

    Returns:
        TextContent: A dictionary {"type": "text", "text": text}.
    """
    return {"type": "text", "text": text}


def create_message(
    role: Literal["system", "user", "assistant"],
    content: Union[str, List[Union[str, TextContent]]],
) -> Message:
    """
    Create a standardized Message object.

    String elements within a list are normalized to TextContent parts.
    """
    if isinstance(content, str):
        return {"role": role, "content": content}
    return {
        "role": role,
        "content": [create_text_content(item) if isinstance(item, str) else item for item in content],
    }


def create_tool(
    name: str,
    description: str,
    parameters: Dict[str, Any],
    required: Optional[List[str]] = None,
) -> Tool:
    """
    Create a Tool declaration in OpenAI function-calling format.

    Args:
        name (str): The name of the function/tool to be called.
        description (str): A clear description of what the tool does.
        parameters (Dict): JSON Schema properties of the expected arguments.
        required (List[str], optional): Names of the required parameters.

    Returns:
        Tool: The tool declaration.
    """
    return {
        "type": "function",
        "function": {
            "name": name,
            "description": description,
            "parameters": {
                "type": "object",
                "properties": parameters,
                "required": required or [],
            },
        },
    }


def create_tool_call(call_id: str, name: str, arguments: Dict[str, Any]) -> ToolCall:
    return {
        "id": call_id,
        "type": "function",
        "function": {"name": name, "arguments": json.dumps(arguments)},
    }


def create_tool_result(tool_call_id: str, content: str) -> Message:
    """
    Create a tool result message answering the call with `tool_call_id`.
    """
    return {
        "role": "tool",
        "tool_call_id": tool_call_id,
        "content": content,
    }


def create_assistant_message_with_tool_calls(
    content: str,
    tool_calls: List[ToolCall],
) -> Message:
    """
    Create an assistant message that requests one or more tool calls.
    """
    return {
        "role": "assistant",
        "content": content,
        "tool_calls": tool_calls,
    }
