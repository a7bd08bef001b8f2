from dataclasses import dataclass, field
from enum import Enum
from typing import Literal, List, Dict, Any, Union, TypedDict, Optional

# =============================================================================
# Type Definitions
# =============================================================================

# Backends reachable through Vertex AI. "google" is the native Gemini service,
# the rest are Model Garden publishers.
Provider = Literal["google", "anthropic", "meta", "mistral", "cohere"]

Role = Literal["system", "user", "assistant", "tool"]

FinishReason = Literal["stop", "length", "tool_calls", "content_filter"]


class TextContent(TypedDict, total=False):
    """
    Text content part for multimodal messages.
    """
    type: Literal["text"]
    text: str


# Content can be a simple string, a list of content parts, or a free-form object
MessageContent = Union[str, List[Union[str, TextContent, Dict[str, Any]]], Dict[str, Any]]


# =============================================================================
# Tool Calling Type Definitions
# =============================================================================

class FunctionParameters(TypedDict, total=False):
    """
    JSON Schema for function parameters.
    """
    type: Literal["object"]
    properties: Dict[str, Any]
    required: List[str]


class FunctionDefinition(TypedDict, total=False):
    """
    Function definition for tools.
    """
    name: str
    description: str
    parameters: FunctionParameters


class Tool(TypedDict):
    """
    Tool declaration in OpenAI format.
    """
    type: Literal["function"]
    function: FunctionDefinition


class FunctionCall(TypedDict):
    name: str
    arguments: str  # JSON-encoded


class ToolCall(TypedDict):
    """
    Tool call as it appears on an OpenAI assistant message.
    """
    id: str
    type: Literal["function"]
    function: FunctionCall


class NamedToolChoice(TypedDict):
    type: Literal["function"]
    function: Dict[str, str]


ToolChoice = Union[Literal["auto", "none", "required"], NamedToolChoice]


# =============================================================================
# Message Type (depends on ToolCall)
# =============================================================================

class Message(TypedDict, total=False):
    """
    Chat message with optional multimodal content and tool support.

    Roles:
    - "system": System prompt / instructions
    - "user": User message
    - "assistant": Model response
    - "tool": Tool execution result
    """
    role: Role
    content: MessageContent
    tool_call_id: str  # For tool result messages
    tool_calls: List[ToolCall]  # For assistant messages with tool calls


class ChatCompletionRequest(TypedDict, total=False):
    """
    Inbound chat-completion body after defaults have been applied.
    """
    model: str
    messages: List[Message]
    temperature: float
    max_tokens: int
    top_p: float
    top_k: int
    stream: bool
    tools: Optional[List[Tool]]
    tool_choice: Optional[ToolChoice]


# =============================================================================
# Registry and continuation records
# =============================================================================

@dataclass(frozen=True)
class ModelSpec:
    """
    Static description of one public model id.
    """
    public_id: str
    provider: Provider
    backend_id: str
    context_length: int = 8192
    supports_streaming: bool = False
    description: str = ""


class TaskType(str, Enum):
    DEBUG_FIX = "debug_fix"
    FEATURE_ADD = "feature_add"
    REFACTOR = "refactor"
    TESTING = "testing"
    ANALYSIS = "analysis"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class NextStep:
    tool: str
    reason: str


@dataclass
class TaskState:
    """
    Snapshot of an agent loop computed from the conversation of one request.
    """
    task_type: TaskType = TaskType.UNKNOWN
    completion_level: int = 0
    next_steps: List[NextStep] = field(default_factory=list)
    tool_results: List[Message] = field(default_factory=list)
    last_tool_call: Optional[ToolCall] = None
