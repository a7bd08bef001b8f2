"""
Request defaults and sampling-parameter bounds.
"""
import math
from dataclasses import dataclass
from numbers import Real
from typing import Any, Dict, Optional

from .errors import InvalidRequestError
from .messages import validate_tools
from .types import ChatCompletionRequest

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048
DEFAULT_TOP_P = 1.0
DEFAULT_TOP_K = 40


@dataclass(frozen=True)
class SamplingBounds:
    max_temperature: float
    max_tokens: int
    min_temperature: float = 0.0
    min_tokens: int = 1
    min_top_p: float = 0.0
    max_top_p: float = 1.0
    min_top_k: int = 1
    max_top_k: int = 40


NATIVE_BOUNDS = SamplingBounds(max_temperature=2.0, max_tokens=8192)
THIRD_PARTY_BOUNDS = SamplingBounds(max_temperature=1.0, max_tokens=4096)


@dataclass(frozen=True)
class SamplingParams:
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    top_p: float = DEFAULT_TOP_P
    top_k: int = DEFAULT_TOP_K


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def clamp_params(params: SamplingParams, bounds: SamplingBounds) -> SamplingParams:
    """
    Pull every sampling parameter into the given bounds.

    Out-of-range values are moved to the nearest bound, never rejected.
    """
    return SamplingParams(
        temperature=clamp(params.temperature, bounds.min_temperature, bounds.max_temperature),
        max_tokens=int(clamp(params.max_tokens, bounds.min_tokens, bounds.max_tokens)),
        top_p=clamp(params.top_p, bounds.min_top_p, bounds.max_top_p),
        top_k=int(clamp(params.top_k, bounds.min_top_k, bounds.max_top_k)),
    )


def sampling_params(request: ChatCompletionRequest) -> SamplingParams:
    return SamplingParams(
        temperature=request.get("temperature", DEFAULT_TEMPERATURE),
        max_tokens=request.get("max_tokens", DEFAULT_MAX_TOKENS),
        top_p=request.get("top_p", DEFAULT_TOP_P),
        top_k=request.get("top_k", DEFAULT_TOP_K),
    )


def _number(body: Dict[str, Any], key: str, default: float) -> float:
    value = body.get(key)
    if value is None:
        return default
    # bool is a Real subclass but never a valid sampling value
    if isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidRequestError(f"'{key}' must be a number")
    # Infinities are left for clamp_params; NaN has no nearest bound
    if math.isnan(value):
        return default
    return value


def parse_chat_request(body: Any) -> ChatCompletionRequest:
    """
    Apply defaults to an inbound chat-completion body.

    Messages are passed through untouched; they are cleaned and validated
    separately.

    Args:
        body (Any): Decoded JSON body.

    Returns:
        ChatCompletionRequest: The request with all optional fields filled.

    Raises:
        InvalidRequestError: If the model is missing or a parameter is malformed.
    """
    if not isinstance(body, dict):
        raise InvalidRequestError("Request body must be a JSON object")

    model = body.get("model")
    if not model or not isinstance(model, str):
        raise InvalidRequestError("Model parameter is required")

    tools: Optional[list] = body.get("tools")
    tool_choice = body.get("tool_choice")
    validate_tools(tools, tool_choice)

    stream = body.get("stream")
    if stream is None:
        stream = False
    elif not isinstance(stream, bool):
        raise InvalidRequestError("'stream' must be a boolean")

    return {
        "model": model,
        "messages": body.get("messages"),
        "temperature": _number(body, "temperature", DEFAULT_TEMPERATURE),
        "max_tokens": _number(body, "max_tokens", DEFAULT_MAX_TOKENS),
        "top_p": _number(body, "top_p", DEFAULT_TOP_P),
        "top_k": _number(body, "top_k", DEFAULT_TOP_K),
        "stream": stream,
        "tools": tools or None,
        "tool_choice": tool_choice,
    }
