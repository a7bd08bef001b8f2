"""
Normalization of backend output into OpenAI chat-completion shapes.

Native Gemini responses (SDK objects or their REST-style dict form) become a
`chat.completion` object; streamed chunks become `chat.completion.chunk`
server-sent events terminated by `data: [DONE]`.
"""
import asyncio
import json
import logging
import time
import uuid
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from openai.types.chat import ChatCompletion, ChatCompletionChunk

from .errors import translate_backend_error
from .types import FinishReason, ToolCall

logger = logging.getLogger(__name__)

DONE_FRAME = "data: [DONE]\n\n"

_FINISH_REASONS = {
    "STOP": "stop",
    "MAX_TOKENS": "length",
    "SAFETY": "content_filter",
}


def completion_id() -> str:
    return f"chatcmpl-{int(time.time() * 1000)}{uuid.uuid4().hex[:6]}"


def generate_tool_call_id() -> str:
    return f"call_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def map_finish_reason(native_reason: Optional[str], has_tool_calls: bool) -> FinishReason:
    """
    Map a Gemini finish reason to the OpenAI enum.

    Tool calls always win over the backend's own signal.
    """
    if has_tool_calls:
        return "tool_calls"
    return _FINISH_REASONS.get(native_reason or "", "stop")


def _as_dict(obj: Any) -> Dict[str, Any]:
    # google-genai types are pydantic models with camelCase aliases
    if isinstance(obj, dict):
        return obj
    dump = getattr(obj, "model_dump", None)
    if callable(dump):
        data = dump(mode="json", by_alias=True, exclude_none=True)
        if isinstance(data, dict):
            return data
    return {}


def _text_accessor(obj: Any, data: Dict[str, Any]) -> Optional[str]:
    text = data.get("text") if data else getattr(obj, "text", None)
    if callable(text):
        text = text()
    return text if isinstance(text, str) else None


def tool_call_from_function_call(function_call: Dict[str, Any]) -> ToolCall:
    """
    Synthesize an OpenAI tool call from a Gemini `functionCall` part.

    Missing arguments are treated as an empty object.
    """
    return {
        "id": generate_tool_call_id(),
        "type": "function",
        "function": {
            "name": function_call.get("name", ""),
            "arguments": json.dumps(function_call.get("args") or {}),
        },
    }


def _read_parts(candidate: Dict[str, Any]) -> Tuple[str, List[ToolCall]]:
    text = ""
    tool_calls: List[ToolCall] = []
    for part in (candidate.get("content") or {}).get("parts") or []:
        # Thought summaries are not part of the answer
        if part.get("thought"):
            continue
        if part.get("text"):
            text += part["text"]
        if part.get("functionCall"):
            tool_calls.append(tool_call_from_function_call(part["functionCall"]))
    return text, tool_calls


def normalize_usage(usage_metadata: Optional[Dict[str, Any]]) -> Dict[str, int]:
    """
    Convert Gemini `usageMetadata` to OpenAI usage; zeros when absent.
    """
    usage_metadata = usage_metadata or {}
    prompt_tokens = usage_metadata.get("promptTokenCount") or 0
    completion_tokens = usage_metadata.get("candidatesTokenCount") or 0
    total_tokens = usage_metadata.get("totalTokenCount") or (prompt_tokens + completion_tokens)
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": total_tokens,
    }


def build_completion(
    model: str,
    content: str,
    tool_calls: Optional[List[ToolCall]] = None,
    finish_reason: FinishReason = "stop",
    usage: Optional[Dict[str, int]] = None,
) -> Dict[str, Any]:
    """
    Build an OpenAI `chat.completion` object.

    Args:
        model (str): Public model id to report.
        content (str): Assistant text; empty text is reported as null.
        tool_calls (List[ToolCall], optional): Tool calls requested by the model.
        finish_reason (str): One of stop, length, tool_calls, content_filter.
        usage (Dict[str, int], optional): Token usage; zeros when omitted.

    Returns:
        Dict[str, Any]: The completion, validated against the OpenAI schema.
    """
    message: Dict[str, Any] = {"role": "assistant", "content": content or None}
    if tool_calls:
        message["tool_calls"] = tool_calls

    payload = {
        "id": completion_id(),
        "object": "chat.completion",
        "created": int(time.time()),
        "model": model,
        "choices": [{"index": 0, "message": message, "finish_reason": finish_reason}],
        "usage": usage or normalize_usage(None),
    }
    return ChatCompletion.model_validate(payload).model_dump(mode="json", exclude_unset=True)


def normalize_native_response(response: Any, model: str) -> Dict[str, Any]:
    """
    Convert a non-streaming Gemini response into a chat completion.

    Text parts of the first candidate are concatenated and every
    `functionCall` part becomes a tool call. A response without candidates is
    treated as literal text.

    Args:
        response (Any): SDK response object or its dict form.
        model (str): Public model id to report.

    Returns:
        Dict[str, Any]: The normalized completion.
    """
    data = _as_dict(response)
    candidates = data.get("candidates")

    if candidates:
        candidate = candidates[0] or {}
        text, tool_calls = _read_parts(candidate)
        finish_reason = map_finish_reason(candidate.get("finishReason"), bool(tool_calls))
    else:
        text = _text_accessor(response, data)
        if text is None:
            text = json.dumps(data, default=str) if data else str(response)
        tool_calls = []
        finish_reason = "stop"

    logger.info(
        "Google model response generated (model=%s, length=%d, tool_calls=%d, finish_reason=%s)",
        model, len(text), len(tool_calls), finish_reason,
    )
    return build_completion(model, text, tool_calls, finish_reason, normalize_usage(data.get("usageMetadata")))


def parse_native_chunk(chunk: Any) -> Tuple[str, List[ToolCall]]:
    """
    Extract the text and function calls carried by one streamed chunk.
    """
    data = _as_dict(chunk)
    candidates = data.get("candidates")
    if candidates:
        return _read_parts(candidates[0] or {})
    return _text_accessor(chunk, data) or "", []


# =============================================================================
# Streaming
# =============================================================================

def build_chunk(
    stream_id: str,
    model: str,
    delta: Dict[str, Any],
    finish_reason: Optional[FinishReason] = None,
) -> Dict[str, Any]:
    payload = {
        "id": stream_id,
        "object": "chat.completion.chunk",
        "created": int(time.time()),
        "model": model,
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }
    return ChatCompletionChunk.model_validate(payload).model_dump(mode="json", exclude_unset=True)


def sse_frame(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload)}\n\n"


def split_words(text: str) -> List[str]:
    """
    Split text into word pieces that concatenate back to the original.
    """
    words = text.split(" ")
    pieces = [word + " " for word in words[:-1]] + [words[-1]]
    return [piece for piece in pieces if piece]


async def stream_chat_completion(
    upstream: AsyncIterator[Any],
    model: str,
    *,
    word_delay: float = 0.0,
    word_split: bool = True,
) -> AsyncIterator[str]:
    """
    Re-emit a backend stream as OpenAI chunk server-sent events.

    Each upstream chunk yields a `tool_calls` delta for its function calls and
    one content delta per word (or one for the whole text when `word_split`
    is off). The stream ends with an empty delta carrying the finish reason
    and the `[DONE]` frame. A failure of the upstream mid-stream is reported
    as a final error frame instead.

    Args:
        upstream (AsyncIterator[Any]): Native chunks, consumed once.
        model (str): Public model id to report.
        word_delay (float): Seconds to pause between word frames.
        word_split (bool): Emit text word by word.

    Yields:
        str: `data: ...` frames.
    """
    stream_id = completion_id()
    tool_call_count = 0
    content_length = 0

    try:
        async for chunk in upstream:
            text, tool_calls = parse_native_chunk(chunk)

            if tool_calls:
                deltas = []
                for tool_call in tool_calls:
                    deltas.append({"index": tool_call_count, **tool_call})
                    tool_call_count += 1
                yield sse_frame(build_chunk(stream_id, model, {"role": "assistant", "tool_calls": deltas}))

            if text:
                content_length += len(text)
                for piece in (split_words(text) if word_split else [text]):
                    yield sse_frame(build_chunk(stream_id, model, {"content": piece}))
                    if word_delay > 0:
                        await asyncio.sleep(word_delay)
    except Exception as e:
        error = translate_backend_error(e)
        logger.error("Streaming error (model=%s): %s", model, e)
        yield sse_frame(error.to_dict())
        return
    finally:
        aclose = getattr(upstream, "aclose", None)
        if callable(aclose):
            await aclose()

    finish_reason = "tool_calls" if tool_call_count else "stop"
    yield sse_frame(build_chunk(stream_id, model, {}, finish_reason))
    yield DONE_FRAME

    logger.info(
        "Streaming response completed (model=%s, length=%d, tool_calls=%d)",
        model, content_length, tool_call_count,
    )


async def word_stream(text: str, delay: float = 0.0) -> AsyncIterator[Dict[str, str]]:
    """
    Wrap a finished text in a word-by-word chunk generator.
    """
    for piece in split_words(text):
        yield {"text": piece}
        if delay > 0:
            await asyncio.sleep(delay)
