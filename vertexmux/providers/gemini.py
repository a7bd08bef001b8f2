import copy
import logging
from typing import Dict, Any, List, AsyncIterator, Optional

from google.genai import types

from .base import BaseProvider
from ..messages import extract_content, get_last_user_message, parse_tool_arguments
from ..params import NATIVE_BOUNDS, SamplingParams
from ..responses import normalize_native_response
from ..tool_kinds import tool_name
from ..tool_selection import ToolRotationState, select_fallback_tool
from ..types import ChatCompletionRequest, Message, ModelSpec, Tool, ToolChoice

logger = logging.getLogger(__name__)

# Raised by some model versions when more than one function is declared
MULTIPLE_TOOLS_ERROR = "Multiple tools are supported only when they are all search tools"

PLACEHOLDER_FUNCTION_NAME = "unknown_function"

_TOOL_CHOICE_MODES = {
    "auto": "AUTO",
    "none": "NONE",
    "required": "ANY",
}


class GeminiProvider(BaseProvider):
    """
    Native Gemini models on Vertex AI (using the google-genai SDK).
    """

    name = "google"
    bounds = NATIVE_BOUNDS

    def __init__(self, auth: Optional[Any] = None, rotation: Optional[ToolRotationState] = None):
        super().__init__(auth)
        self.rotation = rotation if rotation is not None else ToolRotationState()

    # =========================================================================
    # Request translation
    # =========================================================================

    def convert_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        """
        Convert messages to Gemini `contents`.

        Leading system text is folded into the first user turn as
        "<system>\\n\\nUser: <text>"; a system message after the conversation
        has started becomes a "System: <text>" user turn in place. Assistant
        turns become `model` turns,
        tool results become `functionResponse` parts keyed by tool_call_id and
        assistant tool calls become `functionCall` parts.

        Raises:
            InvalidRequestError: If a tool call carries malformed JSON arguments.
        """
        leading = 0
        while leading < len(messages) and messages[leading].get("role") == "system":
            leading += 1
        system_message = "\n\n".join(text for text in (extract_content(m) for m in messages[:leading]) if text)

        contents = []
        system_merged = False
        for message in messages[leading:]:
            role = message.get("role")
            content = extract_content(message)

            if role == "system":
                # Later instructions keep their position in the conversation
                if content:
                    contents.append({"role": "user", "parts": [{"text": f"System: {content}"}]})
            elif role == "tool":
                contents.append({
                    "role": "user",
                    "parts": [{
                        "functionResponse": {
                            "name": message.get("tool_call_id") or PLACEHOLDER_FUNCTION_NAME,
                            "response": {"result": content},
                        }
                    }],
                })
            elif role == "assistant" and message.get("tool_calls"):
                parts: List[Dict[str, Any]] = []
                if content.strip():
                    parts.append({"text": content})
                for tool_call in message["tool_calls"]:
                    if tool_call.get("type") == "function":
                        parts.append({
                            "functionCall": {
                                "name": tool_call["function"]["name"],
                                "args": parse_tool_arguments(tool_call),
                            }
                        })
                contents.append({"role": "model", "parts": parts})
            elif role == "user" and system_message and not system_merged:
                contents.append({"role": "user", "parts": [{"text": f"{system_message}\n\nUser: {content}"}]})
                system_merged = True
            else:
                contents.append({
                    "role": "model" if role == "assistant" else "user",
                    "parts": [{"text": content}],
                })

        if system_message and not system_merged:
            contents.insert(0, {"role": "user", "parts": [{"text": system_message}]})

        logger.debug(
            "Processed messages for Vertex AI (original=%d, processed=%d, system=%s)",
            len(messages), len(contents), bool(system_message),
        )
        return contents

    @staticmethod
    def convert_tools(tools: Optional[List[Tool]]) -> List[Dict[str, Any]]:
        """
        Convert OpenAI-format tools to Gemini function declarations.
        """
        declarations = []
        for tool in tools or []:
            if tool.get("type") != "function":
                continue
            func = tool.get("function", {})
            declarations.append({
                "name": func.get("name", ""),
                "description": func.get("description", ""),
                "parameters": func.get("parameters") or {},
            })
        return declarations

    @staticmethod
    def declarations_to_tools(declarations: List[Dict[str, Any]]) -> List[Tool]:
        """
        Convert Gemini function declarations back to OpenAI-format tools.
        """
        return [
            {
                "type": "function",
                "function": {
                    "name": decl.get("name", ""),
                    "description": decl.get("description", ""),
                    "parameters": decl.get("parameters") or {},
                },
            }
            for decl in declarations
        ]

    @staticmethod
    def convert_tool_choice(tool_choice: Optional[ToolChoice]) -> Optional[Dict[str, Any]]:
        if not tool_choice:
            return None
        if isinstance(tool_choice, str):
            mode = _TOOL_CHOICE_MODES.get(tool_choice)
            return {"functionCallingConfig": {"mode": mode}} if mode else None
        if tool_choice.get("type") == "function":
            return {
                "functionCallingConfig": {
                    "mode": "ANY",
                    "allowedFunctionNames": [tool_choice["function"]["name"]],
                }
            }
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
        payload: Dict[str, Any] = {
            "contents": self.convert_messages(messages),
            "generationConfig": {
                "temperature": params.temperature,
                "maxOutputTokens": params.max_tokens,
                "topP": params.top_p,
                "topK": params.top_k,
            },
        }

        declarations = self.convert_tools(tools)
        if declarations:
            payload["tools"] = [{"functionDeclarations": declarations}]
            tool_config = self.convert_tool_choice(tool_choice)
            if tool_config:
                payload["toolConfig"] = tool_config
            logger.info("Added tools to Vertex request: %s", [d["name"] for d in declarations])

        return payload

    # =========================================================================
    # Multi-function fallback
    # =========================================================================

    @staticmethod
    def is_multiple_tools_error(error: BaseException) -> bool:
        return MULTIPLE_TOOLS_ERROR in str(error)

    def fallback_request(
        self,
        payload: Dict[str, Any],
        request: ChatCompletionRequest,
    ) -> Optional[Dict[str, Any]]:
        """
        Build the single-function retry payload, or None if a retry does not apply.
        """
        tools = [tool for tool in request.get("tools") or [] if tool.get("type") == "function"]
        if len(tools) < 2:
            return None

        tool_choice = request.get("tool_choice")
        forced = tool_choice.get("function", {}).get("name") if isinstance(tool_choice, dict) else None
        selected = next((tool for tool in tools if forced and tool_name(tool) == forced), None)
        if selected is not None:
            self.rotation.record(forced, "tool_choice")
        else:
            last_user = get_last_user_message(request["messages"])
            user_text = extract_content(last_user) if last_user else ""
            selected = select_fallback_tool(tools, user_text, self.rotation)

        fallback = copy.deepcopy(payload)
        fallback["tools"] = [{"functionDeclarations": self.convert_tools([selected])}]
        return fallback

    # =========================================================================
    # Backend calls
    # =========================================================================

    @staticmethod
    def _sdk_declaration(declaration: Dict[str, Any]) -> types.FunctionDeclaration:
        return types.FunctionDeclaration(
            name=declaration["name"],
            description=declaration.get("description") or None,
            parameters_json_schema=declaration.get("parameters") or None,
        )

    def _sdk_config(self, payload: Dict[str, Any]) -> types.GenerateContentConfig:
        generation = payload["generationConfig"]
        config_kwargs: Dict[str, Any] = {
            "temperature": generation["temperature"],
            "max_output_tokens": generation["maxOutputTokens"],
            "top_p": generation["topP"],
            "top_k": generation["topK"],
        }
        if payload.get("tools"):
            config_kwargs["tools"] = [
                types.Tool(function_declarations=[self._sdk_declaration(d) for d in tool["functionDeclarations"]])
                for tool in payload["tools"]
            ]
        if payload.get("toolConfig"):
            calling = payload["toolConfig"]["functionCallingConfig"]
            config_kwargs["tool_config"] = types.ToolConfig(
                function_calling_config=types.FunctionCallingConfig(
                    mode=calling["mode"],
                    allowed_function_names=calling.get("allowedFunctionNames"),
                )
            )
        return types.GenerateContentConfig(**config_kwargs)

    def _sdk_contents(self, payload: Dict[str, Any]) -> List[types.Content]:
        return [types.Content.model_validate(content) for content in payload["contents"]]

    async def _generate(self, model: str, payload: Dict[str, Any]) -> Any:
        client = self.auth.get_client()
        return await client.aio.models.generate_content(
            model=model,
            contents=self._sdk_contents(payload),
            config=self._sdk_config(payload),
        )

    async def _generate_stream(self, model: str, payload: Dict[str, Any]) -> AsyncIterator[Any]:
        client = self.auth.get_client()
        return await client.aio.models.generate_content_stream(
            model=model,
            contents=self._sdk_contents(payload),
            config=self._sdk_config(payload),
        )

    async def _open_stream(self, model: str, payload: Dict[str, Any]) -> AsyncIterator[Any]:
        # Request errors surface on the first chunk; pull it here so the
        # fallback can still retry before anything is sent to the caller.
        iterator = (await self._generate_stream(model, payload)).__aiter__()
        try:
            first = await iterator.__anext__()
        except StopAsyncIteration:
            return _prefixed([], iterator)
        return _prefixed([first], iterator)

    async def chat(self, spec: ModelSpec, request: ChatCompletionRequest) -> Dict[str, Any]:
        """
        Send a non-streaming request to a native Gemini model.

        A rejection of multiple function declarations is retried once with a
        single declaration; any other error propagates.
        """
        payload = self.build_from_request(request)
        logger.info(
            "Processing chat completion via Vertex AI (model=%s, contents=%d, tools=%d)",
            spec.backend_id, len(payload["contents"]), len(request.get("tools") or []),
        )
        try:
            response = await self._generate(spec.backend_id, payload)
        except Exception as e:
            fallback = self.fallback_request(payload, request) if self.is_multiple_tools_error(e) else None
            if fallback is None:
                raise
            logger.warning("Multiple tools error detected, retrying with a single tool: %s", e)
            response = await self._generate(spec.backend_id, fallback)
        return normalize_native_response(response, spec.public_id)

    async def stream(self, spec: ModelSpec, request: ChatCompletionRequest) -> AsyncIterator[Any]:
        """
        Start a streaming request to a native Gemini model, with the same
        single retry as `chat`.
        """
        payload = self.build_from_request(request)
        logger.info(
            "Processing streaming chat completion via Vertex AI (model=%s, contents=%d, tools=%d)",
            spec.backend_id, len(payload["contents"]), len(request.get("tools") or []),
        )
        try:
            return await self._open_stream(spec.backend_id, payload)
        except Exception as e:
            fallback = self.fallback_request(payload, request) if self.is_multiple_tools_error(e) else None
            if fallback is None:
                raise
            logger.warning("Multiple tools error detected, retrying stream with a single tool: %s", e)
            return await self._open_stream(spec.backend_id, fallback)


async def _prefixed(prefix: List[Any], iterator: AsyncIterator[Any]) -> AsyncIterator[Any]:
    try:
        for item in prefix:
            yield item
        async for item in iterator:
            yield item
    finally:
        aclose = getattr(iterator, "aclose", None)
        if callable(aclose):
            await aclose()
