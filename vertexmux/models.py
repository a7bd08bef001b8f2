"""
Static model registry.

Maps the public model ids exposed by the gateway to the provider that serves
them and the model id Vertex AI knows them by. The table is read-only and
declared grouped by provider; listing order follows declaration order.
"""
import time
from typing import Dict, Any, List, Optional, Tuple

from .types import ModelSpec, Provider

DEFAULT_CONTEXT_LENGTH = 8192

MODEL_SPECS: Tuple[ModelSpec, ...] = (
    # === GOOGLE NATIVE MODELS ===
    # 2.5 ids fall back to the closest generally available backend model
    ModelSpec("gemini-2.5-flash", "google", "gemini-2.0-flash-exp", 1000000, True,
              "Google's fastest multimodal model with 1M context window"),
    ModelSpec("gemini-2.5-pro", "google", "gemini-1.5-pro", 120000, True,
              "Google's most capable model with advanced reasoning"),
    ModelSpec("gemini-2.0-flash", "google", "gemini-2.0-flash-exp", 1000000, True),
    ModelSpec("gemini-2.0-pro", "google", "gemini-1.5-pro", 120000, True),
    ModelSpec("gemini-1.5-flash", "google", "gemini-1.5-flash", 1000000, True,
              "Fast and efficient model for most tasks"),
    ModelSpec("gemini-1.5-pro", "google", "gemini-1.5-pro", 2000000, True,
              "Google's production-ready model with 2M context window"),
    ModelSpec("gemini-pro", "google", "gemini-1.5-pro", 32000, True),
    ModelSpec("text-bison", "google", "text-bison", 8192, False),
    ModelSpec("code-bison", "google", "code-bison", 8192, False),

    # === ANTHROPIC MODELS (via Vertex AI Model Garden) ===
    ModelSpec("claude-3-5-sonnet-20241022", "anthropic", "claude-3-5-sonnet@20241022", 200000, True,
              "Anthropic's most capable model with excellent reasoning"),
    ModelSpec("claude-3-haiku-20240307", "anthropic", "claude-3-haiku@20240307", 200000, True,
              "Fast and cost-effective Claude model"),
    ModelSpec("claude-3-sonnet-20240229", "anthropic", "claude-3-sonnet@20240229", 200000, True,
              "Balanced Claude model for general use"),
    ModelSpec("claude-3-opus-20240229", "anthropic", "claude-3-opus@20240229", 200000, True,
              "Most powerful Claude model for complex tasks"),

    # === META MODELS (via Vertex AI Model Garden) ===
    ModelSpec("llama-3-1-405b-instruct", "meta", "llama3-405b-instruct-maas", 128000, True,
              "Meta's largest and most capable Llama model"),
    ModelSpec("llama-3-1-70b-instruct", "meta", "llama3-70b-instruct-maas", 128000, True,
              "High-performance Llama model for complex tasks"),
    ModelSpec("llama-3-1-8b-instruct", "meta", "llama3-8b-instruct-maas", 128000, True,
              "Efficient Llama model for general use"),
    ModelSpec("llama-2-70b-chat", "meta", "llama2-70b-chat-maas", 4096, False),
    ModelSpec("llama-2-13b-chat", "meta", "llama2-13b-chat-maas", 4096, False),
    ModelSpec("llama-2-7b-chat", "meta", "llama2-7b-chat-maas", 4096, False),

    # === MISTRAL MODELS (via Vertex AI Model Garden) ===
    ModelSpec("mistral-large-2407", "mistral", "mistral-large@2407", 128000, True,
              "Mistral's most capable model for complex reasoning"),
    ModelSpec("mistral-nemo-2407", "mistral", "mistral-nemo@2407", 128000, True,
              "Efficient Mistral model with good performance"),
    ModelSpec("codestral-2405", "mistral", "codestral@2405", 32000, True,
              "Specialized Mistral model for code generation"),
    ModelSpec("mixtral-8x7b-instruct", "mistral", "mixtral-8x7b-instruct-v01", 32000, False),

    # === COHERE MODELS (via Vertex AI Model Garden) ===
    ModelSpec("command-r-plus", "cohere", "command-r-plus@20240515", 128000, False,
              "Cohere's most advanced model for complex tasks"),
    ModelSpec("command-r", "cohere", "command-r@20240515", 128000, False,
              "Cohere's efficient model for general use"),
    ModelSpec("embed-english-v3", "cohere", "embed-english-v3.0", 512, False),
    ModelSpec("embed-multilingual-v3", "cohere", "embed-multilingual-v3.0", 512, False),
)

_BY_ID: Dict[str, ModelSpec] = {spec.public_id: spec for spec in MODEL_SPECS}

# Providers whose streaming path produces real upstream chunks
STREAMING_PROVIDERS = ("google", "anthropic", "meta", "mistral")
FUNCTION_CALLING_PROVIDERS = ("google", "anthropic")


def get_model_spec(public_id: str) -> Optional[ModelSpec]:
    return _BY_ID.get(public_id)


def resolve_provider(public_id: str) -> Optional[Provider]:
    """
    Return the provider serving a public model id, or None if the id is unknown.
    """
    spec = _BY_ID.get(public_id)
    return spec.provider if spec else None


def resolve_backend_id(public_id: str, provider: Optional[str] = None) -> str:
    """
    Return the Vertex AI model id for a public id.

    The lookup is scoped to `provider` when one is given; an id that is not
    mapped for that provider is returned unchanged.
    """
    spec = _BY_ID.get(public_id)
    if spec is None or (provider is not None and spec.provider != provider):
        return public_id
    return spec.backend_id


def supports_streaming(public_id: str) -> bool:
    spec = _BY_ID.get(public_id)
    return bool(spec and spec.supports_streaming)


def context_length(public_id: str) -> int:
    spec = _BY_ID.get(public_id)
    return spec.context_length if spec else DEFAULT_CONTEXT_LENGTH


def _model_record(spec: ModelSpec, created: int) -> Dict[str, Any]:
    return {
        "id": spec.public_id,
        "object": "model",
        "created": created,
        "owned_by": spec.provider,
        "permission": [],
        "root": spec.public_id,
        "parent": None,
        "context_length": spec.context_length,
    }


def list_models() -> List[Dict[str, Any]]:
    """
    Get all public models in OpenAI `/v1/models` record shape.

    Returns:
        List[Dict[str, Any]]: One record per model, in declaration order
        (grouped by provider).
    """
    created = int(time.time())
    return [_model_record(spec, created) for spec in MODEL_SPECS]


def model_capabilities(spec: ModelSpec) -> Dict[str, bool]:
    return {
        "text_generation": True,
        "streaming": spec.provider in STREAMING_PROVIDERS,
        "system_messages": True,
        "function_calling": spec.provider in FUNCTION_CALLING_PROVIDERS,
        "multimodal": spec.provider == "google" and "gemini" in spec.public_id,
        "code_generation": True,
        "reasoning": True,
    }


def describe_model(public_id: str) -> Optional[Dict[str, Any]]:
    """
    Build the detailed record served by `/v1/models/{id}`.

    Returns:
        Optional[Dict[str, Any]]: The model record extended with provider,
        description and capabilities, or None for an unknown id.
    """
    spec = _BY_ID.get(public_id)
    if spec is None:
        return None
    record = _model_record(spec, int(time.time()))
    record.update({
        "provider": spec.provider,
        "description": spec.description or f"{spec.provider} model: {spec.public_id}",
        "capabilities": model_capabilities(spec),
    })
    return record
