from typing import Dict, Any, List, Optional, Type

from .base import BaseProvider
from .gemini import GeminiProvider
from .garden import ModelGardenProvider, GenericProvider, third_party_help_message
from .anthropic import AnthropicProvider
from .meta import MetaProvider
from .mistral import MistralProvider
from .cohere import CohereProvider
from ..tool_selection import ToolRotationState
from ..types import Message

PROVIDER_CLASSES: Dict[str, Type[BaseProvider]] = {
    "google": GeminiProvider,
    "anthropic": AnthropicProvider,
    "meta": MetaProvider,
    "mistral": MistralProvider,
    "cohere": CohereProvider,
}


def build_providers(auth: Optional[Any] = None, rotation: Optional[ToolRotationState] = None) -> Dict[str, BaseProvider]:
    """
    Instantiate one provider per registered backend, sharing the given auth.
    """
    providers: Dict[str, BaseProvider] = {}
    for name, cls in PROVIDER_CLASSES.items():
        providers[name] = cls(auth, rotation) if cls is GeminiProvider else cls(auth)
    return providers


def get_provider_class(provider: str) -> Type[BaseProvider]:
    return PROVIDER_CLASSES.get(provider, GenericProvider)


def to_provider_format(messages: List[Message], provider: str) -> Any:
    """
    Convert messages into the native message shape of a provider.

    Unknown providers keep only role and content.
    """
    return get_provider_class(provider)().convert_messages(messages)


__all__ = [
    "BaseProvider",
    "GeminiProvider",
    "ModelGardenProvider",
    "GenericProvider",
    "AnthropicProvider",
    "MetaProvider",
    "MistralProvider",
    "CohereProvider",
    "PROVIDER_CLASSES",
    "build_providers",
    "get_provider_class",
    "to_provider_format",
    "third_party_help_message",
]
