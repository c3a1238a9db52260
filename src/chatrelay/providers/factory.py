from typing import Dict

from chatrelay.providers.anthropic import AnthropicProvider
from chatrelay.providers.base import ChatProvider, ProviderVariant
from chatrelay.providers.google import GoogleProvider
from chatrelay.providers.openai_compat import OpenAICompatProvider

ANTHROPIC_MARKERS = ("anthropic.com", "claude")
GOOGLE_MARKERS = ("generativelanguage.googleapis.com", "gemini")

_PROVIDERS: Dict[ProviderVariant, ChatProvider] = {
    ProviderVariant.ANTHROPIC: AnthropicProvider(),
    ProviderVariant.GOOGLE: GoogleProvider(),
    ProviderVariant.OPENAI_COMPAT: OpenAICompatProvider(),
}

_missing = set(ProviderVariant) - set(_PROVIDERS)
if _missing:
    raise RuntimeError(f"no provider registered for {sorted(v.value for v in _missing)}")


def detect_variant(endpoint: str) -> ProviderVariant:
    lower = endpoint.lower()

    if any(marker in lower for marker in ANTHROPIC_MARKERS):
        return ProviderVariant.ANTHROPIC

    if any(marker in lower for marker in GOOGLE_MARKERS):
        return ProviderVariant.GOOGLE

    return ProviderVariant.OPENAI_COMPAT


def get_chat_provider(variant: ProviderVariant) -> ChatProvider:
    return _PROVIDERS[variant]
