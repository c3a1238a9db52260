from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from chatrelay.models.openai_compat import ChatRequest
from chatrelay.streaming.sse import DONE


class ProviderVariant(str, Enum):
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    OPENAI_COMPAT = "openai-compat"


@dataclass(frozen=True)
class NativeRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None


def strip_trailing_slash(endpoint: str) -> str:
    return endpoint[:-1] if endpoint.endswith("/") else endpoint


class ChatProvider(ABC):
    variant: ProviderVariant

    # Whether upstream SSE is already canonical and may be relayed byte for byte
    passthrough_stream: bool = False

    @abstractmethod
    def build_models_request(self, endpoint: str, api_key: str) -> NativeRequest:
        raise NotImplementedError

    @abstractmethod
    def build_chat_request(self, endpoint: str, api_key: str, request: ChatRequest) -> NativeRequest:
        """
        Translates the canonical request into the provider's native call.
        Never raises: a malformed canonical request yields a malformed native
        one, which the upstream rejects.
        """
        raise NotImplementedError

    @abstractmethod
    def normalize_models(self, payload: Any) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def normalize_completion(self, payload: Any) -> Dict[str, Any]:
        raise NotImplementedError

    @abstractmethod
    def transcode_stream_payload(self, data: str) -> Optional[str]:
        """
        Maps one native SSE payload (framing removed, trimmed) to one
        canonical `data: ...` line, or None to drop it.
        """
        raise NotImplementedError

    def normalize_stream_line(self, data: str) -> Optional[str]:
        if data == DONE:
            return f"data: {DONE}"
        return self.transcode_stream_payload(data)
