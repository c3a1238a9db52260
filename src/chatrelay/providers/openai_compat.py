from typing import Any, Dict, Optional

from chatrelay.models.openai_compat import ChatRequest
from chatrelay.providers.base import (
    ChatProvider,
    NativeRequest,
    ProviderVariant,
    strip_trailing_slash,
)


class OpenAICompatProvider(ChatProvider):
    """Any endpoint speaking the OpenAI chat-completions dialect."""

    variant = ProviderVariant.OPENAI_COMPAT
    passthrough_stream = True

    def build_models_request(self, endpoint: str, api_key: str) -> NativeRequest:
        return NativeRequest(
            method="GET",
            url=f"{strip_trailing_slash(endpoint)}/models",
            headers={"Authorization": f"Bearer {api_key}"},
        )

    def build_chat_request(self, endpoint: str, api_key: str, request: ChatRequest) -> NativeRequest:
        body: Dict[str, Any] = {
            "model": request.model,
            "messages": [m.wire_dict() for m in request.messages],
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "stream": request.stream,
        }
        body = {k: v for k, v in body.items() if v is not None}
        if request.mcp_servers:
            body["mcp_servers"] = request.mcp_servers

        return NativeRequest(
            method="POST",
            url=f"{strip_trailing_slash(endpoint)}/chat/completions",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            },
            body=body,
        )

    def normalize_models(self, payload: Any) -> Dict[str, Any]:
        return payload

    def normalize_completion(self, payload: Any) -> Dict[str, Any]:
        return payload

    def transcode_stream_payload(self, data: str) -> Optional[str]:
        # Already canonical; re-encoding would disturb partial structures
        return f"data: {data}"
