import time
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from chatrelay.config import settings
from chatrelay.models.openai_compat import (
    AssistantMessage,
    ChatCompletionChoice,
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChatRequest,
    ModelEntry,
    ModelList,
    UsageInfo,
)
from chatrelay.providers.base import (
    ChatProvider,
    NativeRequest,
    ProviderVariant,
    strip_trailing_slash,
)


# Native shapes
class _Native(BaseModel):
    model_config = ConfigDict(extra="ignore")


class AnthropicModel(_Native):
    id: str


class AnthropicModelList(_Native):
    data: List[AnthropicModel] = []


class AnthropicContentBlock(_Native):
    type: str
    text: Optional[str] = None


class AnthropicUsage(_Native):
    input_tokens: int = 0
    output_tokens: int = 0


class AnthropicMessage(_Native):
    id: str = ""
    model: str = ""
    content: List[AnthropicContentBlock] = []
    stop_reason: Optional[str] = None
    usage: Optional[AnthropicUsage] = None


class AnthropicEventDelta(_Native):
    text: Optional[str] = None
    stop_reason: Optional[str] = None


class AnthropicStreamEvent(_Native):
    type: str
    delta: Optional[AnthropicEventDelta] = None


def finish_reason(stop_reason: Optional[str]) -> str:
    return "length" if stop_reason == "max_tokens" else "stop"


def api_base(endpoint: str) -> str:
    """Endpoint with the `/v1` segment present exactly once."""
    base = strip_trailing_slash(endpoint)
    if not base.endswith("/v1") and "/v1/" not in base:
        return f"{base}/v1"
    return base


class AnthropicProvider(ChatProvider):
    variant = ProviderVariant.ANTHROPIC

    def _auth_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "x-api-key": api_key,
            "anthropic-version": settings.CHATRELAY_ANTHROPIC_VERSION,
        }

    def build_models_request(self, endpoint: str, api_key: str) -> NativeRequest:
        return NativeRequest(
            method="GET",
            url=f"{api_base(endpoint)}/models",
            headers=self._auth_headers(api_key),
        )

    def build_chat_request(self, endpoint: str, api_key: str, request: ChatRequest) -> NativeRequest:
        # System role is rejected inside `messages`; it travels as a top-level field
        system = [m.text() for m in request.messages if m.role == "system"]
        messages = [m.wire_dict() for m in request.messages if m.role != "system"]

        body: Dict[str, Any] = {
            "model": request.model,
            "max_tokens": request.max_tokens or settings.CHATRELAY_DEFAULT_MAX_TOKENS,
            "stream": request.stream,
        }
        if request.temperature is not None:
            body["temperature"] = request.temperature
        if system:
            body["system"] = "\n\n".join(system)
        body["messages"] = messages

        return NativeRequest(
            method="POST",
            url=f"{api_base(endpoint)}/messages",
            headers={"Content-Type": "application/json", **self._auth_headers(api_key)},
            body=body,
        )

    def normalize_models(self, payload: Any) -> Dict[str, Any]:
        native = AnthropicModelList.model_validate(payload)
        return ModelList(data=[ModelEntry(id=m.id) for m in native.data]).model_dump()

    def normalize_completion(self, payload: Any) -> Dict[str, Any]:
        native = AnthropicMessage.model_validate(payload)
        text = "".join(b.text or "" for b in native.content if b.type == "text")

        usage = None
        if native.usage is not None:
            usage = UsageInfo(
                prompt_tokens=native.usage.input_tokens,
                completion_tokens=native.usage.output_tokens,
                total_tokens=native.usage.input_tokens + native.usage.output_tokens,
            )

        return ChatCompletionResponse(
            id=native.id or f"chatcmpl-{uuid.uuid4().hex[:12]}",
            created=int(time.time()),
            model=native.model,
            choices=[
                ChatCompletionChoice(
                    index=0,
                    message=AssistantMessage(content=text),
                    finish_reason=finish_reason(native.stop_reason),
                )
            ],
            usage=usage,
        ).model_dump(exclude_none=True)

    def transcode_stream_payload(self, data: str) -> Optional[str]:
        try:
            event = AnthropicStreamEvent.model_validate_json(data)
        except ValidationError:
            return None

        if event.type == "content_block_delta":
            if event.delta is None or not event.delta.text:
                return None
            return "data: " + ChatCompletionChunk.of(event.delta.text, None).to_json()

        if event.type == "message_delta":
            stop = event.delta.stop_reason if event.delta else None
            return "data: " + ChatCompletionChunk.of(None, finish_reason(stop)).to_json()

        if event.type == "message_stop":
            return "data: [DONE]"

        # message_start, content_block_start/stop, ping
        return None
