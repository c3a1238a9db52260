import json
import time
import uuid
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, ValidationError

from chatrelay.config import settings
from chatrelay.models.openai_compat import (
    AssistantMessage,
    ChatCompletionChoice,
    ChatCompletionChunk,
    ChatCompletionResponse,
    ChatMessage,
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

MODEL_PREFIX = "models/"
LENGTH_FINISH = "MAX_TOKENS"


# Native shapes
class _Native(BaseModel):
    model_config = ConfigDict(extra="ignore")


class GeminiModel(_Native):
    name: str = ""
    supportedGenerationMethods: List[str] = []


class GeminiModelList(_Native):
    models: List[GeminiModel] = []


class GeminiPart(_Native):
    text: Optional[str] = None


class GeminiContent(_Native):
    parts: List[GeminiPart] = []


class GeminiCandidate(_Native):
    content: Optional[GeminiContent] = None
    finishReason: Optional[str] = None

    def first_text(self) -> str:
        if self.content is None or not self.content.parts:
            return ""
        return self.content.parts[0].text or ""


class GeminiUsage(_Native):
    promptTokenCount: int = 0
    candidatesTokenCount: int = 0
    totalTokenCount: int = 0


class GeminiResponse(_Native):
    candidates: List[GeminiCandidate] = []
    usageMetadata: Optional[GeminiUsage] = None
    modelVersion: str = ""
    responseId: str = ""


def _part_text(message: ChatMessage) -> str:
    if isinstance(message.content, str):
        return message.content
    return json.dumps([p.model_dump(exclude_none=True) for p in message.content])


class GoogleProvider(ChatProvider):
    variant = ProviderVariant.GOOGLE

    def build_models_request(self, endpoint: str, api_key: str) -> NativeRequest:
        base = strip_trailing_slash(endpoint)
        return NativeRequest(
            method="GET",
            url=f"{base}/models?key={quote(api_key, safe='')}",
        )

    def build_chat_request(self, endpoint: str, api_key: str, request: ChatRequest) -> NativeRequest:
        base = strip_trailing_slash(endpoint)
        key = quote(api_key, safe="")
        if request.stream:
            url = f"{base}/models/{request.model}:streamGenerateContent?alt=sse&key={key}"
        else:
            url = f"{base}/models/{request.model}:generateContent?key={key}"

        contents = [
            {
                "role": "model" if m.role == "assistant" else "user",
                "parts": [{"text": _part_text(m)}],
            }
            for m in request.messages
            if m.role != "system"
        ]
        instruction = "\n\n".join(m.text() for m in request.messages if m.role == "system")

        generation_config: Dict[str, Any] = {
            "maxOutputTokens": request.max_tokens or settings.CHATRELAY_DEFAULT_MAX_TOKENS,
        }
        if request.temperature is not None:
            generation_config["temperature"] = request.temperature

        body: Dict[str, Any] = {"contents": contents}
        if instruction:
            body["systemInstruction"] = {"parts": [{"text": instruction}]}
        body["generationConfig"] = generation_config

        return NativeRequest(
            method="POST",
            url=url,
            headers={"Content-Type": "application/json"},
            body=body,
        )

    def normalize_models(self, payload: Any) -> Dict[str, Any]:
        native = GeminiModelList.model_validate(payload)
        entries = [
            ModelEntry(id=m.name.removeprefix(MODEL_PREFIX))
            for m in native.models
            if "generateContent" in m.supportedGenerationMethods
        ]
        return ModelList(data=entries).model_dump()

    def normalize_completion(self, payload: Any) -> Dict[str, Any]:
        native = GeminiResponse.model_validate(payload)
        candidate = native.candidates[0] if native.candidates else GeminiCandidate()
        parts = candidate.content.parts if candidate.content else []
        text = "".join(p.text or "" for p in parts)

        usage = None
        if native.usageMetadata is not None:
            usage = UsageInfo(
                prompt_tokens=native.usageMetadata.promptTokenCount,
                completion_tokens=native.usageMetadata.candidatesTokenCount,
                total_tokens=native.usageMetadata.totalTokenCount,
            )

        return ChatCompletionResponse(
            id=native.responseId or f"chatcmpl-{uuid.uuid4().hex[:12]}",
            created=int(time.time()),
            model=native.modelVersion,
            choices=[
                ChatCompletionChoice(
                    index=0,
                    message=AssistantMessage(content=text),
                    finish_reason="length" if candidate.finishReason == LENGTH_FINISH else "stop",
                )
            ],
            usage=usage,
        ).model_dump(exclude_none=True)

    def transcode_stream_payload(self, data: str) -> Optional[str]:
        try:
            chunk = GeminiResponse.model_validate_json(data)
        except ValidationError:
            return None
        if not chunk.candidates:
            return None

        candidate = chunk.candidates[0]
        text = candidate.first_text()
        finish = candidate.finishReason

        if text:
            reason = "length" if finish == LENGTH_FINISH else None
            return "data: " + ChatCompletionChunk.of(text, reason).to_json()

        if finish:
            # SAFETY, RECITATION and the rest collapse into "stop"
            reason = "length" if finish == LENGTH_FINISH else "stop"
            return "data: " + ChatCompletionChunk.of(None, reason).to_json()

        return None
