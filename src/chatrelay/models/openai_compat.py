from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag


# Request models
# Unknown keys (name, cache_control, ...) are kept and forwarded to the wire.
class _WireModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class TextPart(_WireModel):
    type: Literal["text"]
    text: str


class ImageUrl(_WireModel):
    url: str
    detail: Optional[str] = None


class ImageUrlPart(_WireModel):
    type: Literal["image_url"]
    image_url: ImageUrl


class OtherPart(_WireModel):
    """Any part type this gateway does not interpret; forwarded as sent."""

    type: Optional[str] = None


def _part_kind(part: Any) -> str:
    kind = part.get("type") if isinstance(part, dict) else getattr(part, "type", None)
    return kind if kind in ("text", "image_url") else "other"


ContentPart = Annotated[
    Union[
        Annotated[TextPart, Tag("text")],
        Annotated[ImageUrlPart, Tag("image_url")],
        Annotated[OtherPart, Tag("other")],
    ],
    Discriminator(_part_kind),
]


class ChatMessage(_WireModel):
    role: Literal["system", "user", "assistant"]
    content: Union[str, List[ContentPart]]

    def text(self) -> str:
        """Plain text of the message, text parts joined by newlines."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(p.text for p in self.content if isinstance(p, TextPart))

    def wire_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)


class ChatRequest(BaseModel):
    """
    Inbound body shared by every entry point.

    `endpoint` and `apiKey` identify the upstream; the remaining fields are
    the canonical chat-completion request.
    """

    model_config = ConfigDict(extra="ignore")

    endpoint: str = Field(min_length=1)
    apiKey: str = Field(min_length=1)

    model: Optional[str] = None
    messages: List[ChatMessage] = Field(default_factory=list)

    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    stream: bool = False
    mcp_servers: Optional[List[Dict[str, Any]]] = None

    action: Optional[str] = None


# Response models
class ModelEntry(BaseModel):
    id: str


class ModelList(BaseModel):
    data: List[ModelEntry]


class AssistantMessage(BaseModel):
    role: Literal["assistant"] = "assistant"
    content: str


class ChatCompletionChoice(BaseModel):
    index: int
    message: AssistantMessage
    finish_reason: Optional[str] = None


class UsageInfo(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ChatCompletionResponse(BaseModel):
    id: str
    object: Literal["chat.completion"] = "chat.completion"
    created: int
    model: str

    choices: List[ChatCompletionChoice]
    usage: Optional[UsageInfo] = None


# Streaming models
FinishReason = Optional[Literal["stop", "length"]]


class ChunkDelta(BaseModel):
    content: Optional[str] = None


class ChunkChoice(BaseModel):
    index: int = 0
    delta: ChunkDelta
    finish_reason: FinishReason = None


class ChatCompletionChunk(BaseModel):
    """
    Canonical stream event. Serialised without an absent `content` key but
    always with `finish_reason`, null included.
    """

    choices: List[ChunkChoice]

    @classmethod
    def of(cls, content: Optional[str], finish_reason: FinishReason) -> "ChatCompletionChunk":
        delta = ChunkDelta(content=content) if content is not None else ChunkDelta()
        return cls(
            choices=[ChunkChoice(index=0, delta=delta, finish_reason=finish_reason)]
        )

    def to_json(self) -> str:
        return self.model_dump_json(exclude_unset=True)
