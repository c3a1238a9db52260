from chatrelay.providers.base import ProviderVariant
from chatrelay.providers.factory import get_chat_provider

anthropic = get_chat_provider(ProviderVariant.ANTHROPIC)
google = get_chat_provider(ProviderVariant.GOOGLE)
openai = get_chat_provider(ProviderVariant.OPENAI_COMPAT)


def test_anthropic_models_projection():
    native = {
        "data": [
            {"id": "claude-sonnet-4-5", "display_name": "Claude Sonnet", "type": "model"},
            {"id": "claude-haiku-4-5", "display_name": "Claude Haiku", "type": "model"},
        ],
        "has_more": False,
    }
    assert anthropic.normalize_models(native) == {
        "data": [{"id": "claude-sonnet-4-5"}, {"id": "claude-haiku-4-5"}]
    }


def test_anthropic_models_missing_data():
    assert anthropic.normalize_models({}) == {"data": []}


def test_google_models_filters_and_strips_prefix():
    native = {
        "models": [
            {"name": "models/gemini-2.5-pro", "supportedGenerationMethods": ["generateContent", "countTokens"]},
            {"name": "models/text-embedding-004", "supportedGenerationMethods": ["embedContent"]},
            {"name": "models/gemini-2.5-flash", "supportedGenerationMethods": ["generateContent"]},
            {"name": "models/aqa"},
        ]
    }
    assert google.normalize_models(native) == {
        "data": [{"id": "gemini-2.5-pro"}, {"id": "gemini-2.5-flash"}]
    }


def test_openai_models_passthrough():
    native = {"object": "list", "data": [{"id": "b-model"}, {"id": "a-model", "owned_by": "x"}]}
    assert openai.normalize_models(native) is native


def test_anthropic_completion():
    native = {
        "id": "msg_01",
        "type": "message",
        "model": "claude-sonnet-4-5",
        "content": [
            {"type": "text", "text": "Hello"},
            {"type": "tool_use", "id": "t1", "name": "lookup", "input": {}},
            {"type": "text", "text": " world"},
        ],
        "stop_reason": "max_tokens",
        "usage": {"input_tokens": 12, "output_tokens": 3},
    }
    result = anthropic.normalize_completion(native)

    assert result["id"] == "msg_01"
    assert result["object"] == "chat.completion"
    assert result["model"] == "claude-sonnet-4-5"
    assert result["choices"] == [
        {"index": 0, "message": {"role": "assistant", "content": "Hello world"}, "finish_reason": "length"}
    ]
    assert result["usage"] == {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15}


def test_anthropic_completion_end_turn_is_stop():
    result = anthropic.normalize_completion(
        {"id": "msg_02", "model": "m", "content": [{"type": "text", "text": "ok"}], "stop_reason": "end_turn"}
    )
    assert result["choices"][0]["finish_reason"] == "stop"
    assert "usage" not in result


def test_google_completion():
    native = {
        "candidates": [
            {
                "content": {"role": "model", "parts": [{"text": "Bonjour"}, {"text": "!"}]},
                "finishReason": "STOP",
            }
        ],
        "usageMetadata": {"promptTokenCount": 4, "candidatesTokenCount": 2, "totalTokenCount": 6},
        "modelVersion": "gemini-2.5-flash",
        "responseId": "resp-1",
    }
    result = google.normalize_completion(native)

    assert result["id"] == "resp-1"
    assert result["model"] == "gemini-2.5-flash"
    assert result["choices"][0]["message"]["content"] == "Bonjour!"
    assert result["choices"][0]["finish_reason"] == "stop"
    assert result["usage"] == {"prompt_tokens": 4, "completion_tokens": 2, "total_tokens": 6}


def test_google_completion_length_and_no_candidates():
    result = google.normalize_completion({"candidates": [{"finishReason": "MAX_TOKENS"}]})
    assert result["choices"][0] == {
        "index": 0,
        "message": {"role": "assistant", "content": ""},
        "finish_reason": "length",
    }

    empty = google.normalize_completion({})
    assert empty["choices"][0]["message"]["content"] == ""


def test_openai_completion_passthrough():
    native = {"id": "chatcmpl-1", "object": "chat.completion", "choices": []}
    assert openai.normalize_completion(native) is native
