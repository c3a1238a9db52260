import json

import pytest

from chatrelay.providers.base import ProviderVariant
from chatrelay.providers.factory import get_chat_provider

anthropic = get_chat_provider(ProviderVariant.ANTHROPIC)
google = get_chat_provider(ProviderVariant.GOOGLE)
openai = get_chat_provider(ProviderVariant.OPENAI_COMPAT)


def _event(line: str) -> dict:
    assert line.startswith("data: ")
    return json.loads(line[len("data: "):])


@pytest.mark.parametrize("provider", [anthropic, google, openai])
def test_done_maps_to_itself(provider):
    assert provider.normalize_stream_line("[DONE]") == "data: [DONE]"


# Anthropic

def test_anthropic_text_delta_exact_encoding():
    line = anthropic.normalize_stream_line(
        '{"type":"content_block_delta","index":0,"delta":{"type":"text_delta","text":"hi"}}'
    )
    assert line == 'data: {"choices":[{"index":0,"delta":{"content":"hi"},"finish_reason":null}]}'


@pytest.mark.parametrize(
    "stop_reason, expected",
    [("max_tokens", "length"), ("end_turn", "stop"), ("stop_sequence", "stop"), ("tool_use", "stop")],
)
def test_anthropic_message_delta_finish(stop_reason, expected):
    line = anthropic.normalize_stream_line(
        json.dumps({"type": "message_delta", "delta": {"stop_reason": stop_reason}})
    )
    assert _event(line) == {"choices": [{"index": 0, "delta": {}, "finish_reason": expected}]}


def test_anthropic_message_stop_is_sentinel():
    assert anthropic.normalize_stream_line('{"type":"message_stop"}') == "data: [DONE]"


@pytest.mark.parametrize(
    "payload",
    [
        '{"type":"message_start","message":{"id":"msg_1"}}',
        '{"type":"content_block_start","index":0,"content_block":{"type":"text","text":""}}',
        '{"type":"ping"}',
        '{"type":"content_block_stop","index":0}',
        '{"type":"content_block_delta","delta":{"type":"input_json_delta","partial_json":"{\\"a"}}',
        '{"type":"content_block_delta","delta":{"text":""}}',
        '{"delta":{"text":"no type"}}',
        "{not json",
        "[1, 2, 3]",
        '"just a string"',
    ],
)
def test_anthropic_skips_other_and_malformed(payload):
    assert anthropic.normalize_stream_line(payload) is None


# Google

def test_google_text_delta():
    line = google.normalize_stream_line('{"candidates":[{"content":{"parts":[{"text":"hi"}]}}]}')
    assert _event(line) == {"choices": [{"index": 0, "delta": {"content": "hi"}, "finish_reason": None}]}


def test_google_text_with_stop_keeps_null_finish():
    line = google.normalize_stream_line(
        '{"candidates":[{"content":{"parts":[{"text":"end"}]},"finishReason":"STOP"}]}'
    )
    assert _event(line)["choices"][0]["finish_reason"] is None


def test_google_text_with_max_tokens_is_length():
    line = google.normalize_stream_line(
        '{"candidates":[{"content":{"parts":[{"text":"cut"}]},"finishReason":"MAX_TOKENS"}]}'
    )
    assert _event(line) == {"choices": [{"index": 0, "delta": {"content": "cut"}, "finish_reason": "length"}]}


@pytest.mark.parametrize(
    "finish, expected",
    [("MAX_TOKENS", "length"), ("STOP", "stop"), ("SAFETY", "stop"), ("RECITATION", "stop")],
)
def test_google_finish_without_text(finish, expected):
    line = google.normalize_stream_line(json.dumps({"candidates": [{"finishReason": finish}]}))
    assert _event(line) == {"choices": [{"index": 0, "delta": {}, "finish_reason": expected}]}


@pytest.mark.parametrize(
    "payload",
    [
        '{"candidates":[]}',
        '{"usageMetadata":{"promptTokenCount":3}}',
        '{"candidates":[{"content":{"parts":[]}}]}',
        '{"candidates":"oops"}',
        "{not json",
    ],
)
def test_google_skips_empty_and_malformed(payload):
    assert google.normalize_stream_line(payload) is None


# OpenAI-compatible

@pytest.mark.parametrize(
    "payload",
    [
        '{"id":"c1","choices":[{"index":0,"delta":{"content":"hi"},"finish_reason":null}]}',
        """{"choices": [ {"delta": {"tool_calls": [{"index":0,"function":{"arguments":"{\\"q'}]}} ]}""",
        "not even json",
        "",
    ],
)
def test_openai_is_pure_passthrough(payload):
    assert openai.transcode_stream_payload(payload) == "data: " + payload
