"""Tests for request and response translation."""

from nim_forwarder.core.routing import ModelRouter
from nim_forwarder.core.translator import RequestTranslator, ResponseTranslator, generate_completion_id
from nim_forwarder.models.api import ChatCompletionRequest, NimChatResponse

MESSAGES = [
    {"role": "system", "content": "be brief"},
    {"role": "user", "content": "hello", "name": "alice"},
]


def _request(**fields):
    return ChatCompletionRequest.model_validate({"model": "gpt-4", "messages": MESSAGES, **fields})


def _response_translator(reasoning_visible=False):
    return ResponseTranslator(
        reasoning_visible=reasoning_visible,
        id_factory=lambda: "chatcmpl-test",
        clock=lambda: 1700000000.9,
    )


# --- Request translation ---

def test_request_uses_mapped_model_and_relays_messages():
    nim_request = RequestTranslator(ModelRouter()).build(_request())

    assert nim_request.model == "qwen/qwen3-coder-480b-a35b-instruct"
    assert nim_request.messages == MESSAGES


def test_request_defaults_sampling_parameters():
    nim_request = RequestTranslator(ModelRouter()).build(_request())

    assert nim_request.temperature == 0.8
    assert nim_request.max_tokens == 8192


def test_request_keeps_explicit_sampling_parameters():
    nim_request = RequestTranslator(ModelRouter()).build(_request(temperature=0.2, max_tokens=64))

    assert nim_request.temperature == 0.2
    assert nim_request.max_tokens == 64


def test_request_zero_values_are_replaced_by_defaults():
    nim_request = RequestTranslator(ModelRouter()).build(_request(temperature=0, max_tokens=0))

    assert nim_request.temperature == 0.8
    assert nim_request.max_tokens == 8192


def test_thinking_extension_absent_when_disabled():
    payload = RequestTranslator(ModelRouter()).build(_request()).model_dump(exclude_none=True)

    assert "extra_body" not in payload


def test_thinking_extension_present_when_enabled():
    payload = RequestTranslator(ModelRouter(), thinking_mode_enabled=True).build(_request()).model_dump(exclude_none=True)

    assert payload["extra_body"] == {"chat_template_kwargs": {"thinking": True}}


def test_malformed_messages_are_forwarded_as_is():
    odd_messages = [{"content": "no role"}, "just a string", {"role": "user", "content": None}]
    nim_request = RequestTranslator(ModelRouter()).build(
        ChatCompletionRequest.model_validate({"model": "gpt-4", "messages": odd_messages})
    )

    assert nim_request.messages == odd_messages


def test_unknown_request_fields_are_not_forwarded():
    payload = RequestTranslator(ModelRouter()).build(_request(top_p=0.5, stream=False)).model_dump(exclude_none=True)

    assert set(payload) == {"model", "messages", "temperature", "max_tokens"}


# --- Response translation ---

def test_response_echoes_client_model_and_preserves_choices():
    upstream = NimChatResponse.model_validate(
        {
            "choices": [
                {"index": 2, "message": {"role": "assistant", "content": "c"}, "finish_reason": "length"},
                {"index": 0, "message": {"role": "assistant", "content": "a"}, "finish_reason": "stop"},
                {"index": 1, "message": {"role": "assistant", "content": "b"}, "finish_reason": "stop"},
            ],
            "usage": {"prompt_tokens": 3, "completion_tokens": 3, "total_tokens": 6},
        }
    )

    response = _response_translator().build("gpt-4", upstream)

    assert response.id == "chatcmpl-test"
    assert response.object == "chat.completion"
    assert response.created == 1700000000
    assert response.model == "gpt-4"
    assert [c.index for c in response.choices] == [2, 0, 1]
    assert [c.message.content for c in response.choices] == ["c", "a", "b"]
    assert [c.finish_reason for c in response.choices] == ["length", "stop", "stop"]
    assert response.usage == {"prompt_tokens": 3, "completion_tokens": 3, "total_tokens": 6}


def test_reasoning_hidden_by_default():
    upstream = NimChatResponse.model_validate(
        {"choices": [{"index": 0, "message": {"role": "assistant", "content": "42", "reasoning_content": "6*7"}, "finish_reason": "stop"}]}
    )

    choice = _response_translator().build("gpt-4", upstream).choices[0]

    assert choice.message.content == "42"


def test_reasoning_prepended_when_visible():
    upstream = NimChatResponse.model_validate(
        {"choices": [{"index": 0, "message": {"role": "assistant", "content": "42", "reasoning_content": "6*7"}, "finish_reason": "stop"}]}
    )

    choice = _response_translator(reasoning_visible=True).build("gpt-4", upstream).choices[0]

    assert choice.message.content == "<think>\n6*7\n</think>\n\n42"


def test_visible_reasoning_without_reasoning_payload_keeps_content():
    upstream = NimChatResponse.model_validate(
        {"choices": [{"index": 0, "message": {"role": "assistant", "content": "plain"}, "finish_reason": "stop"}]}
    )

    choice = _response_translator(reasoning_visible=True).build("gpt-4", upstream).choices[0]

    assert choice.message.content == "plain"


def test_missing_content_becomes_empty_string():
    upstream = NimChatResponse.model_validate(
        {"choices": [{"index": 0, "message": {"role": "assistant", "content": None}, "finish_reason": "stop"}]}
    )

    assert _response_translator().build("gpt-4", upstream).choices[0].message.content == ""


def test_missing_usage_becomes_zero_usage():
    upstream = NimChatResponse.model_validate(
        {"choices": [{"index": 0, "message": {"role": "assistant", "content": "x"}, "finish_reason": "stop"}]}
    )

    usage = _response_translator().build("gpt-4", upstream).usage

    assert usage == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}


def test_generated_ids_are_unique():
    ids = {generate_completion_id() for _ in range(1000)}

    assert len(ids) == 1000
    assert all(i.startswith("chatcmpl-") for i in ids)


def test_sampling_values_are_relayed_without_coercion():
    nim_request = RequestTranslator(ModelRouter()).build(_request(temperature="0.7", max_tokens=100.5))
    payload = nim_request.model_dump(exclude_none=True)

    assert payload["temperature"] == "0.7"
    assert payload["max_tokens"] == 100.5


def test_non_list_messages_are_relayed():
    messages = {"role": "user", "content": "hi"}
    nim_request = RequestTranslator(ModelRouter()).build(
        ChatCompletionRequest.model_validate({"model": "gpt-4", "messages": messages})
    )

    assert nim_request.model_dump(exclude_none=True)["messages"] == messages


def test_non_string_client_model_is_echoed():
    upstream = NimChatResponse.model_validate(
        {"choices": [{"index": 0, "message": {"role": "assistant", "content": "x"}, "finish_reason": "stop"}]}
    )

    assert _response_translator().build(4, upstream).model == 4
