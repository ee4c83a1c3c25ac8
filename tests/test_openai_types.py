import json

import pytest

from sqzproxy.openai_types import ChatCompletionRequest, Message


def test_text_mut_string():
    msg = Message(role="user", content="hello")
    assert msg.texts() == ["hello"]


def test_text_mut_parts():
    msg = Message(
        role="user",
        content=[
            {"type": "text", "text": "first"},
            {"type": "other"},
            {"type": "text", "text": "second"},
        ],
    )
    assert msg.texts() == ["first", "second"]


def test_text_mut_null():
    msg = Message(role="assistant", content=None)
    assert msg.texts() == []


def test_deserialize_text_content():
    msg = Message.from_dict(json.loads('{"role":"user","content":"hello"}'))
    assert msg.content == "hello"


def test_deserialize_parts_content():
    msg = Message.from_dict(
        json.loads('{"role":"user","content":[{"type":"text","text":"hello"}]}')
    )
    assert msg.content == [{"type": "text", "text": "hello"}]


def test_deserialize_null_content():
    msg = Message.from_dict(json.loads('{"role":"assistant","content":null}'))
    assert msg.content is None


def test_missing_content_defaults_to_null():
    msg = Message.from_dict({"role": "assistant", "tool_calls": []})
    assert msg.content is None
    assert msg.extra == {"tool_calls": []}


def test_roundtrip():
    req = ChatCompletionRequest(
        model="gpt-4",
        messages=[Message(role="user", content="hello")],
        stream=False,
    )
    back = ChatCompletionRequest.from_json(req.to_json())
    assert back.model == "gpt-4"
    assert back == req


def test_map_texts_replaces_only_text_parts():
    msg = Message.from_dict(
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "abc"},
                {"type": "image_url", "image_url": {"url": "x"}},
            ],
        }
    )
    msg.map_texts(str.upper)
    assert msg.to_dict()["content"] == [
        {"type": "text", "text": "ABC"},
        {"type": "image_url", "image_url": {"url": "x"}},
    ]


def test_map_texts_on_string():
    msg = Message(role="system", content="be brief")
    msg.map_texts(lambda t: t.replace("brief", "short"))
    assert msg.content == "be short"


def test_stream_omitted_when_absent():
    req = ChatCompletionRequest.from_dict({"model": "gpt-4", "messages": []})
    assert "stream" not in req.to_dict()


def test_unknown_fields_preserved():
    raw = {
        "model": "gpt-4",
        "messages": [{"role": "user", "content": "hi", "name": "bob"}],
        "temperature": 0.2,
        "stream": True,
    }
    req = ChatCompletionRequest.from_dict(raw)
    assert req.stream is True
    assert req.to_dict() == raw


def test_null_content_serialized_as_null():
    msg = Message.from_dict({"role": "assistant"})
    assert msg.to_dict() == {"role": "assistant", "content": None}


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        '{"messages": []}',
        '{"model": "gpt-4"}',
        '{"model": "gpt-4", "messages": [{"content": "hi"}]}',
        '{"model": "gpt-4", "messages": [{"role": "user", "content": 5}]}',
        '{"model": "gpt-4", "messages": [{"role": "user", "content": [{"text": "x"}]}]}',
        '{"model": "gpt-4", "messages": [], "stream": "yes"}',
        "[]",
    ],
)
def test_invalid_requests_raise(raw):
    with pytest.raises(ValueError):
        ChatCompletionRequest.from_json(raw)