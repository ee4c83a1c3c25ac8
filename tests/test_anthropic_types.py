import json

import pytest

from sqzproxy.anthropic_types import AnthropicMessage, MessagesRequest


def test_anthropic_content_text_mut():
    msg = AnthropicMessage(role="user", content="hello")
    assert msg.texts() == ["hello"]


def test_anthropic_content_blocks_text_mut():
    msg = AnthropicMessage(
        role="user",
        content=[
            {"type": "text", "text": "first"},
            {"type": "image", "source": None},
            {"type": "text", "text": "second"},
        ],
    )
    assert msg.texts() == ["first", "second"]


def test_system_prompt_text_mut():
    req = MessagesRequest(model="m", messages=[], max_tokens=1, system="system text")
    assert req.system_texts() == ["system text"]


def test_system_prompt_blocks_text_mut():
    req = MessagesRequest(
        model="m",
        messages=[],
        max_tokens=1,
        system=[{"type": "text", "text": "block text"}],
    )
    assert req.system_texts() == ["block text"]


def test_deserialize_text_content():
    msg = AnthropicMessage.from_dict(json.loads('{"role":"user","content":"hello"}'))
    assert msg.content == "hello"


def test_deserialize_blocks_content():
    msg = AnthropicMessage.from_dict(
        json.loads('{"role":"user","content":[{"type":"text","text":"hello"}]}')
    )
    assert msg.content == [{"type": "text", "text": "hello"}]


def test_deserialize_system_string():
    raw = (
        '{"model":"claude-3-opus-20240229","messages":[{"role":"user","content":"hi"}],'
        '"max_tokens":1024,"system":"Be helpful"}'
    )
    req = MessagesRequest.from_json(raw)
    assert req.system == "Be helpful"
    assert req.max_tokens == 1024


def test_roundtrip():
    req = MessagesRequest(
        model="claude-3-opus-20240229",
        messages=[AnthropicMessage(role="user", content="hello")],
        max_tokens=1024,
        system="Be helpful",
    )
    back = MessagesRequest.from_json(req.to_json())
    assert back.model == "claude-3-opus-20240229"
    assert back == req


def test_system_and_stream_omitted_when_absent():
    req = MessagesRequest.from_dict(
        {"model": "m", "messages": [], "max_tokens": 5, "system": None}
    )
    data = req.to_dict()
    assert "system" not in data
    assert "stream" not in data


def test_unknown_fields_and_block_fields_preserved():
    raw = {
        "model": "m",
        "messages": [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "hi", "cache_control": {"type": "ephemeral"}},
                    {"type": "tool_result", "tool_use_id": "t1", "content": "ok"},
                ],
            }
        ],
        "max_tokens": 10,
        "system": [{"type": "text", "text": "sys", "cache_control": {"type": "ephemeral"}}],
        "stream": True,
        "temperature": 0.5,
    }
    assert MessagesRequest.from_dict(raw).to_dict() == raw


def test_map_texts_skips_non_text_blocks():
    msg = AnthropicMessage.from_dict(
        {
            "role": "user",
            "content": [
                {"type": "text", "text": "abc"},
                {"type": "tool_use", "id": "t", "name": "n", "input": {}},
            ],
        }
    )
    msg.map_texts(str.upper)
    assert msg.texts() == ["ABC"]
    assert msg.content[1] == {"type": "tool_use", "id": "t", "name": "n", "input": {}}


def test_map_system_texts():
    req = MessagesRequest(model="m", messages=[], max_tokens=1, system="be brief")
    req.map_system_texts(lambda t: t + "!")
    assert req.system == "be brief!"


def test_map_system_texts_without_system_is_noop():
    req = MessagesRequest(model="m", messages=[], max_tokens=1)
    req.map_system_texts(str.upper)
    assert req.system is None
    assert req.system_texts() == []


def test_from_dict_does_not_alias_input():
    raw = {"role": "user", "content": [{"type": "text", "text": "abc"}]}
    msg = AnthropicMessage.from_dict(raw)
    msg.map_texts(str.upper)
    assert raw["content"][0]["text"] == "abc"


@pytest.mark.parametrize(
    "raw",
    [
        "{",
        '{"messages": [], "max_tokens": 1}',
        '{"model": "m", "max_tokens": 1}',
        '{"model": "m", "messages": []}',
        '{"model": "m", "messages": [], "max_tokens": -1}',
        '{"model": "m", "messages": [], "max_tokens": true}',
        '{"model": "m", "messages": [{"role": "user"}], "max_tokens": 1}',
        '{"model": "m", "messages": [{"role": "user", "content": null}], "max_tokens": 1}',
        '{"model": "m", "messages": [{"role": "user", "content": [{"text": "x"}]}], "max_tokens": 1}',
        '{"model": "m", "messages": [{"role": "user", "content": [{"type": "image"}]}], "max_tokens": 1}',
        '{"model": "m", "messages": [], "max_tokens": 1, "system": 3}',
        '{"model": "m", "messages": [], "max_tokens": 1, "stream": 1}',
    ],
)
def test_invalid_requests_raise(raw):
    with pytest.raises(ValueError):
        MessagesRequest.from_json(raw)