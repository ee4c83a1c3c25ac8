"""Request types for the Anthropic-compatible messages endpoint."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

Content = Union[str, list]

_MAX_TOKENS_LIMIT = 2**32 - 1


def _parse_block(block: Any, *, system: bool) -> dict[str, Any]:
    if not isinstance(block, dict):
        raise ValueError("content block must be an object")
    kind = block.get("type")
    if not isinstance(kind, str):
        raise ValueError("content block is missing a string `type`")
    if kind == "text" and not isinstance(block.get("text"), str):
        raise ValueError("text block requires a string `text`")
    if not system and kind == "image" and "source" not in block:
        raise ValueError("image block requires `source`")
    return dict(block)


def _parse_blocks(value: Any, *, system: bool, what: str) -> Content:
    if isinstance(value, str):
        return value
    if isinstance(value, list):
        return [_parse_block(b, system=system) for b in value]
    raise ValueError(f"{what} must be a string or a list of blocks")


def _copy(content: Content) -> Content:
    return [dict(b) for b in content] if isinstance(content, list) else content


def _texts(content: Optional[Content]) -> list[str]:
    if isinstance(content, str):
        return [content]
    if isinstance(content, list):
        return [b["text"] for b in content if b.get("type") == "text"]
    return []


def _map_texts(content: Optional[Content], func: Callable[[str], str]) -> Optional[Content]:
    if isinstance(content, str):
        return func(content)
    if isinstance(content, list):
        for block in content:
            if block.get("type") == "text":
                block["text"] = func(block["text"])
    return content


@dataclass
class AnthropicMessage:
    """One message; ``content`` is a string or a list of content blocks."""

    role: str
    content: Content
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "AnthropicMessage":
        if not isinstance(data, dict):
            raise ValueError("message must be an object")
        role = data.get("role")
        if not isinstance(role, str):
            raise ValueError("message requires a string `role`")
        if "content" not in data:
            raise ValueError("message requires `content`")
        content = _parse_blocks(data["content"], system=False, what="content")
        extra = {k: v for k, v in data.items() if k not in ("role", "content")}
        return cls(role=role, content=content, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"role": self.role, "content": _copy(self.content)}
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out

    def texts(self) -> list[str]:
        """Return the text of the string content or of each text block."""
        return _texts(self.content)

    def map_texts(self, func: Callable[[str], str]) -> None:
        """Replace every text string in the content with ``func(text)``."""
        self.content = _map_texts(self.content, func)


@dataclass
class MessagesRequest:
    """A messages request; unknown fields are kept in ``extra``."""

    model: str
    messages: list[AnthropicMessage]
    max_tokens: int
    system: Optional[Content] = None
    stream: Optional[bool] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "MessagesRequest":
        if not isinstance(data, dict):
            raise ValueError("request must be an object")
        model = data.get("model")
        if not isinstance(model, str):
            raise ValueError("request requires a string `model`")
        messages = data.get("messages")
        if not isinstance(messages, list):
            raise ValueError("request requires a `messages` list")
        max_tokens = data.get("max_tokens")
        if (
            not isinstance(max_tokens, int)
            or isinstance(max_tokens, bool)
            or not 0 <= max_tokens <= _MAX_TOKENS_LIMIT
        ):
            raise ValueError("request requires an unsigned 32-bit `max_tokens`")
        system = data.get("system")
        if system is not None:
            system = _parse_blocks(system, system=True, what="system")
        stream = data.get("stream")
        if stream is not None and not isinstance(stream, bool):
            raise ValueError("`stream` must be a boolean")
        known = ("model", "messages", "max_tokens", "system", "stream")
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(
            model=model,
            messages=[AnthropicMessage.from_dict(m) for m in messages],
            max_tokens=max_tokens,
            system=system,
            stream=stream,
            extra=extra,
        )

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "MessagesRequest":
        return cls.from_dict(json.loads(raw))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in self.messages],
            "max_tokens": self.max_tokens,
        }
        if self.system is not None:
            out["system"] = _copy(self.system)
        if self.stream is not None:
            out["stream"] = self.stream
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))

    def system_texts(self) -> list[str]:
        """Return the text strings of the system prompt, if any."""
        return _texts(self.system)

    def map_system_texts(self, func: Callable[[str], str]) -> None:
        """Replace every text string in the system prompt with ``func(text)``."""
        self.system = _map_texts(self.system, func)