"""Request types for the OpenAI-compatible chat completions endpoint."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union

Content = Union[str, list, None]


def _parse_part(part: Any) -> dict[str, Any]:
    if not isinstance(part, dict):
        raise ValueError("content part must be an object")
    kind = part.get("type")
    if not isinstance(kind, str):
        raise ValueError("content part is missing a string `type`")
    if kind == "text" and not isinstance(part.get("text"), str):
        raise ValueError("text part requires a string `text`")
    if kind == "image_url" and "image_url" not in part:
        raise ValueError("image_url part requires `image_url`")
    return dict(part)


def _parse_content(value: Any) -> Content:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, list):
        return [_parse_part(part) for part in value]
    raise ValueError("content must be a string, a list of parts or null")


@dataclass
class Message:
    """One chat message; ``content`` is a string, a list of parts or None."""

    role: str
    content: Content = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "Message":
        if not isinstance(data, dict):
            raise ValueError("message must be an object")
        role = data.get("role")
        if not isinstance(role, str):
            raise ValueError("message requires a string `role`")
        content = _parse_content(data.get("content"))
        extra = {k: v for k, v in data.items() if k not in ("role", "content")}
        return cls(role=role, content=content, extra=extra)

    def to_dict(self) -> dict[str, Any]:
        content = (
            [dict(part) for part in self.content]
            if isinstance(self.content, list)
            else self.content
        )
        out: dict[str, Any] = {"role": self.role, "content": content}
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out

    def texts(self) -> list[str]:
        """Return every text string in the content, in order."""
        if isinstance(self.content, str):
            return [self.content]
        if isinstance(self.content, list):
            return [p["text"] for p in self.content if p.get("type") == "text"]
        return []

    def map_texts(self, func: Callable[[str], str]) -> None:
        """Replace every text string in the content with ``func(text)``."""
        if isinstance(self.content, str):
            self.content = func(self.content)
        elif isinstance(self.content, list):
            for part in self.content:
                if part.get("type") == "text":
                    part["text"] = func(part["text"])


@dataclass
class ChatCompletionRequest:
    """A chat completions request; unknown fields are kept in ``extra``."""

    model: str
    messages: list[Message]
    stream: Optional[bool] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> "ChatCompletionRequest":
        if not isinstance(data, dict):
            raise ValueError("request must be an object")
        model = data.get("model")
        if not isinstance(model, str):
            raise ValueError("request requires a string `model`")
        messages = data.get("messages")
        if not isinstance(messages, list):
            raise ValueError("request requires a `messages` list")
        stream = data.get("stream")
        if stream is not None and not isinstance(stream, bool):
            raise ValueError("`stream` must be a boolean")
        extra = {
            k: v for k, v in data.items() if k not in ("model", "messages", "stream")
        }
        return cls(
            model=model,
            messages=[Message.from_dict(m) for m in messages],
            stream=stream,
            extra=extra,
        )

    @classmethod
    def from_json(cls, raw: Union[str, bytes]) -> "ChatCompletionRequest":
        return cls.from_dict(json.loads(raw))

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "model": self.model,
            "messages": [m.to_dict() for m in self.messages],
        }
        if self.stream is not None:
            out["stream"] = self.stream
        for key, value in self.extra.items():
            out.setdefault(key, value)
        return out

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), separators=(",", ":"))