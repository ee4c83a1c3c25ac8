"""Request, response and query types of the admin API."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional

from .models import RuleRow, StatsOverview

DEFAULT_LIMIT = 50

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1
_I64_MIN = -(2**63)
_I64_MAX = 2**63 - 1


def _require_object(data: Any) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ValueError("request body must be an object")
    return data


def _required_str(data: Mapping[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str):
        raise ValueError(f"missing or invalid string field `{key}`")
    return value


def _optional_str(data: Mapping[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"field `{key}` must be a string")
    return value


def _optional_bool(data: Mapping[str, Any], key: str) -> Optional[bool]:
    value = data.get(key)
    if value is not None and not isinstance(value, bool):
        raise ValueError(f"field `{key}` must be a boolean")
    return value


def _optional_i32(data: Mapping[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"field `{key}` must be an integer")
    if not _I32_MIN <= value <= _I32_MAX:
        raise ValueError(f"field `{key}` is out of range")
    return value


def _query_int(query: Mapping[str, str], key: str, default: int) -> int:
    raw = query.get(key)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"query parameter `{key}` must be an integer") from None
    if not _I64_MIN <= value <= _I64_MAX:
        raise ValueError(f"query parameter `{key}` is out of range")
    return value


@dataclass
class CreateRuleRequest:
    """Body of a rule creation request."""

    pattern: str
    replacement: str
    layer: str
    domain: Optional[str] = None
    priority: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Any) -> "CreateRuleRequest":
        data = _require_object(data)
        return cls(
            pattern=_required_str(data, "pattern"),
            replacement=_required_str(data, "replacement"),
            layer=_required_str(data, "layer"),
            domain=_optional_str(data, "domain"),
            priority=_optional_i32(data, "priority"),
        )


@dataclass
class UpdateRuleRequest:
    """Body of a partial rule update; ``None`` leaves a field unchanged."""

    pattern: Optional[str] = None
    replacement: Optional[str] = None
    enabled: Optional[bool] = None
    priority: Optional[int] = None
    domain: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Any) -> "UpdateRuleRequest":
        data = _require_object(data)
        return cls(
            pattern=_optional_str(data, "pattern"),
            replacement=_optional_str(data, "replacement"),
            enabled=_optional_bool(data, "enabled"),
            priority=_optional_i32(data, "priority"),
            domain=_optional_str(data, "domain"),
        )


@dataclass
class RuleResponse:
    """A rule as returned by the admin API."""

    id: str
    pattern: str
    replacement: str
    layer: str
    domain: Optional[str]
    confidence: float
    samples: int
    enabled: bool
    priority: int
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: RuleRow) -> "RuleResponse":
        return cls(**asdict(row))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class StatsResponse:
    """Overall compression statistics as returned by the admin API."""

    total_requests: int
    total_tokens_saved: int
    avg_compression_ratio: float
    total_rules: int
    active_rules: int

    @classmethod
    def from_overview(cls, overview: StatsOverview) -> "StatsResponse":
        return cls(**asdict(overview))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PaginationParams:
    """Pagination and filter query parameters."""

    limit: int = DEFAULT_LIMIT
    offset: int = 0
    layer: Optional[str] = None
    domain: Optional[str] = None

    @classmethod
    def from_query(cls, query: Mapping[str, str]) -> "PaginationParams":
        return cls(
            limit=_query_int(query, "limit", DEFAULT_LIMIT),
            offset=_query_int(query, "offset", 0),
            layer=query.get("layer"),
            domain=query.get("domain"),
        )