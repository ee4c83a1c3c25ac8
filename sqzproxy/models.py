"""Row types stored in the database and the timestamp format they use."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Optional

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def utc_timestamp() -> str:
    """Return the current UTC time in the store's timestamp format."""
    return datetime.now(timezone.utc).strftime(TIMESTAMP_FORMAT)


@dataclass
class RuleRow:
    """A compression rule as stored in the ``rules`` table."""

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

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class CompressionStatRow:
    """One compression run, as stored in ``compression_stats``."""

    id: str
    request_id: str
    provider: str
    model: str
    domain_detected: Optional[str]
    original_tokens: int
    compressed_tokens: int
    compression_ratio: float
    rules_applied: str  # JSON-encoded list of rule ids
    elapsed_us: int
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class ExperimentRow:
    """A shadow-test experiment, as stored in ``experiments``."""

    id: str
    rule_id: str
    original_prompt: str
    compressed_prompt: str
    original_response: Optional[str]
    compressed_response: Optional[str]
    similarity_score: Optional[float]
    status: str
    created_at: str
    completed_at: Optional[str]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class RuleStatRow:
    """Usage counters for one rule, as stored in ``rule_stats``."""

    rule_id: str
    times_applied: int
    total_tokens_saved: int
    avg_compression: float
    last_applied_at: Optional[str]


@dataclass
class StatsOverview:
    """Aggregate figures over all compression stats and rules."""

    total_requests: int
    total_tokens_saved: int
    avg_compression_ratio: float
    total_rules: int
    active_rules: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)