"""SQLite-backed storage for rules, compression stats and experiments."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Union
from os import PathLike

from .migrations import run_migrations
from .models import (
    CompressionStatRow,
    ExperimentRow,
    RuleRow,
    RuleStatRow,
    StatsOverview,
)

_RULE_COLUMNS = (
    "id, pattern, replacement, layer, domain, confidence, samples, "
    "enabled, priority, created_at, updated_at"
)
_STAT_COLUMNS = (
    "id, request_id, provider, model, domain_detected, original_tokens, "
    "compressed_tokens, compression_ratio, rules_applied, elapsed_us, created_at"
)
_EXPERIMENT_COLUMNS = (
    "id, rule_id, original_prompt, compressed_prompt, original_response, "
    "compressed_response, similarity_score, status, created_at, completed_at"
)


class StoreError(Exception):
    """Raised when a store operation fails."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class RecordNotFound(StoreError):
    """Raised when the requested record does not exist."""

    def __init__(self, message: str = "not found") -> None:
        super().__init__(message)


def _rule(row: tuple) -> RuleRow:
    (id_, pattern, replacement, layer, domain, confidence, samples,
     enabled, priority, created_at, updated_at) = row
    return RuleRow(
        id=id_,
        pattern=pattern,
        replacement=replacement,
        layer=layer,
        domain=domain,
        confidence=float(confidence),
        samples=int(samples),
        enabled=bool(enabled),
        priority=int(priority),
        created_at=created_at,
        updated_at=updated_at,
    )


def _stat(row: tuple) -> CompressionStatRow:
    (id_, request_id, provider, model, domain_detected, original_tokens,
     compressed_tokens, ratio, rules_applied, elapsed_us, created_at) = row
    return CompressionStatRow(
        id=id_,
        request_id=request_id,
        provider=provider,
        model=model,
        domain_detected=domain_detected,
        original_tokens=int(original_tokens),
        compressed_tokens=int(compressed_tokens),
        compression_ratio=float(ratio),
        rules_applied=rules_applied,
        elapsed_us=int(elapsed_us),
        created_at=created_at,
    )


def _experiment(row: tuple) -> ExperimentRow:
    (id_, rule_id, original_prompt, compressed_prompt, original_response,
     compressed_response, score, status, created_at, completed_at) = row
    return ExperimentRow(
        id=id_,
        rule_id=rule_id,
        original_prompt=original_prompt,
        compressed_prompt=compressed_prompt,
        original_response=original_response,
        compressed_response=compressed_response,
        similarity_score=None if score is None else float(score),
        status=status,
        created_at=created_at,
        completed_at=completed_at,
    )


class Store:
    """A thread-safe handle on the proxy's SQLite database."""

    def __init__(self, path: Union[str, "PathLike[str]"]) -> None:
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(
                str(path), isolation_level=None, check_same_thread=False
            )
        except sqlite3.Error as exc:
            raise StoreError(f"SQLite error: {exc}") from exc
        with self._guard():
            run_migrations(self._conn)
            if str(path) != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL")

    @classmethod
    def in_memory(cls) -> "Store":
        """Open a fresh in-memory database."""
        return cls(":memory:")

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "Store":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # -- internals ---------------------------------------------------------

    @contextmanager
    def _guard(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            try:
                yield self._conn
            except sqlite3.Error as exc:
                raise StoreError(f"SQLite error: {exc}") from exc

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        with self._guard() as conn:
            conn.execute("BEGIN")
            try:
                yield conn
            except BaseException:
                conn.execute("ROLLBACK")
                raise
            conn.execute("COMMIT")

    # -- rules -------------------------------------------------------------

    def list_rules(
        self,
        layer: Optional[str] = None,
        domain: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[RuleRow]:
        """List rules, optionally filtered by layer and domain, highest priority first."""
        sql = f"SELECT {_RULE_COLUMNS} FROM rules WHERE 1=1"
        params: list[object] = []
        if layer is not None:
            sql += " AND layer = ?"
            params.append(layer)
        if domain is not None:
            sql += " AND domain = ?"
            params.append(domain)
        sql += " ORDER BY priority DESC, created_at DESC LIMIT ? OFFSET ?"
        params.extend((limit, offset))
        with self._guard() as conn:
            return [_rule(r) for r in conn.execute(sql, params).fetchall()]

    def get_rule(self, rule_id: str) -> RuleRow:
        with self._guard() as conn:
            row = conn.execute(
                f"SELECT {_RULE_COLUMNS} FROM rules WHERE id = ?", (rule_id,)
            ).fetchone()
        if row is None:
            raise RecordNotFound()
        return _rule(row)

    def create_rule(self, rule: RuleRow) -> None:
        with self._guard() as conn:
            conn.execute(
                f"INSERT INTO rules ({_RULE_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    rule.id, rule.pattern, rule.replacement, rule.layer,
                    rule.domain, rule.confidence, rule.samples, rule.enabled,
                    rule.priority, rule.created_at, rule.updated_at,
                ),
            )

    def update_rule(self, rule: RuleRow) -> None:
        with self._guard() as conn:
            cur = conn.execute(
                "UPDATE rules SET pattern = ?, replacement = ?, layer = ?, "
                "domain = ?, confidence = ?, samples = ?, enabled = ?, "
                "priority = ?, updated_at = ? WHERE id = ?",
                (
                    rule.pattern, rule.replacement, rule.layer, rule.domain,
                    rule.confidence, rule.samples, rule.enabled, rule.priority,
                    rule.updated_at, rule.id,
                ),
            )
        if cur.rowcount == 0:
            raise RecordNotFound()

    def delete_rule(self, rule_id: str) -> None:
        with self._guard() as conn:
            cur = conn.execute("DELETE FROM rules WHERE id = ?", (rule_id,))
        if cur.rowcount == 0:
            raise RecordNotFound()

    def get_all_enabled_rules(self) -> list[RuleRow]:
        with self._guard() as conn:
            rows = conn.execute(
                f"SELECT {_RULE_COLUMNS} FROM rules WHERE enabled = 1 "
                "ORDER BY priority DESC"
            ).fetchall()
        return [_rule(r) for r in rows]

    def get_learned_rules(self) -> list[RuleRow]:
        with self._guard() as conn:
            rows = conn.execute(
                f"SELECT {_RULE_COLUMNS} FROM rules WHERE layer = 'learned' "
                "ORDER BY confidence DESC"
            ).fetchall()
        return [_rule(r) for r in rows]

    # -- compression stats -------------------------------------------------

    def record_compression_stat(self, stat: CompressionStatRow) -> None:
        with self._guard() as conn:
            conn.execute(
                f"INSERT INTO compression_stats ({_STAT_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    stat.id, stat.request_id, stat.provider, stat.model,
                    stat.domain_detected, stat.original_tokens,
                    stat.compressed_tokens, stat.compression_ratio,
                    stat.rules_applied, stat.elapsed_us, stat.created_at,
                ),
            )

    def get_stats_overview(self) -> StatsOverview:
        with self._guard() as conn:
            total_requests, tokens_saved, avg_ratio = conn.execute(
                "SELECT COUNT(*), "
                "COALESCE(SUM(original_tokens - compressed_tokens), 0), "
                "COALESCE(AVG(compression_ratio), 0.0) FROM compression_stats"
            ).fetchone()
            (total_rules,) = conn.execute("SELECT COUNT(*) FROM rules").fetchone()
            (active_rules,) = conn.execute(
                "SELECT COUNT(*) FROM rules WHERE enabled = 1"
            ).fetchone()
        return StatsOverview(
            total_requests=int(total_requests),
            total_tokens_saved=int(tokens_saved),
            avg_compression_ratio=float(avg_ratio),
            total_rules=int(total_rules),
            active_rules=int(active_rules),
        )

    def get_compression_stats(
        self, limit: int = 50, offset: int = 0
    ) -> list[CompressionStatRow]:
        with self._guard() as conn:
            rows = conn.execute(
                f"SELECT {_STAT_COLUMNS} FROM compression_stats "
                "ORDER BY created_at DESC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
        return [_stat(r) for r in rows]

    def update_rule_stats(self, rule_id: str, tokens_saved: int) -> None:
        """Count one more application of a rule and add its saved tokens."""
        with self._transaction() as conn:
            conn.execute(
                "INSERT INTO rule_stats (rule_id, times_applied, total_tokens_saved, "
                "avg_compression, last_applied_at) VALUES (?, 0, 0, 0.0, NULL) "
                "ON CONFLICT(rule_id) DO NOTHING",
                (rule_id,),
            )
            conn.execute(
                "UPDATE rule_stats SET "
                "times_applied = times_applied + 1, "
                "total_tokens_saved = total_tokens_saved + ?1, "
                "avg_compression = CAST((total_tokens_saved + ?1) AS REAL) "
                "/ (times_applied + 1), "
                "last_applied_at = datetime('now') "
                "WHERE rule_id = ?2",
                (tokens_saved, rule_id),
            )

    def get_rule_stats(self, rule_id: str) -> RuleStatRow:
        with self._guard() as conn:
            row = conn.execute(
                "SELECT rule_id, times_applied, total_tokens_saved, "
                "avg_compression, last_applied_at FROM rule_stats WHERE rule_id = ?",
                (rule_id,),
            ).fetchone()
        if row is None:
            raise RecordNotFound()
        return RuleStatRow(
            rule_id=row[0],
            times_applied=int(row[1]),
            total_tokens_saved=int(row[2]),
            avg_compression=float(row[3]),
            last_applied_at=row[4],
        )

    # -- experiments -------------------------------------------------------

    def create_experiment(self, exp: ExperimentRow) -> None:
        with self._guard() as conn:
            conn.execute(
                f"INSERT INTO experiments ({_EXPERIMENT_COLUMNS}) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    exp.id, exp.rule_id, exp.original_prompt,
                    exp.compressed_prompt, exp.original_response,
                    exp.compressed_response, exp.similarity_score, exp.status,
                    exp.created_at, exp.completed_at,
                ),
            )

    def update_experiment(self, exp: ExperimentRow) -> None:
        """Update the responses, score, status and completion time of an experiment."""
        with self._guard() as conn:
            cur = conn.execute(
                "UPDATE experiments SET original_response = ?, "
                "compressed_response = ?, similarity_score = ?, status = ?, "
                "completed_at = ? WHERE id = ?",
                (
                    exp.original_response, exp.compressed_response,
                    exp.similarity_score, exp.status, exp.completed_at, exp.id,
                ),
            )
        if cur.rowcount == 0:
            raise RecordNotFound()

    def list_experiments(self, limit: int = 50, offset: int = 0) -> list[ExperimentRow]:
        with self._guard() as conn:
            rows = conn.execute(
                f"SELECT {_EXPERIMENT_COLUMNS} FROM experiments "
                "ORDER BY created_at DESC LIMIT ? OFFSET ?",
                (limit, offset),
            ).fetchall()
        return [_experiment(r) for r in rows]

    def update_rule_confidence(
        self, rule_id: str, confidence: float, samples: int
    ) -> None:
        with self._guard() as conn:
            cur = conn.execute(
                "UPDATE rules SET confidence = ?, samples = ?, "
                "updated_at = datetime('now') WHERE id = ?",
                (confidence, samples, rule_id),
            )
        if cur.rowcount == 0:
            raise RecordNotFound()