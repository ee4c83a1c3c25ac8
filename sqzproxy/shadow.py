"""Shadow (A/B) testing of compressed prompts against uncompressed ones."""

from __future__ import annotations

import logging
import math
import random
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Sequence

from .models import ExperimentRow, utc_timestamp
from .store import Store, StoreError

log = logging.getLogger(__name__)

_SHADOW_RESPONSE = "(shadow test placeholder)"


@dataclass
class ShadowConfig:
    """Settings for shadow testing."""

    enabled: bool = False
    sample_rate: float = 0.1
    embedding_model: str = "text-embedding-3-small"
    max_concurrency: int = 4
    ema_alpha: float = 0.1


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two vectors, in [-1, 1].

    Returns 0.0 when the vectors differ in length, are empty, or either has
    zero magnitude.
    """
    if len(a) != len(b) or not a:
        return 0.0
    dot = sum(x * y for x, y in zip(a, b))
    mag_a = math.sqrt(sum(x * x for x in a))
    mag_b = math.sqrt(sum(y * y for y in b))
    denominator = mag_a * mag_b
    if denominator == 0.0:
        return 0.0
    return dot / denominator


class ShadowRunner:
    """Runs shadow tests in the background with bounded concurrency."""

    def __init__(self, config: ShadowConfig) -> None:
        if config.max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.sample_rate = config.sample_rate
        self.ema_alpha = config.ema_alpha
        self._executor = ThreadPoolExecutor(
            max_workers=config.max_concurrency, thread_name_prefix="shadow"
        )
        self._closed = False
        self._lock = threading.Lock()

    def should_shadow(self) -> bool:
        """Decide whether a request is sampled for shadow testing."""
        if self.sample_rate <= 0.0:
            return False
        if self.sample_rate >= 1.0:
            return True
        return random.random() < self.sample_rate

    def spawn_shadow_test(self, store: Store, experiment_id: str) -> "Future[bool]":
        """Start a background shadow test for an experiment.

        The experiment record is marked completed. Failures are logged and
        never raised; the returned future resolves to whether the record
        was updated.
        """
        with self._lock:
            if self._closed:
                raise RuntimeError("shadow runner is shut down")
            return self._executor.submit(self._run, store, experiment_id)

    def shutdown(self) -> None:
        """Stop accepting tests and wait for running ones to finish."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=True)

    @staticmethod
    def _run(store: Store, experiment_id: str) -> bool:
        now = utc_timestamp()
        exp = ExperimentRow(
            id=experiment_id,
            rule_id="",
            original_prompt="",
            compressed_prompt="",
            original_response=_SHADOW_RESPONSE,
            compressed_response=_SHADOW_RESPONSE,
            similarity_score=None,
            status="completed",
            created_at=now,
            completed_at=now,
        )
        try:
            store.update_experiment(exp)
        except StoreError as exc:
            log.warning("failed to update shadow experiment: %s", exc)
            return False
        return True


def _optional_float(value: Optional[float]) -> Optional[float]:
    return None if value is None else float(value)