# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Resolution metrics collection.

The collector only accumulates; it does no locking of its own. Its owner
serializes calls to ``record_attempt`` and ``reset``.
"""

from __future__ import annotations

from collections.abc import Mapping

from wiring.metrics.types import PerformanceMetrics

DEFAULT_INSTANCE_WEIGHT_KB = 1.0


class MetricsCollector:
    """Running aggregates over resolution attempts."""

    def __init__(self, instance_weight_kb: float = DEFAULT_INSTANCE_WEIGHT_KB) -> None:
        """Initialize the collector.

        Args:
            instance_weight_kb: Estimated size of one cached instance, used for
                the memory usage estimate.
        """
        self._instance_weight_kb = instance_weight_kb
        self.reset()

    def reset(self) -> None:
        """Drop every sample and counter."""
        self._total = 0
        self._hits = 0
        self._failures = 0
        self._circular = 0
        self._timed = 0
        self._total_time = 0.0

    def record_attempt(
        self,
        duration: float | None,
        was_cache_hit: bool,
        was_circular: bool = False,
        failed: bool = False,
    ) -> None:
        """Record one resolution attempt.

        Args:
            duration: Seconds the attempt took, or None when it was not timed
            was_cache_hit: Whether the instance came from a cache
            was_circular: Whether the attempt hit a circular dependency
            failed: Whether the attempt ended in an error
        """
        self._total += 1
        if was_cache_hit:
            self._hits += 1
        if was_circular:
            self._circular += 1
        if failed or was_circular:
            self._failures += 1
        if duration is not None:
            self._timed += 1
            self._total_time += duration

    @property
    def total_resolutions(self) -> int:
        return self._total

    def snapshot(
        self, instance_counts: Mapping[str, int] | None = None
    ) -> PerformanceMetrics:
        """Build the current aggregate view.

        Args:
            instance_counts: Number of cached instances per scope, used for the
                memory estimate

        Returns:
            A frozen PerformanceMetrics value
        """
        cached = sum((instance_counts or {}).values())
        return PerformanceMetrics(
            average_resolution_time=(
                self._total_time / self._timed if self._timed else 0.0
            ),
            cache_hit_rate=self._hits / self._total if self._total else 0.0,
            memory_usage=cached * self._instance_weight_kb,
            total_resolutions=self._total,
            circular_dependency_count=self._circular,
            cache_hits=self._hits,
            cache_misses=self._total - self._hits,
            failed_resolutions=self._failures,
        )
