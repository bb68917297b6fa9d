# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Metric snapshot types.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any


@dataclass(frozen=True, slots=True)
class PerformanceMetrics:
    """Aggregate view of resolution performance.

    Attributes:
        average_resolution_time: Mean duration of timed attempts, in seconds.
        cache_hit_rate: ``cache_hits / total_resolutions``, 0.0 when nothing ran.
        memory_usage: Estimated footprint of cached instances, in kilobytes.
        total_resolutions: Every resolution attempt, successful or not.
        circular_dependency_count: Circular dependencies detected while resolving.
    """

    average_resolution_time: float
    cache_hit_rate: float
    memory_usage: float
    total_resolutions: int
    circular_dependency_count: int
    cache_hits: int = 0
    cache_misses: int = 0
    failed_resolutions: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
