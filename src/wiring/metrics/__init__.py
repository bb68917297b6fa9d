# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Metrics for dependency resolution.
"""

from wiring.metrics.collector import DEFAULT_INSTANCE_WEIGHT_KB, MetricsCollector
from wiring.metrics.types import PerformanceMetrics

__all__ = [
    "DEFAULT_INSTANCE_WEIGHT_KB",
    "MetricsCollector",
    "PerformanceMetrics",
]
