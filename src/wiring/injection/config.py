# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring

"""
Lifetime enums and container settings.
"""

from __future__ import annotations

from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Scope(str, Enum):
    """Caching policy for a registration.

    ``LAZY`` is a deferred singleton: it shares the permanent cache with
    ``SINGLETON`` and is skipped by preloading.
    """

    SINGLETON = "singleton"
    SCOPED = "scoped"
    TRANSIENT = "transient"
    LAZY = "lazy"

    @property
    def is_cached(self) -> bool:
        return self is not Scope.TRANSIENT


class DependencyLifetime(str, Enum):
    """Descriptive lifetime tag carried on a registration."""

    APPLICATION = "application"
    SESSION = "session"
    REQUEST = "request"
    CUSTOM = "custom"


class ContainerSettings(BaseSettings):
    """Container behaviour switches.

    Loads from environment variables prefixed with ``WIRING_CONTAINER_``.
    """

    model_config = SettingsConfigDict(
        env_prefix="WIRING_CONTAINER_",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    enable_dependency_tracking: bool = Field(
        default=True, description="Record caller -> callee edges while resolving"
    )
    enable_performance_metrics: bool = Field(
        default=True, description="Record timing and cache statistics"
    )
    memory_estimate_per_instance_kb: float = Field(
        default=1.0, ge=0.0, description="Estimated size of one cached instance"
    )
    preload_skip_failures: bool = Field(
        default=True,
        description="Log and continue when a factory fails during preload",
    )

    @classmethod
    def load(cls) -> ContainerSettings:
        """Load settings from environment variables or defaults."""
        return cls()

    @classmethod
    def strict(cls) -> ContainerSettings:
        """Everything tracked, preload stops at the first failure."""
        return cls(
            enable_dependency_tracking=True,
            enable_performance_metrics=True,
            preload_skip_failures=False,
        )

    @classmethod
    def performance(cls) -> ContainerSettings:
        """Graph tracking off; metrics kept."""
        return cls(enable_dependency_tracking=False, enable_performance_metrics=True)
