# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring

"""
wiring: an async dependency-injection runtime.

Register factories once, resolve fully wired instances on demand with
singleton, scoped, transient or lazy lifetimes, and inspect the dependency
graph and resolution metrics the container observed.
"""

from wiring.errors import WiringError
from wiring.injection import (
    CacheMissError,
    CircularDependencyError,
    Container,
    ContainerDisposedError,
    ContainerSettings,
    DependencyGraph,
    DependencyLifetime,
    FactoryFailedError,
    InjectionError,
    NotRegisteredError,
    ResolverProtocol,
    Scope,
    ScopeAlreadyActiveError,
    ScopeNotActiveError,
    ValidationError,
)
from wiring.metrics import PerformanceMetrics

__version__ = "0.1.0"

__all__ = [
    "CacheMissError",
    "CircularDependencyError",
    "Container",
    "ContainerDisposedError",
    "ContainerSettings",
    "DependencyGraph",
    "DependencyLifetime",
    "FactoryFailedError",
    "InjectionError",
    "NotRegisteredError",
    "PerformanceMetrics",
    "ResolverProtocol",
    "Scope",
    "ScopeAlreadyActiveError",
    "ScopeNotActiveError",
    "ValidationError",
    "WiringError",
    "__version__",
]
