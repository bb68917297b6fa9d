# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring

"""
Public API for the wiring DI system.
"""

from __future__ import annotations

from wiring.injection.errors import (
    CacheMissError,
    CircularDependencyError,
    ContainerDisposedError,
    DisposalError,
    FactoryFailedError,
    InjectionError,
    NotRegisteredError,
    ScopeAlreadyActiveError,
    ScopeError,
    ScopeNotActiveError,
    ValidationError,
)
from wiring.injection.protocols import (
    AsyncServiceFactory,
    ResolverProtocol,
    ServiceFactory,
)

from .config import ContainerSettings, DependencyLifetime, Scope
from .container import Container
from .diagnostics import ContainerStateCapture
from .graph import DependencyGraph, GraphAnalysis, GraphTracker
from .keys import TypeKey, key_name
from .registration import Registration, Registry
from .resolution import ResolutionEngine, ResolutionStack, Resolver
from .scopes import ScopeStore

__all__ = [
    "AsyncServiceFactory",
    "CacheMissError",
    "CircularDependencyError",
    "Container",
    "ContainerDisposedError",
    "ContainerSettings",
    "ContainerStateCapture",
    "DependencyGraph",
    "DependencyLifetime",
    "DisposalError",
    "FactoryFailedError",
    "GraphAnalysis",
    "GraphTracker",
    "InjectionError",
    "NotRegisteredError",
    "Registration",
    "Registry",
    "ResolutionEngine",
    "ResolutionStack",
    "Resolver",
    "ResolverProtocol",
    "Scope",
    "ScopeAlreadyActiveError",
    "ScopeError",
    "ScopeNotActiveError",
    "ScopeStore",
    "ServiceFactory",
    "TypeKey",
    "ValidationError",
    "key_name",
]
