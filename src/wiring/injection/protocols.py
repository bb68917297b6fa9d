# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Protocol definitions for the wiring DI system.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, Protocol, TypeAlias, runtime_checkable

from wiring.injection.keys import TypeKey


@runtime_checkable
class ResolverProtocol(Protocol):
    """The capability handed to factories: resolve a dependency, nothing else."""

    async def resolve(self, key: TypeKey) -> Any:
        """Resolve a dependency as part of the current call chain."""
        ...


# A factory receives the resolver and returns an instance, directly or awaitably.
ServiceFactory: TypeAlias = Callable[[ResolverProtocol], Any]
AsyncServiceFactory: TypeAlias = Callable[[ResolverProtocol], Awaitable[Any]]
