# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Service registrations and the registry that holds them.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime

from wiring.injection.config import DependencyLifetime, Scope
from wiring.injection.keys import TypeKey
from wiring.injection.lifetime_policies import LIFETIME_POLICY_MAP, LifetimePolicy
from wiring.injection.protocols import ServiceFactory


@dataclass(frozen=True, slots=True)
class Registration:
    """Represents a service registration in the DI container.

    A registration is immutable; registering the same key again stores a new
    one in its place.
    """

    key: TypeKey
    scope: Scope
    factory: ServiceFactory
    lifetime: DependencyLifetime = DependencyLifetime.APPLICATION
    dependencies: tuple[TypeKey, ...] = ()
    registered_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def policy(self) -> LifetimePolicy:
        return LIFETIME_POLICY_MAP[self.scope]


class Registry:
    """Per-key registration store.

    Holds no resolution logic. Mutation is serialized by the owning container.
    """

    def __init__(self) -> None:
        self._registrations: dict[TypeKey, Registration] = {}

    def register(
        self,
        key: TypeKey,
        scope: Scope,
        factory: ServiceFactory,
        lifetime: DependencyLifetime = DependencyLifetime.APPLICATION,
        dependencies: tuple[TypeKey, ...] = (),
    ) -> Registration:
        """Store a registration, replacing any previous one for the key.

        Instances already cached for the key are left untouched.

        Raises:
            TypeError: If the factory is not callable
        """
        if not callable(factory):
            raise TypeError(f"factory for {key!r} must be callable")
        registration = Registration(
            key=key,
            scope=Scope(scope),
            factory=factory,
            lifetime=DependencyLifetime(lifetime),
            dependencies=tuple(dependencies),
        )
        self._registrations[key] = registration
        return registration

    def lookup(self, key: TypeKey) -> Registration | None:
        return self._registrations.get(key)

    def keys(self) -> list[TypeKey]:
        return list(self._registrations)

    def clear(self) -> None:
        self._registrations.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._registrations

    def __iter__(self) -> Iterator[Registration]:
        return iter(list(self._registrations.values()))

    def __len__(self) -> int:
        return len(self._registrations)
