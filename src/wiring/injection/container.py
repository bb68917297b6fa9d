# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring

"""
DI container implementation for wiring.

The container is the explicit owner of the registry, the scope store, the
dependency graph and the metrics. Callers create containers and pass them
around; there is no global instance.
"""

from __future__ import annotations

import contextlib
import inspect
import threading
from collections.abc import AsyncGenerator, Awaitable, Callable, Generator, Sequence
from typing import Any

from wiring.injection.config import ContainerSettings, DependencyLifetime, Scope
from wiring.injection.disposal import _DisposalManager
from wiring.injection.errors import (
    ContainerDisposedError,
    InjectionError,
    ScopeNotActiveError,
    ValidationError,
)
from wiring.injection.graph import DependencyGraph, GraphTracker
from wiring.injection.keys import TypeKey, key_name, key_names
from wiring.injection.protocols import ServiceFactory
from wiring.injection.registration import Registration, Registry
from wiring.injection.resolution import ResolutionEngine
from wiring.injection.scopes import ScopeStore, reset_selected_scope, select_scope
from wiring.logging import get_logger
from wiring.metrics.collector import MetricsCollector
from wiring.metrics.types import PerformanceMetrics


class Container:
    """Dependency Injection container for managing service lifetimes.

    Four scopes are supported:
    - Singleton: one instance per container
    - Lazy: a singleton that preloading leaves alone
    - Scoped: one instance per open named scope
    - Transient: a new instance per resolution

    Attributes:
        settings: The behaviour switches this container was built with
    """

    def __init__(self, settings: ContainerSettings | None = None) -> None:
        """Initialize a new DI container.

        Args:
            settings: Container settings; loaded from the environment when
                omitted
        """
        self.settings = settings or ContainerSettings.load()
        self._lock = threading.RLock()
        self._registry = Registry()
        self._store = ScopeStore()
        self._graph = GraphTracker()
        self._metrics = MetricsCollector(self.settings.memory_estimate_per_instance_kb)
        self._engine = ResolutionEngine(
            self._registry,
            self._store,
            self._graph,
            self._metrics,
            self.settings,
            lock=self._lock,
        )
        self._disposal_manager = _DisposalManager()
        self._disposed = False
        self._logger = get_logger(__name__)

    @classmethod
    async def create(
        cls,
        configurator: Callable[[Container], Awaitable[None] | Any] | None = None,
        settings: ContainerSettings | None = None,
    ) -> Container:
        """Create and configure a new container.

        Args:
            configurator: A function (sync or async) that receives the new
                container and registers the required services.
            settings: Container settings

        Returns:
            A configured Container ready for use.

        Example:
            ```python
            async def configure(c: Container) -> None:
                c.register(Greeting, Scope.SINGLETON, lambda r: "Hello, World!")
                c.register(Length, Scope.TRANSIENT, length_factory)

            container = await Container.create(configure)
            ```
        """
        container = cls(settings)
        if configurator is not None:
            result = configurator(container)
            if inspect.isawaitable(result):
                await result
        return container

    def _check_not_disposed(self, operation: str) -> None:
        if self._disposed:
            raise ContainerDisposedError(operation)

    # Registration

    def register(
        self,
        key: TypeKey,
        scope: Scope | str,
        factory: ServiceFactory,
        lifetime: DependencyLifetime | str = DependencyLifetime.APPLICATION,
        dependencies: Sequence[TypeKey] = (),
    ) -> Registration:
        """Register a factory for a key, replacing any previous registration.

        Instances already cached for the key stay cached until ``cleanup()``
        or the end of their scope.

        Args:
            key: The type key the factory provides
            scope: Caching policy
            factory: Callable taking a resolver and returning the instance
                (or an awaitable of it)
            lifetime: Descriptive lifetime tag
            dependencies: Keys the factory is declared to need, checked by
                ``validate_dependencies``

        Returns:
            The stored registration
        """
        self._check_not_disposed("register")
        with self._lock:
            replaced = key in self._registry
            registration = self._registry.register(
                key,
                Scope(scope),
                factory,
                DependencyLifetime(lifetime),
                tuple(dependencies),
            )
            self._graph.record_node(key)
        self._logger.debug(
            "%s %s as %s",
            "Replaced" if replaced else "Registered",
            key_name(key),
            registration.scope.value,
        )
        return registration

    def is_registered(self, key: TypeKey) -> bool:
        with self._lock:
            return key in self._registry

    def get_registration(self, key: TypeKey) -> Registration | None:
        """Registration metadata for a key, or None."""
        with self._lock:
            return self._registry.lookup(key)

    def registered_keys(self) -> list[TypeKey]:
        with self._lock:
            return self._registry.keys()

    @property
    def registered_services_count(self) -> int:
        with self._lock:
            return len(self._registry)

    # Resolution

    async def resolve(self, key: TypeKey) -> Any:
        """Resolve an instance for a key.

        Args:
            key: The type key to resolve

        Returns:
            The instance, constructed or taken from the cache the key's scope
            selects

        Raises:
            NotRegisteredError: If the key is not registered
            CircularDependencyError: If resolving the key requires itself
            ScopeNotActiveError: If a scoped key is resolved with no open scope
            FactoryFailedError: If a factory raised
            ContainerDisposedError: If the container has been disposed
        """
        self._check_not_disposed("resolve")
        return await self._engine.resolve(key)

    def resolve_cached_only(self, key: TypeKey) -> Any:
        """Return an already constructed instance without invoking a factory.

        Never suspends, so it is safe from synchronous code.

        Raises:
            NotRegisteredError: If the key is not registered
            CacheMissError: If nothing is cached for the key (always for
                transient keys)
            ContainerDisposedError: If the container has been disposed
        """
        self._check_not_disposed("resolve_cached_only")
        return self._engine.resolve_cached_only(key)

    # Scopes

    def begin_scope(self, name: str) -> None:
        """Open a named scope; scoped keys resolve into it while it is active.

        Raises:
            ScopeAlreadyActiveError: If a scope with this name is open
        """
        self._check_not_disposed("begin_scope")
        with self._lock:
            self._store.begin_scope(name)
        self._logger.debug("Began scope %s", name)

    def end_scope(self, name: str) -> list[Any]:
        """Close a named scope and discard its instances.

        Returns:
            The instances the scope held; disposing them is left to the caller

        Raises:
            ScopeNotActiveError: If no scope with this name is open
        """
        self._check_not_disposed("end_scope")
        with self._lock:
            instances = self._store.end_scope(name)
        self._engine.forget_guards(closed_only=True)
        self._logger.debug("Ended scope %s (%d instances)", name, len(instances))
        return instances

    @contextlib.asynccontextmanager
    async def scope(self, name: str) -> AsyncGenerator[Container]:
        """Open a scope for the duration of the block.

        The scope is selected for the current task, ended on exit and its
        instances disposed.

        Example:
            ```python
            async with container.scope("request-1"):
                session = await container.resolve(Session)
            ```
        """
        self.begin_scope(name)
        token = select_scope(name)
        try:
            yield self
        finally:
            reset_selected_scope(token)
            if not self._disposed and self.is_scope_active(name):
                instances = self.end_scope(name)
                await self._disposal_manager.dispose_all(
                    reversed(instances), f"scope {name!r}"
                )

    @contextlib.contextmanager
    def use_scope(self, name: str) -> Generator[Container]:
        """Make an open scope the active one for the current task.

        Raises:
            ScopeNotActiveError: If no scope with this name is open
        """
        self._check_not_disposed("use_scope")
        if not self.is_scope_active(name):
            raise ScopeNotActiveError(name)
        token = select_scope(name)
        try:
            yield self
        finally:
            reset_selected_scope(token)

    def is_scope_active(self, name: str) -> bool:
        with self._lock:
            return self._store.is_active(name)

    @property
    def active_scopes(self) -> list[str]:
        """Names of the open scopes, oldest first."""
        with self._lock:
            return self._store.active_scopes

    @property
    def current_scope(self) -> str | None:
        """The scope scoped keys resolve into for the current task."""
        with self._lock:
            return self._store.current_scope_name()

    # Introspection

    def get_dependency_graph(self) -> DependencyGraph:
        """Snapshot of registered and resolved keys and observed edges."""
        with self._lock:
            return self._graph.snapshot()

    def get_metrics(self) -> PerformanceMetrics:
        """Snapshot of resolution performance."""
        with self._lock:
            return self._metrics.snapshot(self._store.instance_counts())

    def detect_cycles(self) -> list[list[TypeKey]]:
        """Cycles in the observed graph, found without resolving anything."""
        with self._lock:
            return self._graph.detect_cycles()

    def validate_dependencies(self) -> None:
        """Check declared dependencies and the observed graph.

        Raises:
            ValidationError: If a declared dependency is not registered or the
                observed graph has a cycle
        """
        self._check_not_disposed("validate_dependencies")
        problems: list[str] = []
        with self._lock:
            registrations = list(self._registry)
            registered = set(self._registry.keys())
            cycles = self._graph.detect_cycles()
        for registration in registrations:
            for dependency in registration.dependencies:
                if dependency not in registered:
                    problems.append(
                        f"{key_name(registration.key)} depends on unregistered "
                        f"{key_name(dependency)}"
                    )
        for cycle in cycles:
            problems.append("cycle " + " -> ".join(key_names(cycle)))
        if problems:
            raise ValidationError(problems)
        self._logger.debug("Validated %d registrations", len(registrations))

    # Lifecycle

    async def preload(self) -> list[TypeKey]:
        """Construct every singleton, and every scoped key when a scope is open.

        Transient and lazy keys are skipped. Failures are logged and skipped
        when ``preload_skip_failures`` is set, otherwise the first one is
        raised.

        Returns:
            The keys that were resolved
        """
        self._check_not_disposed("preload")
        with self._lock:
            scope_open = self._store.current_scope_name() is not None
            candidates = [
                registration.key
                for registration in self._registry
                if registration.policy.preload
                and (registration.scope is not Scope.SCOPED or scope_open)
            ]

        loaded: list[TypeKey] = []
        for key in candidates:
            try:
                await self._engine.resolve(key, parent=None)
            except InjectionError as exc:
                if not self.settings.preload_skip_failures:
                    raise
                self._logger.warning("Preload of %s failed: %s", key_name(key), exc)
                continue
            loaded.append(key)
        self._logger.debug("Preloaded %d of %d services", len(loaded), len(candidates))
        return loaded

    def cleanup(self) -> None:
        """Drop every cached instance, observed edge and metric sample.

        Registrations and open scopes are kept; cached instances are not
        disposed.
        """
        self._check_not_disposed("cleanup")
        with self._lock:
            self._store.clear()
            self._graph.clear_edges()
            self._metrics.reset()
        self._engine.forget_guards()
        self._logger.debug("Cleaned up container caches and metrics")

    async def dispose(self) -> None:
        """Dispose the container and every instance it cached.

        Scopes are closed newest first, then singletons. Instances exposing a
        ``dispose()`` method (sync or async) have it called. The container
        cannot be used afterwards.

        Raises:
            DisposalError: If any instance failed to dispose
        """
        if self._disposed:
            return
        self._disposed = True
        with self._lock:
            instances = self._store.close_all()
            self._registry.clear()
        self._engine.forget_guards()
        self._logger.debug("Disposing container (%d instances)", len(instances))
        await self._disposal_manager.dispose_all(instances, "container")

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @contextlib.asynccontextmanager
    async def use(self) -> AsyncGenerator[Container]:
        """Context manager that disposes the container on exit.

        Example:
            ```python
            async with Container().use() as container:
                container.register(Greeting, Scope.SINGLETON, lambda r: "hi")
                greeting = await container.resolve(Greeting)
            ```
        """
        try:
            yield self
        finally:
            await self.dispose()
