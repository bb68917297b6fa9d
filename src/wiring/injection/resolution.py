# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Service resolution for the wiring DI system.

The engine resolves keys against the registry and scope store, detecting
cycles with a resolution stack that belongs to one call chain. Shared state
is only touched inside short critical sections under the owner's lock; the
lock is never held across an ``await``. Construction of cached instances is
serialized per cache slot with an ``asyncio.Lock``.
"""

from __future__ import annotations

import asyncio
import contextvars
import inspect
import threading
import time
from typing import TYPE_CHECKING, Any, Final

from wiring.injection.diagnostics import ContainerStateCapture
from wiring.injection.errors import (
    CacheMissError,
    CircularDependencyError,
    FactoryFailedError,
    NotRegisteredError,
    ScopeNotActiveError,
)

if TYPE_CHECKING:
    from wiring.injection.config import ContainerSettings
    from wiring.injection.graph import GraphTracker
    from wiring.injection.keys import TypeKey
    from wiring.injection.registration import Registration, Registry
    from wiring.injection.scopes import ScopeCache, ScopeStore
    from wiring.metrics.collector import MetricsCollector

# Innermost frame of the call chain running in the current task
_RESOLUTION_FRAME: contextvars.ContextVar[ResolutionStack | None] = (
    contextvars.ContextVar("_WIRING_RESOLUTION_FRAME", default=None)
)

_FROM_CONTEXT: Final = object()


class ResolutionStack:
    """One frame of a call chain's resolution stack.

    Frames are linked to their caller, so sibling sub-resolutions running
    concurrently never see each other's entries. A frame is marked inactive
    once its factory returns; tasks that outlive it start a fresh chain.
    """

    __slots__ = ("key", "parent", "keys", "active")

    def __init__(self, key: TypeKey, parent: ResolutionStack | None = None) -> None:
        self.key = key
        self.parent = parent
        self.active = True
        self.keys: tuple[TypeKey, ...] = (parent.keys if parent else ()) + (key,)

    @property
    def caller(self) -> TypeKey | None:
        return self.parent.key if self.parent is not None else None

    def descends_from(self, frame: ResolutionStack) -> bool:
        """True if ``frame`` is this frame or one of its ancestors."""
        current: ResolutionStack | None = self
        while current is not None:
            if current is frame:
                return True
            current = current.parent
        return False

    def __contains__(self, key: object) -> bool:
        return key in self.keys

    def __len__(self) -> int:
        return len(self.keys)

    def __repr__(self) -> str:
        return f"<ResolutionStack {list(self.keys)!r}>"


def current_frame() -> ResolutionStack | None:
    return _RESOLUTION_FRAME.get()


class Resolver:
    """Narrow resolve-only handle passed to factories."""

    __slots__ = ("_engine", "_frame")

    def __init__(self, engine: ResolutionEngine, frame: ResolutionStack) -> None:
        self._engine = engine
        self._frame = frame

    async def resolve(self, key: TypeKey) -> Any:
        """Resolve a dependency of the instance being constructed."""
        return await self._engine.resolve(key, parent=self._frame)

    def __repr__(self) -> str:
        return f"<Resolver for {self._frame.key!r}>"


class _WaitCycle(Exception):
    """A slot wait that would close a cycle across call chains."""

    def __init__(self, path: list[TypeKey]) -> None:
        super().__init__(path)
        self.path = path


class _SlotGuard:
    """Construction lock for one (cache, key) slot and the frame holding it."""

    __slots__ = ("lock", "owner", "waiters")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.owner: ResolutionStack | None = None
        # Chains between guard lookup and owning the lock
        self.waiters = 0

    @property
    def idle(self) -> bool:
        return self.owner is None and not self.waiters and not self.lock.locked()


class ResolutionEngine:
    """Cycle-safe, scope-aware resolution."""

    def __init__(
        self,
        registry: Registry,
        store: ScopeStore,
        graph: GraphTracker,
        metrics: MetricsCollector,
        settings: ContainerSettings,
        lock: threading.RLock | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.graph = graph
        self.metrics = metrics
        self.settings = settings
        self.lock = lock or threading.RLock()
        self._guards: dict[tuple[ScopeCache, TypeKey], _SlotGuard] = {}
        self._waiting: dict[ResolutionStack, _SlotGuard] = {}

    async def resolve(self, key: TypeKey, parent: Any = _FROM_CONTEXT) -> Any:
        """Resolve an instance for ``key``.

        Args:
            key: The type key to resolve
            parent: Frame of the calling resolution; taken from the current
                task's context when omitted

        Raises:
            NotRegisteredError: If the key has no registration
            CircularDependencyError: If the key is already being resolved in
                this call chain
            ScopeNotActiveError: If a scoped key is resolved with no open scope
            FactoryFailedError: If the factory raised
        """
        if parent is _FROM_CONTEXT:
            parent = _RESOLUTION_FRAME.get()
        if parent is not None and not parent.active:
            parent = None

        registration = self._lookup(key)
        started = time.perf_counter()

        if parent is not None and key in parent:
            self._record_attempt(started, cache_hit=False, circular=True)
            raise CircularDependencyError([*parent.keys, key])

        frame = ResolutionStack(key, parent)
        try:
            instance, cache_hit = await self._materialize(registration, frame)
        except _WaitCycle as cycle:
            self._record_attempt(started, cache_hit=False, circular=True)
            raise CircularDependencyError(cycle.path) from None
        except BaseException:
            self._record_attempt(started, cache_hit=False, failed=True)
            raise

        self._record_edge(parent, key)
        self._record_attempt(started, cache_hit=cache_hit)
        return instance

    def resolve_cached_only(self, key: TypeKey) -> Any:
        """Return an already materialized instance without suspending.

        A miss is not counted as a resolution in the metrics.

        Raises:
            NotRegisteredError: If the key has no registration
            CacheMissError: If no instance is cached for the key in the
                active scope (always the case for transient keys)
        """
        registration = self._lookup(key)
        started = time.perf_counter()
        with self.lock:
            try:
                cache = registration.policy.cache_for(self.store, key)
            except ScopeNotActiveError:
                cache = None
            found, instance = (
                self.store.get(cache, key) if cache is not None else (False, None)
            )
        if not found:
            raise CacheMissError(key)

        parent = _RESOLUTION_FRAME.get()
        if parent is not None and not parent.active:
            parent = None
        self._record_edge(parent, key)
        self._record_attempt(started, cache_hit=True)
        return instance

    def _lookup(self, key: TypeKey) -> Registration:
        with self.lock:
            registration = self.registry.lookup(key)
        if registration is None:
            raise NotRegisteredError(key)
        return registration

    async def _materialize(
        self, registration: Registration, frame: ResolutionStack
    ) -> tuple[Any, bool]:
        key = registration.key
        with self.lock:
            cache = registration.policy.cache_for(self.store, key)
            if cache is None:
                guard = None
            else:
                found, instance = self.store.get(cache, key)
                if found:
                    return instance, True
                guard = self._guards.setdefault((cache, key), _SlotGuard())
                guard.waiters += 1

        if guard is None:
            return await self._construct(registration, frame), False

        await self._acquire(guard, frame)
        try:
            with self.lock:
                found, instance = self.store.get(cache, key)
            if found:
                return instance, True

            instance = await self._construct(registration, frame)

            with self.lock:
                if not self.store.put(cache, key, instance):
                    # Another chain committed first; first commit wins
                    found, committed = self.store.get(cache, key)
                    if found:
                        return committed, False
            return instance, False
        finally:
            guard.owner = None
            guard.lock.release()
            if cache.closed and guard.idle:
                with self.lock:
                    self._guards.pop((cache, key), None)

    async def _acquire(self, guard: _SlotGuard, frame: ResolutionStack) -> None:
        """Take a slot's construction lock, failing instead of deadlocking.

        A chain blocked on a slot whose owner is itself (transitively) blocked
        on a slot held further up this chain can never proceed: that is a
        circular dependency spread over two call chains.
        """
        try:
            with self.lock:
                if guard.lock.locked():
                    cycle = self._find_wait_cycle(frame, guard)
                    if cycle is not None:
                        raise _WaitCycle(cycle)
                self._waiting[frame] = guard
            try:
                await guard.lock.acquire()
            finally:
                with self.lock:
                    self._waiting.pop(frame, None)
            guard.owner = frame
        finally:
            with self.lock:
                guard.waiters -= 1

    def _find_wait_cycle(
        self, frame: ResolutionStack, guard: _SlotGuard
    ) -> list[TypeKey] | None:
        pending: list[tuple[ResolutionStack | None, list[TypeKey]]] = [
            (guard.owner, [])
        ]
        visited: set[int] = set()
        while pending:
            owner, trail = pending.pop()
            if owner is None or id(owner) in visited:
                continue
            visited.add(id(owner))
            for waiter, wanted in self._waiting.items():
                if not waiter.descends_from(owner):
                    continue
                segment = trail + list(waiter.keys[len(owner.keys):])
                holder = wanted.owner
                if holder is not None and frame.descends_from(holder):
                    return [*frame.keys, *segment]
                pending.append((holder, segment))
        return None

    async def _construct(
        self, registration: Registration, frame: ResolutionStack
    ) -> Any:
        token = _RESOLUTION_FRAME.set(frame)
        try:
            instance = registration.factory(Resolver(self, frame))
            if inspect.isawaitable(instance):
                instance = await instance
        except (CircularDependencyError, FactoryFailedError):
            raise
        except Exception as exc:
            error = FactoryFailedError(
                registration.key, exc, dependency_chain=frame.keys
            )
            raise ContainerStateCapture.capture_service_creation_state(
                error, registration.factory, self
            ) from exc
        finally:
            frame.active = False
            _RESOLUTION_FRAME.reset(token)
        return instance

    def _record_edge(self, parent: ResolutionStack | None, key: TypeKey) -> None:
        with self.lock:
            self.graph.record_node(key)
            if parent is not None and self.settings.enable_dependency_tracking:
                self.graph.record_edge(parent.key, key)

    def _record_attempt(
        self,
        started: float | None,
        cache_hit: bool,
        circular: bool = False,
        failed: bool = False,
    ) -> None:
        if not self.settings.enable_performance_metrics:
            return
        duration = time.perf_counter() - started if started is not None else None
        with self.lock:
            self.metrics.record_attempt(
                duration, was_cache_hit=cache_hit, was_circular=circular, failed=failed
            )

    def forget_guards(self, closed_only: bool = False) -> None:
        """Drop construction locks nobody holds or waits for.

        Args:
            closed_only: Only drop locks of caches that have been closed
        """
        with self.lock:
            for slot, guard in list(self._guards.items()):
                if closed_only and not slot[0].closed:
                    continue
                if guard.idle:
                    del self._guards[slot]
