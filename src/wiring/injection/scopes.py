# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Scope-aware instance caches.

The store keeps one permanent cache for singleton and lazy instances and one
cache per open named scope for scoped instances. It does no locking itself;
the resolution engine serializes every call.
"""

from __future__ import annotations

import contextvars
from typing import Any, Final

from wiring.injection.errors import ScopeAlreadyActiveError, ScopeNotActiveError
from wiring.injection.keys import TypeKey

PERMANENT_CACHE_NAME: Final = "__permanent__"

# Scope explicitly selected by the current task, if any
_SELECTED_SCOPE: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "_WIRING_SELECTED_SCOPE", default=None
)

_MISSING: Final = object()


class ScopeCache:
    """Mapping from type key to a constructed instance for one boundary.

    Hashes by identity, so a scope that is ended and reopened under the same
    name gets a distinct cache.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self.closed = False
        self._instances: dict[TypeKey, Any] = {}

    def get(self, key: TypeKey, default: Any = _MISSING) -> Any:
        return self._instances.get(key, default)

    def put(self, key: TypeKey, instance: Any) -> bool:
        """Store an instance unless the cache was closed or already holds one.

        Returns:
            True if the instance was committed
        """
        if self.closed or key in self._instances:
            return False
        self._instances[key] = instance
        return True

    def close(self) -> list[Any]:
        """Close the cache and hand back what it held."""
        self.closed = True
        instances = list(self._instances.values())
        self._instances.clear()
        return instances

    def clear(self) -> list[Any]:
        instances = list(self._instances.values())
        self._instances.clear()
        return instances

    def __contains__(self, key: object) -> bool:
        return key in self._instances

    def __len__(self) -> int:
        return len(self._instances)

    def __repr__(self) -> str:
        state = "closed" if self.closed else "open"
        return f"<ScopeCache {self.name!r} {state} size={len(self)}>"


class ScopeStore:
    """Per-scope instance caches and scope boundary lifecycle."""

    def __init__(self) -> None:
        self.permanent = ScopeCache(PERMANENT_CACHE_NAME)
        # Insertion order doubles as opening order
        self._scopes: dict[str, ScopeCache] = {}

    def begin_scope(self, name: str) -> ScopeCache:
        """Open a named scope boundary with an empty cache.

        Raises:
            ScopeAlreadyActiveError: If a scope with this name is open
        """
        if name in self._scopes:
            raise ScopeAlreadyActiveError(name)
        cache = ScopeCache(name)
        self._scopes[name] = cache
        return cache

    def end_scope(self, name: str) -> list[Any]:
        """Discard a scope's cache.

        Returns:
            The instances the scope held, for disposal

        Raises:
            ScopeNotActiveError: If no scope with this name is open
        """
        cache = self._scopes.pop(name, None)
        if cache is None:
            raise ScopeNotActiveError(name)
        return cache.close()

    def get_scope(self, name: str) -> ScopeCache:
        cache = self._scopes.get(name)
        if cache is None:
            raise ScopeNotActiveError(name)
        return cache

    def is_active(self, name: str) -> bool:
        return name in self._scopes

    @property
    def active_scopes(self) -> list[str]:
        return list(self._scopes)

    def current_scope_name(self) -> str | None:
        """The scope scoped keys resolve into for the calling task.

        A scope selected with ``select_scope`` wins while it is open; otherwise
        the most recently opened scope is used.
        """
        selected = _SELECTED_SCOPE.get()
        if selected is not None and selected in self._scopes:
            return selected
        if not self._scopes:
            return None
        return next(reversed(self._scopes))

    def get(self, cache: ScopeCache, key: TypeKey) -> tuple[bool, Any]:
        instance = cache.get(key)
        if instance is _MISSING:
            return False, None
        return True, instance

    def put(self, cache: ScopeCache, key: TypeKey, instance: Any) -> bool:
        return cache.put(key, instance)

    def instance_counts(self) -> dict[str, int]:
        counts = {PERMANENT_CACHE_NAME: len(self.permanent)}
        for name, cache in self._scopes.items():
            counts[name] = len(cache)
        return counts

    def clear(self) -> list[Any]:
        """Empty every cache, keeping open scopes open.

        Returns:
            Every instance that was cached
        """
        instances = self.permanent.clear()
        for cache in self._scopes.values():
            instances.extend(cache.clear())
        return instances

    def close_all(self) -> list[Any]:
        """Close every open scope, newest first, then the permanent cache.

        Within each cache instances come back newest first.
        """
        instances: list[Any] = []
        for name in reversed(list(self._scopes)):
            instances.extend(reversed(self._scopes.pop(name).close()))
        instances.extend(reversed(self.permanent.close()))
        return instances


def select_scope(name: str | None) -> contextvars.Token[str | None]:
    """Make ``name`` the active scope for the current task."""
    return _SELECTED_SCOPE.set(name)


def reset_selected_scope(token: contextvars.Token[str | None]) -> None:
    _SELECTED_SCOPE.reset(token)
