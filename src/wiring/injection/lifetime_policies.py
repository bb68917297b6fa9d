# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Lifetime policies: which cache, if any, a registration's instances live in.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from wiring.injection.config import Scope
from wiring.injection.errors import ScopeNotActiveError

if TYPE_CHECKING:
    from wiring.injection.keys import TypeKey
    from wiring.injection.scopes import ScopeCache, ScopeStore


class LifetimePolicy:
    preload = True

    def cache_for(self, store: ScopeStore, key: TypeKey) -> ScopeCache | None:
        raise NotImplementedError


class SingletonPolicy(LifetimePolicy):
    def cache_for(self, store: ScopeStore, key: TypeKey) -> ScopeCache | None:
        return store.permanent


class LazyPolicy(SingletonPolicy):
    # Deferred singleton: same cache, never built ahead of first use
    preload = False


class ScopedPolicy(LifetimePolicy):
    def cache_for(self, store: ScopeStore, key: TypeKey) -> ScopeCache | None:
        name = store.current_scope_name()
        if name is None:
            raise ScopeNotActiveError.outside_scope(key)
        return store.get_scope(name)


class TransientPolicy(LifetimePolicy):
    preload = False

    def cache_for(self, store: ScopeStore, key: TypeKey) -> ScopeCache | None:
        return None


LIFETIME_POLICY_MAP: dict[Scope, LifetimePolicy] = {
    Scope.SINGLETON: SingletonPolicy(),
    Scope.SCOPED: ScopedPolicy(),
    Scope.TRANSIENT: TransientPolicy(),
    Scope.LAZY: LazyPolicy(),
}
