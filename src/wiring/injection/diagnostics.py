# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Container state capture for error diagnostics.

Factory failures are enriched with a snapshot of what the container knew at
the time: which keys were registered, which scopes were open and how much
was cached.
"""

from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Protocol

from wiring.injection.keys import key_name, key_names

if TYPE_CHECKING:
    import threading

    from wiring.errors.base import WiringError
    from wiring.injection.registration import Registry
    from wiring.injection.scopes import ScopeStore


class _StateSource(Protocol):
    registry: Registry
    store: ScopeStore
    lock: threading.RLock


class ContainerStateCapture:
    """Service for capturing container state for diagnostics."""

    @classmethod
    def capture_state(cls, error: WiringError, source: _StateSource | None) -> WiringError:
        """Add container state to the error context.

        Args:
            error: The error to enrich
            source: The resolution engine (or anything exposing its registry,
                scope store and lock)

        Returns:
            The enriched error
        """
        if source is None:
            return error

        with source.lock:
            registered = key_names(source.registry.keys())
            active = source.store.active_scopes
            counts = source.store.instance_counts()

        error.add_context("container_registrations", registered)
        error.add_context("active_scopes", active)
        error.add_context("cached_instances", counts)
        error.add_context("container_id", id(source))
        return error

    @classmethod
    def capture_service_creation_state(
        cls,
        error: WiringError,
        factory: Any,
        source: _StateSource | None = None,
    ) -> WiringError:
        """Capture factory-specific state on top of the container state.

        Args:
            error: The error to enrich
            factory: The factory that failed
            source: The resolution engine to capture state from

        Returns:
            The enriched error
        """
        cls.capture_state(error, source)
        error.add_context("factory_name", key_name(factory))
        try:
            error.add_context("factory_signature", str(inspect.signature(factory)))
        except (TypeError, ValueError):
            # builtins and some C callables have no signature
            error.add_context("factory_signature", None)
        return error
