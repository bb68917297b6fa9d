# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Error classes for the wiring dependency injection system.

Every failure surfaced by ``resolve``, ``resolve_cached_only`` and the scope
controls is one of these. They carry the offending keys as attributes and a
rendered copy of them in ``context`` for logging and serialization.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Final

from wiring.errors.base import ErrorCategory, ErrorCode, ErrorSeverity, WiringError
from wiring.injection.keys import TypeKey, key_name, key_names

INJECTION: Final = ErrorCategory.get_or_create("INJECTION")
INJECTION_ERROR: Final = ErrorCode.get_or_create("INJECTION_ERROR", INJECTION)
INJECTION_NOT_REGISTERED: Final = ErrorCode.get_or_create(
    "INJECTION_NOT_REGISTERED", INJECTION
)
INJECTION_CIRCULAR_DEPENDENCY: Final = ErrorCode.get_or_create(
    "INJECTION_CIRCULAR_DEPENDENCY", INJECTION
)
INJECTION_FACTORY_FAILED: Final = ErrorCode.get_or_create(
    "INJECTION_FACTORY_FAILED", INJECTION
)
INJECTION_CACHE_MISS: Final = ErrorCode.get_or_create(
    "INJECTION_CACHE_MISS", INJECTION
)
INJECTION_VALIDATION: Final = ErrorCode.get_or_create(
    "INJECTION_VALIDATION", INJECTION
)
INJECTION_DISPOSAL: Final = ErrorCode.get_or_create("INJECTION_DISPOSAL", INJECTION)

CONTAINER: Final = ErrorCategory.get_or_create("CONTAINER", parent=INJECTION)
CONTAINER_DISPOSED: Final = ErrorCode.get_or_create("CONTAINER_DISPOSED", CONTAINER)

SCOPE: Final = ErrorCategory.get_or_create("SCOPE", parent=INJECTION)
SCOPE_NOT_ACTIVE: Final = ErrorCode.get_or_create("SCOPE_NOT_ACTIVE", SCOPE)
SCOPE_ALREADY_ACTIVE: Final = ErrorCode.get_or_create("SCOPE_ALREADY_ACTIVE", SCOPE)


class InjectionError(WiringError):
    """Base class for all DI-related errors."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = INJECTION_ERROR,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(
            message,
            code=code,
            severity=severity,
            context=context,
            **kwargs,
        )


class NotRegisteredError(InjectionError):
    """Raised when a key has no registration."""

    def __init__(
        self,
        key: TypeKey,
        message: str | None = None,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        self.key = key
        super().__init__(
            message or f"Service not registered: {key_name(key)}",
            code=INJECTION_NOT_REGISTERED,
            context=context,
            service_key=key_name(key),
            **kwargs,
        )


class CircularDependencyError(InjectionError):
    """Raised when a key reappears in its own call chain.

    ``cycle_path`` is the resolution stack at detection time followed by the
    repeated key, e.g. ``[A, B, A]``.
    """

    def __init__(
        self,
        cycle_path: Sequence[TypeKey],
        message: str | None = None,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        if not cycle_path:
            raise ValueError("cycle_path is required for CircularDependencyError")

        self.cycle_path = list(cycle_path)

        # The cycle proper starts at the first occurrence of the repeated key
        repeated = self.cycle_path[-1]
        start = self.cycle_path.index(repeated)
        self.cycle = self.cycle_path[start:]

        if message is None:
            message = "Circular dependency detected: " + " -> ".join(
                key_names(self.cycle)
            )

        super().__init__(
            message,
            code=INJECTION_CIRCULAR_DEPENDENCY,
            context=context,
            dependency_chain=key_names(self.cycle_path),
            circular_dependency=key_names(self.cycle),
            **kwargs,
        )


class FactoryFailedError(InjectionError):
    """Raised when a registered factory raises.

    The original exception is available as ``cause`` and ``__cause__``.
    """

    def __init__(
        self,
        key: TypeKey,
        cause: BaseException,
        message: str | None = None,
        dependency_chain: Sequence[TypeKey] | None = None,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        self.key = key
        self.cause = cause
        self.__cause__ = cause

        ctx = kwargs.copy()
        ctx["service_key"] = key_name(key)
        ctx["error_type"] = type(cause).__name__
        ctx["original_error"] = str(cause)
        if dependency_chain is not None:
            ctx["dependency_chain"] = key_names(dependency_chain)

        super().__init__(
            message or f"Failed to create service: {key_name(key)}: {cause}",
            code=INJECTION_FACTORY_FAILED,
            context=context,
            **ctx,
        )


class CacheMissError(InjectionError):
    """Raised by the cached-only path when no instance has been materialized."""

    def __init__(
        self,
        key: TypeKey,
        message: str | None = None,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        self.key = key
        super().__init__(
            message or f"No cached instance available for: {key_name(key)}",
            code=INJECTION_CACHE_MISS,
            severity=ErrorSeverity.WARNING,
            context=context,
            service_key=key_name(key),
            **kwargs,
        )


class ScopeError(InjectionError):
    """Base class for scope lifecycle errors."""

    def __init__(
        self,
        message: str,
        name: str | None = None,
        code: ErrorCode = SCOPE_NOT_ACTIVE,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        self.name = name
        super().__init__(
            message,
            code=code,
            context=context,
            scope_name=name,
            **kwargs,
        )


class ScopeNotActiveError(ScopeError):
    """Raised when a scope is ended or selected without being open, or a scoped
    key is resolved while no scope is open (``name`` is None then)."""

    def __init__(self, name: str | None, message: str | None = None, **kwargs: Any) -> None:
        if message is None:
            message = (
                f"Scope '{name}' is not active"
                if name is not None
                else "No scope is active"
            )
        super().__init__(message, name=name, code=SCOPE_NOT_ACTIVE, **kwargs)

    @classmethod
    def outside_scope(cls, key: TypeKey) -> ScopeNotActiveError:
        """Error for a scoped key resolved while no scope is open."""
        return cls(
            None,
            message=f"Scoped service {key_name(key)} was resolved outside any scope",
            service_key=key_name(key),
        )


class ScopeAlreadyActiveError(ScopeError):
    """Raised when a scope name is opened twice."""

    def __init__(self, name: str, message: str | None = None, **kwargs: Any) -> None:
        super().__init__(
            message or f"Scope '{name}' is already active",
            name=name,
            code=SCOPE_ALREADY_ACTIVE,
            **kwargs,
        )


class ContainerDisposedError(InjectionError):
    """Raised when a disposed container is used."""

    def __init__(self, operation: str, message: str | None = None, **kwargs: Any) -> None:
        self.operation = operation
        super().__init__(
            message or f"Container has been disposed and cannot perform: {operation}",
            code=CONTAINER_DISPOSED,
            operation=operation,
            **kwargs,
        )


class ValidationError(InjectionError):
    """Raised by ``validate_dependencies`` with every problem found."""

    def __init__(self, problems: Sequence[str], **kwargs: Any) -> None:
        self.problems = list(problems)
        super().__init__(
            "Dependency validation failed: " + "; ".join(self.problems),
            code=INJECTION_VALIDATION,
            problems=self.problems,
            **kwargs,
        )


class DisposalError(InjectionError):
    """Raised when disposing cached instances fails."""

    def __init__(self, message: str, **kwargs: Any) -> None:
        super().__init__(message, code=INJECTION_DISPOSAL, **kwargs)
