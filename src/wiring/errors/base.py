# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Structured errors for wiring.

Every error carries an ``ErrorCode``, which belongs to an ``ErrorCategory``.
Categories nest, so an error can be reported with the full path of the
category it was raised under. Codes and categories are interned by the
registry: asking for the same name twice returns the same object.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Final

from wiring.errors.registry import registry


class ErrorSeverity(str, Enum):
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ErrorCategory:
    """A named group of error codes, optionally nested under a parent."""

    def __init__(self, name: str, parent: "ErrorCategory | None" = None) -> None:
        self.name = name
        self.parent = parent

    @property
    def path(self) -> tuple[str, ...]:
        """Category names from the outermost ancestor down to this one."""
        names: list[str] = []
        current: ErrorCategory | None = self
        while current is not None:
            names.append(current.name)
            current = current.parent
        return tuple(reversed(names))

    @classmethod
    def get_or_create(
        cls, name: str, parent: "ErrorCategory | None" = None
    ) -> "ErrorCategory":
        return registry.get_category(name, parent)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ErrorCategory) and other.name == self.name

    def __hash__(self) -> int:
        return hash(self.name)

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"ErrorCategory({'.'.join(self.path)!r})"


INTERNAL: Final = ErrorCategory.get_or_create("INTERNAL")


class ErrorCode:
    """A stable identifier for one kind of failure."""

    def __init__(self, code: str, category: ErrorCategory) -> None:
        self.code = code
        self.category = category

    @classmethod
    def get_or_create(cls, name: str, category: ErrorCategory) -> "ErrorCode":
        return registry.get_code(name, category)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, ErrorCode) and other.code == self.code

    def __hash__(self) -> int:
        return hash(self.code)

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.category.name!r})"


INTERNAL_ERROR: Final = ErrorCode.get_or_create("INTERNAL_ERROR", INTERNAL)


class WiringError(Exception):
    """
    Root of every error raised by wiring.

    Abstract: raise one of its subclasses. Keyword arguments beyond the
    named ones end up in ``context`` next to the ``context`` mapping itself.
    """

    message: str
    code: ErrorCode
    severity: ErrorSeverity
    context: dict[str, Any]
    timestamp: datetime

    def __new__(cls, *args: Any, **kwargs: Any) -> "WiringError":
        if cls is WiringError:
            raise TypeError("WiringError is abstract; raise a subclass instead")
        return super().__new__(cls)

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: dict[str, Any] | None = None,
        **kwargs: Any,
    ) -> None:
        if not isinstance(code, ErrorCode):
            raise TypeError(f"code must be an ErrorCode, got {type(code).__name__}")

        super().__init__(message)
        self.message = message
        self.code = code
        self.category = code.category
        self.severity = severity
        self.context = {**(context or {}), **kwargs}
        self.timestamp = datetime.now(UTC)

    def add_context(self, key: str, value: Any) -> "WiringError":
        self.context[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serializable form of the error, for logs and diagnostics output."""
        return {
            "code": self.code.code,
            "message": self.message,
            "category": self.category.name,
            "category_path": list(self.category.path),
            "severity": self.severity.name,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"
