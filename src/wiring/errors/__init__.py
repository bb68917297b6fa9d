# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Structured error handling for wiring.
"""

from wiring.errors.base import (
    INTERNAL,
    INTERNAL_ERROR,
    ErrorCategory,
    ErrorCode,
    ErrorSeverity,
    WiringError,
)
from wiring.errors.registry import ErrorRegistry, registry

__all__ = [
    "INTERNAL",
    "INTERNAL_ERROR",
    "ErrorCategory",
    "ErrorCode",
    "ErrorRegistry",
    "ErrorSeverity",
    "WiringError",
    "registry",
]
