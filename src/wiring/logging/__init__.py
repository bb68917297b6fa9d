# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Public API for the wiring logging system.

Structured formatting and environment-driven configuration on top of the
standard library ``logging`` module.
"""

from __future__ import annotations

from wiring.logging.config import LoggingSettings
from wiring.logging.level import LogLevel
from wiring.logging.logger import (
    ROOT_LOGGER_NAME,
    StructuredFormatter,
    configure_logging,
    get_logger,
    log_context,
)

__all__ = [
    "LogLevel",
    "LoggingSettings",
    "ROOT_LOGGER_NAME",
    "StructuredFormatter",
    "configure_logging",
    "get_logger",
    "log_context",
]
