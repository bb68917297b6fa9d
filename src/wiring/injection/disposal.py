# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring

"""
Disposal of cached instances for the wiring DI system.
"""

from __future__ import annotations

import inspect
from collections.abc import Iterable
from typing import Any

from wiring.injection.errors import DisposalError
from wiring.injection.keys import key_name
from wiring.logging import get_logger


class _DisposalManager:
    """Calls ``dispose()`` on instances that leave a cache."""

    def __init__(self) -> None:
        self._logger = get_logger(__name__)

    async def dispose_service(self, service: Any) -> None:
        """Dispose a service if it supports disposal."""
        dispose = getattr(service, "dispose", None)
        if not callable(dispose):
            return
        result = dispose()
        if inspect.isawaitable(result):
            await result

    async def dispose_all(self, services: Iterable[Any], label: str) -> None:
        """Dispose every service in order, then report all failures.

        Raises:
            DisposalError: If any service failed to dispose
        """
        failures: list[str] = []
        first: Exception | None = None
        for service in services:
            try:
                await self.dispose_service(service)
            except Exception as exc:
                self._logger.warning(
                    "Error disposing %s in %s: %s",
                    key_name(type(service)),
                    label,
                    exc,
                )
                failures.append(f"{key_name(type(service))}: {exc}")
                first = first or exc
        if failures:
            raise DisposalError(
                f"Failed to dispose {len(failures)} instance(s) in {label}",
                failures=failures,
            ) from first
