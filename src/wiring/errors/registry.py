# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""Process-wide registry interning error categories and codes."""

import threading
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from wiring.errors.base import ErrorCategory, ErrorCode


class ErrorRegistry:
    """Singleton holding every category and code created so far."""

    _instance: "ErrorRegistry | None" = None
    _lock = threading.RLock()

    _categories: dict[str, "ErrorCategory"]
    _codes: dict[str, "ErrorCode"]

    def __new__(cls) -> "ErrorRegistry":
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._categories = {}
                instance._codes = {}
                cls._instance = instance
            return cls._instance

    def get_category(
        self, name: str, parent: "ErrorCategory | None" = None
    ) -> "ErrorCategory":
        """Return the category called ``name``, creating it on first use.

        The parent only applies when the category is created.
        """
        from wiring.errors.base import ErrorCategory

        with self._lock:
            category = self._categories.get(name)
            if category is None:
                category = self._categories[name] = ErrorCategory(name, parent)
            return category

    def get_code(self, code: str, category: "ErrorCategory") -> "ErrorCode":
        """Return the error code ``code``, creating it under ``category``.

        Codes are unique across categories; the first registration wins.
        """
        from wiring.errors.base import ErrorCode

        with self._lock:
            error_code = self._codes.get(code)
            if error_code is None:
                error_code = self._codes[code] = ErrorCode(
                    code, self.get_category(category.name, category.parent)
                )
            return error_code


registry = ErrorRegistry()
