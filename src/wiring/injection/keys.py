# SPDX-FileCopyrightText: 2024-present Richard Dahl <richard@dahl.us>
# SPDX-License-Identifier: MIT
# SPDX-Package-Name: wiring
"""
Type keys.

A type key is any hashable value the caller picks to name a contract: an
interface class used as a token, an ``Enum`` member, or a string. Identity is
plain equality on the key; names are only rendered for messages.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable
from enum import Enum
from typing import TypeAlias

TypeKey: TypeAlias = Hashable


def key_name(key: TypeKey) -> str:
    """Render a type key for messages and diagnostics."""
    if isinstance(key, Enum):
        return str(key.value) if isinstance(key.value, str) else key.name
    if isinstance(key, str):
        return key
    name = getattr(key, "__name__", None)
    if isinstance(name, str):
        return name
    return repr(key)


def key_names(keys: Iterable[TypeKey]) -> list[str]:
    return [key_name(key) for key in keys]
