"""Repository layer for onboarding progress.

Provides the protocol interface and a resolve() helper that transparently
handles both sync (in-memory) and async (SQL) repository returns.
"""

from __future__ import annotations

import inspect
from typing import Awaitable, TypeVar

T = TypeVar("T")


async def resolve(value: T | Awaitable[T]) -> T:
    """Await a value if it is awaitable, otherwise return it directly.

    In-memory repositories return plain values; SQL repositories return
    coroutines.
    """
    if inspect.isawaitable(value):
        return await value  # type: ignore[return-value]
    return value  # type: ignore[return-value]
