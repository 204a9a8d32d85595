"""Bounded waiting on record store calls."""

import asyncio
from collections.abc import Awaitable
from typing import TypeVar

from scanback.domain.exceptions import StoreTimeoutError

T = TypeVar("T")


async def with_store_timeout(
    awaitable: Awaitable[T], *, code: str, operation: str, timeout: float
) -> T:
    """Await a store call, converting a missed deadline into StoreTimeoutError."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise StoreTimeoutError(code, operation, timeout) from exc
