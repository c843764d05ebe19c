"""
Bridge between the async request/dispatch code and the blocking Google and
HTTP clients.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, TypeVar

from core.config import settings

T = TypeVar("T")


async def run_blocking(
    func: Callable[..., T],
    *args: Any,
    timeout: float | None = None,
    **kwargs: Any,
) -> T:
    """
    Run ``func`` in a worker thread and give up after ``timeout`` seconds
    (``EXTERNAL_CALL_TIMEOUT_SECONDS`` by default). Raises ``TimeoutError``.

    The thread itself is not interrupted; only the awaiting caller moves on.
    """
    limit = settings.EXTERNAL_CALL_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        return await asyncio.wait_for(asyncio.to_thread(func, *args, **kwargs), limit)
    except asyncio.TimeoutError as exc:
        name = getattr(func, "__qualname__", repr(func))
        raise TimeoutError(f"{name} timed out after {limit:g}s") from exc
