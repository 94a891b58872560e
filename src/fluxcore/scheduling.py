"""Event-loop lookup for work deferred to the next loop turn."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from .exceptions import PreconditionFailedError


def resolve_loop(
    loop: asyncio.AbstractEventLoop | None = None,
) -> asyncio.AbstractEventLoop:
    """Return ``loop`` or the running loop, raising when neither exists."""
    if loop is not None:
        return loop
    try:
        return asyncio.get_running_loop()
    except RuntimeError as exc:
        raise PreconditionFailedError(
            "No running event loop; pass loop= explicitly or call from a coroutine."
        ) from exc


def call_next_turn(
    loop: asyncio.AbstractEventLoop, callback: Callable[..., Any], *args: Any
) -> asyncio.Handle:
    """Queue ``callback`` behind everything already scheduled on ``loop``."""
    return loop.call_soon(callback, *args)
