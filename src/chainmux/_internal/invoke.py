"""Invoke helpers — call sync or async handlers uniformly.

Route functions can be ``def`` or ``async def``. Anything that calls a
user-provided function goes through ``invoke`` so the sync/async check
lives in exactly one place.

Usage::

    from chainmux._internal.invoke import invoke

    response = await invoke(fn, request)
"""

import inspect
from typing import Any


async def invoke(fn: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *fn* and await the result if it's awaitable."""
    result = fn(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
