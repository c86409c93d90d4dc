"""Invoke helpers: call sync or async callables uniformly.

Page loaders and components can be ``def`` or ``async def``. Any code
that calls a user-provided function must handle both cases. This module
keeps the sync/async check in exactly one place.

Usage::

    from trill._internal.invoke import invoke

    result = await invoke(load, context)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it's awaitable.

    Works with both sync and async callables::

        # sync: returns immediately
        def load(context):
            return {"title": "About"}

        # async: returns a coroutine, awaited here
        async def load(context):
            return await fetch_title(context.params["id"])
    """
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
