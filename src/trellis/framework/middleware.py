"""Middleware composition.

A handler carries a single middleware slot.  ``compose`` folds several
middleware functions into one that runs them in order, awaiting each before
the next starts.
"""

from __future__ import annotations

from trellis.framework.context import RequestContext
from trellis.framework.handler import StageFn
from trellis.framework.pipeline import call_stage


def compose(*middleware: StageFn) -> StageFn:
    """
    Combine middleware into one stage function.

    Raises:
        TypeError: Any argument is not callable
    """
    for fn in middleware:
        if not callable(fn):
            raise TypeError(f"Middleware must be callable, got {type(fn).__name__}")
    chain = tuple(middleware)

    async def composite(context: RequestContext) -> None:
        for fn in chain:
            await call_stage(fn, context)

    composite.__name__ = "composite_middleware"
    return composite
