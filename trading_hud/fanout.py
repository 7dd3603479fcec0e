"""Best-effort parallel map used by every fetch wave.

A wave launches one task per key, waits for all of them to settle and keeps
only the successful results.  Failures are logged with the key and cause and
never propagate, so one bad instrument cannot abort the wave.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Dict, Hashable, Iterable, TypeVar

from .log_utils import setup_logger

logger = setup_logger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


async def gather_best_effort(
    keys: Iterable[K],
    fetch: Callable[[K], Awaitable[V]],
    *,
    label: str = "fetch",
) -> Dict[K, V]:
    """Run ``fetch`` for every key concurrently and return the successes.

    The result preserves the order of ``keys``.  A key whose task raised is
    left out of the result and reported at WARNING level.
    """

    ordered = list(dict.fromkeys(keys))
    if not ordered:
        return {}

    tasks = [asyncio.create_task(fetch(key)) for key in ordered]
    try:
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
    finally:
        for task in tasks:
            if not task.done():
                task.cancel()

    results: Dict[K, V] = {}
    for key, outcome in zip(ordered, outcomes):
        if isinstance(outcome, BaseException):
            logger.warning("%s failed for %s: %r", label, key, outcome)
            continue
        results[key] = outcome
    return results
