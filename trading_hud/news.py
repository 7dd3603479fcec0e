from __future__ import annotations

from typing import Any, Dict, Iterable

from .fanout import gather_best_effort
from .types import NewsBatch


async def fetch_flagged_news(client: Any, flagged: Iterable[str]) -> Dict[str, NewsBatch]:
    """Fetch headlines for the instruments flagged in the current cycle.

    The returned map is always fresh: nothing is carried over from earlier
    cycles, and a failed fetch simply leaves that instrument out.
    """

    return await gather_best_effort(flagged, client.fetch_news, label="news fetch")
