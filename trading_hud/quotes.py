from __future__ import annotations

from typing import Any, Dict, Iterable

from .fanout import gather_best_effort
from .types import QuoteSeries


async def fetch_all_quotes(client: Any, instruments: Iterable[str]) -> Dict[str, QuoteSeries]:
    """Fetch the latest quote series for every instrument concurrently.

    Instruments whose fetch fails are missing from the result for this
    cycle only; they stay tracked and are retried on the next tick.
    """

    return await gather_best_effort(instruments, client.fetch_quote_series, label="quote fetch")
