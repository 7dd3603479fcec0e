"""Momentum policies derived from the two most recent quote points.

Two independent policies read the same percent change: the secondary-fetch
trigger (news is pulled above ``+7%``) and the presentation framing (a move
below ``-1%`` is shown as a drop).  They keep separate thresholds.
"""
from __future__ import annotations

from typing import Mapping, Optional, Tuple

from .config import DEFAULT_DROP_THRESHOLD, DEFAULT_NEWS_THRESHOLD
from .types import QuoteSeries


def percent_change(series: QuoteSeries) -> Optional[float]:
    """Return the percent move from the previous close to the latest one.

    ``None`` when fewer than two points exist or the previous close is not
    positive; that is treated as "no signal" rather than an error.
    """

    latest, previous = series.latest, series.previous
    if latest is None or previous is None:
        return None
    if previous.close <= 0:
        return None
    return (latest.close - previous.close) / previous.close * 100.0


def should_fetch_news(change: Optional[float], threshold: float = DEFAULT_NEWS_THRESHOLD) -> bool:
    return change is not None and change > threshold


def flag_instruments(
    quotes: Mapping[str, QuoteSeries],
    threshold: float = DEFAULT_NEWS_THRESHOLD,
) -> Tuple[str, ...]:
    """Instruments whose move this cycle qualifies for a news fetch."""

    return tuple(
        symbol for symbol, series in quotes.items() if should_fetch_news(percent_change(series), threshold)
    )


def change_label(change: float, drop_threshold: float = DEFAULT_DROP_THRESHOLD) -> str:
    # Presentation framing only; unrelated to the news trigger.
    return "dropped" if change < drop_threshold else "increased"
