"""Terminal HUD for live quotes, technical indicators and triggered news.

The package centres on :class:`HudEngine`, a fixed-cadence loop that fans out
provider requests per instrument, tolerates partial failures and publishes an
immutable :class:`Snapshot` every cycle.
"""
from __future__ import annotations

from .config import HudConfig
from .engine import EngineState, HudEngine
from .fanout import gather_best_effort
from .indicators import fetch_all_indicators, fetch_indicator_set, is_refresh_cycle, merge_indicators
from .news import fetch_flagged_news
from .provider import MarketDataClient, ProviderError, open_client
from .quotes import fetch_all_quotes
from .signals import change_label, flag_instruments, percent_change, should_fetch_news
from .types import IndicatorSet, NewsItem, QuotePoint, QuoteSeries, Snapshot

__all__ = [
    "HudConfig",
    "HudEngine",
    "EngineState",
    "gather_best_effort",
    "fetch_all_quotes",
    "fetch_flagged_news",
    "fetch_all_indicators",
    "fetch_indicator_set",
    "is_refresh_cycle",
    "merge_indicators",
    "MarketDataClient",
    "ProviderError",
    "open_client",
    "percent_change",
    "should_fetch_news",
    "flag_instruments",
    "change_label",
    "QuotePoint",
    "QuoteSeries",
    "NewsItem",
    "IndicatorSet",
    "Snapshot",
]
