"""Central configuration for the trading HUD.

Every tunable the refresh engine depends on (tracked instruments, provider
endpoints and keys, cadences and thresholds) is collected into a single
immutable :class:`HudConfig` value that is handed to the engine at
construction time.  Defaults: a 30 second tick, an indicator refresh on
every 10th cycle and a +7% secondary-fetch trigger.
"""
from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any, Tuple

from dotenv import load_dotenv

# Load environment variables once when this module is imported.
load_dotenv()

import os


DEFAULT_INSTRUMENTS: Tuple[str, ...] = (
    "AAPL",
    "EUR/USD",
    "ETH/BTC:Huobi",
    "TRP:TSX",
    "RHM.DE",
    "GOOG",
    "MSFT",
    "AMZN",
    "FB",
    "TSLA",
)

DEFAULT_QUOTE_URL = "https://api.twelvedata.com/time_series"
DEFAULT_INDICATOR_URL = "https://api.twelvedata.com/technical_indicator"
DEFAULT_NEWS_URL = "https://api.marketaux.com/v1/news/all"

DEFAULT_TICK_SECONDS = 30.0
DEFAULT_INDICATOR_EVERY = 10
DEFAULT_NEWS_THRESHOLD = 7.0
"""Percent change above which news is fetched for an instrument."""

DEFAULT_DROP_THRESHOLD = -1.0
"""Percent change below which the dashboard frames a move as a drop."""


# ---------------------------------------------------------------------------
# Environment helpers
# ---------------------------------------------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return float(default)
    try:
        return float(raw)
    except (TypeError, ValueError):
        return float(default)


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return int(default)
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return int(default)


def _env_str(name: str, default: str) -> str:
    raw = os.getenv(name)
    normalized = raw.strip() if raw else ""
    return normalized or default


def parse_instruments(raw: str | None) -> Tuple[str, ...]:
    """Split a comma separated symbol list, dropping blanks and duplicates.

    Symbols are kept verbatim apart from surrounding whitespace; provider
    identifiers such as ``ETH/BTC:Huobi`` are case sensitive.
    """

    if not raw:
        return ()
    seen: list[str] = []
    for chunk in raw.split(","):
        symbol = chunk.strip()
        if symbol and symbol not in seen:
            seen.append(symbol)
    return tuple(seen)


@dataclass(frozen=True)
class HudConfig:
    """Immutable runtime configuration for :class:`~trading_hud.engine.HudEngine`."""

    instruments: Tuple[str, ...] = DEFAULT_INSTRUMENTS
    quote_api_key: str = field(default="", repr=False)
    news_api_key: str = field(default="", repr=False)
    quote_url: str = DEFAULT_QUOTE_URL
    indicator_url: str = DEFAULT_INDICATOR_URL
    news_url: str = DEFAULT_NEWS_URL
    quote_interval: str = "1h"
    indicator_interval: str = "1day"
    tick_seconds: float = DEFAULT_TICK_SECONDS
    indicator_every: int = DEFAULT_INDICATOR_EVERY
    news_threshold: float = DEFAULT_NEWS_THRESHOLD
    drop_threshold: float = DEFAULT_DROP_THRESHOLD
    poll_timeout: float = 0.1
    request_timeout: float = 10.0
    warm_indicators: bool = False

    def __post_init__(self) -> None:
        instruments = tuple(self.instruments)
        object.__setattr__(self, "instruments", instruments)
        if not instruments:
            raise ValueError("At least one instrument must be tracked.")
        if len(set(instruments)) != len(instruments):
            raise ValueError("Tracked instruments must be unique.")
        if self.tick_seconds <= 0:
            raise ValueError("tick_seconds must be positive.")
        if self.indicator_every < 1:
            raise ValueError("indicator_every must be at least 1.")
        if self.poll_timeout < 0:
            raise ValueError("poll_timeout must not be negative.")
        if self.request_timeout <= 0:
            raise ValueError("request_timeout must be positive.")

    @classmethod
    def from_env(cls, **overrides: Any) -> "HudConfig":
        """Build a configuration from environment variables.

        Keyword ``overrides`` take precedence over the environment; ``None``
        values are ignored so CLI flags can be passed through unconditionally.
        """

        values: dict[str, Any] = {
            "instruments": parse_instruments(os.getenv("HUD_SYMBOLS")) or DEFAULT_INSTRUMENTS,
            "quote_api_key": os.getenv("TWELVEDATA_API_KEY", "").strip(),
            "news_api_key": os.getenv("MARKETAUX_API_KEY", "").strip(),
            "quote_url": _env_str("HUD_QUOTE_URL", DEFAULT_QUOTE_URL),
            "indicator_url": _env_str("HUD_INDICATOR_URL", DEFAULT_INDICATOR_URL),
            "news_url": _env_str("HUD_NEWS_URL", DEFAULT_NEWS_URL),
            "quote_interval": _env_str("HUD_QUOTE_INTERVAL", "1h"),
            "indicator_interval": _env_str("HUD_INDICATOR_INTERVAL", "1day"),
            "tick_seconds": _env_float("HUD_TICK_SECONDS", DEFAULT_TICK_SECONDS),
            "indicator_every": _env_int("HUD_INDICATOR_EVERY", DEFAULT_INDICATOR_EVERY),
            "news_threshold": _env_float("HUD_NEWS_THRESHOLD", DEFAULT_NEWS_THRESHOLD),
            "drop_threshold": _env_float("HUD_DROP_THRESHOLD", DEFAULT_DROP_THRESHOLD),
            "poll_timeout": _env_float("HUD_POLL_TIMEOUT", 0.1),
            "request_timeout": _env_float("HUD_REQUEST_TIMEOUT", 10.0),
            "warm_indicators": _env_bool("HUD_WARM_INDICATORS", False),
        }
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)

    def replace(self, **overrides: Any) -> "HudConfig":
        """Return a copy with ``overrides`` applied, ignoring ``None`` values."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **changes)
