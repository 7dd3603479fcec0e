"""HTTP adapter for the market data and news providers.

Quotes and technical indicators come from Twelve Data, headlines from
Marketaux.  Every call is a single GET round trip returning decoded,
typed values.  Transport problems, non-200 responses, undecodable bodies and
provider error envelopes raise :class:`ProviderError`; a well-formed response
that simply lacks the requested indicator value yields ``None`` instead.
"""

from __future__ import annotations

import asyncio
import math
from contextlib import asynccontextmanager
from typing import Any, Dict, Mapping, Optional, Tuple

import aiohttp

from .config import HudConfig
from .log_utils import setup_logger
from .types import NewsBatch, NewsItem, QuotePoint, QuoteSeries

logger = setup_logger(__name__)

BollingerBands = Tuple[Optional[float], Optional[float], Optional[float]]

_BAND_FIELDS = ("real_upper_band", "real_middle_band", "real_lower_band")
_STRICT_QUOTE_ROWS = 2


class ProviderError(RuntimeError):
    """Raised when a provider request cannot complete or cannot be decoded."""

    def __init__(self, message: str, *, instrument: str | None = None, kind: str | None = None) -> None:
        super().__init__(message)
        self.instrument = instrument
        self.kind = kind


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _check_envelope(payload: Any, *, instrument: str | None, kind: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ProviderError(
            f"unexpected {type(payload).__name__} payload", instrument=instrument, kind=kind
        )
    if str(payload.get("status", "")).lower() == "error":
        message = payload.get("message") or "provider reported an error"
        raise ProviderError(str(message), instrument=instrument, kind=kind)
    error = payload.get("error")
    if error:
        if isinstance(error, Mapping):
            error = error.get("message") or error.get("code") or "provider reported an error"
        raise ProviderError(str(error), instrument=instrument, kind=kind)
    return payload


def _latest_value_row(payload: Mapping[str, Any]) -> Optional[Mapping[str, Any]]:
    values = payload.get("values")
    if not isinstance(values, list) or not values:
        return None
    latest = values[0]
    return latest if isinstance(latest, Mapping) else None


def parse_quote_series(payload: Any, instrument: str | None = None) -> QuoteSeries:
    """Decode a ``time_series`` response into a :class:`QuoteSeries`.

    The two newest rows feed the percent change and must be well formed;
    malformed rows after them are skipped.
    """

    body = _check_envelope(payload, instrument=instrument, kind="quote")
    values = body.get("values")
    if not isinstance(values, list):
        raise ProviderError("response has no values array", instrument=instrument, kind="quote")
    points = []
    for index, row in enumerate(values):
        close = _to_float(row.get("close")) if isinstance(row, Mapping) else None
        if close is None:
            if index < _STRICT_QUOTE_ROWS:
                raise ProviderError(f"malformed quote row: {row!r}", instrument=instrument, kind="quote")
            logger.debug("skipping malformed quote row %d for %s: %r", index, instrument, row)
            continue
        timestamp = row.get("datetime")
        points.append(QuotePoint(close=close, timestamp=str(timestamp) if timestamp is not None else None))
    return QuoteSeries(tuple(points))


def parse_news(payload: Any, instrument: str | None = None) -> NewsBatch:
    """Decode a Marketaux ``news/all`` response into a news batch."""

    body = _check_envelope(payload, instrument=instrument, kind="news")
    articles = body.get("data")
    if not isinstance(articles, list):
        raise ProviderError("response has no data array", instrument=instrument, kind="news")
    items = []
    for article in articles:
        if not isinstance(article, Mapping):
            continue
        title = article.get("title")
        if not isinstance(title, str) or not title.strip():
            title = "No title"
        items.append(
            NewsItem(
                title=title.strip(),
                url=article.get("url") or None,
                published_at=article.get("published_at") or None,
            )
        )
    return tuple(items)


def parse_indicator_value(payload: Any, key: str, instrument: str | None = None) -> Optional[float]:
    """Return the newest ``key`` reading from an indicator response, if any."""

    body = _check_envelope(payload, instrument=instrument, kind=key)
    latest = _latest_value_row(body)
    if latest is None:
        return None
    return _to_float(latest.get(key))


def parse_bollinger(payload: Any, instrument: str | None = None) -> BollingerBands:
    """Return the newest (upper, middle, lower) bands from a ``bbands`` response."""

    body = _check_envelope(payload, instrument=instrument, kind="bbands")
    latest = _latest_value_row(body)
    if latest is None:
        return (None, None, None)
    upper, middle, lower = (_to_float(latest.get(name)) for name in _BAND_FIELDS)
    return (upper, middle, lower)


@asynccontextmanager
async def _client_session(session: Optional[aiohttp.ClientSession], timeout: float):
    own_session = session is None
    if own_session:
        session = aiohttp.ClientSession(
            timeout=aiohttp.ClientTimeout(total=timeout, connect=min(timeout, 5.0))
        )
    assert session is not None
    try:
        yield session
    finally:
        if own_session:
            await session.close()


class MarketDataClient:
    """Provider round trips for one (instrument, data-kind) pair at a time."""

    def __init__(self, config: HudConfig, session: aiohttp.ClientSession) -> None:
        self.config = config
        self._session = session

    async def _get_json(self, url: str, params: Dict[str, Any], *, instrument: str, kind: str) -> Any:
        try:
            async with self._session.get(url, params=params) as response:
                if response.status != 200:
                    raise ProviderError(f"HTTP {response.status}", instrument=instrument, kind=kind)
                payload = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise ProviderError(
                f"{type(exc).__name__}: {exc}", instrument=instrument, kind=kind
            ) from exc
        except ValueError as exc:
            raise ProviderError(f"invalid JSON: {exc}", instrument=instrument, kind=kind) from exc
        logger.debug("provider ok kind=%s symbol=%s", kind, instrument)
        return payload

    async def fetch_quote_series(self, instrument: str) -> QuoteSeries:
        params = {
            "symbol": instrument,
            "interval": self.config.quote_interval,
            "apikey": self.config.quote_api_key,
        }
        payload = await self._get_json(self.config.quote_url, params, instrument=instrument, kind="quote")
        return parse_quote_series(payload, instrument)

    async def fetch_news(self, instrument: str) -> NewsBatch:
        params = {"symbols": instrument, "api_token": self.config.news_api_key}
        payload = await self._get_json(self.config.news_url, params, instrument=instrument, kind="news")
        return parse_news(payload, instrument)

    async def fetch_indicator(self, instrument: str, kind: str, interval: str, period: int) -> Optional[float]:
        params = {
            "symbol": instrument,
            "interval": interval,
            "indicator": kind,
            "time_period": int(period),
            "apikey": self.config.quote_api_key,
        }
        payload = await self._get_json(self.config.indicator_url, params, instrument=instrument, kind=kind)
        return parse_indicator_value(payload, kind, instrument)

    async def fetch_bollinger(self, instrument: str, interval: str, period: int) -> BollingerBands:
        params = {
            "symbol": instrument,
            "interval": interval,
            "indicator": "bbands",
            "time_period": int(period),
            "apikey": self.config.quote_api_key,
        }
        payload = await self._get_json(self.config.indicator_url, params, instrument=instrument, kind="bbands")
        return parse_bollinger(payload, instrument)


@asynccontextmanager
async def open_client(config: HudConfig, *, session: Optional[aiohttp.ClientSession] = None):
    """Yield a :class:`MarketDataClient`, owning the HTTP session unless one is given."""

    async with _client_session(session, config.request_timeout) as session_obj:
        yield MarketDataClient(config, session_obj)
