"""Low-cadence technical indicator refresh.

On every Nth cycle the engine pulls a fixed battery per instrument: SMA(50),
SMA(200), RSI(14), MACD(12) and a single Bollinger call that yields the upper,
middle and lower bands together.  Each sub-request is independent: a failed
one keeps the previous reading for its field and a missing value only blanks
its own field.  An instrument is dropped from the update (and keeps its
previous readings) only when every sub-request failed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence

from .fanout import gather_best_effort
from .provider import ProviderError
from .types import IndicatorSet


@dataclass(frozen=True)
class IndicatorSpec:
    field: str
    kind: str
    period: int


SCALAR_INDICATORS = (
    IndicatorSpec("sma50", "sma", 50),
    IndicatorSpec("sma200", "sma", 200),
    IndicatorSpec("rsi", "rsi", 14),
    IndicatorSpec("macd", "macd", 12),
)
BOLLINGER_PERIOD = 20

_BANDS_KEY = "bbands"
_BAND_FIELDS = ("bb_upper", "bb_middle", "bb_lower")
_SPECS = {spec.field: spec for spec in SCALAR_INDICATORS}


def is_refresh_cycle(cycle: int, every: int) -> bool:
    return cycle > 0 and cycle % every == 0


async def fetch_indicator_set(
    client: Any,
    instrument: str,
    interval: str,
    previous: Optional[IndicatorSet] = None,
) -> IndicatorSet:
    """Fetch the full indicator battery for ``instrument`` concurrently.

    A part whose request failed keeps its value from ``previous`` (the three
    Bollinger bands travel together).  A part the provider answered without
    a value becomes ``None``.
    """

    async def _fetch_part(name: str) -> Any:
        if name == _BANDS_KEY:
            return await client.fetch_bollinger(instrument, interval, BOLLINGER_PERIOD)
        spec = _SPECS[name]
        return await client.fetch_indicator(instrument, spec.kind, interval, spec.period)

    parts = [*_SPECS, _BANDS_KEY]
    results = await gather_best_effort(parts, _fetch_part, label=f"{instrument} indicator")
    if not results:
        raise ProviderError("every indicator request failed", instrument=instrument, kind="indicators")

    base = previous if previous is not None else IndicatorSet()
    values: Dict[str, Optional[float]] = {
        name: results[name] if name in results else getattr(base, name) for name in _SPECS
    }
    if _BANDS_KEY in results:
        bands = results[_BANDS_KEY]
    else:
        bands = tuple(getattr(base, name) for name in _BAND_FIELDS)
    values.update(zip(_BAND_FIELDS, bands))
    return IndicatorSet(**values)


async def fetch_all_indicators(
    client: Any,
    instruments: Iterable[str],
    interval: str,
    previous: Optional[Mapping[str, IndicatorSet]] = None,
) -> Dict[str, IndicatorSet]:
    """Refresh indicators for every instrument; failed instruments are omitted."""

    known = previous or {}

    async def _fetch(symbol: str) -> IndicatorSet:
        return await fetch_indicator_set(client, symbol, interval, known.get(symbol))

    return await gather_best_effort(instruments, _fetch, label="indicator refresh")


def merge_indicators(
    previous: Mapping[str, IndicatorSet],
    update: Mapping[str, IndicatorSet],
    order: Optional[Sequence[str]] = None,
) -> Dict[str, IndicatorSet]:
    """Overlay ``update`` onto ``previous`` without clearing missing instruments.

    When ``order`` is given the result follows it; instruments outside
    ``order`` are kept after the ordered ones.
    """

    merged = dict(previous)
    merged.update(update)
    if order is None:
        return merged
    ordered = {symbol: merged[symbol] for symbol in order if symbol in merged}
    for symbol, value in merged.items():
        ordered.setdefault(symbol, value)
    return ordered
