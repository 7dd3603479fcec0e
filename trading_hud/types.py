from __future__ import annotations

from dataclasses import dataclass, field, fields
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

Instrument = str


@dataclass(frozen=True)
class QuotePoint:
    """One observed close for an instrument."""

    close: float
    timestamp: Optional[str] = None


@dataclass(frozen=True)
class QuoteSeries:
    """Quote points as returned by the provider, newest first."""

    points: Tuple[QuotePoint, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "points", tuple(self.points))

    def __len__(self) -> int:
        return len(self.points)

    @property
    def latest(self) -> Optional[QuotePoint]:
        return self.points[0] if self.points else None

    @property
    def previous(self) -> Optional[QuotePoint]:
        return self.points[1] if len(self.points) > 1 else None

    @classmethod
    def from_closes(cls, *closes: float) -> "QuoteSeries":
        """Build a series from closes listed newest first."""

        return cls(tuple(QuotePoint(float(close)) for close in closes))


@dataclass(frozen=True)
class NewsItem:
    title: str
    url: Optional[str] = None
    published_at: Optional[str] = None


NewsBatch = Tuple[NewsItem, ...]


@dataclass(frozen=True)
class IndicatorSet:
    """Latest technical readings for one instrument.

    Each field is independently optional: ``None`` means the provider had no
    usable value for that sub-indicator on the last refresh.
    """

    sma50: Optional[float] = None
    sma200: Optional[float] = None
    rsi: Optional[float] = None
    macd: Optional[float] = None
    bb_upper: Optional[float] = None
    bb_middle: Optional[float] = None
    bb_lower: Optional[float] = None

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))


def _frozen_mapping(value: Mapping) -> Mapping:
    return MappingProxyType(dict(value))


@dataclass(frozen=True)
class Snapshot:
    """Immutable result of one refresh cycle.

    ``quotes`` lacks an instrument when that cycle's fetch failed; ``news``
    only holds instruments flagged in this cycle whose fetch succeeded;
    ``indicators`` is the most recent indicator map, carried over unchanged
    between refresh cycles.
    """

    cycle: int
    instruments: Tuple[Instrument, ...]
    quotes: Mapping[Instrument, QuoteSeries] = field(default_factory=dict)
    news: Mapping[Instrument, NewsBatch] = field(default_factory=dict)
    indicators: Mapping[Instrument, IndicatorSet] = field(default_factory=dict)
    flagged: Tuple[Instrument, ...] = ()
    indicators_refreshed: bool = False

    # Mapping fields are not hashable; compare snapshots, do not hash them.
    __hash__ = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        object.__setattr__(self, "instruments", tuple(self.instruments))
        object.__setattr__(self, "flagged", tuple(self.flagged))
        for name in ("quotes", "news", "indicators"):
            object.__setattr__(self, name, _frozen_mapping(getattr(self, name)))

    @property
    def failed_quotes(self) -> Tuple[Instrument, ...]:
        """Tracked instruments whose quote fetch failed this cycle."""

        return tuple(symbol for symbol in self.instruments if symbol not in self.quotes)
