"""Terminal rendering of refresh snapshots with ``rich``.

The screen is split into four bordered panels: a header, the latest quotes
with their move since the previous close, the technical indicator readings
and the headlines fetched for instruments that triggered this cycle.
Rendering reads snapshots only; nothing flows back to the engine from here.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Optional

from rich import box
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from .config import DEFAULT_DROP_THRESHOLD
from .signals import change_label, percent_change
from .types import IndicatorSet, NewsBatch, QuoteSeries, Snapshot

TITLE = "Trading Data HUD"


def _fmt(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.2f}"


def format_quote_line(
    symbol: str,
    series: QuoteSeries,
    drop_threshold: float = DEFAULT_DROP_THRESHOLD,
) -> Optional[Text]:
    latest = series.latest
    if latest is None:
        return None
    line = Text(f"{symbol}: {latest.close:.2f}", style="green")
    change = percent_change(series)
    if change is not None:
        label = change_label(change, drop_threshold)
        line.append(f" {label} {change:.2f}%", style="red" if label == "dropped" else "green")
    return line


def format_indicator_line(symbol: str, indicators: IndicatorSet) -> Text:
    bands = ", ".join(_fmt(v) for v in (indicators.bb_upper, indicators.bb_middle, indicators.bb_lower))
    return Text(
        f"{symbol} | SMA50: {_fmt(indicators.sma50)} | SMA200: {_fmt(indicators.sma200)}"
        f" | RSI: {_fmt(indicators.rsi)} | MACD: {_fmt(indicators.macd)} | BB: [{bands}]",
        style="magenta",
    )


def format_news_lines(news: Mapping[str, NewsBatch]) -> List[Text]:
    return [Text(f"{symbol}: {item.title}", style="blue") for symbol, batch in news.items() for item in batch]


def quote_lines(snapshot: Snapshot, drop_threshold: float = DEFAULT_DROP_THRESHOLD) -> List[Text]:
    lines = []
    for symbol, series in snapshot.quotes.items():
        line = format_quote_line(symbol, series, drop_threshold)
        if line is not None:
            lines.append(line)
    return lines


def indicator_lines(snapshot: Snapshot) -> List[Text]:
    return [format_indicator_line(symbol, values) for symbol, values in snapshot.indicators.items()]


def _body(lines: Iterable[Text], empty: str) -> Text:
    lines = list(lines)
    if not lines:
        return Text(empty, style="grey50")
    return Text("\n").join(lines)


def build_layout(snapshot: Optional[Snapshot], drop_threshold: float = DEFAULT_DROP_THRESHOLD) -> Layout:
    root = Layout()
    root.split_column(
        Layout(name="header", ratio=1),
        Layout(name="stocks", ratio=4),
        Layout(name="indicators", ratio=3),
        Layout(name="news", ratio=2),
    )
    subtitle = "waiting for first refresh" if snapshot is None else f"cycle {snapshot.cycle}"
    root["header"].update(
        Panel(
            Text(TITLE, style="bold yellow"),
            title="Header",
            subtitle=f"{subtitle} | press q to quit",
            box=box.SQUARE,
        )
    )
    if snapshot is None:
        for name, title in (("stocks", "Stocks"), ("indicators", "Technical Indicators"), ("news", "News")):
            root[name].update(Panel(Text("…", style="grey50"), title=title, box=box.SQUARE))
        return root

    root["stocks"].update(
        Panel(_body(quote_lines(snapshot, drop_threshold), "No quotes this cycle"), title="Stocks", box=box.SQUARE)
    )
    root["indicators"].update(
        Panel(
            _body(indicator_lines(snapshot), "Indicators pending"),
            title="Technical Indicators",
            box=box.SQUARE,
        )
    )
    root["news"].update(Panel(_body(format_news_lines(snapshot.news), "No triggered news"), title="News", box=box.SQUARE))
    return root


def render_text(snapshot: Snapshot, drop_threshold: float = DEFAULT_DROP_THRESHOLD) -> str:
    """Plain-text rendering used by the one-shot CLI mode."""

    sections = (
        ("Stocks", quote_lines(snapshot, drop_threshold)),
        ("Technical Indicators", indicator_lines(snapshot)),
        ("News", format_news_lines(snapshot.news)),
    )
    out = [f"{TITLE} (cycle {snapshot.cycle})"]
    for title, lines in sections:
        out.append(f"== {title}")
        out.extend(line.plain for line in lines)
    return "\n".join(out)


class HudDashboard:
    """Full-screen live view; :meth:`publish` is the engine's publish callback."""

    def __init__(self, *, drop_threshold: float = DEFAULT_DROP_THRESHOLD, console: Console | None = None) -> None:
        self.drop_threshold = drop_threshold
        self._console = console or Console()
        self._live: Optional[Live] = None
        self.published = 0

    def __enter__(self) -> "HudDashboard":
        self._live = Live(
            build_layout(None, self.drop_threshold),
            console=self._console,
            screen=True,
            auto_refresh=False,
        )
        self._live.start(refresh=True)
        return self

    def __exit__(self, *exc_info: Any) -> None:
        if self._live is not None:
            self._live.stop()
            self._live = None

    def publish(self, snapshot: Snapshot) -> None:
        self.published += 1
        if self._live is None:
            return
        self._live.update(build_layout(snapshot, self.drop_threshold), refresh=True)
