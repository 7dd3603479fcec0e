import io

from rich.console import Console

from trading_hud.dashboard import (
    HudDashboard,
    build_layout,
    format_indicator_line,
    format_news_lines,
    format_quote_line,
    render_text,
)
from trading_hud.types import IndicatorSet, NewsItem, QuoteSeries, Snapshot


def _snapshot() -> Snapshot:
    return Snapshot(
        cycle=3,
        instruments=("AAPL", "TSLA", "GOOG"),
        quotes={
            "AAPL": QuoteSeries.from_closes(110.0, 100.0),
            "TSLA": QuoteSeries.from_closes(95.0, 100.0),
        },
        news={"AAPL": (NewsItem("Apple rallies"), NewsItem("No title"))},
        indicators={"AAPL": IndicatorSet(sma50=101.5, rsi=64.123, bb_upper=120.0, bb_middle=110.0, bb_lower=100.0)},
        flagged=("AAPL",),
    )


def test_quote_line_framing():
    up = format_quote_line("AAPL", QuoteSeries.from_closes(110.0, 100.0))
    down = format_quote_line("TSLA", QuoteSeries.from_closes(95.0, 100.0))
    flat = format_quote_line("GOOG", QuoteSeries.from_closes(99.5, 100.0))

    assert up.plain == "AAPL: 110.00 increased 10.00%"
    assert down.plain == "TSLA: 95.00 dropped -5.00%"
    assert flat.plain == "GOOG: 99.50 increased -0.50%"
    assert down.spans[-1].style == "red"
    assert up.spans[-1].style == "green"


def test_quote_line_single_point_and_empty_series():
    assert format_quote_line("FB", QuoteSeries.from_closes(42.0)).plain == "FB: 42.00"
    assert format_quote_line("FB", QuoteSeries()) is None


def test_indicator_line_marks_missing_values():
    line = format_indicator_line("AAPL", IndicatorSet(sma50=101.5, rsi=64.123))

    assert line.plain == (
        "AAPL | SMA50: 101.50 | SMA200: n/a | RSI: 64.12 | MACD: n/a | BB: [n/a, n/a, n/a]"
    )
    assert line.style == "magenta"


def test_news_lines_follow_batch_order():
    lines = format_news_lines({"AAPL": (NewsItem("One"), NewsItem("Two")), "GOOG": (NewsItem("Three"),)})

    assert [line.plain for line in lines] == ["AAPL: One", "AAPL: Two", "GOOG: Three"]
    assert all(line.style == "blue" for line in lines)


def test_render_text_sections():
    text = render_text(_snapshot())

    assert text.splitlines() == [
        "Trading Data HUD (cycle 3)",
        "== Stocks",
        "AAPL: 110.00 increased 10.00%",
        "TSLA: 95.00 dropped -5.00%",
        "== Technical Indicators",
        "AAPL | SMA50: 101.50 | SMA200: n/a | RSI: 64.12 | MACD: n/a | BB: [120.00, 110.00, 100.00]",
        "== News",
        "AAPL: Apple rallies",
        "AAPL: No title",
    ]


def test_build_layout_renders_all_panels():
    layout = build_layout(_snapshot())
    console = Console(file=io.StringIO(), width=120, height=40, color_system=None)

    console.print(layout)
    output = console.file.getvalue()

    assert layout["header"].renderable.subtitle == "cycle 3 | press q to quit"
    for expected in ("Trading Data HUD", "Stocks", "Technical Indicators", "News", "AAPL: 110.00", "Apple rallies"):
        assert expected in output


def test_build_layout_before_first_snapshot():
    layout = build_layout(None)

    assert layout["header"].renderable.subtitle.startswith("waiting for first refresh")
    assert layout["news"].renderable.title == "News"


def test_publish_without_live_view_only_counts():
    dashboard = HudDashboard(console=Console(file=io.StringIO()))

    dashboard.publish(_snapshot())
    dashboard.publish(_snapshot())

    assert dashboard.published == 2
