import asyncio

import pytest

from trading_hud.indicators import (
    BOLLINGER_PERIOD,
    SCALAR_INDICATORS,
    fetch_all_indicators,
    fetch_indicator_set,
    is_refresh_cycle,
    merge_indicators,
)
from trading_hud.provider import ProviderError
from trading_hud.types import IndicatorSet


class _IndicatorClient:
    def __init__(self, failing=(), broken_symbols=()):
        self.failing = set(failing)
        self.broken_symbols = set(broken_symbols)
        self.calls = []

    async def fetch_indicator(self, symbol, kind, interval, period):
        self.calls.append((symbol, kind, interval, period))
        if symbol in self.broken_symbols or (kind, period) in self.failing:
            raise ProviderError("no data", instrument=symbol, kind=kind)
        if kind == "macd":
            return None
        return float(period)

    async def fetch_bollinger(self, symbol, interval, period):
        self.calls.append((symbol, "bbands", interval, period))
        if symbol in self.broken_symbols or ("bbands", period) in self.failing:
            raise ProviderError("no data", instrument=symbol, kind="bbands")
        return (3.0, 2.0, 1.0)


def test_battery_matches_fixed_parameters():
    assert [(spec.field, spec.kind, spec.period) for spec in SCALAR_INDICATORS] == [
        ("sma50", "sma", 50),
        ("sma200", "sma", 200),
        ("rsi", "rsi", 14),
        ("macd", "macd", 12),
    ]
    assert BOLLINGER_PERIOD == 20


def test_fetch_indicator_set_issues_five_requests():
    client = _IndicatorClient()

    result = asyncio.run(fetch_indicator_set(client, "AAPL", "1day"))

    assert result == IndicatorSet(
        sma50=50.0, sma200=200.0, rsi=14.0, macd=None, bb_upper=3.0, bb_middle=2.0, bb_lower=1.0
    )
    assert sorted(client.calls) == sorted(
        [
            ("AAPL", "sma", "1day", 50),
            ("AAPL", "sma", "1day", 200),
            ("AAPL", "rsi", "1day", 14),
            ("AAPL", "macd", "1day", 12),
            ("AAPL", "bbands", "1day", 20),
        ]
    )


def test_partial_failure_only_blanks_its_fields():
    client = _IndicatorClient(failing={("sma", 200), ("bbands", 20)})

    result = asyncio.run(fetch_indicator_set(client, "MSFT", "1day"))

    assert result.sma50 == 50.0
    assert result.sma200 is None
    assert result.rsi == 14.0
    assert (result.bb_upper, result.bb_middle, result.bb_lower) == (None, None, None)
    assert not result.is_empty


def test_failed_parts_fall_back_to_previous_readings():
    client = _IndicatorClient(failing={("sma", 200), ("bbands", 20)})
    previous = IndicatorSet(sma200=190.0, macd=7.0, bb_upper=9.0, bb_middle=8.0, bb_lower=7.0)

    result = asyncio.run(fetch_indicator_set(client, "MSFT", "1day", previous))

    assert result.sma200 == 190.0
    assert (result.bb_upper, result.bb_middle, result.bb_lower) == (9.0, 8.0, 7.0)
    # Answered without a value: cleared rather than carried over.
    assert result.macd is None
    assert result.sma50 == 50.0


def test_fetch_all_indicators_passes_previous_per_instrument():
    client = _IndicatorClient(failing={("rsi", 14)})
    previous = {"AAPL": IndicatorSet(rsi=61.0)}

    result = asyncio.run(fetch_all_indicators(client, ["AAPL", "GOOG"], "1day", previous))

    assert result["AAPL"].rsi == 61.0
    assert result["GOOG"].rsi is None


def test_all_sub_requests_failing_raises():
    client = _IndicatorClient(broken_symbols={"TSLA"})

    with pytest.raises(ProviderError) as excinfo:
        asyncio.run(fetch_indicator_set(client, "TSLA", "1day"))

    assert excinfo.value.instrument == "TSLA"
    assert excinfo.value.kind == "indicators"


def test_fetch_all_indicators_omits_failed_instruments():
    client = _IndicatorClient(broken_symbols={"TSLA"})

    result = asyncio.run(fetch_all_indicators(client, ["AAPL", "TSLA", "GOOG"], "1day"))

    assert list(result) == ["AAPL", "GOOG"]


def test_merge_keeps_previous_for_missing_instruments():
    old = IndicatorSet(sma50=1.0)
    new = IndicatorSet(sma50=2.0)
    previous = {"AAPL": old, "TSLA": old}

    merged = merge_indicators(previous, {"AAPL": new, "GOOG": new}, order=["GOOG", "TSLA", "AAPL"])

    assert list(merged.items()) == [("GOOG", new), ("TSLA", old), ("AAPL", new)]
    assert previous == {"AAPL": old, "TSLA": old}


def test_merge_without_order_appends_new_instruments():
    old = IndicatorSet(rsi=40.0)
    merged = merge_indicators({"AAPL": old}, {"MSFT": old})

    assert list(merged) == ["AAPL", "MSFT"]


@pytest.mark.parametrize(
    "cycle, every, expected",
    [
        (1, 10, False),
        (9, 10, False),
        (10, 10, True),
        (20, 10, True),
        (0, 10, False),
        (3, 1, True),
    ],
)
def test_is_refresh_cycle(cycle, every, expected):
    assert is_refresh_cycle(cycle, every) is expected
