"""Fixed-cadence refresh engine behind the trading HUD.

Each tick runs strictly sequential waves: quotes for every tracked
instrument, trigger evaluation, news for the instruments that moved more than
the configured threshold, and, on every Nth cycle, the indicator battery.
The result is published as an immutable :class:`~trading_hud.types.Snapshot`.
After publishing, the engine polls the caller-supplied cancellation check
once with a bounded wait and then sleeps until the next tick boundary.

Cancellation only prevents the next cycle from starting; an in-flight wave
always runs to completion.  Fetch failures narrow the snapshot but never stop
the loop.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from enum import Enum
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from .config import HudConfig
from .indicators import fetch_all_indicators, is_refresh_cycle, merge_indicators
from .log_utils import setup_logger
from .news import fetch_flagged_news
from .quotes import fetch_all_quotes
from .signals import flag_instruments
from .types import IndicatorSet, Snapshot

logger = setup_logger(__name__)

PublishCallback = Callable[[Snapshot], Any]
CancelCheck = Callable[[float], Any]
Sleeper = Callable[[float], Awaitable[None]]


class EngineState(str, Enum):
    WAITING = "waiting"
    FETCHING_QUOTES = "fetching_quotes"
    EVALUATING_TRIGGERS = "evaluating_triggers"
    FETCHING_NEWS = "fetching_news"
    REFRESHING_INDICATORS = "refreshing_indicators"
    ASSEMBLING = "assembling"
    PUBLISHED = "published"
    CANCELLING = "cancelling"
    TERMINATED = "terminated"


class HudEngine:
    """Drive the refresh waves on a fixed tick and publish one snapshot per cycle."""

    def __init__(
        self,
        config: HudConfig,
        client: Any,
        *,
        publish: PublishCallback | None = None,
        cancel_check: CancelCheck | None = None,
        clock: Callable[[], float] | None = None,
        sleep: Sleeper | None = None,
    ) -> None:
        self.config = config
        self._client = client
        self._publish = publish
        self._cancel_check = cancel_check
        self._clock = clock or time.monotonic
        self._sleep = sleep

        self._cycle = 0
        self._state = EngineState.WAITING
        self._indicators: Dict[str, IndicatorSet] = {}
        self._last_snapshot: Optional[Snapshot] = None
        self._stop_requested = False
        self._stop_event = asyncio.Event()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def cycle(self) -> int:
        return self._cycle

    @property
    def indicators(self) -> Mapping[str, IndicatorSet]:
        return MappingProxyType(self._indicators)

    @property
    def last_snapshot(self) -> Optional[Snapshot]:
        return self._last_snapshot

    def stop(self) -> None:
        """Ask the loop to terminate before its next cycle."""

        self._stop_requested = True
        self._stop_event.set()

    async def run_cycle(self) -> Snapshot:
        """Run one full refresh pass and publish its snapshot."""

        started = self._clock()
        self._cycle += 1
        cycle = self._cycle
        instruments = self.config.instruments

        self._set_state(EngineState.FETCHING_QUOTES)
        quotes = await fetch_all_quotes(self._client, instruments)

        self._set_state(EngineState.EVALUATING_TRIGGERS)
        flagged = flag_instruments(quotes, self.config.news_threshold)

        self._set_state(EngineState.FETCHING_NEWS)
        news = await fetch_flagged_news(self._client, flagged) if flagged else {}

        refreshed = False
        if self._indicators_due(cycle):
            self._set_state(EngineState.REFRESHING_INDICATORS)
            update = await fetch_all_indicators(
                self._client, instruments, self.config.indicator_interval, self._indicators
            )
            self._indicators = merge_indicators(self._indicators, update, instruments)
            refreshed = True

        self._set_state(EngineState.ASSEMBLING)
        snapshot = Snapshot(
            cycle=cycle,
            instruments=instruments,
            quotes=quotes,
            news=news,
            indicators=self._indicators,
            flagged=flagged,
            indicators_refreshed=refreshed,
        )
        await self._emit(snapshot)
        self._last_snapshot = snapshot
        self._set_state(EngineState.PUBLISHED)

        logger.info(
            "hud_cycle cycle=%d quotes=%d/%d flagged=%d news=%d indicators=%s duration=%.2fs",
            cycle,
            len(quotes),
            len(instruments),
            len(flagged),
            len(news),
            "refreshed" if refreshed else "carried",
            self._clock() - started,
        )
        return snapshot

    async def run(self) -> Optional[Snapshot]:
        """Run cycles until cancelled and return the last published snapshot."""

        interval = float(self.config.tick_seconds)
        deadline = self._clock()
        logger.info(
            "HUD engine started: %d instruments, tick=%.1fs, indicators every %d cycles",
            len(self.config.instruments),
            interval,
            self.config.indicator_every,
        )
        try:
            while not self._stop_requested:
                await self.run_cycle()
                if await self._cancel_requested():
                    break
                deadline += interval
                now = self._clock()
                delay = deadline - now
                if delay < 0:
                    logger.warning("Cycle %d overran its tick by %.2fs", self._cycle, -delay)
                    deadline = now
                    delay = 0.0
                self._set_state(EngineState.WAITING)
                await self._wait_for_tick(delay)
            self._set_state(EngineState.CANCELLING)
            logger.info("HUD engine stopping after cycle %d", self._cycle)
        except Exception as exc:
            logger.error("HUD engine loop failed: %s", exc, exc_info=True)
            raise
        finally:
            self._set_state(EngineState.TERMINATED)
        return self._last_snapshot

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _set_state(self, state: EngineState) -> None:
        if state is not self._state:
            logger.debug("engine state %s -> %s", self._state.value, state.value)
        self._state = state

    def _indicators_due(self, cycle: int) -> bool:
        if self.config.warm_indicators and cycle == 1:
            return True
        return is_refresh_cycle(cycle, self.config.indicator_every)

    async def _emit(self, snapshot: Snapshot) -> None:
        if self._publish is None:
            return
        result = self._publish(snapshot)
        if inspect.isawaitable(result):
            await result

    async def _cancel_requested(self) -> bool:
        if self._stop_requested:
            return True
        if self._cancel_check is None:
            return False
        result = self._cancel_check(self.config.poll_timeout)
        if inspect.isawaitable(result):
            result = await result
        if result:
            logger.info("Cancellation requested after cycle %d", self._cycle)
            self._stop_requested = True
        return bool(result)

    async def _wait_for_tick(self, delay: float) -> None:
        if self._sleep is not None:
            await self._sleep(delay)
            return
        if delay <= 0:
            return
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            pass
