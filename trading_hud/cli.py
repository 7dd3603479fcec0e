from __future__ import annotations

import argparse
import asyncio
import signal
from typing import Sequence

from .config import HudConfig, parse_instruments
from .dashboard import HudDashboard, render_text
from .engine import HudEngine
from .keys import KeyPoller
from .log_utils import enable_console_logging, setup_logger
from .provider import open_client

logger = setup_logger(__name__)


def _install_signal_handlers(engine: HudEngine) -> None:
    """Convert SIGINT / SIGTERM into ``engine.stop()``."""

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, engine.stop)
        except (NotImplementedError, RuntimeError):
            # Windows fallback
            signal.signal(sig, lambda *_: loop.call_soon_threadsafe(engine.stop))


def _warn_missing_keys(config: HudConfig) -> None:
    if not config.quote_api_key:
        logger.warning("TWELVEDATA_API_KEY not set; quote and indicator requests will be rejected")
    if not config.news_api_key:
        logger.warning("MARKETAUX_API_KEY not set; news requests will be rejected")


async def run_dashboard(config: HudConfig) -> int:
    async with open_client(config) as client:
        with KeyPoller() as keys, HudDashboard(drop_threshold=config.drop_threshold) as dashboard:
            engine = HudEngine(
                config,
                client,
                publish=dashboard.publish,
                cancel_check=keys.wait_for_quit,
            )
            _install_signal_handlers(engine)
            await engine.run()
    return 0


async def run_once(config: HudConfig) -> int:
    async with open_client(config) as client:
        engine = HudEngine(config, client)
        snapshot = await engine.run_cycle()
    print(render_text(snapshot, config.drop_threshold))
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Live terminal HUD for quotes, indicators and triggered news.")
    parser.add_argument("--symbols", help="Comma-separated instruments, e.g. AAPL,EUR/USD,TRP:TSX")
    parser.add_argument("--tick", type=float, help="Seconds between refresh cycles (default 30)")
    parser.add_argument(
        "--indicator-every",
        type=int,
        help="Refresh technical indicators every N cycles (default 10)",
    )
    parser.add_argument(
        "--news-threshold",
        type=float,
        help="Percent change above which news is fetched (default 7.0)",
    )
    parser.add_argument(
        "--warm-indicators",
        action="store_true",
        default=None,
        help="Also refresh indicators on the first cycle",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run a single cycle, print it as plain text and exit",
    )
    return parser


def main(cli_args: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(cli_args)

    try:
        config = HudConfig.from_env(
            instruments=parse_instruments(args.symbols) or None,
            tick_seconds=args.tick,
            indicator_every=args.indicator_every,
            news_threshold=args.news_threshold,
            warm_indicators=args.warm_indicators,
        )
    except ValueError as exc:
        parser.error(str(exc))

    if args.once:
        enable_console_logging()
    _warn_missing_keys(config)

    try:
        return asyncio.run(run_once(config) if args.once else run_dashboard(config))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
