"""
Breakout Scanner - Main application entry point.

Scans a ticker universe for Larry Williams volatility breakouts and tracks
the most promising waiting candidates in real time during market hours.

Usage:
    python src/main.py scan [TICKER ...]
    python src/main.py watch [TICKER ...]
    python src/main.py track [TICKER ...]
"""

import asyncio
import sys

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from breakout_scanner.app import BreakoutApp
from breakout_scanner.config.logging import bind_scan_context, clear_scan_context, get_logger
from breakout_scanner.services.scan.models import ScanResult
from breakout_scanner.services.watchlist.models import TrackerState
from breakout_scanner.utils.config import initialize_application

MODES = ("scan", "watch", "track")


def print_scan_result(result: ScanResult) -> None:
    summary = result.summary()
    print(
        f"Scanned {summary['total_scanned']} tickers in {summary['duration_ms']:.0f} ms: "
        f"{summary['breakouts']} breakouts, {summary['waiting']} waiting, "
        f"{summary['errors']} errors"
    )
    for label, analyses in (("BREAKOUT", result.breakouts), ("WAITING", result.waiting)):
        for analysis in analyses:
            print(
                f"  {label:<9}{analysis.ticker:<7} price {analysis.current_price:>9.2f}  "
                f"entry {analysis.entry_price:>9.2f}  score {analysis.score:>3}  "
                f"{analysis.recommended_action}"
            )


async def run_scan(app: BreakoutApp, tickers) -> None:
    result = await app.scan(tickers)
    print_scan_result(result)


async def run_watch(app: BreakoutApp, tickers) -> None:
    watchlist = await app.scan_and_build_watchlist(tickers)
    print(f"Watchlist: {len(watchlist)} candidates")
    for candidate in watchlist:
        print(
            f"  {candidate.ticker:<7} entry {candidate.entry_price:>9.2f}  "
            f"stop {candidate.stop_loss:>9.2f}  score {candidate.score:>3}"
        )


async def run_track(app: BreakoutApp, tickers) -> None:
    logger = get_logger(__name__)

    if tickers or not app.tracker.load_watchlist():
        await app.scan_and_build_watchlist(tickers)

    if not await app.tracker.start():
        print("Tracking not started (market closed or empty watchlist).")
        return

    print("Tracking started. Press Ctrl+C to stop.")
    while app.tracker.state is TrackerState.TRACKING:
        await asyncio.sleep(1)

    status = app.tracker.status()
    logger.info(
        "Tracking finished",
        breakouts=status.breakout_count,
        waiting=status.waiting_count,
    )
    for breakout in app.tracker.breakouts():
        print(
            f"  {breakout.ticker:<7} broke out at {breakout.breakout_price:.2f} "
            f"({breakout.gain_percent:+.2f}%), strategy {breakout.strategy.value}"
        )


async def run(mode: str, tickers) -> None:
    settings = initialize_application()
    bind_scan_context(mode=mode)
    app = BreakoutApp(settings)
    try:
        if mode == "scan":
            await run_scan(app, tickers)
        elif mode == "watch":
            await run_watch(app, tickers)
        else:
            await run_track(app, tickers)
    finally:
        await app.shutdown()
        clear_scan_context()


def main() -> None:
    """Main application entry point."""
    args = sys.argv[1:]
    mode = args[0] if args else "scan"
    if mode not in MODES:
        print(f"Unknown mode '{mode}'. Choose one of: {', '.join(MODES)}")
        sys.exit(1)

    tickers = args[1:] or None

    try:
        asyncio.run(run(mode, tickers))
    except KeyboardInterrupt:
        print("\nShutting down...")


if __name__ == "__main__":
    main()
