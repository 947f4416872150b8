#!/usr/bin/env python3
"""Price scheduler - keeps gold and silver prices fresh and fires alerts.

Runs one tick per interval inside trading hours. Each tick updates both
metals in parallel, evaluates price alerts and, once a day, sweeps old
price observations.

Usage:
    python scripts/run_scheduler.py                 # Run until interrupted
    python scripts/run_scheduler.py --once          # Single tick (for cron)
    python scripts/run_scheduler.py --once --force  # Single tick, ignore trading hours
    python scripts/run_scheduler.py --interval 30   # Tick every 30 seconds
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path and load environment
sys.path.insert(0, str(Path(__file__).parent.parent))
load_dotenv(Path(__file__).parent.parent / ".env")

from src.application.workflows.price_scheduler import PriceScheduler, TickResult
from src.infrastructure.config import get_settings
from src.infrastructure.container import build_container
from src.infrastructure.database import close_pool
from src.infrastructure.logging import configure_logging, get_logger

logger = get_logger("run_scheduler")


def log_tick(result: TickResult) -> None:
    """Summarize a tick."""
    if result.skipped:
        return
    prices = ", ".join(
        f"{metal.value} buy={obs.buy_price} sell={obs.sell_price} ({obs.source})"
        for metal, obs in result.updated.items()
    )
    logger.info(
        f"Tick {result.tick_number}: {prices or 'no updates'}; "
        f"alerts={result.alerts_triggered} errors={len(result.errors)}"
    )


async def main(once: bool = False, force: bool = False, interval: float | None = None) -> int:
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)
    container = build_container(settings)

    scheduler: PriceScheduler = container.scheduler
    if interval is not None or (force and not once):
        scheduler = PriceScheduler(
            container.price_engines.values(),
            alert_evaluator=container.alert_evaluator,
            market_hours=None if force else scheduler.market_hours,
            tick_interval_seconds=interval or scheduler.interval,
        )

    try:
        if once:
            result = await scheduler.run_tick(force=force)
            log_tick(result)
            return 1 if result.errors and not result.updated else 0

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, scheduler.stop)

        logger.info(
            f"Price scheduler started (tick every {scheduler.interval}s)"
        )
        run = await scheduler.start(on_tick_complete=log_tick)
        logger.info(f"Price scheduler stopped after {run.ticks_completed} ticks")
        return 0 if not run.errors else 1
    finally:
        await container.aclose()
        await close_pool()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Metal Vault price scheduler")
    parser.add_argument("--once", action="store_true", help="Run a single tick and exit")
    parser.add_argument(
        "--force",
        action="store_true",
        help="Ignore trading hours",
    )
    parser.add_argument("--interval", type=float, help="Tick interval in seconds")
    args = parser.parse_args()

    sys.exit(asyncio.run(main(once=args.once, force=args.force, interval=args.interval)))
