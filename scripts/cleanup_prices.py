#!/usr/bin/env python3
"""Retention sweep - deletes price observations older than the retention window.

The scheduler runs this once a day on its own. Use this script to run it
on demand or with a different horizon.

Usage:
    python scripts/cleanup_prices.py              # Use PRICE_RETENTION_DAYS
    python scripts/cleanup_prices.py --days 7     # Keep the last 7 days
    python scripts/cleanup_prices.py --metal gold # Single metal
"""

import argparse
import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path and load environment
sys.path.insert(0, str(Path(__file__).parent.parent))
load_dotenv(Path(__file__).parent.parent / ".env")

from src.adapters.repositories.price_repository import PostgresPriceRepository
from src.domain.models.enums import MetalType
from src.infrastructure.config import get_settings
from src.infrastructure.database import close_pool
from src.infrastructure.logging import configure_logging, get_logger

logger = get_logger("cleanup_prices")


async def main(days: int | None = None, metal: str | None = None) -> None:
    settings = get_settings()
    configure_logging(settings.log_level, "text")

    retention = timedelta(days=days) if days is not None else settings.price_retention
    cutoff = datetime.now(timezone.utc) - retention
    metals = [MetalType(metal)] if metal else list(MetalType)

    repo = PostgresPriceRepository()
    try:
        for m in metals:
            deleted = await repo.delete_older_than(m, cutoff)
            logger.info(f"Deleted {deleted} {m.value} prices older than {cutoff.isoformat()}")
    finally:
        await close_pool()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Delete old price observations")
    parser.add_argument("--days", type=int, help="Retention window in days")
    parser.add_argument("--metal", choices=[m.value for m in MetalType], help="Single metal")
    args = parser.parse_args()

    asyncio.run(main(days=args.days, metal=args.metal))
