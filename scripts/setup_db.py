#!/usr/bin/env python3
"""Database setup script - applies SQL migrations to PostgreSQL.

Usage:
    python scripts/setup_db.py
"""

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

# Add project root to path and load environment
sys.path.insert(0, str(Path(__file__).parent.parent))
load_dotenv(Path(__file__).parent.parent / ".env")

from src.infrastructure.config import get_settings
from src.infrastructure.database import MIGRATIONS_DIR, apply_migrations, close_pool
from src.infrastructure.logging import configure_logging, get_logger

logger = get_logger("setup_db")


async def main() -> None:
    """Run database setup."""
    settings = get_settings()
    configure_logging(settings.log_level, "text")

    if not any(MIGRATIONS_DIR.glob("*.sql")):
        logger.warning(f"No migration files found in {MIGRATIONS_DIR}")
        return

    try:
        applied = await apply_migrations()
        if applied:
            logger.info(f"Applied {len(applied)} migration(s): {', '.join(applied)}")
        else:
            logger.info("Database is up to date")
    finally:
        await close_pool()


if __name__ == "__main__":
    asyncio.run(main())
