"""
Prune Webhook Events Script

Deletes processed webhook event ids older than the retention window.
Stripe stops redelivering an event after a few days, so old ids no longer
guard anything.

Usage:
    cd backend
    python scripts/prune_webhook_events.py [--days 30]
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from travelmate.config.settings import settings
from travelmate.infrastructure.db.database import close_db
from travelmate.infrastructure.db.repositories import get_webhook_event_repository

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main():
    parser = argparse.ArgumentParser(description="Prune the processed webhook event log")
    parser.add_argument(
        "--days",
        type=int,
        default=settings.processed_event_retention_days,
        help="Keep events processed within this many days",
    )
    args = parser.parse_args()

    try:
        deleted = await get_webhook_event_repository().prune(args.days)
    finally:
        await close_db()

    logger.info(f"Done: {deleted} events removed")


if __name__ == "__main__":
    asyncio.run(main())
