"""
Downgrade Account Script

Administrative reset of one account to the FREE tier, for support cases
where Stripe and the local snapshot disagree. Does not touch Stripe; cancel
the subscription there first. Once FREE, the account only leaves FREE through
a new completed checkout; subscription updates for it are rejected.

Usage:
    cd backend
    python scripts/downgrade_account.py <account-id-or-email>
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from travelmate.infrastructure.db.database import close_db
from travelmate.infrastructure.db.repositories import get_account_repository
from travelmate.infrastructure.exceptions import NotFoundError

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def downgrade(identifier: str) -> bool:
    repo = get_account_repository()

    account = await repo.get_by_email(identifier) if "@" in identifier else await repo.find(identifier)
    if account is None:
        logger.error(f"No account found for {identifier}")
        return False

    logger.info(
        f"Account {account.id} is {account.tier.value} "
        f"(status={account.status.value if account.status else None})"
    )

    try:
        account = await repo.downgrade_to_free(account.id)
    except NotFoundError:
        logger.error(f"Account {identifier} was deleted before it could be downgraded")
        return False

    logger.info(f"Account {account.id} is now {account.tier.value}")
    return True


async def main():
    parser = argparse.ArgumentParser(description="Reset an account to the FREE tier")
    parser.add_argument("account", help="Account ID or email")
    args = parser.parse_args()

    try:
        ok = await downgrade(args.account)
    finally:
        await close_db()

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    asyncio.run(main())
