import asyncio
import logging
import sys
from typing import Any, Dict, Optional

from pydantic import ValidationError

from sbanken_ynab.config import Settings, get_settings
from sbanken_ynab.database import get_db
from sbanken_ynab.logging_config import configure_logging
from sbanken_ynab.app.bank_integration import BudgetSyncService, TransactionDeduplicator
from sbanken_ynab.app.bank_integration.providers import SbankenProvider
from sbanken_ynab.app.ynab_client import YNABClient

logger = logging.getLogger("sbanken_ynab.main")


async def run_sync(settings: Settings) -> Dict[str, Any]:
    """Run one full sync pass with the local store held open for its duration."""
    with get_db(settings.database_path) as db:
        service = BudgetSyncService(
            settings=settings,
            deduplicator=TransactionDeduplicator(db),
            provider=SbankenProvider(settings),
            ynab=YNABClient(settings)
        )
        result = await service.run()

    logger.info("Done...")
    return result


def main(settings: Optional[Settings] = None) -> int:
    try:
        settings = settings or get_settings()
    except ValidationError as e:
        configure_logging()
        logger.error(f"Invalid configuration: {e}")
        return 1

    configure_logging(settings.log_level)

    try:
        asyncio.run(run_sync(settings))
    except Exception as e:
        logger.exception(f"Sync failed: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
