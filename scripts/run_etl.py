"""
Run the property ETL job once, outside the API process
"""

import asyncio
import logging
import sys

from core.config import settings
from core.database import build_engine, build_session_maker
from core.logging import setup_logging
from ingestion.scheduler import PropertyEtlJob

logger = logging.getLogger(__name__)


async def run_etl() -> int:
    """Run one sync pass against the configured MLS feed; returns an exit code"""
    engine = build_engine(settings.DATABASE_URL)
    session_maker = build_session_maker(engine)

    try:
        logger.info(f"Running property ETL job against {settings.MLS_API_URL}")
        result = await PropertyEtlJob(session_maker, settings)()
        logger.info(
            f"Property ETL job finished: "
            f"Processed={result.processed}, "
            f"Saved={result.saved}, "
            f"Errors={result.errors}"
        )
        return 0 if result.success else 1
    finally:
        await engine.dispose()


if __name__ == "__main__":
    setup_logging()
    sys.exit(asyncio.run(run_etl()))
