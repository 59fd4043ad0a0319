"""Scheduler entry points, e.g. run from cron:

    python -m app.jobs complete-bookings
"""
import asyncio
import logging
import sys

from app.core.database import AsyncSessionLocal
from app.core.logger import setup_logging
from app.services.booking import BookingService

logger = logging.getLogger(__name__)


async def complete_elapsed_bookings() -> int:
    """Complete every paid booking whose rental period has ended"""
    async with AsyncSessionLocal() as session:
        service = BookingService(session)
        return await service.complete_elapsed_bookings()


JOBS = {
    "complete-bookings": complete_elapsed_bookings,
}


if __name__ == "__main__":
    setup_logging()
    if len(sys.argv) != 2 or sys.argv[1] not in JOBS:
        print(f"Usage: python -m app.jobs <{'|'.join(JOBS)}>")
        sys.exit(1)

    result = asyncio.run(JOBS[sys.argv[1]]())
    logger.info("%s finished: %s", sys.argv[1], result)
