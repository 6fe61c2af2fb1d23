"""
Scheduler Module - periodic campaign housekeeping
"""
import asyncio
import logging

from services import campaign_service
import config

logger = logging.getLogger(__name__)


async def run_once() -> int:
    """Close every active campaign whose end date has passed"""
    try:
        return await campaign_service.process_expired_campaigns()
    except Exception as e:
        logger.error(f"Expired campaign sweep failed: {e}")
        return 0


async def scheduler(shutdown_event: asyncio.Event, interval: float = None):
    """Background scheduler - runs the sweep until shutdown"""
    interval = interval or config.SCHEDULER_INTERVAL
    logger.info(f"⏰ Scheduler started (every {interval}s)")
    while not shutdown_event.is_set():
        completed = await run_once()
        if completed:
            logger.info(f"⏰ Closed {completed} expired campaign(s)")
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass  # Continue loop
    logger.info("⏰ Scheduler stopped")
