"""
Task scheduler.

Enqueues the periodic dramatiq actors with APScheduler and exposes the
health endpoints. Run with ``python -m jobs.scheduler``; workers run
with ``dramatiq jobs.tasks.rate_refresh jobs.tasks.order_auto_delivery``.
"""

import asyncio
import signal

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from fingrow.config.operational_constants import AUTO_DELIVERY_SWEEP_INTERVAL_SECONDS
from fingrow.config.settings import settings
from fingrow.logging import setup_logging
from jobs.health import set_scheduler, start_health_server, stop_health_server
from jobs.tasks.order_auto_delivery import deliver_overdue_shipments
from jobs.tasks.rate_refresh import refresh_exchange_rates


def create_scheduler() -> AsyncIOScheduler:
    """
    Build the scheduler with every periodic job registered.

    Returns:
        Configured (not started) scheduler
    """
    scheduler = AsyncIOScheduler(timezone="UTC")

    scheduler.add_job(
        refresh_exchange_rates.send,
        "interval",
        seconds=settings.rate_poll_interval_seconds,
        id="refresh_exchange_rates",
        name="Refresh live exchange rates",
        max_instances=1,
        coalesce=True,
    )
    scheduler.add_job(
        deliver_overdue_shipments.send,
        "interval",
        seconds=AUTO_DELIVERY_SWEEP_INTERVAL_SECONDS,
        id="deliver_overdue_shipments",
        name="Auto-deliver overdue shipments",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


async def main() -> None:
    """Run the scheduler until SIGINT/SIGTERM."""
    setup_logging()

    scheduler = create_scheduler()
    scheduler.start()
    set_scheduler(scheduler)

    # Rates are needed before the first order can be priced
    refresh_exchange_rates.send()

    runner, _ = await start_health_server()

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    logger.info(
        f"Scheduler started with {len(scheduler.get_jobs())} jobs",
        extra={"jobs": [job.id for job in scheduler.get_jobs()]},
    )

    try:
        await stop_event.wait()
    finally:
        scheduler.shutdown(wait=False)
        await stop_health_server(runner)
        logger.info("Scheduler stopped")


if __name__ == "__main__":
    asyncio.run(main())
