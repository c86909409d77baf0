"""
Order auto-delivery task.

Marks shipped orders as delivered on behalf of the buyer once the
delivery timeout (``auto_delivery_days``) has passed. The system actor
performs the transition, so the audit log shows no user.
Runs hourly.
"""

import asyncio

import dramatiq
from loguru import logger

from fingrow.config.operational_constants import DRAMATIQ_TIME_LIMIT_LONG
from fingrow.config.settings import settings
from fingrow.services.core_config import CoreConfig
from fingrow.services.order import OrderLifecycleManager
from jobs.broker import broker  # noqa: F401  registers the Redis broker
from jobs.async_runner import run_async
from jobs.utils.database import task_engine, task_session_maker


@dramatiq.actor(max_retries=3, time_limit=DRAMATIQ_TIME_LIMIT_LONG)
def deliver_overdue_shipments() -> None:
    """Deliver shipped orders past the timeout."""
    logger.debug("Starting overdue shipment sweep...")
    run_async(_deliver_overdue_shipments_async())


async def _deliver_overdue_shipments_async() -> dict:
    """Async implementation of the overdue shipment sweep."""
    try:
        async with task_session_maker() as session:
            manager = OrderLifecycleManager(
                session, CoreConfig.from_settings(settings)
            )
            delivered = await manager.deliver_overdue_shipments()

        if delivered:
            logger.info(f"Auto-delivered {delivered} overdue orders")
        return {"success": True, "delivered": delivered}
    except asyncio.CancelledError:
        logger.info("Overdue shipment sweep cancelled")
        raise
    except Exception as e:
        logger.exception(f"Overdue shipment sweep failed: {e}")
        raise
    finally:
        await task_engine.dispose()
