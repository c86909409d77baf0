"""
Exchange rate refresh task.

Polls the live WLD price feed and appends the result to the rate
history. Active rate locks are never touched.
Runs every ``rate_poll_interval_seconds`` (5 minutes by default).
"""

import asyncio

import dramatiq
from loguru import logger

from fingrow.config.operational_constants import DRAMATIQ_TIME_LIMIT_SHORT
from fingrow.config.settings import settings
from fingrow.services.core_config import CoreConfig
from fingrow.services.exchange_rate import ExchangeRateLock, RateFeedClient
from jobs.broker import broker  # noqa: F401  registers the Redis broker
from jobs.async_runner import run_async
from jobs.utils.database import task_engine, task_session_maker


@dramatiq.actor(max_retries=3, time_limit=DRAMATIQ_TIME_LIMIT_SHORT)
def refresh_exchange_rates() -> None:
    """Fetch live rates for every supported currency."""
    logger.debug("Starting exchange rate refresh...")
    run_async(_refresh_exchange_rates_async())


async def _refresh_exchange_rates_async() -> dict:
    """Async implementation of the rate refresh."""
    currencies = settings.get_supported_currencies()
    client = RateFeedClient()

    try:
        rates = await client.fetch(currencies)

        async with task_session_maker() as session:
            rate_lock = ExchangeRateLock(session, CoreConfig.from_settings(settings))
            stored = await rate_lock.record_live_rates(rates)

        missing = sorted(set(currencies) - set(rates))
        if missing:
            logger.warning(
                "Rate feed returned no price for some currencies",
                extra={"missing": missing},
            )

        logger.info(
            f"Exchange rates refreshed: {stored} currencies",
            extra={"rates": {code: str(rate) for code, rate in rates.items()}},
        )
        return {"success": True, "stored": stored, "missing": missing}
    except asyncio.CancelledError:
        logger.info("Exchange rate refresh cancelled")
        raise
    except Exception as e:
        logger.exception(f"Exchange rate refresh failed: {e}")
        raise
    finally:
        await task_engine.dispose()
