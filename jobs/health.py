"""
Health check server for the scheduler.

``/health`` reports the scheduled jobs and how fresh the live exchange
rates are; ``/readiness`` and ``/liveness`` are for the orchestrator.
"""

import asyncio
from datetime import UTC

from aiohttp import web
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from fingrow.config.settings import settings
from fingrow.repositories.exchange_rate_repository import ExchangeRateRepository
from fingrow.utils.datetime_utils import utc_now
from jobs.utils.database import task_session_maker

# Global scheduler reference for health checks
_scheduler: AsyncIOScheduler | None = None

# Rates older than this many poll intervals are reported stale
STALE_RATE_FACTOR = 3


def set_scheduler(scheduler: AsyncIOScheduler) -> None:
    """
    Register the scheduler instance for health checks.

    Args:
        scheduler: AsyncIOScheduler instance to monitor
    """
    global _scheduler
    _scheduler = scheduler
    logger.info("Scheduler registered for health checks")


async def rate_freshness() -> dict[str, dict]:
    """
    Age of the latest live rate per supported currency.

    Returns:
        Dict like {"THB": {"rate": "1.23", "age_seconds": 42, "stale": False}}
    """
    max_age = settings.rate_poll_interval_seconds * STALE_RATE_FACTOR
    now = utc_now()
    report: dict[str, dict] = {}

    async with task_session_maker() as session:
        repo = ExchangeRateRepository(session)
        for currency in settings.get_supported_currencies():
            latest = await repo.get_latest(currency)
            if latest is None:
                report[currency] = {"rate": None, "age_seconds": None, "stale": True}
                continue

            fetched_at = latest.fetched_at
            if fetched_at.tzinfo is None:
                fetched_at = fetched_at.replace(tzinfo=UTC)
            age = int((now - fetched_at).total_seconds())
            report[currency] = {
                "rate": str(latest.rate),
                "age_seconds": age,
                "stale": age > max_age,
            }

    return report


async def health_handler(request: web.Request) -> web.Response:
    """Scheduler status, job list and rate freshness."""
    if _scheduler is None:
        return web.json_response(
            {"status": "unhealthy", "error": "Scheduler not initialized"},
            status=503,
        )

    try:
        jobs = _scheduler.get_jobs()
        rates = await rate_freshness()
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        return web.json_response(
            {"status": "unhealthy", "error": str(e)}, status=503
        )

    running = _scheduler.running
    degraded = any(entry["stale"] for entry in rates.values())
    if not running:
        status = "stopped"
    elif degraded:
        status = "degraded"
    else:
        status = "healthy"

    return web.json_response(
        {
            "status": status,
            "scheduler_running": running,
            "jobs": [
                {
                    "id": job.id,
                    "name": job.name,
                    "next_run_time": (
                        job.next_run_time.isoformat() if job.next_run_time else None
                    ),
                }
                for job in jobs
            ],
            "exchange_rates": rates,
        }
    )


async def readiness_handler(request: web.Request) -> web.Response:
    """Ready once the scheduler runs."""
    ready = _scheduler is not None and _scheduler.running
    return web.json_response(
        {"status": "ready" if ready else "not_ready", "ready": ready},
        status=200 if ready else 503,
    )


async def liveness_handler(request: web.Request) -> web.Response:
    """Process is alive."""
    return web.json_response({"status": "alive", "alive": True})


def create_health_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/health", health_handler)
    app.router.add_get("/readiness", readiness_handler)
    app.router.add_get("/liveness", liveness_handler)
    return app


async def start_health_server(
    host: str = "0.0.0.0",
    port: int = 8081,
) -> tuple[web.AppRunner, web.TCPSite]:
    """
    Start health check server.

    Args:
        host: Host to bind to
        port: Port to bind to

    Returns:
        Tuple of (AppRunner, TCPSite) for cleanup
    """
    runner = web.AppRunner(create_health_app())
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Health check server started on http://{host}:{port}/health")
    return runner, site


async def stop_health_server(runner: web.AppRunner, timeout: int = 5) -> None:
    """
    Stop health check server gracefully.

    Args:
        runner: AppRunner to cleanup
        timeout: Maximum time to wait for cleanup in seconds
    """
    logger.info("Stopping health check server...")
    try:
        await asyncio.wait_for(runner.cleanup(), timeout=timeout)
    except TimeoutError:
        logger.warning(f"Health check server cleanup timed out after {timeout}s")
