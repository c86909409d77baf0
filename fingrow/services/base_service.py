"""
Base service class.

Provides common functionality for all service classes including session
management, injected core configuration, logging and helper decorators.
"""

import functools
import time
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from fingrow.services.core_config import CoreConfig, default_config


# Type variable for generic decorator return types
T = TypeVar("T")


class BaseService:
    """
    Base service class.

    Provides common functionality for all service classes:
    - Session management (the service owns the unit of work)
    - Explicit CoreConfig instead of module-level settings lookups
    - Logging with bound service context
    """

    def __init__(
        self, session: AsyncSession, config: CoreConfig | None = None
    ) -> None:
        """
        Initialize base service.

        Args:
            session: Async database session
            config: Business rules (built from settings when omitted)
        """
        self.session = session
        self.config = config or default_config()
        self.logger = logger.bind(service=self.__class__.__name__)

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def rollback(self) -> None:
        """Rollback current transaction."""
        await self.session.rollback()

    async def refresh(self, obj: Any) -> None:
        """
        Refresh object from database.

        Args:
            obj: SQLAlchemy model instance to refresh
        """
        await self.session.refresh(obj)


def transaction(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to wrap method in transaction with automatic commit/rollback.

    Commits on success, rolls back on exception and re-raises.

    Usage:
        @transaction
        async def register(self, ...):
            ...

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        try:
            result = await func(self, *args, **kwargs)
            await self.commit()
            return result
        except Exception as e:
            await self.rollback()
            self.logger.warning(
                f"Transaction rolled back in {func.__name__}",
                extra={
                    "error": str(e),
                    "error_type": type(e).__name__,
                    "function": func.__name__,
                },
            )
            raise

    return wrapper


def log_operation(func: Callable[..., T]) -> Callable[..., T]:
    """
    Decorator to log method entry/exit with timing.

    Usage:
        @log_operation
        async def deliver_overdue_shipments(self, ...):
            ...

    Args:
        func: Async method to wrap

    Returns:
        Wrapped async method
    """
    @functools.wraps(func)
    async def wrapper(self: BaseService, *args: Any, **kwargs: Any) -> Any:
        start_time = time.time()

        self.logger.info(
            f"Starting {func.__name__}",
            extra={
                "function": func.__name__,
                "args_count": len(args),
                "kwargs_keys": list(kwargs.keys()),
            },
        )

        try:
            result = await func(self, *args, **kwargs)
        except Exception as e:
            self.logger.error(
                f"Failed {func.__name__}",
                extra={
                    "function": func.__name__,
                    "duration_seconds": round(time.time() - start_time, 3),
                    "error": str(e),
                    "success": False,
                },
                exc_info=True,
            )
            raise

        self.logger.info(
            f"Completed {func.__name__}",
            extra={
                "function": func.__name__,
                "duration_seconds": round(time.time() - start_time, 3),
                "success": True,
            },
        )
        return result

    return wrapper
