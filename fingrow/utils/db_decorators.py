"""
Database decorators for automatic rollback.

Service methods own their unit of work; when one of them fails the
session must be rolled back before the error reaches the caller.
"""

from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, TypeVar

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession


T = TypeVar("T")


def _find_session(args: tuple[Any, ...], kwargs: dict[str, Any]) -> AsyncSession | None:
    session = kwargs.get("session")
    if session is not None:
        return session
    if args:
        if isinstance(args[0], AsyncSession):
            return args[0]
        # Bound service method: session lives on the instance
        return getattr(args[0], "session", None)
    return None


def with_rollback_on_error(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """
    Roll the session back on any exception and re-raise it.

    Works for plain coroutines taking ``session`` and for service
    methods whose instance carries ``self.session``.

    Example:
        class OrderLifecycleManager:
            @with_rollback_on_error
            async def transition(self, order_id, actor_id, target):
                ...
    """
    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        session = _find_session(args, kwargs)

        if session is None:
            logger.warning(
                f"Function {func.__name__} decorated with @with_rollback_on_error "
                f"but no session found. Rollback will not be performed."
            )
            return await func(*args, **kwargs)

        try:
            return await func(*args, **kwargs)
        except Exception as e:
            try:
                await session.rollback()
                logger.info(
                    f"Rollback performed in {func.__name__} due to error: {type(e).__name__}"
                )
            except Exception as rollback_error:
                logger.error(
                    f"Failed to rollback in {func.__name__}: {rollback_error}",
                    exc_info=True,
                )
            raise

    return wrapper
