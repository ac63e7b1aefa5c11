"""
Database utilities for connection management and error handling
"""
import asyncio
import functools
import logging
from typing import Callable, Any, TypeVar, cast, Awaitable

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import TransientLedgerError

logger = logging.getLogger(__name__)

T = TypeVar('T')

RETRYABLE_ERRORS = (
    "ConnectionError",
    "OperationalError",
    "ConnectionDoesNotExistError",
    "ConnectionRefusedError",
    "SerializationError",
    "DeadlockDetectedError",
)


def _find_session(args: tuple, kwargs: dict) -> Any:
    session = kwargs.get("db")
    if session is None:
        session = next((a for a in args if isinstance(a, AsyncSession)), None)
    return session


def with_db_retry(
    max_retries: int = 3,
    retry_delay: float = 0.5
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Decorator that retries a unit of work on connection/serialization errors.

    The decorated coroutine must perform its whole read-modify-write cycle and
    commit itself; on a retryable error the session is rolled back before the
    next attempt so no partial write survives. When every retry fails the
    error is surfaced as ``TransientLedgerError``; it is never swallowed.

    Args:
        max_retries: Maximum number of retries before giving up
        retry_delay: Delay between retries in seconds

    Returns:
        Decorated function with retry logic
    """
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            retries = 0
            last_error = None

            while retries <= max_retries:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    error_name = type(e).__name__
                    orig_name = type(getattr(e, "orig", None)).__name__
                    if not any(err in error_name or err in orig_name for err in RETRYABLE_ERRORS):
                        raise

                    session = _find_session(args, kwargs)
                    if session is not None:
                        await session.rollback()

                    retries += 1
                    last_error = e
                    if retries <= max_retries:
                        delay = retry_delay * (2 ** (retries - 1))  # Exponential backoff
                        logger.warning(
                            f"{func.__name__}: database error: {str(e)}. "
                            f"Retrying in {delay:.2f}s... (Attempt {retries}/{max_retries})"
                        )
                        await asyncio.sleep(delay)

            logger.error(f"{func.__name__} failed after {max_retries} retries: {last_error}")
            raise TransientLedgerError(
                f"Could not commit {func.__name__.replace('_', ' ')}; please retry"
            ) from last_error

        return cast(Callable[..., Awaitable[T]], wrapper)

    return decorator
