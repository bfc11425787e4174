"""Retry utilities with exponential backoff."""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from logging import Logger


async def with_retry(
    fn: Callable[[], None] | Callable[[], Awaitable[None]],
    *,
    name: str,
    logger: Logger,
    max_retries: int = 3,
    initial_backoff_sec: float = 2.0,
    max_backoff_sec: float = 60.0,
    retryable_exceptions: tuple[type[Exception], ...] = (OSError,),
    run_in_thread: bool = False,
) -> bool:
    """Execute a function with retry logic and exponential backoff.

    Never raises for failures of ``fn``; the outcome is reported through the
    return value so callers decide how to surface it.

    Args:
        fn: The function to execute. Can be sync or async.
        name: Name for logging purposes.
        logger: Logger instance to use.
        max_retries: Maximum number of attempts.
        initial_backoff_sec: Delay before the second attempt, doubled after
            each further failure.
        max_backoff_sec: Upper limit for a single delay.
        retryable_exceptions: Exception types that trigger a retry. Anything
            else fails immediately.
        run_in_thread: If True, run sync fn in a thread pool.

    Returns:
        True if the function succeeded, False otherwise.
    """
    last_error: Exception | None = None

    for attempt in range(1, max_retries + 1):
        try:
            if run_in_thread:
                await asyncio.to_thread(fn)
            elif inspect.iscoroutinefunction(fn):
                await fn()
            else:
                fn()
            return True
        except retryable_exceptions as e:
            last_error = e
            if attempt == max_retries:
                break
            backoff = min(
                initial_backoff_sec * (2 ** (attempt - 1)), max_backoff_sec
            )
            logger.warning(
                "%s attempt %d/%d failed: %s. Retrying in %.1fs...",
                name,
                attempt,
                max_retries,
                e,
                backoff,
            )
            await asyncio.sleep(backoff)
        except Exception as e:
            logger.error("%s failed (non-retryable): %s", name, e)
            return False

    logger.error(
        "%s failed after %d attempts. Last error: %s",
        name,
        max_retries,
        last_error,
    )
    return False
