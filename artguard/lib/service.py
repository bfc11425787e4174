"""Service runner utility for long-running services."""

import asyncio
import signal
from collections.abc import Awaitable, Callable
from contextlib import suppress

from artguard.logging import configure, get_logger


def run_service(
    main: Callable[[], Awaitable[None]],
    *,
    enabled: Callable[[], bool] | None = None,
    name: str = "service",
) -> None:
    """Run an async service until SIGTERM/SIGINT.

    Configures logging, skips the run when ``enabled`` returns False, and
    cancels ``main`` on a termination signal so its cleanup handlers (closing
    the database, Redis) still run.

    Args:
        main: Async function to run (typically named ``run``).
        enabled: Optional callable that returns False to skip running.
        name: Service name for logging.
    """
    logger = get_logger(f"{name}.service")

    configure()

    if enabled is not None and not enabled():
        logger.info("%s service is disabled, exiting", name.capitalize())
        return

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    task = loop.create_task(main())

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, task.cancel)

    with suppress(KeyboardInterrupt, asyncio.CancelledError):
        loop.run_until_complete(task)
    logger.info("%s service stopped", name.capitalize())
    loop.close()
