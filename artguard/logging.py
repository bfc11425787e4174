"""Logging configuration for the artguard application."""

import logging
import sys

_configured = False

LOG_FORMAT = "%(asctime)s %(name)s %(levelname)s - %(message)s"


def configure(level: int = logging.INFO) -> None:
    """Configure logging for the application.

    Safe to call multiple times - only configures once.
    """
    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger("artguard")
    root.setLevel(level)
    root.addHandler(handler)

    # Route uvicorn through the same handler so server logs share the format
    uv_log = logging.getLogger("uvicorn")
    uv_log.handlers.clear()
    uv_log.addHandler(handler)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the 'artguard' namespace.

    Args:
        name: Logger name (will be prefixed with 'artguard.')

    Returns:
        Configured logger instance.
    """
    return logging.getLogger(f"artguard.{name}")
