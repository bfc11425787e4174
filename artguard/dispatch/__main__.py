"""Entry point for the dispatch service.

Usage: python -m artguard.dispatch
"""

from artguard.dispatch import run
from artguard.lib.config import get_settings
from artguard.lib.service import run_service

if __name__ == "__main__":
    run_service(
        run,
        enabled=lambda: get_settings().notifications.enabled,
        name="dispatch",
    )
