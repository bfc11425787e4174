"""Async database operations for the artguard application.

This package provides async database operations using aiosqlite for non-blocking
database access throughout the application.

See connection.py for details on connection patterns (persistent vs pooled).
"""

from artguard.lib.db.alerts import SQLiteAlertStore as SQLiteAlertStore
from artguard.lib.db.artifacts import SQLiteArtifactStore as SQLiteArtifactStore
from artguard.lib.db.connection import ConnectionPool as ConnectionPool
from artguard.lib.db.connection import Database as Database
from artguard.lib.db.connection import close_db as close_db
from artguard.lib.db.connection import get_db as get_db
from artguard.lib.db.connection import init_db as init_db
from artguard.lib.db.notifications import (
    SQLiteNotificationLog as SQLiteNotificationLog,
)
from artguard.lib.db.types import SQLParams as SQLParams
