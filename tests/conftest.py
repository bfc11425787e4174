"""Shared pytest fixtures for the test suite."""

import logging
import sqlite3
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from artguard.lib.config import Bound, Property, Settings
from artguard.lib.config.testing import set_settings
from artguard.lib.db import SQLiteAlertStore, SQLiteArtifactStore, close_db
from artguard.lib.db.connection import SCHEMA_TEMPLATES
from artguard.lib.models import Alert, Bounds, Measurement

SQL_DIR = Path(__file__).parent.parent / "artguard" / "lib" / "sql"


class FakeClock:
    """Settable clock for deterministic windows and rate limits."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture(autouse=True)
def configure_caplog(caplog):
    """Ensure caplog captures logs from the artguard namespace."""
    caplog.set_level(logging.INFO, logger="artguard")


@pytest.fixture(autouse=True)
def reset_settings():
    """Reset global settings after each test to avoid cross-test pollution."""
    yield
    set_settings(None)


@pytest.fixture(autouse=True)
async def test_db(tmp_path):
    """Use a temporary SQLite database for tests.

    This creates a fresh database with the full schema for each test,
    providing isolation while allowing real database operations.
    """
    db_file = tmp_path / "test.sqlite3"
    set_settings(Settings(db_path=str(db_file)))

    # Initialize the schema using sync sqlite3 (simpler for setup)
    conn = sqlite3.connect(str(db_file))
    for name in SCHEMA_TEMPLATES:
        conn.executescript((SQL_DIR / name).read_text())
    conn.close()

    yield db_file
    await close_db()


@pytest.fixture
def frozen_time():
    """Return a fixed datetime for deterministic tests."""
    return datetime(2024, 6, 15, 12, 0, 0, tzinfo=UTC)


@pytest.fixture
def clock(frozen_time):
    return FakeClock(frozen_time)


@pytest.fixture
def alert_store():
    return SQLiteAlertStore()


@pytest.fixture
def artifact_store():
    return SQLiteArtifactStore()


@pytest.fixture
async def painting(artifact_store):
    """An oil painting whose materials bound temperature to 15..25."""
    await artifact_store.add_material(
        "canvas",
        "Canvas",
        {
            Property.TEMPERATURE: Bounds(10.0, 30.0),
            Property.HUMIDITY: Bounds(40.0, 60.0),
        },
    )
    await artifact_store.add_material(
        "oil",
        "Oil paint",
        {Property.TEMPERATURE: Bounds(15.0, 25.0)},
    )
    await artifact_store.add_artifact(
        "painting-1", "Sunflowers", "Vincent van Gogh", "Room 3"
    )
    await artifact_store.link_material("painting-1", "canvas")
    await artifact_store.link_material("painting-1", "oil")
    return "painting-1"


def make_measurement(
    measurement_id: str = "m-1",
    artifact_id: str = "painting-1",
    timestamp: datetime | None = None,
    **values,
) -> Measurement:
    return Measurement(
        id=measurement_id,
        device_id="device-1",
        artifact_id=artifact_id,
        timestamp=timestamp or datetime(2024, 6, 15, 11, 55, tzinfo=UTC),
        **values,
    )


def make_alert(
    alert_id: str = "a-1",
    *,
    created_at: datetime,
    artifact_id: str = "painting-1",
    prop: Property = Property.TEMPERATURE,
    bound: Bound = Bound.UPPER,
    measured_value: float = 26.0,
    threshold_value: float = 25.0,
    measurement_id: str | None = None,
) -> Alert:
    return Alert(
        id=alert_id,
        artifact_id=artifact_id,
        property=prop,
        exceeded_bound=bound,
        measured_value=measured_value,
        threshold_value=threshold_value,
        created_at=created_at,
        device_id="device-1",
        measurement_id=measurement_id,
    )
