#!/usr/bin/env python3
"""Seed the database with demo artworks and synthetic measurements.

Creates a few artifacts with typical material tolerances, then feeds random
walk measurements through the alert engine so alerts exist for development.
"""

import argparse
import asyncio
import random
import uuid
from datetime import UTC, datetime, timedelta

from artguard.lib.config import Property
from artguard.lib.db import (
    SQLiteAlertStore,
    SQLiteArtifactStore,
    close_db,
    get_db,
    init_db,
)
from artguard.lib.engine import AlertEngine
from artguard.lib.models import Bounds, Measurement
from artguard.lib.ratelimit import RateLimiter

MATERIALS = {
    "oil-canvas": (
        "Oil paint on canvas",
        {
            Property.TEMPERATURE: Bounds(18.0, 24.0),
            Property.HUMIDITY: Bounds(40.0, 60.0),
            Property.ILLUMINANCE: Bounds(upper=200.0),
        },
    ),
    "watercolor-paper": (
        "Watercolor on paper",
        {
            Property.TEMPERATURE: Bounds(16.0, 22.0),
            Property.HUMIDITY: Bounds(40.0, 55.0),
            Property.ILLUMINANCE: Bounds(upper=50.0),
        },
    ),
    "gilded-wood": (
        "Gilded wood frame",
        {
            Property.TEMPERATURE: Bounds(15.0, 25.0),
            Property.HUMIDITY: Bounds(45.0, 60.0),
            Property.CO2: Bounds(upper=1000.0),
        },
    ),
}

ARTIFACTS = [
    (
        "starry-night",
        "The Starry Night",
        "Vincent van Gogh",
        "Gallery 1",
        ["oil-canvas", "gilded-wood"],
    ),
    (
        "great-wave",
        "The Great Wave",
        "Hokusai",
        "Gallery 2",
        ["watercolor-paper"],
    ),
    ("untitled", "Untitled", "", "Storage", []),
]


def random_walk(
    current: float, drift: float, min_val: float, max_val: float
) -> float:
    """Next value of a bounded Gaussian random walk."""
    return max(min_val, min(max_val, current + random.gauss(0, drift)))


def generate_measurements(
    artifact_id: str, num_records: int, interval: timedelta
) -> list[Measurement]:
    """Generate plausible gallery readings that occasionally drift out."""
    now = datetime.now(UTC)
    temperature = random.uniform(19.0, 23.0)
    humidity = random.uniform(45.0, 55.0)
    co2 = random.uniform(400.0, 550.0)
    illuminance = random.uniform(30.0, 150.0)

    measurements = []
    for i in range(num_records):
        temperature = random_walk(temperature, 0.3, 12.0, 30.0)
        humidity = random_walk(humidity, 1.0, 25.0, 75.0)
        co2 = random_walk(co2, 20.0, 350.0, 1200.0)
        illuminance = random_walk(illuminance, 10.0, 0.0, 400.0)
        measurements.append(
            Measurement(
                id=str(uuid.uuid4()),
                device_id=f"sensor-{artifact_id}",
                artifact_id=artifact_id,
                timestamp=now - interval * (num_records - 1 - i),
                temperature=round(temperature, 1),
                humidity=round(humidity, 1),
                co2=round(co2),
                air_pressure=round(random.uniform(995.0, 1025.0), 1),
                illuminance=round(illuminance),
                mold_risk_level=2 if humidity > 70 else int(humidity > 60),
            )
        )
    return measurements


async def seed_data(hours: int = 6, clear: bool = False) -> None:
    """Insert demo artifacts and evaluate N hours of measurements."""
    await init_db()

    if clear:
        print("Clearing existing data...")
        async with get_db() as db, db.transaction():
            for table in (
                "notification_log",
                "alert",
                "artifact_material",
                "material",
                "artifact",
            ):
                await db.execute(f"DELETE FROM {table}")

    artifacts = SQLiteArtifactStore()
    print(f"Inserting {len(MATERIALS)} materials and {len(ARTIFACTS)} artifacts...")
    for material_id, (name, bounds) in MATERIALS.items():
        await artifacts.add_material(material_id, name, bounds)
    for artifact_id, name, artist, location, materials in ARTIFACTS:
        await artifacts.add_artifact(artifact_id, name, artist, location)
        for material_id in materials:
            await artifacts.link_material(artifact_id, material_id)

    engine = AlertEngine(SQLiteAlertStore(), artifacts, RateLimiter())
    interval = timedelta(minutes=10)
    num_records = (hours * 60) // 10
    created = 0
    for artifact_id, *_ in ARTIFACTS:
        print(f"Evaluating {num_records} measurements for {artifact_id}...")
        results = await engine.evaluate_many(
            generate_measurements(artifact_id, num_records, interval)
        )
        created += sum(len(r.created) for r in results)

    await close_db()
    print(f"Done! {created} alerts created.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Seed database with demo artworks and alerts"
    )
    parser.add_argument(
        "-hours",
        type=int,
        default=6,
        help="Hours of measurements to generate (default: 6)",
    )
    parser.add_argument(
        "-clear",
        action="store_true",
        help="Clear existing data before seeding",
    )
    args = parser.parse_args()

    asyncio.run(seed_data(hours=args.hours, clear=args.clear))
