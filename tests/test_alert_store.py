"""Tests for the SQLite alert store."""

import sqlite3
from datetime import timedelta

import pytest

from artguard.lib.config import AlertStatus, Bound, Property
from artguard.lib.exceptions import StorageError
from tests.conftest import make_alert


class TestInsertAndGet:
    """Tests for writing and reading single alerts."""

    async def test_roundtrip_keeps_timestamps(self, alert_store, frozen_time):
        alert = make_alert(
            created_at=frozen_time + timedelta(microseconds=123),
            measurement_id="m-1",
        )

        await alert_store.insert(alert)

        assert await alert_store.get("a-1") == alert

    async def test_get_missing_returns_none(self, alert_store):
        assert await alert_store.get("nope") is None

    async def test_duplicate_id_is_storage_error(self, alert_store, frozen_time):
        await alert_store.insert(make_alert(created_at=frozen_time))

        with pytest.raises(StorageError, match="insert alert failed"):
            await alert_store.insert(make_alert(created_at=frozen_time))


class TestFindByMeasurement:
    """Tests for the measurement idempotency lookup."""

    async def test_finds_any_status(self, alert_store, frozen_time):
        await alert_store.insert(
            make_alert(created_at=frozen_time, measurement_id="m-1")
        )
        await alert_store.mark_dismissed("a-1", frozen_time)

        found = await alert_store.find_by_measurement("m-1")

        assert found is not None
        assert found.status == AlertStatus.DISMISSED

    async def test_scoped_by_property(self, alert_store, frozen_time):
        await alert_store.insert(
            make_alert(created_at=frozen_time, measurement_id="m-1")
        )

        assert await alert_store.find_by_measurement(
            "m-1", Property.TEMPERATURE
        )
        assert (
            await alert_store.find_by_measurement("m-1", Property.HUMIDITY)
            is None
        )

    async def test_unknown_measurement(self, alert_store):
        assert await alert_store.find_by_measurement("m-404") is None


class TestFindActiveMatching:
    """Tests for the dedup window lookup."""

    async def test_newest_first_inside_window(self, alert_store, frozen_time):
        await alert_store.insert(
            make_alert("old", created_at=frozen_time - timedelta(hours=2))
        )
        await alert_store.insert(
            make_alert("new", created_at=frozen_time - timedelta(hours=1))
        )

        found = await alert_store.find_active_matching(
            "painting-1",
            Property.TEMPERATURE,
            Bound.UPPER,
            frozen_time - timedelta(hours=24),
        )

        assert [a.id for a in found] == ["new", "old"]

    async def test_cutoff_is_exclusive(self, alert_store, frozen_time):
        cutoff = frozen_time - timedelta(hours=24)
        await alert_store.insert(make_alert("edge", created_at=cutoff))

        found = await alert_store.find_active_matching(
            "painting-1", Property.TEMPERATURE, Bound.UPPER, cutoff
        )

        assert found == []

    async def test_ignores_other_keys_and_dismissed(
        self, alert_store, frozen_time
    ):
        recent = frozen_time - timedelta(minutes=5)
        await alert_store.insert(
            make_alert("lower", created_at=recent, bound=Bound.LOWER)
        )
        await alert_store.insert(
            make_alert("humid", created_at=recent, prop=Property.HUMIDITY)
        )
        await alert_store.insert(
            make_alert("elsewhere", created_at=recent, artifact_id="other")
        )
        await alert_store.insert(make_alert("closed", created_at=recent))
        await alert_store.mark_dismissed("closed", frozen_time)

        found = await alert_store.find_active_matching(
            "painting-1",
            Property.TEMPERATURE,
            Bound.UPPER,
            frozen_time - timedelta(hours=1),
        )

        assert found == []


class TestMarkDismissed:
    """Tests for the dismissal transition."""

    async def test_active_to_dismissed(self, alert_store, frozen_time):
        await alert_store.insert(make_alert(created_at=frozen_time))
        later = frozen_time + timedelta(minutes=3)

        assert await alert_store.mark_dismissed("a-1", later) is True

        alert = await alert_store.get("a-1")
        assert alert.status == AlertStatus.DISMISSED
        assert alert.dismissed_at == later
        assert not alert.is_active

    async def test_second_dismissal_returns_false(self, alert_store, frozen_time):
        await alert_store.insert(make_alert(created_at=frozen_time))
        await alert_store.mark_dismissed("a-1", frozen_time)

        assert (
            await alert_store.mark_dismissed(
                "a-1", frozen_time + timedelta(hours=1)
            )
            is False
        )
        alert = await alert_store.get("a-1")
        assert alert.dismissed_at == frozen_time

    async def test_unknown_id_returns_false(self, alert_store, frozen_time):
        assert await alert_store.mark_dismissed("nope", frozen_time) is False


class TestListing:
    """Tests for grouped and filtered listings."""

    async def test_grouped_by_artifact_active_only(
        self, alert_store, frozen_time
    ):
        await alert_store.insert(make_alert("a-1", created_at=frozen_time))
        await alert_store.insert(
            make_alert(
                "a-2",
                created_at=frozen_time + timedelta(minutes=1),
                prop=Property.HUMIDITY,
            )
        )
        await alert_store.insert(
            make_alert("b-1", created_at=frozen_time, artifact_id="other")
        )
        await alert_store.insert(
            make_alert("b-2", created_at=frozen_time, artifact_id="closed")
        )
        await alert_store.mark_dismissed("b-2", frozen_time)

        grouped = await alert_store.list_active_grouped_by_artifact()

        assert set(grouped) == {"painting-1", "other"}
        assert [a.id for a in grouped["painting-1"]] == ["a-2", "a-1"]

    async def test_list_filters(self, alert_store, frozen_time):
        await alert_store.insert(make_alert("a-1", created_at=frozen_time))
        await alert_store.insert(
            make_alert(
                "a-2",
                created_at=frozen_time + timedelta(minutes=1),
                prop=Property.CO2,
            )
        )
        await alert_store.insert(
            make_alert("b-1", created_at=frozen_time, artifact_id="other")
        )
        await alert_store.mark_dismissed("a-1", frozen_time)

        by_artifact = await alert_store.list_alerts(artifact_id="painting-1")
        active = await alert_store.list_alerts(status=AlertStatus.ACTIVE)
        co2 = await alert_store.list_alerts(prop=Property.CO2)
        by_device = await alert_store.list_alerts(device_id="device-2")

        assert [a.id for a in by_artifact] == ["a-2", "a-1"]
        assert {a.id for a in active} == {"a-2", "b-1"}
        assert [a.id for a in co2] == ["a-2"]
        assert by_device == []

    async def test_list_limit(self, alert_store, frozen_time):
        for i in range(5):
            await alert_store.insert(
                make_alert(
                    f"a-{i}", created_at=frozen_time + timedelta(minutes=i)
                )
            )

        alerts = await alert_store.list_alerts(limit=2)

        assert [a.id for a in alerts] == ["a-4", "a-3"]


class TestStorageErrors:
    """Driver failures surface as StorageError."""

    async def test_missing_table(self, alert_store, test_db):
        conn = sqlite3.connect(str(test_db))
        conn.execute("DROP TABLE alert")
        conn.close()

        with pytest.raises(StorageError, match="list_alerts failed"):
            await alert_store.list_alerts()

    async def test_cause_is_kept(self, alert_store, test_db):
        conn = sqlite3.connect(str(test_db))
        conn.execute("DROP TABLE alert")
        conn.close()

        with pytest.raises(StorageError) as exc_info:
            await alert_store.get("a-1")

        assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)
