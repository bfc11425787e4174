"""SQLite-backed artifact and material store."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, cast

from artguard.lib.config import Property
from artguard.lib.db.connection import get_db, load_template, storage_errors
from artguard.lib.db.types import ArtifactRow
from artguard.lib.models import Artifact, Bounds, Material


def _row_to_material(row: dict[str, Any]) -> Material:
    bounds: dict[Property, Bounds] = {}
    for prop in Property:
        lower = row.get(f"{prop.value}_lower")
        upper = row.get(f"{prop.value}_upper")
        if lower is not None or upper is not None:
            bounds[prop] = Bounds(lower=lower, upper=upper)
    return Material(id=row["id"], name=row["name"], bounds=bounds)


class SQLiteArtifactStore:
    """Artifacts with their composing materials."""

    async def get_artifact_with_materials(
        self, artifact_id: str
    ) -> Artifact | None:
        async with storage_errors("get_artifact_with_materials"), get_db() as db:
            row = await db.fetchone(
                "SELECT * FROM artifact WHERE id = ?", (artifact_id,)
            )
            if row is None:
                return None
            material_rows = await db.fetchall(
                load_template("artifact_materials.sql"), (artifact_id,)
            )

        artifact = cast(ArtifactRow, row)
        return Artifact(
            id=artifact["id"],
            name=artifact["name"],
            artist=artifact["artist"],
            location=artifact["location"],
            materials=tuple(_row_to_material(r) for r in material_rows),
        )

    async def add_artifact(
        self,
        artifact_id: str,
        name: str = "",
        artist: str = "",
        location: str | None = None,
    ) -> None:
        async with storage_errors("add_artifact"), get_db() as db:
            await db.execute(
                "INSERT OR REPLACE INTO artifact (id, name, artist, location) "
                "VALUES (?, ?, ?, ?)",
                (artifact_id, name, artist, location),
            )

    async def add_material(
        self,
        material_id: str,
        name: str,
        bounds: Mapping[Property, Bounds] | None = None,
    ) -> None:
        """Insert or replace a material and its per-property tolerances."""
        columns = ["id", "name"]
        values: list[Any] = [material_id, name]
        for prop, b in (bounds or {}).items():
            columns += [f"{prop.value}_lower", f"{prop.value}_upper"]
            values += [b.lower, b.upper]

        sql = (
            f"INSERT OR REPLACE INTO material ({', '.join(columns)}) "
            f"VALUES ({', '.join('?' for _ in columns)})"
        )
        async with storage_errors("add_material"), get_db() as db:
            await db.execute(sql, tuple(values))

    async def link_material(self, artifact_id: str, material_id: str) -> None:
        async with storage_errors("link_material"), get_db() as db:
            await db.execute(
                "INSERT OR IGNORE INTO artifact_material "
                "(artifact_id, material_id) VALUES (?, ?)",
                (artifact_id, material_id),
            )
