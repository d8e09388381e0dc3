"""CRUD operations for catalog components and saved builds."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime
from typing import Iterable

from buildcheck.catalog.models import Build, Category, ComponentRecord


class Repository:
    """Data access layer for the buildcheck SQLite database."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    # -- components ---------------------------------------------------------

    def save_component(self, component: ComponentRecord, commit: bool = True) -> None:
        """Insert or replace a component record."""
        self._conn.execute(
            """INSERT OR REPLACE INTO components
            (id, category, name, brand, price, specifications, is_active, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
            (
                component.id,
                component.category.value,
                component.name,
                component.brand,
                component.price,
                json.dumps(dict(component.specifications), sort_keys=True),
                int(component.is_active),
                datetime.now().isoformat(),
            ),
        )
        if commit:
            self._conn.commit()

    def save_components(self, components: Iterable[ComponentRecord]) -> int:
        """Save many components in one transaction. Returns the number saved."""
        count = 0
        for component in components:
            self.save_component(component, commit=False)
            count += 1
        self._conn.commit()
        return count

    def get_component(self, component_id: str) -> ComponentRecord | None:
        row = self._conn.execute(
            "SELECT * FROM components WHERE id = ?", (str(component_id),)
        ).fetchone()
        return self._row_to_component(row) if row else None

    def get_components(self, component_ids: Iterable[str]) -> list[ComponentRecord]:
        """Fetch components in the order requested, skipping unknown ids."""
        found: list[ComponentRecord] = []
        for component_id in component_ids:
            component = self.get_component(component_id)
            if component is not None:
                found.append(component)
        return found

    def get_components_by_category(
        self,
        category: Category | str,
        active_only: bool = True,
        limit: int | None = None,
    ) -> list[ComponentRecord]:
        query = "SELECT * FROM components WHERE category = ?"
        params: list = [Category.parse(category).value]
        if active_only:
            query += " AND is_active = 1"
        query += " ORDER BY id"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        rows = self._conn.execute(query, params).fetchall()
        return [self._row_to_component(row) for row in rows]

    # -- builds -------------------------------------------------------------

    def save_build(self, build: Build) -> int:
        """Insert a build (or replace its component list) and return its id."""
        if build.id is None:
            cursor = self._conn.execute(
                """INSERT INTO builds (name, compatibility_score, is_compatible, checked_at, created_at)
                VALUES (?, ?, ?, ?, ?)""",
                (
                    build.name,
                    build.compatibility_score,
                    None if build.is_compatible is None else int(build.is_compatible),
                    build.checked_at.isoformat() if build.checked_at else None,
                    build.created_at.isoformat(),
                ),
            )
            build.id = cursor.lastrowid
        else:
            self._conn.execute(
                "UPDATE builds SET name = ? WHERE id = ?", (build.name, build.id)
            )

        self._conn.execute("DELETE FROM build_components WHERE build_id = ?", (build.id,))
        for position, component_id in enumerate(dict.fromkeys(build.component_ids)):
            self._conn.execute(
                """INSERT INTO build_components (build_id, component_id, position)
                VALUES (?, ?, ?)""",
                (build.id, component_id, position),
            )
        self._conn.commit()
        return build.id

    def get_build(self, build_id: int) -> Build | None:
        row = self._conn.execute("SELECT * FROM builds WHERE id = ?", (build_id,)).fetchone()
        if row is None:
            return None
        component_ids = [
            r["component_id"]
            for r in self._conn.execute(
                "SELECT component_id FROM build_components WHERE build_id = ? ORDER BY position",
                (build_id,),
            ).fetchall()
        ]
        return Build(
            id=row["id"],
            name=row["name"],
            component_ids=component_ids,
            compatibility_score=row["compatibility_score"],
            is_compatible=None if row["is_compatible"] is None else bool(row["is_compatible"]),
            checked_at=datetime.fromisoformat(row["checked_at"]) if row["checked_at"] else None,
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    def get_build_components(self, build_id: int) -> list[ComponentRecord]:
        rows = self._conn.execute(
            """
            SELECT c.* FROM components c
            JOIN build_components bc ON c.id = bc.component_id
            WHERE bc.build_id = ?
            ORDER BY bc.position
            """,
            (build_id,),
        ).fetchall()
        return [self._row_to_component(row) for row in rows]

    def update_build_score(self, build_id: int, score: int, is_compatible: bool) -> None:
        """Persist the latest compatibility verdict on a build."""
        self._conn.execute(
            """UPDATE builds SET compatibility_score = ?, is_compatible = ?, checked_at = ?
            WHERE id = ?""",
            (score, int(is_compatible), datetime.now().isoformat(), build_id),
        )
        self._conn.commit()

    def get_stats(self) -> dict:
        """Get summary statistics about the catalog."""
        total = self._conn.execute("SELECT COUNT(*) FROM components").fetchone()[0]
        active = self._conn.execute(
            "SELECT COUNT(*) FROM components WHERE is_active = 1"
        ).fetchone()[0]
        builds = self._conn.execute("SELECT COUNT(*) FROM builds").fetchone()[0]
        by_category = {c.value: 0 for c in Category}
        for row in self._conn.execute(
            "SELECT category, COUNT(*) AS n FROM components GROUP BY category"
        ).fetchall():
            by_category[row["category"]] = row["n"]

        return {
            "total_components": total,
            "active_components": active,
            "total_builds": builds,
            "by_category": by_category,
        }

    def _row_to_component(self, row: sqlite3.Row) -> ComponentRecord:
        try:
            specifications = json.loads(row["specifications"] or "{}")
        except json.JSONDecodeError:
            specifications = {}
        return ComponentRecord(
            id=row["id"],
            category=row["category"],
            specifications=specifications if isinstance(specifications, dict) else {},
            name=row["name"] or "",
            brand=row["brand"] or "",
            price=row["price"],
            is_active=bool(row["is_active"]),
        )
