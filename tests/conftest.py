"""Shared test fixtures for buildcheck."""

from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from buildcheck.catalog.models import ComponentRecord
from buildcheck.compatibility.engine import CompatibilityEngine
from buildcheck.storage.db import get_connection
from buildcheck.storage.repository import Repository


def make(category: str, id: str | None = None, name: str = "", price: float | None = None, **specs) -> ComponentRecord:
    """Quick ComponentRecord factory: make("cpu", socket="AM5")."""
    return ComponentRecord(
        id=id or f"{category}-1",
        category=category,
        specifications=specs,
        name=name,
        price=price,
    )


@pytest.fixture
def engine() -> CompatibilityEngine:
    return CompatibilityEngine()


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "test.db"


@pytest.fixture
def db_conn(db_path: Path) -> sqlite3.Connection:
    conn = get_connection(db_path)
    yield conn
    conn.close()


@pytest.fixture
def repo(db_conn: sqlite3.Connection) -> Repository:
    return Repository(db_conn)


@pytest.fixture
def am5_build() -> list[ComponentRecord]:
    """A clean AM5 build with every category filled and no issues."""
    return [
        make("cpu", "cpu-7700x", "Ryzen 7 7700X", 329.0, socket="AM5", tdp=105),
        make(
            "motherboard", "mb-b650", "MSI B650 Tomahawk", 219.0,
            socket="AM5",
            supportedMemory=["DDR5"],
            supportedStorage=["NVMe", "SATA"],
            maxGPULength=340,
            maxMemory=128,
        ),
        make("ram", "ram-ddr5", "32GB DDR5-6000", 109.0, type="DDR5", speed=6000, capacity=32),
        make("storage", "ssd-980", "Samsung 980 Pro 1TB", 89.0, interface="NVMe"),
        make("gpu", "gpu-4070", "RTX 4070", 599.0, length=285, powerRequirement=200),
        make("psu", "psu-850", "RM850x", 139.0, wattage=850),
        make("cooling", "cool-nhd15", "Noctua NH-D15", 109.0, type="Air", supportedSockets=["AM4", "AM5", "LGA1700"]),
        make("case", "case-4000d", "4000D Airflow", 104.0, formFactor="ATX", gpuLength=360),
    ]


@pytest.fixture
def catalog(am5_build: list[ComponentRecord]) -> list[ComponentRecord]:
    """A small catalog: the AM5 build plus alternatives that clash with it."""
    return am5_build + [
        make("motherboard", "mb-z790", "ASUS Z790-P", 199.0,
             socket="LGA1700", supportedMemory=["DDR4", "DDR5"], supportedStorage=["NVMe", "SATA"]),
        make("ram", "ram-ddr4", "16GB DDR4-3200", 45.0, type="DDR4"),
        make("storage", "hdd-ide", "Old IDE disk", 10.0, interface="IDE"),
        make("psu", "psu-450", "450W Bronze", 49.0, wattage=450),
        make("psu", "psu-650", "650W Gold", 79.0, wattage=650),
        make("cooling", "cool-am4", "Wraith Prism", 20.0, type="Air", supportedSockets=["AM4"]),
    ]


@pytest.fixture
def populated_repo(repo: Repository, catalog: list[ComponentRecord]) -> Repository:
    repo.save_components(catalog)
    return repo
