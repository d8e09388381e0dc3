"""Tests for reverse compatibility lookups (CompatibilityEngine.find_compatible)."""

from __future__ import annotations

import pytest
from conftest import make

from buildcheck.catalog.models import Category
from buildcheck.compatibility.engine import CompatibilityEngine, resolve_relation
from buildcheck.compatibility.rules import RELATIONS, RelationKind
from buildcheck.errors import InvalidArgumentError


def _by_id(records, component_id):
    return next(r for r in records if r.id == component_id)


def _ids(records):
    return [r.id for r in records]


def _of(records, category: Category):
    return [r for r in records if r.category is category]


class TestResolveRelation:
    def test_enum_passthrough(self):
        assert resolve_relation(RelationKind.GPU_PSU) is RelationKind.GPU_PSU

    def test_string_forms(self):
        assert resolve_relation("cpu_motherboard") is RelationKind.CPU_MOTHERBOARD
        assert resolve_relation("CPU-Motherboard") is RelationKind.CPU_MOTHERBOARD

    def test_unknown(self):
        with pytest.raises(InvalidArgumentError, match="Unknown relation"):
            resolve_relation("cpu_case")


class TestFindCompatible:
    def test_cpu_motherboard(self, engine: CompatibilityEngine, catalog):
        cpu = _by_id(catalog, "cpu-7700x")
        lookup = engine.find_compatible(cpu, _of(catalog, Category.MOTHERBOARD), "cpu_motherboard")
        assert _ids(lookup.compatible) == ["mb-b650"]
        assert _ids(lookup.incompatible) == ["mb-z790"]
        assert lookup.recommendations[0] == "Choose a motherboard with AM5 socket"

    def test_cpu_cooling(self, engine: CompatibilityEngine, catalog):
        cpu = _by_id(catalog, "cpu-7700x")
        lookup = engine.find_compatible(cpu, _of(catalog, Category.COOLING), RelationKind.CPU_COOLING)
        assert _ids(lookup.compatible) == ["cool-nhd15"]
        assert _ids(lookup.incompatible) == ["cool-am4"]

    def test_motherboard_memory(self, engine: CompatibilityEngine, catalog):
        board = _by_id(catalog, "mb-b650")
        lookup = engine.find_compatible(board, _of(catalog, Category.RAM), "motherboard_memory")
        assert _ids(lookup.compatible) == ["ram-ddr5"]
        assert _ids(lookup.incompatible) == ["ram-ddr4"]

    def test_motherboard_storage(self, engine: CompatibilityEngine, catalog):
        board = _by_id(catalog, "mb-b650")
        lookup = engine.find_compatible(board, _of(catalog, Category.STORAGE), "motherboard_storage")
        assert _ids(lookup.compatible) == ["ssd-980"]
        assert _ids(lookup.incompatible) == ["hdd-ide"]

    def test_gpu_motherboard_warnings_do_not_disqualify(self, engine: CompatibilityEngine):
        gpu = make("gpu", length=336)
        boards = [
            make("motherboard", "mb-short", maxGPULength=300),
            make("motherboard", "mb-long", maxGPULength=350),
        ]
        lookup = engine.find_compatible(gpu, boards, "gpu_motherboard")
        assert _ids(lookup.compatible) == ["mb-short", "mb-long"]
        assert lookup.incompatible == []

    def test_gpu_psu_sorted_by_price(self, engine: CompatibilityEngine, catalog):
        gpu = _by_id(catalog, "gpu-4070")  # 200W -> 400W recommended
        lookup = engine.find_compatible(gpu, _of(catalog, Category.PSU), "gpu_psu")
        assert _ids(lookup.compatible) == ["psu-450", "psu-650", "psu-850"]
        assert lookup.incompatible == []

    def test_gpu_psu_filters_by_wattage(self, engine: CompatibilityEngine, catalog):
        gpu = make("gpu", powerRequirement=320)  # 520W recommended
        psus = _of(catalog, Category.PSU) + [make("psu", "psu-1000", wattage=1000)]
        lookup = engine.find_compatible(gpu, psus, "gpu_psu")
        # Unpriced PSUs sort last
        assert _ids(lookup.compatible) == ["psu-650", "psu-850", "psu-1000"]
        assert _ids(lookup.incompatible) == ["psu-450"]

    def test_partition_is_exhaustive_and_disjoint(self, engine: CompatibilityEngine, catalog):
        for kind, spec in RELATIONS.items():
            anchor = _of(catalog, spec.anchor)[0]
            candidates = _of(catalog, spec.target)
            lookup = engine.find_compatible(anchor, candidates, kind)
            compatible, incompatible = set(_ids(lookup.compatible)), set(_ids(lookup.incompatible))
            assert compatible.isdisjoint(incompatible)
            assert compatible | incompatible == set(_ids(candidates))

    def test_wrong_anchor_category(self, engine: CompatibilityEngine, catalog):
        with pytest.raises(InvalidArgumentError, match="expects a gpu anchor"):
            engine.find_compatible(_by_id(catalog, "cpu-7700x"), [], "gpu_psu")

    def test_wrong_candidate_category(self, engine: CompatibilityEngine):
        cpu = make("cpu", socket="AM5")
        lookup = engine.find_compatible(
            cpu, [make("motherboard", "mb", socket="AM5"), make("ram", "ram")], "cpu_motherboard"
        )
        assert _ids(lookup.compatible) == ["mb"]
        assert _ids(lookup.incompatible) == ["ram"]

    def test_unknown_specs_are_compatible(self, engine: CompatibilityEngine):
        lookup = engine.find_compatible(make("cpu"), [make("cooling", "c1")], "cpu_cooling")
        assert _ids(lookup.compatible) == ["c1"]

    def test_missing_support_list_is_incompatible(self, engine: CompatibilityEngine):
        lookup = engine.find_compatible(
            make("cpu", socket="AM5"),
            [make("cooling", "c-listed", supportedSockets=["AM5"]), make("cooling", "c-unlisted", type="Air")],
            "cpu_cooling",
        )
        assert _ids(lookup.compatible) == ["c-listed"]
        assert _ids(lookup.incompatible) == ["c-unlisted"]

    def test_no_candidates(self, engine: CompatibilityEngine):
        lookup = engine.find_compatible(make("cpu", socket="AM5"), [], "cpu_motherboard")
        assert lookup.compatible == [] and lookup.incompatible == []
        assert lookup.recommendations

    def test_to_dict(self, engine: CompatibilityEngine, catalog):
        cpu = _by_id(catalog, "cpu-7700x")
        d = engine.find_compatible(cpu, _of(catalog, Category.MOTHERBOARD), "cpu_motherboard").to_dict()
        assert d["component"]["id"] == "cpu-7700x"
        assert d["relation"] == "cpu_motherboard"
        assert [c["id"] for c in d["compatible"]] == ["mb-b650"]
        assert [c["id"] for c in d["incompatible"]] == ["mb-z790"]
