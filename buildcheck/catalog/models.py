"""Core data models for buildcheck."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from buildcheck.errors import InvalidArgumentError

_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


class Category(str, Enum):
    CPU = "cpu"
    GPU = "gpu"
    RAM = "ram"
    STORAGE = "storage"
    MOTHERBOARD = "motherboard"
    PSU = "psu"
    COOLING = "cooling"
    CASE = "case"

    @classmethod
    def parse(cls, value: str | Category) -> Category:
        """Resolve a category name, raising InvalidArgumentError for unknown ones."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            valid = ", ".join(c.value for c in cls)
            raise InvalidArgumentError(
                f"Unknown component category '{value}' (expected one of: {valid})"
            ) from None


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class ComponentRecord:
    id: str
    category: Category
    specifications: Mapping[str, Any] = field(default_factory=dict)
    # Display-only; the compatibility engine never reads these
    name: str = ""
    brand: str = ""
    price: float | None = None
    is_active: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "category", Category.parse(self.category))
        object.__setattr__(self, "specifications", MappingProxyType(dict(self.specifications)))

    def spec(self, key: str, default: Any = None) -> Any:
        return self.specifications.get(key, default)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category.value,
            "name": self.name,
            "brand": self.brand,
            "price": self.price,
            "isActive": self.is_active,
            "specifications": dict(self.specifications),
        }


@dataclass(frozen=True)
class CompatibilityIssue:
    component: str  # stable per-rule label, e.g. "CPU-Motherboard"
    issue: str
    severity: Severity
    solution: str | None = None

    def to_dict(self) -> dict:
        d = {
            "component": self.component,
            "issue": self.issue,
            "severity": self.severity.value,
        }
        if self.solution is not None:
            d["solution"] = self.solution
        return d


# ---------------------------------------------------------------------------
# Typed-but-partial specification views
# ---------------------------------------------------------------------------


def to_number(value: Any) -> int | float | None:
    """Coerce a spec value such as 850, "850W" or "336 mm" to a number.

    Values that are not finite, or too large to represent as a float, count as
    unknown.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        try:
            float(value)
        except OverflowError:
            return None
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        match = _NUMBER_RE.search(value.replace(",", ""))
        if match:
            number = float(match.group())
            if not math.isfinite(number):
                return None
            return int(number) if number.is_integer() else number
    return None


def to_text(value: Any) -> str | None:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def to_text_list(value: Any) -> tuple[str, ...] | None:
    """Coerce a list-ish spec value; a bare string becomes a one-element list.

    Returns None when the value is absent or unusable, and an empty tuple for an
    explicitly empty list.
    """
    if isinstance(value, str):
        items: list[Any] = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        return None
    return tuple(t for t in (to_text(v) for v in items) if t)


_CONVERTERS = {
    "text": to_text,
    "number": to_number,
    "list": to_text_list,
}


def _spec(key: str, kind: str = "text") -> Any:
    return field(default=None, metadata={"key": key, "kind": kind})


@dataclass(frozen=True)
class SpecView:
    """Base for per-category views; every field is optional."""

    @classmethod
    def from_specifications(cls, specifications: Mapping[str, Any]) -> SpecView:
        values = {}
        for f in fields(cls):
            raw = specifications.get(f.metadata["key"])
            values[f.name] = None if raw is None else _CONVERTERS[f.metadata["kind"]](raw)
        return cls(**values)


@dataclass(frozen=True)
class CpuSpecs(SpecView):
    socket: str | None = _spec("socket")
    tdp: float | None = _spec("tdp", "number")
    cores: float | None = _spec("cores", "number")
    threads: float | None = _spec("threads", "number")
    memory: tuple[str, ...] | None = _spec("memory", "list")


@dataclass(frozen=True)
class MotherboardSpecs(SpecView):
    socket: str | None = _spec("socket")
    supported_memory: tuple[str, ...] | None = _spec("supportedMemory", "list")
    supported_storage: tuple[str, ...] | None = _spec("supportedStorage", "list")
    max_gpu_length: float | None = _spec("maxGPULength", "number")
    max_memory: float | None = _spec("maxMemory", "number")
    memory_slots: float | None = _spec("memorySlots", "number")
    form_factor: str | None = _spec("formFactor")
    power_draw: float | None = _spec("powerDraw", "number")


@dataclass(frozen=True)
class RamSpecs(SpecView):
    type: str | None = _spec("type")
    speed: float | None = _spec("speed", "number")
    capacity: float | None = _spec("capacity", "number")
    power_draw: float | None = _spec("powerDraw", "number")


@dataclass(frozen=True)
class GpuSpecs(SpecView):
    length: float | None = _spec("length", "number")
    power_requirement: float | None = _spec("powerRequirement", "number")
    power_connectors: tuple[str, ...] | None = _spec("powerConnectors", "list")


@dataclass(frozen=True)
class StorageSpecs(SpecView):
    interface: str | None = _spec("interface")
    form_factor: str | None = _spec("formFactor")
    capacity: float | None = _spec("capacity", "number")
    power_draw: float | None = _spec("powerDraw", "number")


@dataclass(frozen=True)
class PsuSpecs(SpecView):
    wattage: float | None = _spec("wattage", "number")
    efficiency: str | None = _spec("efficiency")
    modular: str | None = _spec("modular")


@dataclass(frozen=True)
class CoolingSpecs(SpecView):
    type: str | None = _spec("type")
    supported_sockets: tuple[str, ...] | None = _spec("supportedSockets", "list")
    height: float | None = _spec("height", "number")
    power_draw: float | None = _spec("powerDraw", "number")


@dataclass(frozen=True)
class CaseSpecs(SpecView):
    form_factor: str | None = _spec("formFactor")
    gpu_length: float | None = _spec("gpuLength", "number")
    cooler_height: float | None = _spec("coolerHeight", "number")


SPEC_VIEWS: Mapping[Category, type[SpecView]] = MappingProxyType({
    Category.CPU: CpuSpecs,
    Category.GPU: GpuSpecs,
    Category.RAM: RamSpecs,
    Category.STORAGE: StorageSpecs,
    Category.MOTHERBOARD: MotherboardSpecs,
    Category.PSU: PsuSpecs,
    Category.COOLING: CoolingSpecs,
    Category.CASE: CaseSpecs,
})


def specs_for(record: ComponentRecord) -> Any:
    """Return the typed specification view matching the record's category."""
    return SPEC_VIEWS[record.category].from_specifications(record.specifications)


@dataclass
class Build:
    name: str
    component_ids: list[str] = field(default_factory=list)
    id: int | None = None  # assigned by the repository
    compatibility_score: int | None = None  # last persisted analysis
    is_compatible: bool | None = None
    checked_at: datetime | None = None
    created_at: datetime = field(default_factory=datetime.now)
