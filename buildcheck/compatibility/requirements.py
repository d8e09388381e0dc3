"""Static requirements catalog: the specification keys that matter per category.

Documentation and UI hints only. Rule evaluation never consults this table.
"""

from __future__ import annotations

import copy
from types import MappingProxyType
from typing import Any, Mapping

from buildcheck.catalog.models import Category

_SOCKETS = ("LGA1700", "LGA1200", "AM4", "AM5")
_FORM_FACTORS = ("ATX", "Micro-ATX", "Mini-ITX")

REQUIREMENTS: Mapping[str, Mapping[str, Any]] = MappingProxyType({
    Category.CPU.value: MappingProxyType({
        "socket": _SOCKETS,
        "tdp": MappingProxyType({"min": 65, "max": 250}),
        "memory": ("DDR4", "DDR5"),
    }),
    Category.MOTHERBOARD.value: MappingProxyType({
        "socket": _SOCKETS,
        "memorySlots": MappingProxyType({"min": 2, "max": 4}),
        "maxMemory": MappingProxyType({"min": 64, "max": 128}),
        "formFactor": _FORM_FACTORS,
    }),
    Category.GPU.value: MappingProxyType({
        "powerConnectors": ("6-pin", "8-pin", "12-pin"),
        "length": MappingProxyType({"min": 200, "max": 400}),
        "powerRequirement": MappingProxyType({"min": 150, "max": 450}),
    }),
    Category.RAM.value: MappingProxyType({
        "type": ("DDR4", "DDR5"),
        "speed": MappingProxyType({"min": 2666, "max": 6000}),
        "capacity": MappingProxyType({"min": 8, "max": 32}),
    }),
    Category.STORAGE.value: MappingProxyType({
        "interface": ("SATA", "NVMe", "M.2"),
        "formFactor": ('2.5"', "M.2"),
        "capacity": MappingProxyType({"min": 256, "max": 4096}),
    }),
    Category.PSU.value: MappingProxyType({
        "wattage": MappingProxyType({"min": 450, "max": 1200}),
        "efficiency": ("80+", "80+ Bronze", "80+ Gold", "80+ Platinum"),
        "modular": ("Fully Modular", "Semi-Modular", "Non-Modular"),
    }),
    Category.COOLING.value: MappingProxyType({
        "type": ("Air", "Liquid"),
        "socketSupport": _SOCKETS,
        "height": MappingProxyType({"min": 50, "max": 165}),
    }),
    Category.CASE.value: MappingProxyType({
        "formFactor": _FORM_FACTORS,
        "gpuLength": MappingProxyType({"min": 300, "max": 450}),
        "coolerHeight": MappingProxyType({"min": 150, "max": 180}),
    }),
})


def _thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: _thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return list(value)
    return copy.copy(value)


def get_requirements(category: str | Category) -> dict[str, Any]:
    """Return a JSON-ready copy of the requirements for a category.

    Unknown categories return an empty dict instead of raising.
    """
    key = category.value if isinstance(category, Category) else str(category).strip().lower()
    entry = REQUIREMENTS.get(key)
    return _thaw(entry) if entry is not None else {}
