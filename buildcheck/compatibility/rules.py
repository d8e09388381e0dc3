"""The compatibility rule table.

Two static tables live here:

* ``BUILD_RULES``: the checks run by a full build analysis, keyed by
  ``BuildRule`` and evaluated in declaration order. Each entry names the
  categories it is gated on.
* ``RELATIONS``: the anchor/candidate pairs used by reverse lookups
  ("which motherboards fit this CPU?"), keyed by ``RelationKind``.

Every rule is a pure function of the records handed to it. Missing
specification values never raise: they are defaulted or the check is skipped.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Sequence

from buildcheck.catalog.models import (
    Category,
    CompatibilityIssue,
    ComponentRecord,
    Severity,
    specs_for,
)

DEFAULT_POWER_DRAW: Mapping[Category, int] = MappingProxyType({
    Category.CPU: 95,
    Category.GPU: 200,
    Category.MOTHERBOARD: 50,
    Category.RAM: 5,
    Category.STORAGE: 10,
    Category.PSU: 0,
    Category.COOLING: 5,
    Category.CASE: 0,
})

DEFAULT_PSU_WATTAGE = 500
DEFAULT_GPU_POWER = 200
DEFAULT_MAX_GPU_LENGTH = 300  # mm
DEFAULT_MAX_MEMORY = 64  # GB
DEFAULT_CPU_TDP = 95
PSU_HEADROOM_WATTS = 100
PSU_SAFETY_MARGIN_WATTS = 200  # added to GPU draw when recommending a PSU
HIGH_TDP_THRESHOLD = 150


class BuildRule(str, Enum):
    CPU_MOTHERBOARD = "cpu_motherboard"
    RAM_MOTHERBOARD = "ram_motherboard"
    GPU_MOTHERBOARD = "gpu_motherboard"
    PSU_POWER = "psu_power"
    STORAGE_MOTHERBOARD = "storage_motherboard"
    COOLING_CPU = "cooling_cpu"


class RelationKind(str, Enum):
    CPU_MOTHERBOARD = "cpu_motherboard"
    CPU_COOLING = "cpu_cooling"
    GPU_MOTHERBOARD = "gpu_motherboard"
    GPU_PSU = "gpu_psu"
    MOTHERBOARD_MEMORY = "motherboard_memory"
    MOTHERBOARD_STORAGE = "motherboard_storage"


@dataclass
class RuleOutcome:
    issues: list[CompatibilityIssue] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    @property
    def has_error(self) -> bool:
        return any(i.severity is Severity.ERROR for i in self.issues)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _supported(values: Iterable[str] | None) -> tuple[str, ...]:
    """A support list the record does not state supports nothing."""
    return tuple(values) if values is not None else ()


def fmt_quantity(value: float) -> str:
    return f"{int(value)}" if float(value).is_integer() else f"{value:g}"


def component_power_draw(component: ComponentRecord) -> float:
    """Estimated draw in watts; falls back to the per-category default."""
    if component.category in (Category.PSU, Category.CASE):
        return 0
    specs = specs_for(component)
    if component.category is Category.CPU:
        own = specs.tdp
    elif component.category is Category.GPU:
        own = specs.power_requirement
    else:
        own = specs.power_draw
    if own is not None and own >= 0:
        return own
    return DEFAULT_POWER_DRAW[component.category]


def total_power_draw(components: Iterable[ComponentRecord]) -> float:
    return sum(component_power_draw(c) for c in components)


def gpu_power_requirement(gpu: ComponentRecord) -> float:
    power = specs_for(gpu).power_requirement
    return power if power is not None and power >= 0 else DEFAULT_GPU_POWER


def psu_wattage(psu: ComponentRecord) -> float:
    wattage = specs_for(psu).wattage
    return wattage if wattage is not None and wattage > 0 else DEFAULT_PSU_WATTAGE


def recommended_psu_wattage(gpu: ComponentRecord) -> float:
    return gpu_power_requirement(gpu) + PSU_SAFETY_MARGIN_WATTS


# ---------------------------------------------------------------------------
# Pairwise and aggregate checks
# ---------------------------------------------------------------------------


def check_cpu_motherboard(cpu: ComponentRecord, motherboard: ComponentRecord) -> RuleOutcome:
    outcome = RuleOutcome()
    cpu_socket = specs_for(cpu).socket
    board_socket = specs_for(motherboard).socket

    if cpu_socket and board_socket and cpu_socket != board_socket:
        outcome.issues.append(CompatibilityIssue(
            component="CPU-Motherboard",
            issue=f"CPU socket {cpu_socket} is not compatible with motherboard socket {board_socket}",
            severity=Severity.ERROR,
            solution=(
                f"Choose a motherboard with {cpu_socket} socket "
                f"or a CPU compatible with {board_socket}"
            ),
        ))
    return outcome


def check_ram_motherboard(ram: ComponentRecord, motherboard: ComponentRecord) -> RuleOutcome:
    outcome = RuleOutcome()
    ram_type = specs_for(ram).type
    supported = _supported(specs_for(motherboard).supported_memory)

    if ram_type and ram_type not in supported:
        outcome.issues.append(CompatibilityIssue(
            component="RAM-Motherboard",
            issue=f"RAM type {ram_type} is not supported by this motherboard",
            severity=Severity.ERROR,
            solution=(
                f"Choose RAM with one of the supported types: {', '.join(supported)}"
                if supported else "Choose a motherboard that lists its supported memory types"
            ),
        ))
    return outcome


def check_gpu_motherboard(gpu: ComponentRecord, motherboard: ComponentRecord) -> RuleOutcome:
    outcome = RuleOutcome()
    gpu_length = specs_for(gpu).length or 0
    max_length = specs_for(motherboard).max_gpu_length or DEFAULT_MAX_GPU_LENGTH

    # Warning only: the case may still have the clearance
    if gpu_length > max_length:
        outcome.issues.append(CompatibilityIssue(
            component="GPU-Motherboard",
            issue=f"GPU length ({fmt_quantity(gpu_length)}mm) exceeds motherboard maximum ({fmt_quantity(max_length)}mm)",
            severity=Severity.WARNING,
            solution="Check case compatibility or choose a smaller GPU",
        ))
    return outcome


def check_psu_power(psu: ComponentRecord, components: Sequence[ComponentRecord]) -> RuleOutcome:
    outcome = RuleOutcome()
    wattage = psu_wattage(psu)
    required = total_power_draw(components)

    if wattage < required:
        outcome.issues.append(CompatibilityIssue(
            component="PSU",
            issue=(
                f"PSU wattage ({fmt_quantity(wattage)}W) is insufficient for this build "
                f"(requires {fmt_quantity(required)}W)"
            ),
            severity=Severity.ERROR,
            solution=f"Choose a PSU with at least {fmt_quantity(required + PSU_HEADROOM_WATTS)}W",
        ))
    elif wattage < required + PSU_HEADROOM_WATTS:
        outcome.issues.append(CompatibilityIssue(
            component="PSU",
            issue=(
                f"PSU wattage ({fmt_quantity(wattage)}W) may be tight for this build "
                f"(requires {fmt_quantity(required)}W)"
            ),
            severity=Severity.WARNING,
            solution="Consider a PSU with more wattage for future upgrades",
        ))
    outcome.recommendations.append(
        f"Estimated system draw is {fmt_quantity(required)}W; "
        f"a PSU of {fmt_quantity(required + PSU_HEADROOM_WATTS)}W or more leaves comfortable headroom"
    )
    return outcome


def check_storage_motherboard(storage: ComponentRecord, motherboard: ComponentRecord) -> RuleOutcome:
    outcome = RuleOutcome()
    interface = specs_for(storage).interface
    supported = _supported(specs_for(motherboard).supported_storage)

    if interface and interface not in supported:
        outcome.issues.append(CompatibilityIssue(
            component="Storage-Motherboard",
            issue=f"Storage interface {interface} is not supported by this motherboard",
            severity=Severity.ERROR,
            solution=(
                f"Choose storage with one of the supported interfaces: {', '.join(supported)}"
                if supported else "Choose a motherboard that lists its supported storage interfaces"
            ),
        ))
    return outcome


def check_cooling_cpu(cooling: ComponentRecord, cpu: ComponentRecord) -> RuleOutcome:
    outcome = RuleOutcome()
    sockets = _supported(specs_for(cooling).supported_sockets)
    cpu_socket = specs_for(cpu).socket

    if cpu_socket and cpu_socket not in sockets:
        outcome.issues.append(CompatibilityIssue(
            component="Cooling-CPU",
            issue=f"Cooling solution does not support CPU socket {cpu_socket}",
            severity=Severity.ERROR,
            solution=f"Choose a cooling solution that supports {cpu_socket}",
        ))
    return outcome


def check_psu_for_gpu(gpu: ComponentRecord, psu: ComponentRecord) -> RuleOutcome:
    """Wattage filter used by the GPU -> PSU lookup, not by build analysis."""
    outcome = RuleOutcome()
    required = recommended_psu_wattage(gpu)
    wattage = psu_wattage(psu)

    if wattage < required:
        outcome.issues.append(CompatibilityIssue(
            component="GPU-PSU",
            issue=f"PSU wattage ({fmt_quantity(wattage)}W) is below the {fmt_quantity(required)}W recommended for this GPU",
            severity=Severity.ERROR,
            solution=f"Choose a PSU with at least {fmt_quantity(required)}W",
        ))
    return outcome


# ---------------------------------------------------------------------------
# Relation-specific advice
# ---------------------------------------------------------------------------


def motherboard_recommendations(cpu: ComponentRecord) -> list[str]:
    socket = specs_for(cpu).socket
    return [
        f"Choose a motherboard with {socket} socket" if socket
        else "Choose a motherboard whose socket matches the CPU",
        "Consider the number of RAM slots you need",
        "Check for required connectivity options",
    ]


def cooling_recommendations(cpu: ComponentRecord) -> list[str]:
    specs = specs_for(cpu)
    tdp = specs.tdp if specs.tdp is not None else DEFAULT_CPU_TDP
    recommendations = []
    if tdp > HIGH_TDP_THRESHOLD:
        recommendations.append("Consider liquid cooling for high TDP CPUs")
    else:
        recommendations.append("Air cooling should be sufficient for this CPU")
    if specs.socket:
        recommendations.append(f"Ensure cooling solution supports {specs.socket} socket")
    return recommendations


def memory_recommendations(motherboard: ComponentRecord) -> list[str]:
    specs = specs_for(motherboard)
    max_memory = specs.max_memory if specs.max_memory is not None else DEFAULT_MAX_MEMORY
    recommendations = []
    if specs.supported_memory:
        recommendations.append(f"Choose {' or '.join(specs.supported_memory)} memory")
    recommendations.append(f"Maximum supported memory: {fmt_quantity(max_memory)}GB")
    recommendations.append("Check memory speed compatibility")
    return recommendations


def storage_recommendations(motherboard: ComponentRecord) -> list[str]:
    supported = specs_for(motherboard).supported_storage
    recommendations = []
    if supported:
        recommendations.append(f"Choose storage with {' or '.join(supported)} interface")
    recommendations.append("Consider M.2 NVMe for better performance")
    recommendations.append("Check available storage slots")
    return recommendations


def psu_recommendations(gpu: ComponentRecord) -> list[str]:
    power = gpu_power_requirement(gpu)
    return [
        f"Choose a PSU rated for at least {fmt_quantity(power + PSU_SAFETY_MARGIN_WATTS)}W "
        f"({fmt_quantity(power)}W GPU draw + {PSU_SAFETY_MARGIN_WATTS}W margin)",
    ]


def gpu_clearance_recommendations(gpu: ComponentRecord) -> list[str]:
    length = specs_for(gpu).length
    if length is None:
        return ["GPU length unknown; verify clearance against the motherboard and case"]
    return [f"Look for boards and cases with at least {fmt_quantity(length)}mm of GPU clearance"]


# ---------------------------------------------------------------------------
# Tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BuildRuleSpec:
    label: str
    requires: tuple[Category, ...]
    check: Callable[..., RuleOutcome]
    # Aggregate rules also receive every grouped component
    aggregate: bool = False

    def applies(self, grouped: Mapping[Category, ComponentRecord]) -> bool:
        return all(c in grouped for c in self.requires)

    def evaluate(self, grouped: Mapping[Category, ComponentRecord]) -> RuleOutcome:
        args: list = [grouped[c] for c in self.requires]
        if self.aggregate:
            args.append(list(grouped.values()))
        return self.check(*args)


@dataclass(frozen=True)
class RelationSpec:
    anchor: Category
    target: Category
    # Called as classify(anchor, candidate)
    classify: Callable[[ComponentRecord, ComponentRecord], RuleOutcome]
    advise: Callable[[ComponentRecord], list[str]]


BUILD_RULES: Mapping[BuildRule, BuildRuleSpec] = MappingProxyType({
    BuildRule.CPU_MOTHERBOARD: BuildRuleSpec(
        "CPU-Motherboard", (Category.CPU, Category.MOTHERBOARD), check_cpu_motherboard,
    ),
    BuildRule.RAM_MOTHERBOARD: BuildRuleSpec(
        "RAM-Motherboard", (Category.RAM, Category.MOTHERBOARD), check_ram_motherboard,
    ),
    BuildRule.GPU_MOTHERBOARD: BuildRuleSpec(
        "GPU-Motherboard", (Category.GPU, Category.MOTHERBOARD), check_gpu_motherboard,
    ),
    BuildRule.PSU_POWER: BuildRuleSpec(
        "PSU", (Category.PSU,), check_psu_power, aggregate=True,
    ),
    BuildRule.STORAGE_MOTHERBOARD: BuildRuleSpec(
        "Storage-Motherboard", (Category.STORAGE, Category.MOTHERBOARD), check_storage_motherboard,
    ),
    BuildRule.COOLING_CPU: BuildRuleSpec(
        "Cooling-CPU", (Category.COOLING, Category.CPU), check_cooling_cpu,
    ),
})

RELATIONS: Mapping[RelationKind, RelationSpec] = MappingProxyType({
    RelationKind.CPU_MOTHERBOARD: RelationSpec(
        Category.CPU, Category.MOTHERBOARD,
        lambda cpu, board: check_cpu_motherboard(cpu, board),
        motherboard_recommendations,
    ),
    RelationKind.CPU_COOLING: RelationSpec(
        Category.CPU, Category.COOLING,
        lambda cpu, cooling: check_cooling_cpu(cooling, cpu),
        cooling_recommendations,
    ),
    RelationKind.GPU_MOTHERBOARD: RelationSpec(
        Category.GPU, Category.MOTHERBOARD,
        lambda gpu, board: check_gpu_motherboard(gpu, board),
        gpu_clearance_recommendations,
    ),
    RelationKind.GPU_PSU: RelationSpec(
        Category.GPU, Category.PSU,
        lambda gpu, psu: check_psu_for_gpu(gpu, psu),
        psu_recommendations,
    ),
    RelationKind.MOTHERBOARD_MEMORY: RelationSpec(
        Category.MOTHERBOARD, Category.RAM,
        lambda board, ram: check_ram_motherboard(ram, board),
        memory_recommendations,
    ),
    RelationKind.MOTHERBOARD_STORAGE: RelationSpec(
        Category.MOTHERBOARD, Category.STORAGE,
        lambda board, storage: check_storage_motherboard(storage, board),
        storage_recommendations,
    ),
})


def _check_tables() -> None:
    missing_rules = set(BuildRule) - set(BUILD_RULES)
    missing_relations = set(RelationKind) - set(RELATIONS)
    if missing_rules or missing_relations:
        names = sorted(m.value for m in missing_rules | missing_relations)
        raise RuntimeError(f"Compatibility table has no implementation for: {', '.join(names)}")


_check_tables()
