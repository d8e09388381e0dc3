"""Compatibility engine: selected parts → rule evaluation → scored, explained verdict.

Takes the components of a build, groups them by category, runs every rule in
the static table whose categories are present, and folds the issues into a
0-100 score. Also answers reverse lookups ("which coolers fit this CPU?") by
running the single relevant rule against each candidate.

The engine is a pure computation: no I/O, no shared state. Records come from
whatever catalog the caller uses.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Iterable, Mapping

from buildcheck.catalog.models import (
    Category,
    CompatibilityIssue,
    ComponentRecord,
    Severity,
    specs_for,
)
from buildcheck.compatibility.rules import (
    BUILD_RULES,
    HIGH_TDP_THRESHOLD,
    PSU_HEADROOM_WATTS,
    RELATIONS,
    RelationKind,
    fmt_quantity,
    total_power_draw,
)
from buildcheck.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

MAX_SCORE = 100

SEVERITY_PENALTY: Mapping[Severity, int] = MappingProxyType({
    Severity.ERROR: 25,
    Severity.WARNING: 10,
    Severity.INFO: 5,
})

PART_NAMES: Mapping[Category, str] = MappingProxyType({
    Category.CPU: "CPU",
    Category.GPU: "graphics card",
    Category.RAM: "memory kit",
    Category.STORAGE: "storage drive",
    Category.MOTHERBOARD: "motherboard",
    Category.PSU: "power supply",
    Category.COOLING: "CPU cooler",
    Category.CASE: "case",
})

# Parts a build may leave out; no "Select a ..." hint names them
OPTIONAL_PARTS = frozenset({Category.GPU})


class DuplicatePolicy(str, Enum):
    LAST = "last"  # last record of a category wins, a warning is logged
    REJECT = "reject"  # duplicates raise InvalidArgumentError


@dataclass
class CompatibilityResult:
    is_compatible: bool
    score: int
    issues: list[CompatibilityIssue] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "isCompatible": self.is_compatible,
            "score": self.score,
            "issues": [i.to_dict() for i in self.issues],
            "recommendations": list(self.recommendations),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def to_text(self) -> str:
        verdict = "Compatible" if self.is_compatible else "Not compatible"
        lines = [f"{verdict} (score {self.score}/{MAX_SCORE})"]
        if self.issues:
            lines.append("")
            lines.append("Issues:")
            for issue in self.issues:
                lines.append(f"  - [{issue.severity.value}] {issue.component}: {issue.issue}")
                if issue.solution:
                    lines.append(f"    → {issue.solution}")
        if self.recommendations:
            lines.append("")
            lines.append("Recommendations:")
            for rec in self.recommendations:
                lines.append(f"  - {rec}")
        return "\n".join(lines)


@dataclass
class CompatibilityLookup:
    anchor: ComponentRecord
    relation: RelationKind
    compatible: list[ComponentRecord] = field(default_factory=list)
    incompatible: list[ComponentRecord] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "component": self.anchor.to_dict(),
            "relation": self.relation.value,
            "compatible": [c.to_dict() for c in self.compatible],
            "incompatible": [c.to_dict() for c in self.incompatible],
            "recommendations": list(self.recommendations),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    def to_text(self) -> str:
        label = self.anchor.name or self.anchor.id
        lines = [f"{self.relation.value} lookup for {label}:"]
        lines.append(f"  Compatible ({len(self.compatible)}):")
        for c in self.compatible:
            lines.append(f"    - {c.id} {c.name}".rstrip())
        lines.append(f"  Incompatible ({len(self.incompatible)}):")
        for c in self.incompatible:
            lines.append(f"    - {c.id} {c.name}".rstrip())
        if self.recommendations:
            lines.append("")
            lines.append("Recommendations:")
            for rec in self.recommendations:
                lines.append(f"  - {rec}")
        return "\n".join(lines)


def calculate_score(issues: Iterable[CompatibilityIssue]) -> int:
    """100 minus a per-severity penalty for each issue, clamped to [0, 100]."""
    score = MAX_SCORE
    for issue in issues:
        score -= SEVERITY_PENALTY[issue.severity]
    return max(0, min(MAX_SCORE, score))


def resolve_relation(relation: str | RelationKind) -> RelationKind:
    if isinstance(relation, RelationKind):
        return relation
    try:
        return RelationKind(str(relation).strip().lower().replace("-", "_"))
    except ValueError:
        valid = ", ".join(r.value for r in RelationKind)
        raise InvalidArgumentError(
            f"Unknown relation '{relation}' (expected one of: {valid})"
        ) from None


class CompatibilityEngine:
    """Evaluates the static rule table against a build's components."""

    def __init__(self, duplicate_policy: DuplicatePolicy | str = DuplicatePolicy.LAST) -> None:
        try:
            self._duplicate_policy = DuplicatePolicy(duplicate_policy)
        except ValueError:
            raise InvalidArgumentError(
                f"Unknown duplicate policy '{duplicate_policy}' (expected 'last' or 'reject')"
            ) from None

    @property
    def duplicate_policy(self) -> DuplicatePolicy:
        return self._duplicate_policy

    def analyze(self, components: Iterable[ComponentRecord]) -> CompatibilityResult:
        """Run every applicable rule over a build and score the outcome."""
        grouped = self.group_by_category(components)

        issues: list[CompatibilityIssue] = []
        recommendations: list[str] = []
        for rule, spec in BUILD_RULES.items():
            if not spec.applies(grouped):
                continue
            outcome = spec.evaluate(grouped)
            if outcome.issues:
                logger.debug(f"Rule {rule.value} reported {len(outcome.issues)} issue(s)")
            issues.extend(outcome.issues)
            recommendations.extend(outcome.recommendations)

        recommendations.extend(self._build_recommendations(grouped))

        score = calculate_score(issues)
        is_compatible = not any(i.severity is Severity.ERROR for i in issues)
        logger.debug(
            f"Analyzed {len(grouped)} categories: score={score}, "
            f"compatible={is_compatible}, issues={len(issues)}"
        )
        return CompatibilityResult(
            is_compatible=is_compatible,
            score=score,
            issues=issues,
            recommendations=recommendations,
        )

    def find_compatible(
        self,
        anchor: ComponentRecord,
        candidates: Iterable[ComponentRecord],
        relation: str | RelationKind,
    ) -> CompatibilityLookup:
        """Split candidates into compatible / incompatible against an anchor part.

        A candidate is incompatible iff the relation's rule reports an error;
        warnings never disqualify. Raises InvalidArgumentError when the anchor
        does not match the relation.
        """
        kind = resolve_relation(relation)
        spec = RELATIONS[kind]
        if anchor.category is not spec.anchor:
            raise InvalidArgumentError(
                f"Relation '{kind.value}' expects a {spec.anchor.value} anchor, "
                f"got {anchor.category.value} ({anchor.id})"
            )

        compatible: list[ComponentRecord] = []
        incompatible: list[ComponentRecord] = []
        for candidate in candidates:
            if candidate.category is not spec.target:
                logger.warning(
                    f"Candidate {candidate.id} is a {candidate.category.value}, "
                    f"not a {spec.target.value}; marking incompatible"
                )
                incompatible.append(candidate)
                continue
            outcome = spec.classify(anchor, candidate)
            if outcome.has_error:
                incompatible.append(candidate)
            else:
                compatible.append(candidate)

        if kind is RelationKind.GPU_PSU:
            # Cheapest adequate PSU first; unpriced ones last
            compatible.sort(key=lambda c: (c.price is None, c.price or 0))

        return CompatibilityLookup(
            anchor=anchor,
            relation=kind,
            compatible=compatible,
            incompatible=incompatible,
            recommendations=spec.advise(anchor),
        )

    def group_by_category(
        self, components: Iterable[ComponentRecord]
    ) -> dict[Category, ComponentRecord]:
        """Map each category to the single record of that category.

        Duplicates follow the engine's DuplicatePolicy.
        """
        grouped: dict[Category, ComponentRecord] = {}
        for component in components:
            previous = grouped.get(component.category)
            if previous is not None:
                if self._duplicate_policy is DuplicatePolicy.REJECT:
                    raise InvalidArgumentError(
                        f"Build has more than one {component.category.value}: "
                        f"{previous.id} and {component.id}"
                    )
                logger.warning(
                    f"Duplicate {component.category.value} in build: "
                    f"{component.id} replaces {previous.id}"
                )
            grouped[component.category] = component
        return grouped

    def _build_recommendations(self, grouped: Mapping[Category, ComponentRecord]) -> list[str]:
        """Advice about the build as a whole; never affects issues or score."""
        if not grouped:
            return []

        recommendations: list[str] = []

        # Rules that could not run because exactly one side is missing
        missing: dict[Category, list[str]] = {}
        for spec in BUILD_RULES.values():
            present = [c for c in spec.requires if c in grouped]
            if present and len(present) < len(spec.requires):
                for category in spec.requires:
                    if category not in grouped and category not in OPTIONAL_PARTS:
                        missing.setdefault(category, []).append(spec.label)
        for category, labels in missing.items():
            recommendations.append(
                f"Select a {PART_NAMES[category]} to check {', '.join(labels)} compatibility"
            )

        if Category.PSU not in grouped:
            draw = total_power_draw(grouped.values())
            recommendations.append(
                f"Select a {PART_NAMES[Category.PSU]} rated for at least "
                f"{fmt_quantity(draw + PSU_HEADROOM_WATTS)}W (estimated draw {fmt_quantity(draw)}W)"
            )

        cpu = grouped.get(Category.CPU)
        if cpu is not None:
            tdp = specs_for(cpu).tdp
            if tdp is not None and tdp > HIGH_TDP_THRESHOLD:
                cooling = grouped.get(Category.COOLING)
                if cooling is None:
                    recommendations.append("Consider liquid cooling for high TDP CPUs")
                elif (specs_for(cooling).type or "").strip().lower() == "air":
                    recommendations.append(
                        f"CPU TDP is {fmt_quantity(tdp)}W; an air cooler may struggle, consider liquid cooling"
                    )

        return recommendations
