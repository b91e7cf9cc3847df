"""Disclosure state resolver - PURE canonical source of truth for disclosure.

This module contains ZERO database access. Pure functions operating on in-memory data structures.

Every consumer (signals, routes, recommendation, scripts) reads the one
DisclosureState produced here; nothing downstream re-derives disclosure.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from app.engine.catalogue import (
    DISCLOSURE_CATALOGUE,
    OPEN_DEPENDENCY_STATUSES,
    OUTSTANDING_URGENCY_MARKERS,
    SATISFYING_ACTIONS,
    SIMULATED_MARKER,
    WAIVED_DEPENDENCY_STATUSES,
    DisclosureItem,
    contains_any,
    document_display_names,
    normalize,
    text_matches_item,
)
from app.schemas.v1.cases import (
    CaseDocument,
    DeclaredDependency,
    DisclosureTimelineEntry,
    ImpactMapEntry,
)
from app.schemas.v1.common import DisclosureStatus, Severity

CONDITIONAL_MISSING_THRESHOLD = 3

RULE_TIMELINE = "timeline"
RULE_DOCUMENT = "document"
RULE_DEPENDENCY_WAIVED = "dependency_waived"
RULE_DEPENDENCY_SERVED = "dependency_served"
RULE_IMPACT_MAP = "impact_map"

_RULE_DESCRIPTIONS: dict[str, str] = {
    RULE_TIMELINE: "disclosure timeline shows it served/reviewed",
    RULE_DOCUMENT: "a case document name matches",
    RULE_DEPENDENCY_WAIVED: "declared dependency marked not needed",
    RULE_DEPENDENCY_SERVED: "declared dependency served/reviewed on the timeline",
    RULE_IMPACT_MAP: "evidence impact map shows it received",
}


@dataclass(frozen=True)
class DisclosureState:
    """Canonical disclosure state; missing + satisfied partition the catalogue."""

    missing_items: tuple[DisclosureItem, ...]
    satisfied_items: tuple[DisclosureItem, ...]
    satisfied_by: dict[str, str]
    status: DisclosureStatus
    rationale: tuple[str, ...]
    is_simulated: bool

    @property
    def missing_keys(self) -> frozenset[str]:
        return frozenset(item.key for item in self.missing_items)

    def missing_with_severity(self, severity: Severity) -> list[DisclosureItem]:
        return [item for item in self.missing_items if item.severity == severity]

    def to_dict(self) -> dict[str, Any]:
        return {
            "missing_items": [item.to_dict() for item in self.missing_items],
            "satisfied_items": [
                {**item.to_dict(), "satisfied_by": self.satisfied_by[item.key]}
                for item in self.satisfied_items
            ],
            "status": str(self.status),
            "rationale": list(self.rationale),
            "is_simulated": self.is_simulated,
        }


def _timeline_served(entry: DisclosureTimelineEntry) -> bool:
    return normalize(entry.action) in SATISFYING_ACTIONS


def _dependency_matches(dependency: DeclaredDependency, item: DisclosureItem) -> bool:
    return text_matches_item(dependency.id, item) or text_matches_item(dependency.label, item)


def _dependency_served_on_timeline(
    dependency: DeclaredDependency,
    timeline: Sequence[DisclosureTimelineEntry],
) -> bool:
    needles = [n for n in (normalize(dependency.id), normalize(dependency.label)) if n]
    for entry in timeline:
        entry_text = normalize(entry.item)
        if _timeline_served(entry) and any(needle in entry_text for needle in needles):
            return True
    return False


def _satisfying_rule(
    item: DisclosureItem,
    documents: Sequence[CaseDocument],
    timeline: Sequence[DisclosureTimelineEntry],
    dependencies: Sequence[DeclaredDependency],
    impact_entries: Sequence[ImpactMapEntry],
) -> str | None:
    """Apply the satisfaction rules in priority order; first match wins."""
    for entry in timeline:
        if _timeline_served(entry) and text_matches_item(entry.item, item):
            return RULE_TIMELINE

    for document in documents:
        if any(contains_any(name, item.patterns) for name in document_display_names(document)):
            return RULE_DOCUMENT

    matching_deps = [dep for dep in dependencies if _dependency_matches(dep, item)]
    if any(normalize(dep.status) in WAIVED_DEPENDENCY_STATUSES for dep in matching_deps):
        return RULE_DEPENDENCY_WAIVED

    for dep in matching_deps:
        if normalize(dep.status) in OPEN_DEPENDENCY_STATUSES and _dependency_served_on_timeline(
            dep, timeline
        ):
            return RULE_DEPENDENCY_SERVED

    for entry in impact_entries:
        if not text_matches_item(entry.name, item):
            continue
        if not any(marker in normalize(entry.urgency) for marker in OUTSTANDING_URGENCY_MARKERS):
            return RULE_IMPACT_MAP

    return None


def derive_status(missing_items: Sequence[DisclosureItem]) -> DisclosureStatus:
    """Overall safety classification from missing-item severities."""
    if any(item.severity == Severity.CRITICAL for item in missing_items):
        return DisclosureStatus.UNSAFE
    if (
        any(item.severity == Severity.HIGH for item in missing_items)
        or len(missing_items) >= CONDITIONAL_MISSING_THRESHOLD
    ):
        return DisclosureStatus.CONDITIONALLY_UNSAFE
    return DisclosureStatus.SAFE


def is_simulated_case(documents: Sequence[CaseDocument]) -> bool:
    return any(SIMULATED_MARKER in normalize(doc.title or doc.name) for doc in documents)


def _labels(items: Sequence[DisclosureItem]) -> str:
    return ", ".join(item.label for item in items)


def _status_rationale(
    status: DisclosureStatus,
    missing: Sequence[DisclosureItem],
) -> list[str]:
    critical = [i for i in missing if i.severity == Severity.CRITICAL]
    high = [i for i in missing if i.severity == Severity.HIGH]

    if status == DisclosureStatus.UNSAFE:
        return [
            f"{len(critical)} critical disclosure item(s) missing: {_labels(critical)}",
            "Case cannot safely progress until critical disclosure is received.",
        ]
    if status == DisclosureStatus.CONDITIONALLY_UNSAFE:
        lines = []
        if high:
            lines.append(f"{len(high)} high-priority disclosure item(s) missing: {_labels(high)}")
        if len(missing) >= CONDITIONAL_MISSING_THRESHOLD:
            lines.append(f"{len(missing)} disclosure items outstanding in total.")
        lines.append(
            "Case may be conditionally unsafe to proceed without this disclosure; "
            "progress only with the gaps recorded."
        )
        return lines

    lines = ["All critical and high-priority disclosure items are satisfied."]
    if missing:
        lines.append(
            f"{len(missing)} lower-priority item(s) outstanding: {_labels(missing)}"
        )
    return lines


def resolve_disclosure_state(
    documents: Sequence[CaseDocument] = (),
    timeline: Sequence[DisclosureTimelineEntry] = (),
    dependencies: Sequence[DeclaredDependency] = (),
    impact_entries: Sequence[ImpactMapEntry] = (),
) -> DisclosureState:
    """Resolve the canonical disclosure state for the fixed catalogue.

    Total over empty input: with nothing to go on every item is missing
    with its catalogue severity.
    """
    missing: list[DisclosureItem] = []
    satisfied: list[DisclosureItem] = []
    satisfied_by: dict[str, str] = {}
    item_lines: list[str] = []

    for item in DISCLOSURE_CATALOGUE:
        rule = _satisfying_rule(item, documents, timeline, dependencies, impact_entries)
        if rule is None:
            missing.append(item)
            item_lines.append(f"{item.label}: missing ({item.severity}).")
        else:
            satisfied.append(item)
            satisfied_by[item.key] = rule
            item_lines.append(f"{item.label}: satisfied - {_RULE_DESCRIPTIONS[rule]}.")

    status = derive_status(missing)
    simulated = is_simulated_case(documents)

    rationale = _status_rationale(status, missing) + item_lines
    if simulated:
        rationale.append("Simulated documents detected (demo case).")
    rationale.append(f"Satisfied: {len(satisfied)} item(s)")
    rationale.append(f"Missing: {len(missing)} item(s)")

    return DisclosureState(
        missing_items=tuple(missing),
        satisfied_items=tuple(satisfied),
        satisfied_by=satisfied_by,
        status=status,
        rationale=tuple(rationale),
        is_simulated=simulated,
    )
