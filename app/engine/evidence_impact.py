"""Evidence impact mapper - PURE reverse index from missing evidence to attack paths.

This module contains ZERO database access. Pure functions operating on in-memory data structures.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from app.engine.catalogue import CATALOGUE_ORDER, SEVERITY_ORDER, DisclosureItem
from app.engine.disclosure_state import DisclosureState
from app.engine.strategy_routes import StrategyRoute

DEFAULT_SHORTLIST_SIZE = 5

# One line per catalogue item: what its absence does to the defence.
IMPACT_EXPLANATIONS: dict[str, str] = {
    "cctv_full_window": (
        "Without the full CCTV window, sequence and identification arguments rest on "
        "partial footage the prosecution has selected."
    ),
    "cctv_continuity": (
        "Without continuity records, the integrity of any footage relied on cannot be tested."
    ),
    "bwv": (
        "Without body-worn video, first-account and injury-presentation evidence cannot "
        "be checked against officer statements."
    ),
    "call_999_audio": (
        "Without the 999 audio, the earliest account of the incident and any descriptions "
        "given cannot be tested."
    ),
    "cad_log": (
        "Without the CAD log, timings and the sequence of police attendance cannot be verified."
    ),
    "interview_recording": (
        "Without the interview recording, admissibility and PACE compliance of the "
        "interview cannot be assessed."
    ),
    "custody_record_or_custody_cctv": (
        "Without the custody record or custody CCTV, detention conditions and PACE "
        "compliance cannot be assessed."
    ),
}

IF_ARRIVES_ADVERSE: dict[str, str] = {
    "cctv_full_window": (
        "If CCTV shows a prolonged or targeted attack, pivot from intent challenge to "
        "charge reduction or outcome management."
    ),
    "cctv_continuity": (
        "If continuity is intact, drop the integrity challenge and focus on what the footage shows."
    ),
    "bwv": (
        "If BWV shows clear identification or admissions, pivot to charge reduction or "
        "outcome management."
    ),
    "call_999_audio": (
        "If the 999 call gives a clear description matching the defendant, weaken reliance "
        "on the identification challenge."
    ),
    "cad_log": (
        "If the CAD log confirms the prosecution timeline, drop timing-based challenges."
    ),
    "interview_recording": (
        "If the interview was PACE compliant with admissions, pivot to outcome management."
    ),
    "custody_record_or_custody_cctv": (
        "If custody procedures were fully compliant, drop PACE exclusion arguments."
    ),
}


@dataclass(frozen=True)
class EvidenceImpactEntry:
    item_key: str
    label: str
    severity: str
    category: str
    affected_attack_paths: tuple[str, ...]
    affected_routes: tuple[str, ...]
    explanation: str
    if_arrives_adverse: str

    @property
    def unblock_count(self) -> int:
        return len(self.affected_attack_paths)

    def to_dict(self) -> dict[str, Any]:
        return {
            "item_key": self.item_key,
            "label": self.label,
            "severity": self.severity,
            "category": self.category,
            "affected_attack_paths": list(self.affected_attack_paths),
            "affected_routes": list(self.affected_routes),
            "unblock_count": self.unblock_count,
            "explanation": self.explanation,
            "if_arrives_adverse": self.if_arrives_adverse,
        }


@dataclass(frozen=True)
class EvidenceImpactMap:
    entries: tuple[EvidenceImpactEntry, ...]
    shortlist: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "most_valuable_missing_evidence": list(self.shortlist),
        }


def _impact_entry(item: DisclosureItem, routes: Sequence[StrategyRoute]) -> EvidenceImpactEntry:
    paths: list[str] = []
    affected_routes: list[str] = []
    for route in routes:
        for path in route.attack_paths:
            if item.key in path.required_evidence:
                paths.append(f"{route.route_id}:{path.name}")
                if str(route.route_id) not in affected_routes:
                    affected_routes.append(str(route.route_id))

    if paths:
        explanation = IMPACT_EXPLANATIONS[item.key]
    else:
        explanation = f"{item.label} is not required by any current attack path."
    return EvidenceImpactEntry(
        item_key=item.key,
        label=item.label,
        severity=str(item.severity),
        category=item.category,
        affected_attack_paths=tuple(paths),
        affected_routes=tuple(affected_routes),
        explanation=explanation,
        if_arrives_adverse=IF_ARRIVES_ADVERSE[item.key],
    )


def rank_missing_evidence(
    entries: Sequence[EvidenceImpactEntry],
    limit: int = DEFAULT_SHORTLIST_SIZE,
) -> tuple[str, ...]:
    """Missing item keys ordered by attack paths unblocked, then severity."""
    ranked = sorted(
        (entry for entry in entries if entry.unblock_count > 0),
        key=lambda e: (-e.unblock_count, SEVERITY_ORDER[e.severity], CATALOGUE_ORDER[e.item_key]),
    )
    return tuple(entry.item_key for entry in ranked[:limit])


def build_evidence_impact_map(
    disclosure_state: DisclosureState,
    routes: Sequence[StrategyRoute],
    shortlist_size: int = DEFAULT_SHORTLIST_SIZE,
) -> EvidenceImpactMap:
    entries = tuple(_impact_entry(item, routes) for item in disclosure_state.missing_items)
    return EvidenceImpactMap(entries=entries, shortlist=rank_missing_evidence(entries, shortlist_size))
