"""Strategy route generator - PURE expansion of attack-path templates.

This module contains ZERO database access. Pure functions operating on in-memory data structures.

Each route owns an ordered template of attack paths; a template row fires
when its signal predicate holds. Paths come out structural first, then
evidentiary, then mitigation.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from app.engine.disclosure_state import DisclosureState
from app.engine.evidence_signals import EvidenceSignals
from app.schemas.v1.common import AttackCategory, DisclosureStatus, RouteId, StrengthTag

ROUTE_PRIORITY: tuple[RouteId, ...] = (
    RouteId.FIGHT_CHARGE,
    RouteId.CHARGE_REDUCTION,
    RouteId.OUTCOME_MANAGEMENT,
)

ROUTE_LABELS: dict[RouteId, str] = {
    RouteId.FIGHT_CHARGE: "Fight Charge (Full Trial Strategy)",
    RouteId.CHARGE_REDUCTION: "Charge Reduction (s18 to s20)",
    RouteId.OUTCOME_MANAGEMENT: "Outcome Management (Plea/Mitigation)",
}

_CATEGORY_ORDER: dict[AttackCategory, int] = {
    AttackCategory.STRUCTURAL: 0,
    AttackCategory.EVIDENTIARY: 1,
    AttackCategory.MITIGATION: 2,
}

DEGRADED_REASON = (
    "Insufficient text extracted from case documents; attack paths are hypotheses "
    "pending readable disclosure."
)

Predicate = Callable[[EvidenceSignals, DisclosureState], bool]


@dataclass(frozen=True)
class AttackPathTemplate:
    name: str
    category: AttackCategory
    target: str
    method: str
    required_evidence: tuple[str, ...]
    kill_switch: str
    predicate: Predicate


@dataclass(frozen=True)
class AttackPath:
    name: str
    required_evidence: tuple[str, ...]
    strength_tag: StrengthTag
    category: AttackCategory
    target: str
    method: str
    kill_switch: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "required_evidence": list(self.required_evidence),
            "strength_tag": str(self.strength_tag),
            "category": str(self.category),
            "target": self.target,
            "method": self.method,
            "kill_switch": self.kill_switch,
        }


@dataclass(frozen=True)
class StrategyRoute:
    route_id: RouteId
    label: str
    attack_paths: tuple[AttackPath, ...]
    degraded: bool = False
    degraded_reason: str | None = None

    @property
    def attack_path_names(self) -> frozenset[str]:
        return frozenset(path.name for path in self.attack_paths)

    def to_dict(self) -> dict[str, Any]:
        return {
            "route_id": str(self.route_id),
            "label": self.label,
            "attack_paths": [path.to_dict() for path in self.attack_paths],
            "degraded": self.degraded,
            "degraded_reason": self.degraded_reason,
        }


def _always(_signals: EvidenceSignals, _state: DisclosureState) -> bool:
    return True


ROUTE_TEMPLATES: dict[RouteId, tuple[AttackPathTemplate, ...]] = {
    RouteId.FIGHT_CHARGE: (
        AttackPathTemplate(
            name="DISCLOSURE_FAILURE_ABUSE_OF_PROCESS",
            category=AttackCategory.STRUCTURAL,
            target="Disclosure failures",
            method="Chase missing material, then abuse of process application if failures persist",
            required_evidence=(),
            kill_switch="Full disclosure provided with no material gaps",
            predicate=lambda s, d: d.status != DisclosureStatus.SAFE,
        ),
        AttackPathTemplate(
            name="PACE_BREACH_EXCLUSION",
            category=AttackCategory.STRUCTURAL,
            target="PACE compliance",
            method="Exclusion of interview/custody evidence under s76/s78 PACE",
            required_evidence=("interview_recording", "custody_record_or_custody_cctv"),
            kill_switch="PACE compliance confirmed with no material breaches",
            predicate=lambda s, d: s.pace_compliance == "breaches",
        ),
        AttackPathTemplate(
            name="PACE_COMPLIANCE_REVIEW",
            category=AttackCategory.STRUCTURAL,
            target="PACE compliance",
            method="Review interview and custody material for breaches before conceding admissibility",
            required_evidence=("interview_recording", "custody_record_or_custody_cctv"),
            kill_switch="Full PACE compliance with solicitor attendance",
            predicate=lambda s, d: s.pace_compliance == "unknown",
        ),
        AttackPathTemplate(
            name="IDENTIFICATION_CHALLENGE",
            category=AttackCategory.EVIDENTIARY,
            target="Identification evidence",
            method="Turnbull challenge - reliability, opportunity and quality of identification",
            required_evidence=("cctv_full_window", "bwv", "call_999_audio"),
            kill_switch="Multiple independent witnesses with strong identification under good conditions",
            predicate=lambda s, d: s.id_strength in ("weak", "unknown"),
        ),
        AttackPathTemplate(
            name="CCTV_CONTINUITY_CHALLENGE",
            category=AttackCategory.EVIDENTIARY,
            target="CCTV integrity",
            method="Challenge completeness and continuity of the footage relied on",
            required_evidence=("cctv_full_window", "cctv_continuity"),
            kill_switch="Full-window footage served with an unbroken continuity log",
            predicate=lambda s, d: s.cctv_sequence != "missing",
        ),
        AttackPathTemplate(
            name="INTENT_CHALLENGE",
            category=AttackCategory.EVIDENTIARY,
            target="Intent (mens rea)",
            method="Challenge the prosecution's ability to prove specific intent beyond reasonable doubt",
            required_evidence=("cctv_full_window", "call_999_audio"),
            kill_switch="Medical evidence shows sustained/targeted injuries clearly indicating specific intent",
            predicate=lambda s, d: (
                s.medical_evidence != "sustained" and s.weapon_use != "sustained_targeted"
            ),
        ),
    ),
    RouteId.CHARGE_REDUCTION: (
        AttackPathTemplate(
            name="CHARGE_LEVEL_REPRESENTATIONS",
            category=AttackCategory.STRUCTURAL,
            target="Charge level (s18 to s20)",
            method="Written representations to the prosecution on the appropriate charge",
            required_evidence=(),
            kill_switch="Prosecution confirms s18 will proceed regardless of representations",
            predicate=_always,
        ),
        AttackPathTemplate(
            name="INJURY_PATTERN_INTENT_DISTINCTION",
            category=AttackCategory.EVIDENTIARY,
            target="Intent threshold (s18 to s20)",
            method="Medical evidence analysis - single/brief vs sustained/targeted injuries",
            required_evidence=("medical_records", "bwv"),
            kill_switch="Medical evidence clearly shows sustained/targeted injuries indicating specific intent",
            predicate=lambda s, d: s.medical_evidence != "sustained",
        ),
        AttackPathTemplate(
            name="SEQUENCE_DURATION_ANALYSIS",
            category=AttackCategory.EVIDENTIARY,
            target="Sequence/duration evidence",
            method="CCTV analysis - brief contact vs prolonged attack",
            required_evidence=("cctv_full_window", "cctv_continuity"),
            kill_switch="CCTV clearly shows prolonged or targeted attack",
            predicate=lambda s, d: s.cctv_sequence != "prolonged",
        ),
        AttackPathTemplate(
            name="WEAPON_USE_CONTEXT",
            category=AttackCategory.EVIDENTIARY,
            target="Weapon use as proof of intent",
            method="Show weapon use was incidental, not targeted or prolonged",
            required_evidence=("cctv_full_window", "bwv"),
            kill_switch="CCTV shows prolonged weapon use with targeting",
            predicate=lambda s, d: s.weapon_use in ("brief_incidental", "unknown"),
        ),
    ),
    RouteId.OUTCOME_MANAGEMENT: (
        AttackPathTemplate(
            name="BASIS_OF_PLEA",
            category=AttackCategory.EVIDENTIARY,
            target="Factual basis for sentence",
            method="Agree a written basis of plea limiting the facts sentenced on",
            required_evidence=("interview_recording", "cctv_full_window"),
            kill_switch="Prosecution refuses basis and a Newton hearing goes against the defendant",
            predicate=_always,
        ),
        AttackPathTemplate(
            name="EARLY_PLEA_CREDIT",
            category=AttackCategory.MITIGATION,
            target="Sentence length",
            method="Indicate plea at the first reasonable opportunity to secure maximum credit",
            required_evidence=(),
            kill_switch="Plea credit window passes before disclosure is complete",
            predicate=lambda s, d: s.prosecution_strength != "weak",
        ),
        AttackPathTemplate(
            name="MITIGATION_PACKAGE",
            category=AttackCategory.MITIGATION,
            target="Sentence length",
            method="Comprehensive mitigation package - character, circumstances, remorse",
            required_evidence=("character_references", "personal_circumstances"),
            kill_switch="Serious aggravating factors or previous convictions",
            predicate=_always,
        ),
    ),
}

FALLBACK_PATHS: dict[RouteId, AttackPathTemplate] = {
    RouteId.FIGHT_CHARGE: AttackPathTemplate(
        name="PROSECUTION_CASE_REVIEW",
        category=AttackCategory.EVIDENTIARY,
        target="Prosecution case as a whole",
        method="Test each element of the offence against the served evidence",
        required_evidence=("cad_log", "call_999_audio"),
        kill_switch="Every element supported by independent, served evidence",
        predicate=_always,
    ),
}


def _strength_tag(
    template: AttackPathTemplate,
    disclosure_state: DisclosureState,
    degraded: bool,
) -> StrengthTag:
    """Tag a path by how much of its catalogue evidence is already in hand."""
    if degraded:
        return StrengthTag.HYPOTHESIS
    satisfied_keys = {item.key for item in disclosure_state.satisfied_items}
    catalogue_keys = satisfied_keys | disclosure_state.missing_keys
    tracked = [e for e in template.required_evidence if e in catalogue_keys]
    if not tracked:
        return StrengthTag.MODERATE
    held = sum(1 for e in tracked if e in satisfied_keys)
    if held == len(tracked):
        return StrengthTag.STRONG
    if held == 0:
        return StrengthTag.WEAK
    return StrengthTag.MODERATE


def _build_path(template: AttackPathTemplate, state: DisclosureState, degraded: bool) -> AttackPath:
    return AttackPath(
        name=template.name,
        required_evidence=template.required_evidence,
        strength_tag=_strength_tag(template, state, degraded),
        category=template.category,
        target=template.target,
        method=template.method,
        kill_switch=template.kill_switch,
    )


def build_route(
    route_id: RouteId,
    signals: EvidenceSignals,
    disclosure_state: DisclosureState,
    can_generate_analysis: bool = True,
) -> StrategyRoute:
    degraded = not can_generate_analysis
    fired = [t for t in ROUTE_TEMPLATES[route_id] if t.predicate(signals, disclosure_state)]
    if not fired and route_id in FALLBACK_PATHS:
        fired = [FALLBACK_PATHS[route_id]]

    # Stable sort: template order holds within a category.
    fired.sort(key=lambda t: _CATEGORY_ORDER[t.category])
    return StrategyRoute(
        route_id=route_id,
        label=ROUTE_LABELS[route_id],
        attack_paths=tuple(_build_path(t, disclosure_state, degraded) for t in fired),
        degraded=degraded,
        degraded_reason=DEGRADED_REASON if degraded else None,
    )


def generate_strategy_routes(
    signals: EvidenceSignals,
    disclosure_state: DisclosureState,
    can_generate_analysis: bool = True,
) -> tuple[StrategyRoute, ...]:
    """All three routes, in priority order; never omitted when gated."""
    return tuple(
        build_route(route_id, signals, disclosure_state, can_generate_analysis)
        for route_id in ROUTE_PRIORITY
    )
