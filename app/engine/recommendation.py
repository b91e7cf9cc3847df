"""Strategy recommendation engine - PURE safety-respecting route selection.

This module contains ZERO database access. Pure functions operating on in-memory data structures.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from app.engine.confidence_drift import ConfidenceState, RouteScore
from app.engine.disclosure_state import DisclosureState
from app.engine.evidence_signals import EvidenceSignals
from app.engine.strategy_routes import ROUTE_LABELS, ROUTE_PRIORITY
from app.schemas.v1.cases import StrategyCommitment
from app.schemas.v1.common import ConfidenceLevel, DisclosureStatus, RouteId

# Plea-culminating routes must not be chosen while critical disclosure is missing.
ROUTES_REQUIRING_DISCLOSURE: frozenset[RouteId] = frozenset(
    {RouteId.CHARGE_REDUCTION, RouteId.OUTCOME_MANAGEMENT}
)
EXCLUSION_REASON = (
    "requires disclosure completeness; excluded while disclosure status is unsafe"
)
EXCLUDED_CHALLENGER_PRECONDITION = "disclosure_state.status != 'unsafe'"
GATED_NOTE = "Confidence capped at LOW: analysis gated - insufficient text extracted."


@dataclass(frozen=True)
class RouteSelection:
    leader: RouteId
    challenger: RouteId | None
    ranking: tuple[RouteId, ...]
    excluded: dict[RouteId, str]
    tied_with: tuple[RouteId, ...] = ()

    @property
    def flip_preconditions(self) -> dict[RouteId, str]:
        """Flip conditions of an excluded route only apply once disclosure arrives."""
        return {route_id: EXCLUDED_CHALLENGER_PRECONDITION for route_id in self.excluded}


@dataclass(frozen=True)
class Recommendation:
    route_id: RouteId
    label: str
    confidence: int
    level: ConfidenceLevel
    rationale: tuple[str, ...]
    flip_conditions: tuple[str, ...]
    narrative: str
    ranking: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    excluded_routes: tuple[dict[str, str], ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        return {
            "route_id": str(self.route_id),
            "label": self.label,
            "confidence": self.confidence,
            "level": str(self.level),
            "rationale": list(self.rationale),
            "flip_conditions": list(self.flip_conditions),
            "narrative": self.narrative,
            "ranking": [dict(entry) for entry in self.ranking],
            "excluded_routes": [dict(entry) for entry in self.excluded_routes],
        }


def excluded_routes(disclosure_state: DisclosureState) -> dict[RouteId, str]:
    """Routes whose hard safety pre-condition is violated, with the reason."""
    if disclosure_state.status != DisclosureStatus.UNSAFE:
        return {}
    return {
        route_id: EXCLUSION_REASON
        for route_id in ROUTE_PRIORITY
        if route_id in ROUTES_REQUIRING_DISCLOSURE
    }


def select_route(
    scores: Mapping[RouteId, RouteScore],
    disclosure_state: DisclosureState,
) -> RouteSelection:
    """Highest confidence among eligible routes; ties break on route priority."""
    ranking = tuple(
        sorted(ROUTE_PRIORITY, key=lambda r: (-scores[r].confidence, ROUTE_PRIORITY.index(r)))
    )
    excluded = excluded_routes(disclosure_state)
    eligible = [r for r in ranking if r not in excluded]
    leader = eligible[0]

    if len(eligible) > 1:
        challenger: RouteId | None = eligible[1]
    else:
        challenger = next((r for r in ranking if r != leader), None)

    tied = tuple(
        r for r in eligible[1:] if scores[r].confidence == scores[leader].confidence
    )
    return RouteSelection(
        leader=leader,
        challenger=challenger,
        ranking=ranking,
        excluded=excluded,
        tied_with=tied,
    )


def _rationale(
    selection: RouteSelection,
    scores: Mapping[RouteId, RouteScore],
    commitment: StrategyCommitment | None,
    gated: bool,
) -> list[str]:
    leader_score = scores[selection.leader]
    lines = [adj.reason for adj in leader_score.applied]
    if not lines:
        lines.append(
            "No deciding evidence signals yet; recommendation follows base confidence and route priority."
        )

    if selection.tied_with:
        tied = ", ".join(str(r) for r in selection.tied_with)
        lines.append(
            f"Tied at {leader_score.confidence} with {tied}; broken by route priority "
            "(fight_charge > charge_reduction > outcome_management)."
        )

    for route_id, reason in selection.excluded.items():
        lines.append(
            f"{route_id} {reason} (raw confidence {scores[route_id].confidence})."
        )

    if gated:
        lines.append(GATED_NOTE)

    if commitment is not None and commitment.primary_route:
        committed = commitment.primary_route.strip().lower()
        if committed == selection.leader:
            lines.append(f"Recommendation matches the existing commitment to {committed}.")
        else:
            lines.append(
                f"Existing commitment to {committed} differs from this recommendation; "
                "review before changing course."
            )
    return lines


def _level_sentence(level: ConfidenceLevel, high: str, medium: str, low: str) -> str:
    return {ConfidenceLevel.HIGH: high, ConfidenceLevel.MEDIUM: medium}.get(level, low)


def _fight_narrative(level: ConfidenceLevel, signals: EvidenceSignals) -> list[str]:
    parts = [
        _level_sentence(
            level,
            "High confidence based on clear evidence signals.",
            "Medium confidence - recommendation is sound but some evidence remains uncertain.",
            "Low confidence - recommendation is provisional pending further disclosure.",
        ),
        "The evidence currently supports challenging the prosecution case at trial.",
    ]
    if signals.id_strength == "weak":
        parts.append("Identification evidence is weak, creating opportunity for Turnbull challenge.")
    if signals.disclosure_gaps:
        gaps = ", ".join(signals.disclosure_gaps[:2])
        parts.append(f"Disclosure gaps exist ({gaps}), which may provide leverage.")
    if signals.pace_compliance == "breaches":
        parts.append("PACE compliance issues may support exclusion applications.")
    parts.append("Time pressure: prepare disclosure requests immediately and document chase trail.")
    parts.append(
        "Risk: if disclosure gaps are filled or identification strengthens, reassess before PTPH."
    )
    return parts


def _reduction_narrative(level: ConfidenceLevel, signals: EvidenceSignals) -> list[str]:
    parts = [
        _level_sentence(
            level,
            "High confidence based on clear intent distinction signals.",
            "Medium confidence - intent distinction is viable but requires careful evidence analysis.",
            "Low confidence - recommendation depends on medical and sequence evidence yet to be fully assessed.",
        ),
        "The evidence supports challenging the intent threshold rather than full acquittal.",
    ]
    if signals.medical_evidence == "single_brief":
        parts.append("Medical evidence indicates single/brief injury pattern, consistent with recklessness.")
    if signals.cctv_sequence == "brief":
        parts.append("CCTV sequence is brief, supporting recklessness over specific intent.")
    if signals.weapon_use == "brief_incidental":
        parts.append("Weapon use appears brief/incidental, not sustained/targeted.")
    parts.append("Timing: negotiate charge reduction before PTPH to preserve leverage.")
    parts.append(
        "Risk: if medical or CCTV evidence shows sustained/targeted conduct, pivot to outcome management."
    )
    return parts


def _outcome_narrative(level: ConfidenceLevel, signals: EvidenceSignals) -> list[str]:
    parts = [
        _level_sentence(
            level,
            "High confidence - prosecution case appears strong, focus on sentencing position.",
            "Medium confidence - prosecution case is moderate, mitigation focus is prudent.",
            "Low confidence - recommendation is conservative pending full disclosure assessment.",
        ),
        "The evidence suggests conviction risk is significant; focus on minimising sentence.",
    ]
    if signals.prosecution_strength == "strong":
        parts.append("Prosecution case appears strong based on available evidence.")
    if signals.id_strength == "strong":
        parts.append("Identification evidence is strong, reducing challenge prospects.")
    if signals.medical_evidence == "sustained":
        parts.append("Medical evidence indicates sustained injuries, supporting intent.")
    parts.append(
        "Timing: consider early plea for maximum credit, but only after disclosure is complete."
    )
    parts.append(
        "Risk: if disclosure reveals weak case or identification issues, reassess before committing to plea."
    )
    return parts


_NARRATIVES = {
    RouteId.FIGHT_CHARGE: _fight_narrative,
    RouteId.CHARGE_REDUCTION: _reduction_narrative,
    RouteId.OUTCOME_MANAGEMENT: _outcome_narrative,
}


def build_narrative(route_id: RouteId, level: ConfidenceLevel, signals: EvidenceSignals) -> str:
    """Short professional narrative for the recommended route."""
    parts = [f"Recommendation: {ROUTE_LABELS[route_id]}."]
    parts.extend(_NARRATIVES[route_id](level, signals))
    return " ".join(parts)


def build_recommendation(
    selection: RouteSelection,
    scores: Mapping[RouteId, RouteScore],
    confidence_states: Mapping[RouteId, ConfidenceState],
    signals: EvidenceSignals,
    commitment: StrategyCommitment | None = None,
    gated: bool = False,
) -> Recommendation:
    leader_state = confidence_states[selection.leader]
    return Recommendation(
        route_id=selection.leader,
        label=ROUTE_LABELS[selection.leader],
        confidence=leader_state.confidence,
        level=leader_state.level,
        rationale=tuple(_rationale(selection, scores, commitment, gated)),
        flip_conditions=leader_state.flip_conditions,
        narrative=build_narrative(selection.leader, leader_state.level, signals),
        ranking=tuple(
            {
                "route_id": str(route_id),
                "confidence": scores[route_id].confidence,
                "eligible": route_id not in selection.excluded,
            }
            for route_id in selection.ranking
        ),
        excluded_routes=tuple(
            {"route_id": str(route_id), "reason": reason}
            for route_id, reason in selection.excluded.items()
        ),
    )
