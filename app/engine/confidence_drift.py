"""Confidence drift engine - PURE per-route confidence from signal adjustment tables.

This module contains ZERO database access. Pure functions operating on in-memory data structures.

"Drift" is sensitivity to signal changes, not history: nothing is kept
between invocations. Flip conditions are found by searching the signal
domains for the smallest set of changes that lets a challenger route's
recomputed confidence exceed the leader's.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from itertools import combinations, product
from typing import Any

from app.engine.evidence_signals import SIGNAL_DOMAINS, EvidenceSignals
from app.schemas.v1.common import ConfidenceLevel, RouteId, Trend

MIN_CONFIDENCE = 0
MAX_CONFIDENCE = 100
HIGH_CONFIDENCE_THRESHOLD = 65
MEDIUM_CONFIDENCE_THRESHOLD = 40
DEFAULT_GATED_CAP = 30
DEFAULT_MAX_FLIP_CONDITIONS = 3
# Single changes are tried first, then pairs; larger sets are not searched.
MAX_FLIP_CARDINALITY = 2

BASE_CONFIDENCE: dict[RouteId, int] = {
    RouteId.FIGHT_CHARGE: 45,
    RouteId.CHARGE_REDUCTION: 40,
    RouteId.OUTCOME_MANAGEMENT: 35,
}


@dataclass(frozen=True)
class Adjustment:
    signal: str
    value: str
    delta: int
    reason: str


ADJUSTMENT_TABLES: dict[RouteId, tuple[Adjustment, ...]] = {
    RouteId.FIGHT_CHARGE: (
        Adjustment("id_strength", "weak", 20, "Weak identification evidence supports challenge"),
        Adjustment("id_strength", "strong", -20, "Strong identification evidence weakens challenge"),
        Adjustment("id_strength", "unknown", -10, "Identification evidence not yet assessed"),
        Adjustment("disclosure_completeness", "gaps", 10, "Disclosure gaps create leverage for challenge"),
        Adjustment("disclosure_completeness", "unknown", -10, "Disclosure completeness not yet assessed"),
        Adjustment("pace_compliance", "breaches", 15, "PACE breaches support exclusion applications"),
        Adjustment("prosecution_strength", "weak", 15, "Weak prosecution case supports full challenge"),
        Adjustment(
            "prosecution_strength", "strong", -20, "Strong prosecution case reduces acquittal prospects"
        ),
    ),
    RouteId.CHARGE_REDUCTION: (
        Adjustment(
            "medical_evidence", "single_brief", 20, "Single/brief injury pattern supports intent distinction"
        ),
        Adjustment("medical_evidence", "sustained", -25, "Sustained injuries indicate specific intent"),
        Adjustment("medical_evidence", "unknown", -10, "Medical evidence not yet assessed"),
        Adjustment("cctv_sequence", "brief", 15, "Brief CCTV sequence supports recklessness over intent"),
        Adjustment("cctv_sequence", "prolonged", -15, "Prolonged CCTV sequence supports intent"),
        Adjustment("cctv_sequence", "unknown", -10, "CCTV sequence duration not yet assessed"),
        Adjustment("cctv_sequence", "missing", -5, "No CCTV to assess sequence duration"),
        Adjustment("weapon_use", "brief_incidental", 10, "Brief/incidental weapon use supports s20 over s18"),
        Adjustment("weapon_use", "sustained_targeted", -15, "Sustained/targeted weapon use supports intent"),
        Adjustment("prosecution_strength", "moderate", 5, "Moderate prosecution case supports negotiation"),
    ),
    RouteId.OUTCOME_MANAGEMENT: (
        Adjustment("prosecution_strength", "strong", 25, "Strong prosecution case favours mitigation focus"),
        Adjustment("prosecution_strength", "weak", -20, "Weak prosecution case - acquittal possible"),
        Adjustment("id_strength", "strong", 10, "Strong identification reduces challenge prospects"),
        Adjustment("medical_evidence", "sustained", 10, "Sustained injuries support conviction risk"),
        Adjustment(
            "disclosure_completeness", "gaps", -10, "Significant disclosure gaps - premature to recommend plea"
        ),
    ),
}


@dataclass(frozen=True)
class RouteScore:
    route_id: RouteId
    base: int
    confidence: int
    applied: tuple[Adjustment, ...]
    capped: bool = False


@dataclass(frozen=True)
class ConfidenceState:
    route_id: RouteId
    confidence: int
    base_confidence: int
    level: ConfidenceLevel
    trend: Trend
    adjustments: tuple[str, ...]
    explanation: str
    flip_conditions: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "route_id": str(self.route_id),
            "confidence": self.confidence,
            "base_confidence": self.base_confidence,
            "level": str(self.level),
            "trend": str(self.trend),
            "adjustments": list(self.adjustments),
            "explanation": self.explanation,
            "flip_conditions": list(self.flip_conditions),
        }


def clamp(value: int) -> int:
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, value))


def _signal_value(signals: EvidenceSignals, signal: str) -> str:
    return str(getattr(signals, signal))


def score_route(
    route_id: RouteId,
    signals: EvidenceSignals,
    gated: bool = False,
    gated_cap: int = DEFAULT_GATED_CAP,
) -> RouteScore:
    base = BASE_CONFIDENCE[route_id]
    applied = tuple(
        adj for adj in ADJUSTMENT_TABLES[route_id] if _signal_value(signals, adj.signal) == adj.value
    )
    confidence = clamp(base + sum(adj.delta for adj in applied))
    capped = gated and confidence > gated_cap
    if gated:
        confidence = min(confidence, gated_cap)
    return RouteScore(route_id=route_id, base=base, confidence=confidence, applied=applied, capped=capped)


def score_routes(
    signals: EvidenceSignals,
    gated: bool = False,
    gated_cap: int = DEFAULT_GATED_CAP,
) -> dict[RouteId, RouteScore]:
    return {route_id: score_route(route_id, signals, gated, gated_cap) for route_id in BASE_CONFIDENCE}


def confidence_level(confidence: int) -> ConfidenceLevel:
    if confidence >= HIGH_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.HIGH
    if confidence >= MEDIUM_CONFIDENCE_THRESHOLD:
        return ConfidenceLevel.MEDIUM
    return ConfidenceLevel.LOW


def confidence_trend(confidence: int, base: int) -> Trend:
    """Direction the current signals have moved the route from its base."""
    if confidence > base:
        return Trend.RISING
    if confidence < base:
        return Trend.FALLING
    return Trend.STABLE


def _describe_change(signal: str, value: str, current: str) -> str:
    return f"{signal} becomes '{value}' (currently '{current}')"


def find_flip_conditions(
    leader: RouteId,
    challenger: RouteId,
    signals: EvidenceSignals,
    gated: bool = False,
    gated_cap: int = DEFAULT_GATED_CAP,
    limit: int = DEFAULT_MAX_FLIP_CONDITIONS,
    precondition: str = "",
) -> tuple[str, ...]:
    """Minimal signal changes that make the challenger's confidence exceed the leader's.

    ``precondition`` is a gating expression that must hold before the
    challenger is eligible; it opens every condition. A challenger that
    already leads (possible when it is ineligible) gets one condition
    saying so instead of a search.
    Searches single changes first; pairs are only searched when no single
    change flips the ranking. Output order follows the signal domain
    table, so it is deterministic.
    """
    if leader == challenger or limit <= 0:
        return ()

    current_challenger = score_route(challenger, signals, gated, gated_cap).confidence
    current_leader = score_route(leader, signals, gated, gated_cap).confidence
    preconditions = [precondition] if precondition else []
    if current_challenger > current_leader:
        lead_in = f"IF {precondition}, " if precondition else ""
        return (
            f"{lead_in}{challenger} would lead on current signals "
            f"({current_challenger} against {leader} {current_leader})",
        )

    signal_names = list(SIGNAL_DOMAINS)
    conditions: list[str] = []

    for size in range(1, MAX_FLIP_CARDINALITY + 1):
        for chosen in combinations(signal_names, size):
            alternatives = [
                [v for v in SIGNAL_DOMAINS[name] if v != _signal_value(signals, name)] for name in chosen
            ]
            for values in product(*alternatives):
                changed = signals.with_values(**dict(zip(chosen, values, strict=True)))
                challenger_score = score_route(challenger, changed, gated, gated_cap).confidence
                leader_score = score_route(leader, changed, gated, gated_cap).confidence
                if challenger_score <= leader_score:
                    continue
                clauses = " AND ".join(
                    preconditions
                    + [
                        _describe_change(name, value, _signal_value(signals, name))
                        for name, value in zip(chosen, values, strict=True)
                    ]
                )
                conditions.append(
                    f"IF {clauses}, {challenger} confidence rises to "
                    f"{challenger_score} against {leader} {leader_score}"
                )
                if len(conditions) >= limit:
                    return tuple(conditions)
        if conditions:
            break

    return tuple(conditions)


def _explanation(score: RouteScore, gated_cap: int) -> str:
    parts = [f"Base {score.base}"]
    parts.extend(f"{adj.delta:+d} ({adj.reason})" for adj in score.applied)
    text = ", ".join(parts) + f" = {score.confidence}."
    if score.capped:
        text += f" Capped at {gated_cap}: analysis gated on insufficient extracted text."
    return text


def build_confidence_states(
    signals: EvidenceSignals,
    scores: Mapping[RouteId, RouteScore],
    leader: RouteId,
    leader_challenger: RouteId | None,
    gated: bool = False,
    gated_cap: int = DEFAULT_GATED_CAP,
    max_flip_conditions: int = DEFAULT_MAX_FLIP_CONDITIONS,
    flip_preconditions: Mapping[RouteId, str] | None = None,
) -> dict[RouteId, ConfidenceState]:
    """Confidence state per route.

    The leader carries the conditions under which its challenger would
    overtake it; every other route carries the conditions under which it
    would overtake the leader. ``flip_preconditions`` gate the conditions
    of routes that are currently ineligible.
    """
    preconditions = flip_preconditions or {}
    states: dict[RouteId, ConfidenceState] = {}
    for route_id, score in scores.items():
        if route_id == leader:
            flips: Sequence[str] = (
                find_flip_conditions(
                    leader,
                    leader_challenger,
                    signals,
                    gated,
                    gated_cap,
                    max_flip_conditions,
                    precondition=preconditions.get(leader_challenger, ""),
                )
                if leader_challenger is not None
                else ()
            )
        else:
            flips = find_flip_conditions(
                leader,
                route_id,
                signals,
                gated,
                gated_cap,
                max_flip_conditions,
                precondition=preconditions.get(route_id, ""),
            )
        states[route_id] = ConfidenceState(
            route_id=route_id,
            confidence=score.confidence,
            base_confidence=score.base,
            level=confidence_level(score.confidence),
            trend=confidence_trend(score.confidence, score.base),
            adjustments=tuple(f"{adj.delta:+d}: {adj.reason}" for adj in score.applied),
            explanation=_explanation(score, gated_cap),
            flip_conditions=tuple(flips),
        )
    return states
