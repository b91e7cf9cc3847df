"""Strategy analysis pipeline - PURE linear composition of the engine stages.

This module contains ZERO database access. Pure functions operating on in-memory data structures.

Stage order: disclosure state, evidence signals, routes, confidence and
route selection, recommendation, then the consumers of the recommendation
(checkpoints, impact map, time pressure, hearing scripts). The output is
always the same fixed-shape aggregate, gated or not.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from typing import Any, TypeVar

from app.core.config import EngineConfig
from app.engine.confidence_drift import ConfidenceState, build_confidence_states, score_routes
from app.engine.decision_checkpoints import DecisionCheckpoint, generate_decision_checkpoints
from app.engine.disclosure_state import DisclosureState, resolve_disclosure_state
from app.engine.evidence_impact import EvidenceImpactMap, build_evidence_impact_map
from app.engine.evidence_signals import EvidenceSignals, extract_evidence_signals
from app.engine.hearing_scripts import HearingScript, ScriptCaps, build_hearing_scripts
from app.engine.recommendation import Recommendation, build_recommendation, select_route
from app.engine.strategy_routes import ROUTE_PRIORITY, StrategyRoute, generate_strategy_routes
from app.engine.time_pressure import TimePressureState, build_time_pressure
from app.schemas.v1.cases import SNAPSHOT_SCHEMA_VERSION, CaseSnapshot

T = TypeVar("T")

StageObserver = Callable[[str, float], None]

GATED_BANNER = (
    "Analysis gated: insufficient text was extracted from the case documents. Routes are "
    "shown as hypotheses and confidence is capped until readable disclosure is uploaded."
)


@dataclass(frozen=True)
class StrategyAnalysis:
    """The aggregate handed to the presentation layer."""

    case_id: str
    reference_date: date
    disclosure_state: DisclosureState
    evidence_signals: EvidenceSignals
    routes: tuple[StrategyRoute, ...]
    evidence_impact_map: EvidenceImpactMap
    time_pressure: TimePressureState
    confidence_states: dict[str, ConfidenceState]
    recommendation: Recommendation
    decision_checkpoints: tuple[DecisionCheckpoint, ...]
    hearing_scripts: tuple[HearingScript, ...]
    is_degraded: bool
    banner: str | None
    schema_version: str = SNAPSHOT_SCHEMA_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "case_id": self.case_id,
            "reference_date": self.reference_date.isoformat(),
            "is_degraded": self.is_degraded,
            "banner": self.banner,
            "disclosure_state": self.disclosure_state.to_dict(),
            "evidence_signals": self.evidence_signals.to_dict(),
            "routes": [route.to_dict() for route in self.routes],
            "evidence_impact_map": self.evidence_impact_map.to_dict(),
            "time_pressure": self.time_pressure.to_dict(),
            "confidence_states": {
                route_id: state.to_dict() for route_id, state in self.confidence_states.items()
            },
            "recommendation": self.recommendation.to_dict(),
            "decision_checkpoints": [c.to_dict() for c in self.decision_checkpoints],
            "hearing_scripts": [s.to_dict() for s in self.hearing_scripts],
        }


def _timed(
    stage: str,
    observer: StageObserver | None,
    fn: Callable[..., T],
    *args: Any,
    **kwargs: Any,
) -> T:
    start = time.perf_counter()
    result = fn(*args, **kwargs)
    if observer is not None:
        observer(stage, time.perf_counter() - start)
    return result


def run_strategy_analysis(
    snapshot: CaseSnapshot,
    reference_date: date,
    config: EngineConfig | None = None,
    observer: StageObserver | None = None,
) -> StrategyAnalysis:
    """Run every engine stage over one complete snapshot.

    Identical snapshot, reference date and config give an identical
    aggregate. ``observer`` receives (stage, seconds) per stage and never
    influences the result.
    """
    config = config or EngineConfig()
    gated = not snapshot.can_generate_analysis

    disclosure_state = _timed(
        "disclosure_state",
        observer,
        resolve_disclosure_state,
        documents=snapshot.documents,
        timeline=snapshot.disclosure_timeline,
        dependencies=snapshot.declared_dependencies,
        impact_entries=snapshot.evidence_impact_entries,
    )
    signals = _timed(
        "evidence_signals",
        observer,
        extract_evidence_signals,
        disclosure_state,
        documents=snapshot.documents,
        charges=snapshot.charges,
        timeline=snapshot.disclosure_timeline,
        has_dependencies=bool(snapshot.declared_dependencies),
        can_generate_analysis=snapshot.can_generate_analysis,
    )
    routes = _timed(
        "strategy_routes",
        observer,
        generate_strategy_routes,
        signals,
        disclosure_state,
        snapshot.can_generate_analysis,
    )

    scores = _timed(
        "confidence", observer, score_routes, signals, gated, config.gated_confidence_cap
    )
    selection = select_route(scores, disclosure_state)
    confidence_states = _timed(
        "flip_conditions",
        observer,
        build_confidence_states,
        signals,
        scores,
        selection.leader,
        selection.challenger,
        gated=gated,
        gated_cap=config.gated_confidence_cap,
        max_flip_conditions=config.max_flip_conditions,
        flip_preconditions=selection.flip_preconditions,
    )
    recommendation = _timed(
        "recommendation",
        observer,
        build_recommendation,
        selection,
        scores,
        confidence_states,
        signals,
        commitment=snapshot.commitment,
        gated=gated,
    )

    time_pressure = _timed(
        "time_pressure",
        observer,
        build_time_pressure,
        snapshot.hearings,
        snapshot.disclosure_deadline,
        reference_date,
        high_days=config.leverage_high_days,
        low_days=config.leverage_low_days,
    )
    checkpoints = _timed(
        "decision_checkpoints",
        observer,
        generate_decision_checkpoints,
        recommendation.route_id,
        disclosure_state,
        signals,
        time_pressure.days_to_hearing,
        min_days_to_hearing=config.min_days_to_hearing,
    )
    impact_map = _timed(
        "evidence_impact",
        observer,
        build_evidence_impact_map,
        disclosure_state,
        routes,
        shortlist_size=config.shortlist_size,
    )
    scripts = _timed(
        "hearing_scripts",
        observer,
        build_hearing_scripts,
        snapshot.hearings,
        reference_date,
        disclosure_state,
        routes,
        recommendation.route_id,
        caps=ScriptCaps(
            checklist=config.checklist_cap,
            asks=config.asks_cap,
            do_not_concede=config.do_not_concede_cap,
        ),
    )

    return StrategyAnalysis(
        case_id=snapshot.case_id,
        reference_date=reference_date,
        disclosure_state=disclosure_state,
        evidence_signals=signals,
        routes=routes,
        evidence_impact_map=impact_map,
        time_pressure=time_pressure,
        confidence_states={str(r): confidence_states[r] for r in ROUTE_PRIORITY},
        recommendation=recommendation,
        decision_checkpoints=checkpoints,
        hearing_scripts=scripts,
        is_degraded=gated,
        banner=GATED_BANNER if gated else None,
    )
