"""Unit tests for decision checkpoint generation."""

from app.engine.decision_checkpoints import (
    READY_CHECKPOINT_ID,
    checkpoint_rules,
    generate_decision_checkpoints,
)
from app.engine.disclosure_state import resolve_disclosure_state
from app.engine.evidence_signals import extract_evidence_signals
from app.schemas.v1.cases import DisclosureTimelineEntry
from app.schemas.v1.common import CheckpointGate, RouteId
from tests.conftest import ALL_ITEMS_SERVED


def _empty():
    state = resolve_disclosure_state()
    return state, extract_evidence_signals(state)


def _served():
    timeline = [DisclosureTimelineEntry.model_validate(e) for e in ALL_ITEMS_SERVED]
    state = resolve_disclosure_state(timeline=timeline)
    return state, extract_evidence_signals(state, timeline=timeline)


def test_empty_case_lists_unmet_preconditions_in_gate_order():
    state, signals = _empty()
    checkpoints = generate_decision_checkpoints(RouteId.FIGHT_CHARGE, state, signals, None)

    assert [c.id for c in checkpoints] == [
        "critical_disclosure_served",
        "disclosure_completeness_assessed",
        "pace_compliance_assessed",
        "identification_assessed",
    ]
    assert [c.priority for c in checkpoints] == [1, 2, 3, 4]
    assert [c.gate for c in checkpoints] == [
        CheckpointGate.SAFETY,
        CheckpointGate.SAFETY,
        CheckpointGate.EVIDENCE,
        CheckpointGate.EVIDENCE,
    ]
    assert not any(c.satisfied for c in checkpoints)
    assert checkpoints[0].gating_condition == "disclosure_state.status != 'unsafe'"


def test_all_preconditions_met_gives_single_ready_checkpoint():
    state, signals = _served()
    checkpoints = generate_decision_checkpoints(RouteId.FIGHT_CHARGE, state, signals, 20)

    assert len(checkpoints) == 1
    ready = checkpoints[0]
    assert ready.id == READY_CHECKPOINT_ID
    assert ready.satisfied is True
    assert ready.gate == CheckpointGate.TACTICAL
    assert ready.action == "Ready to proceed with fight_charge"


def test_route_specific_evidence_rule():
    state, signals = _served()
    checkpoints = generate_decision_checkpoints(RouteId.CHARGE_REDUCTION, state, signals, 20)

    assert [c.id for c in checkpoints] == ["medical_evidence_assessed"]


def test_hearing_too_close_adds_tactical_checkpoint():
    state, signals = _served()
    checkpoints = generate_decision_checkpoints(RouteId.FIGHT_CHARGE, state, signals, 5)

    assert [c.id for c in checkpoints] == ["time_to_hearing"]
    assert checkpoints[0].gating_condition.endswith("> 7")


def test_min_days_is_configurable():
    state, signals = _served()
    checkpoints = generate_decision_checkpoints(
        RouteId.FIGHT_CHARGE, state, signals, 5, min_days_to_hearing=3
    )

    assert checkpoints[0].id == READY_CHECKPOINT_ID


def test_every_route_has_safety_rules_first():
    for route_id in RouteId:
        rules = checkpoint_rules(route_id)
        assert rules[0].gate == CheckpointGate.SAFETY
        assert rules[-1].gate == CheckpointGate.TACTICAL
