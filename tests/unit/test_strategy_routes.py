"""Unit tests for strategy route generation."""

from app.engine.disclosure_state import resolve_disclosure_state
from app.engine.evidence_signals import EvidenceSignals, extract_evidence_signals
from app.engine.strategy_routes import (
    DEGRADED_REASON,
    ROUTE_PRIORITY,
    build_route,
    generate_strategy_routes,
)
from app.schemas.v1.cases import DisclosureTimelineEntry
from app.schemas.v1.common import AttackCategory, RouteId, StrengthTag
from tests.conftest import ALL_ITEMS_SERVED

_CATEGORY_RANK = {
    AttackCategory.STRUCTURAL: 0,
    AttackCategory.EVIDENTIARY: 1,
    AttackCategory.MITIGATION: 2,
}


def _empty_case():
    state = resolve_disclosure_state()
    return extract_evidence_signals(state), state


def _served_case():
    timeline = [DisclosureTimelineEntry.model_validate(e) for e in ALL_ITEMS_SERVED]
    state = resolve_disclosure_state(timeline=timeline)
    return extract_evidence_signals(state, timeline=timeline), state


def _names(route):
    return [path.name for path in route.attack_paths]


def test_three_routes_in_priority_order():
    signals, state = _empty_case()
    routes = generate_strategy_routes(signals, state)

    assert tuple(r.route_id for r in routes) == ROUTE_PRIORITY


def test_empty_case_fight_paths():
    signals, state = _empty_case()
    route = build_route(RouteId.FIGHT_CHARGE, signals, state)

    assert _names(route) == [
        "DISCLOSURE_FAILURE_ABUSE_OF_PROCESS",
        "PACE_COMPLIANCE_REVIEW",
        "IDENTIFICATION_CHALLENGE",
        "INTENT_CHALLENGE",
    ]
    tags = {path.name: path.strength_tag for path in route.attack_paths}
    assert tags["DISCLOSURE_FAILURE_ABUSE_OF_PROCESS"] == StrengthTag.MODERATE
    assert tags["IDENTIFICATION_CHALLENGE"] == StrengthTag.WEAK


def test_served_case_fight_paths_are_strong():
    signals, state = _served_case()
    route = build_route(RouteId.FIGHT_CHARGE, signals, state)

    assert _names(route) == [
        "IDENTIFICATION_CHALLENGE",
        "CCTV_CONTINUITY_CHALLENGE",
        "INTENT_CHALLENGE",
    ]
    assert all(path.strength_tag == StrengthTag.STRONG for path in route.attack_paths)


def test_paths_ordered_by_category():
    for signals, state in (_empty_case(), _served_case()):
        for route in generate_strategy_routes(signals, state):
            ranks = [_CATEGORY_RANK[path.category] for path in route.attack_paths]
            assert ranks == sorted(ranks)


def test_every_route_has_at_least_one_path():
    _, state = _served_case()
    signals = EvidenceSignals(
        cctv_sequence="missing",
        pace_compliance="compliant",
        medical_evidence="sustained",
        id_strength="strong",
        weapon_use="sustained_targeted",
        prosecution_strength="weak",
    )
    routes = generate_strategy_routes(signals, state)

    assert _names(routes[0]) == ["PROSECUTION_CASE_REVIEW"]
    assert all(route.attack_paths for route in routes)


def test_partial_evidence_is_moderate():
    timeline = [DisclosureTimelineEntry(item="CCTV Full Window", action="served")]
    state = resolve_disclosure_state(timeline=timeline)
    signals = extract_evidence_signals(state, timeline=timeline)
    route = build_route(RouteId.CHARGE_REDUCTION, signals, state)

    tags = {path.name: path.strength_tag for path in route.attack_paths}
    assert tags["SEQUENCE_DURATION_ANALYSIS"] == StrengthTag.MODERATE


def test_gated_routes_are_hypotheses():
    signals, state = _empty_case()
    routes = generate_strategy_routes(signals, state, can_generate_analysis=False)

    assert len(routes) == 3
    for route in routes:
        assert route.degraded is True
        assert route.degraded_reason == DEGRADED_REASON
        assert route.attack_paths
        assert all(path.strength_tag == StrengthTag.HYPOTHESIS for path in route.attack_paths)


def test_route_to_dict_shape():
    signals, state = _empty_case()
    data = build_route(RouteId.OUTCOME_MANAGEMENT, signals, state).to_dict()

    assert data["route_id"] == "outcome_management"
    assert data["degraded"] is False
    assert [p["name"] for p in data["attack_paths"]] == [
        "BASIS_OF_PLEA",
        "EARLY_PLEA_CREDIT",
        "MITIGATION_PACKAGE",
    ]
    assert set(data["attack_paths"][0]) == {
        "name",
        "required_evidence",
        "strength_tag",
        "category",
        "target",
        "method",
        "kill_switch",
    }
