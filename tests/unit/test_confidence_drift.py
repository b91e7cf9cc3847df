"""Unit tests for the confidence drift engine."""

import itertools

import pytest

from app.engine.confidence_drift import (
    BASE_CONFIDENCE,
    build_confidence_states,
    confidence_level,
    confidence_trend,
    find_flip_conditions,
    score_route,
    score_routes,
)
from app.engine.evidence_signals import SIGNAL_DOMAINS, EvidenceSignals
from app.schemas.v1.common import ConfidenceLevel, RouteId, Trend

EMPTY = EvidenceSignals()
SERVED = EvidenceSignals(
    cctv_sequence="unknown",
    body_worn_video_present=True,
    disclosure_completeness="complete",
    pace_compliance="compliant",
    interview_evidence=True,
    custody_evidence=True,
    id_strength="weak",
    id_sources=1,
    weapon_use="none",
    prosecution_strength="moderate",
)


def test_empty_signal_scores():
    scores = score_routes(EMPTY)

    assert scores[RouteId.FIGHT_CHARGE].confidence == 25
    assert scores[RouteId.CHARGE_REDUCTION].confidence == 25
    assert scores[RouteId.OUTCOME_MANAGEMENT].confidence == 35


def test_served_signal_scores():
    scores = score_routes(SERVED)

    assert scores[RouteId.FIGHT_CHARGE].confidence == 65
    assert confidence_level(scores[RouteId.FIGHT_CHARGE].confidence) == ConfidenceLevel.HIGH
    assert scores[RouteId.CHARGE_REDUCTION].confidence == 25
    assert scores[RouteId.OUTCOME_MANAGEMENT].confidence == 35


@pytest.mark.parametrize("route_id", list(BASE_CONFIDENCE))
def test_confidence_bounded_for_every_signal_combination(route_id):
    names = list(SIGNAL_DOMAINS)
    for values in itertools.product(*(SIGNAL_DOMAINS[n] for n in names)):
        signals = EMPTY.with_values(**dict(zip(names, values, strict=True)))
        confidence = score_route(route_id, signals).confidence
        assert 0 <= confidence <= 100


def test_gated_scores_are_capped():
    signals = EMPTY.with_values(prosecution_strength="strong", id_strength="strong")
    uncapped = score_route(RouteId.OUTCOME_MANAGEMENT, signals)
    capped = score_route(RouteId.OUTCOME_MANAGEMENT, signals, gated=True, gated_cap=30)

    assert uncapped.confidence == 70
    assert capped.confidence == 30
    assert capped.capped is True


def test_level_thresholds():
    assert confidence_level(65) == ConfidenceLevel.HIGH
    assert confidence_level(64) == ConfidenceLevel.MEDIUM
    assert confidence_level(40) == ConfidenceLevel.MEDIUM
    assert confidence_level(39) == ConfidenceLevel.LOW


def test_trend_relative_to_base():
    assert confidence_trend(65, 45) == Trend.RISING
    assert confidence_trend(25, 45) == Trend.FALLING
    assert confidence_trend(35, 35) == Trend.STABLE


def test_single_change_flip_conditions():
    conditions = find_flip_conditions(RouteId.FIGHT_CHARGE, RouteId.OUTCOME_MANAGEMENT, SERVED)

    assert conditions
    assert len(conditions) <= 3
    assert any("id_strength becomes 'strong'" in c for c in conditions)
    assert all(" AND " not in c for c in conditions)


def test_precondition_opens_every_searched_condition():
    conditions = find_flip_conditions(
        RouteId.FIGHT_CHARGE,
        RouteId.OUTCOME_MANAGEMENT,
        SERVED,
        precondition="disclosure_state.status != 'unsafe'",
    )

    assert conditions
    assert all(c.startswith("IF disclosure_state.status != 'unsafe' AND ") for c in conditions)
    assert any("id_strength becomes 'strong'" in c for c in conditions)


def test_flip_conditions_are_deterministic():
    first = find_flip_conditions(RouteId.FIGHT_CHARGE, RouteId.CHARGE_REDUCTION, SERVED)
    second = find_flip_conditions(RouteId.FIGHT_CHARGE, RouteId.CHARGE_REDUCTION, SERVED)

    assert first == second


def test_challenger_already_leading_reports_lead():
    conditions = find_flip_conditions(
        RouteId.FIGHT_CHARGE,
        RouteId.OUTCOME_MANAGEMENT,
        EMPTY,
        precondition="disclosure_state.status != 'unsafe'",
    )

    assert conditions == (
        "IF disclosure_state.status != 'unsafe', outcome_management would lead on current "
        "signals (35 against fight_charge 25)",
    )


def test_no_flip_conditions_against_self():
    assert find_flip_conditions(RouteId.FIGHT_CHARGE, RouteId.FIGHT_CHARGE, SERVED) == ()


def test_confidence_states_cover_every_route():
    scores = score_routes(SERVED)
    states = build_confidence_states(
        SERVED, scores, RouteId.FIGHT_CHARGE, RouteId.OUTCOME_MANAGEMENT
    )

    assert set(states) == set(BASE_CONFIDENCE)
    fight = states[RouteId.FIGHT_CHARGE]
    assert fight.trend == Trend.RISING
    assert fight.adjustments == ("+20: Weak identification evidence supports challenge",)
    assert fight.explanation.startswith("Base 45")
    assert fight.explanation.endswith("= 65.")
    assert fight.flip_conditions
    assert states[RouteId.CHARGE_REDUCTION].trend == Trend.FALLING
    assert states[RouteId.OUTCOME_MANAGEMENT].trend == Trend.STABLE


def test_gated_explanation_mentions_cap():
    signals = EMPTY.with_values(prosecution_strength="strong")
    scores = score_routes(signals, gated=True, gated_cap=30)
    states = build_confidence_states(
        signals, scores, RouteId.FIGHT_CHARGE, RouteId.OUTCOME_MANAGEMENT, gated=True, gated_cap=30
    )

    assert all(state.confidence <= 30 for state in states.values())
    assert "Capped at 30" in states[RouteId.OUTCOME_MANAGEMENT].explanation
