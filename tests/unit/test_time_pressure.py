"""Unit tests for the time pressure engine."""

from datetime import date, timedelta

import pytest

from app.engine.time_pressure import (
    NO_DATES_EXPLANATION,
    build_time_pressure,
    classify_leverage,
    select_next_hearing,
)
from app.schemas.v1.cases import Hearing
from app.schemas.v1.common import Leverage
from tests.conftest import REFERENCE_DATE


def _ptph(days: int) -> Hearing:
    return Hearing(hearing_type="PTPH", hearing_date=REFERENCE_DATE + timedelta(days=days))


def _window(state, window_id):
    return next(w for w in state.windows if w.id == window_id)


def test_no_dates_defaults_to_medium():
    state = build_time_pressure([], None, REFERENCE_DATE)

    assert state.current_leverage == Leverage.MEDIUM
    assert state.leverage_explanation == NO_DATES_EXPLANATION
    assert state.days_to_hearing is None
    assert state.next_hearing_date is None
    assert [w.id for w in state.windows] == ["ptph"]
    assert state.windows[0].is_placeholder is True
    assert state.windows[0].warning.startswith("PTPH date unknown")
    assert state.time_critical_actions == ()
    assert [str(r.route_id) for r in state.route_leverage] == [
        "fight_charge",
        "charge_reduction",
        "outcome_management",
    ]
    assert all(r.adjusted_leverage == Leverage.MEDIUM for r in state.route_leverage)


def test_hearing_twenty_days_out_is_high():
    state = build_time_pressure([_ptph(20)], None, REFERENCE_DATE)

    assert state.current_leverage == Leverage.HIGH
    assert state.days_to_hearing == 20
    assert state.leverage_explanation.startswith("20 days until the PTPH hearing")
    assert [w.id for w in state.windows] == ["ptph", "plea_credit", "pivot"]
    assert _window(state, "pivot").days_until == 13
    assert _window(state, "plea_credit").date == date(2026, 6, 13)
    assert state.time_critical_actions == ()
    assert state.losing_leverage_actions == ()


def test_hearing_two_days_out_is_low():
    state = build_time_pressure([_ptph(2)], None, REFERENCE_DATE)

    assert state.current_leverage == Leverage.LOW
    assert "nearly exhausted" in state.leverage_explanation
    assert "Finalise disclosure requests" in state.time_critical_actions
    assert _window(state, "ptph").warning == "PTPH approaching - leverage window closing"
    assert "Strategy pivot (leverage lost after PTPH)" in state.losing_leverage_actions
    assert state.no_longer_attractive_actions == ()
    assert all(r.adjusted_leverage == Leverage.LOW for r in state.route_leverage)


def test_past_hearing_reports_lost_leverage():
    state = build_time_pressure([_ptph(-10)], None, REFERENCE_DATE)

    assert state.current_leverage == Leverage.LOW
    assert state.days_to_hearing == -10
    assert "passed 10 day(s) ago" in state.leverage_explanation
    assert state.no_longer_attractive_actions


def test_earlier_disclosure_deadline_drives_leverage():
    deadline = REFERENCE_DATE + timedelta(days=3)
    state = build_time_pressure([_ptph(20)], deadline, REFERENCE_DATE)

    assert state.current_leverage == Leverage.LOW
    assert "the disclosure deadline" in state.leverage_explanation
    assert state.days_to_hearing == 20
    assert _window(state, "disclosure").warning == "Disclosure deadline approaching"
    assert "Chase outstanding disclosure" in state.time_critical_actions


def test_non_ptph_hearing_keeps_placeholder():
    hearing = Hearing(hearing_type="Mention", hearing_date=REFERENCE_DATE + timedelta(days=10))
    state = build_time_pressure([hearing], None, REFERENCE_DATE)

    assert state.current_leverage == Leverage.MEDIUM
    assert state.next_hearing_type == "Mention"
    assert _window(state, "ptph").is_placeholder is True


@pytest.mark.parametrize(
    ("days", "expected"),
    [
        (0, Leverage.LOW),
        (3, Leverage.LOW),
        (4, Leverage.MEDIUM),
        (14, Leverage.MEDIUM),
        (15, Leverage.HIGH),
        (-1, Leverage.LOW),
    ],
)
def test_leverage_boundaries(days, expected):
    leverage, _ = classify_leverage(days)
    assert leverage == expected


def test_select_next_hearing_prefers_upcoming():
    hearings = [_ptph(-5), _ptph(30), _ptph(12)]
    assert select_next_hearing(hearings, REFERENCE_DATE).hearing_date == REFERENCE_DATE + timedelta(
        days=12
    )


def test_undated_hearings_are_ignored():
    state = build_time_pressure([Hearing(hearing_type="PTPH")], None, REFERENCE_DATE)

    assert state.current_leverage == Leverage.MEDIUM
    assert state.days_to_hearing is None


def test_same_reference_date_same_result():
    first = build_time_pressure([_ptph(6)], None, REFERENCE_DATE)
    second = build_time_pressure([_ptph(6)], None, REFERENCE_DATE)
    assert first.to_dict() == second.to_dict()
