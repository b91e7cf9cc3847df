"""Time pressure engine - PURE leverage from hearing and deadline proximity.

This module contains ZERO database access. Pure functions operating on in-memory data structures.

All date math is date-only against an explicit reference date, so the
same snapshot and reference date always give the same answer.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any

from app.engine.catalogue import normalize
from app.engine.strategy_routes import ROUTE_PRIORITY
from app.schemas.v1.cases import Hearing
from app.schemas.v1.common import Leverage, RouteId

DEFAULT_HIGH_DAYS = 14
DEFAULT_LOW_DAYS = 3
TIME_CRITICAL_DAYS = 7
ESTIMATED_TRIAL_AFTER_PTPH_DAYS = 90
PLEA_CREDIT_DROP_BEFORE_TRIAL_DAYS = 7
PIVOT_BEFORE_PTPH_DAYS = 7
LOSING_LEVERAGE_BEFORE_PTPH_DAYS = 3

PTPH_MARKERS: tuple[str, ...] = ("ptph", "plea and trial")

NO_DATES_EXPLANATION = (
    "No scheduled hearing or disclosure deadline recorded; leverage defaults to medium "
    "until dates are added."
)


@dataclass(frozen=True)
class PressureWindow:
    id: str
    type: str
    label: str
    date: date | None
    is_placeholder: bool
    days_until: int | None
    actions: tuple[str, ...]
    warning: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "label": self.label,
            "date": self.date.isoformat() if self.date else None,
            "is_placeholder": self.is_placeholder,
            "days_until": self.days_until,
            "actions": list(self.actions),
            "warning": self.warning,
        }


@dataclass(frozen=True)
class RouteLeverage:
    route_id: RouteId
    adjusted_leverage: Leverage
    explanation: str
    time_aware_actions: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "route_id": str(self.route_id),
            "adjusted_leverage": str(self.adjusted_leverage),
            "explanation": self.explanation,
            "time_aware_actions": list(self.time_aware_actions),
        }


@dataclass(frozen=True)
class TimePressureState:
    current_leverage: Leverage
    leverage_explanation: str
    days_to_hearing: int | None
    next_hearing_date: date | None
    next_hearing_type: str | None
    windows: tuple[PressureWindow, ...]
    time_critical_actions: tuple[str, ...]
    losing_leverage_actions: tuple[str, ...]
    no_longer_attractive_actions: tuple[str, ...]
    route_leverage: tuple[RouteLeverage, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "current_leverage": str(self.current_leverage),
            "leverage_explanation": self.leverage_explanation,
            "days_to_hearing": self.days_to_hearing,
            "next_hearing_date": self.next_hearing_date.isoformat() if self.next_hearing_date else None,
            "next_hearing_type": self.next_hearing_type,
            "windows": [w.to_dict() for w in self.windows],
            "time_critical_actions": list(self.time_critical_actions),
            "losing_leverage_actions": list(self.losing_leverage_actions),
            "no_longer_attractive_actions": list(self.no_longer_attractive_actions),
            "route_leverage": [r.to_dict() for r in self.route_leverage],
        }


ROUTE_TIME_GUIDANCE: dict[RouteId, dict[Leverage, tuple[str, tuple[str, ...]]]] = {
    RouteId.FIGHT_CHARGE: {
        Leverage.HIGH: (
            "Time allows a full disclosure chase and challenge preparation before the hearing.",
            ("Serve targeted disclosure requests", "Start the chase trail log"),
        ),
        Leverage.MEDIUM: (
            "Leverage window narrowing. Proceed with disclosure requests and challenge preparation.",
            ("Chase outstanding disclosure this week",),
        ),
        Leverage.LOW: (
            "Leverage nearly exhausted. Disclosure requests and challenge preparation are time critical.",
            ("Request disclosure immediately - time critical", "Document chase trail urgently"),
        ),
    },
    RouteId.CHARGE_REDUCTION: {
        Leverage.HIGH: (
            "Negotiation window open. Prepare the charge reduction case before PTPH.",
            ("Draft written submissions on intent distinction",),
        ),
        Leverage.MEDIUM: (
            "Negotiation window narrowing. Put charge reduction to the prosecution before PTPH.",
            ("Send charge reduction representations", "Prepare written submissions on intent distinction"),
        ),
        Leverage.LOW: (
            "Leverage nearly exhausted. Negotiate charge reduction now or accept reduced leverage after PTPH.",
            ("Negotiate charge reduction urgently - before PTPH", "Prepare written submissions on intent distinction"),
        ),
    },
    RouteId.OUTCOME_MANAGEMENT: {
        Leverage.HIGH: (
            "Time allows a full assessment window before any plea decision.",
            ("Assess plea position once disclosure is complete",),
        ),
        Leverage.MEDIUM: (
            "Assessment window narrowing. Consider early plea if the case is strong.",
            ("Prepare mitigation package",),
        ),
        Leverage.LOW: (
            "Plea credit window closing. Assess plea position before credit drops.",
            ("Assess plea position urgently - credit window closing", "Prepare mitigation package"),
        ),
    },
}


def days_between(reference: date, target: date) -> int:
    return (target - reference).days


def is_ptph(hearing: Hearing) -> bool:
    hearing_type = normalize(hearing.hearing_type)
    return any(marker in hearing_type for marker in PTPH_MARKERS)


def select_next_hearing(hearings: Sequence[Hearing], reference: date) -> Hearing | None:
    """Earliest upcoming hearing; when all are past, the most recent one."""
    dated = [h for h in hearings if h.hearing_date is not None]
    upcoming = [h for h in dated if h.hearing_date >= reference]
    if upcoming:
        return min(upcoming, key=lambda h: (h.hearing_date, normalize(h.hearing_type)))
    if dated:
        return max(dated, key=lambda h: (h.hearing_date, normalize(h.hearing_type)))
    return None


def _ptph_date(hearings: Sequence[Hearing], reference: date) -> date | None:
    ptph = select_next_hearing([h for h in hearings if is_ptph(h)], reference)
    return ptph.hearing_date if ptph else None


def _ptph_window(ptph: date | None, reference: date) -> PressureWindow:
    if ptph is None:
        return PressureWindow(
            id="ptph",
            type="ptph",
            label="PTPH (Plea and Trial Preparation Hearing)",
            date=None,
            is_placeholder=True,
            days_until=None,
            actions=(
                "Add PTPH date to activate pressure calendar",
                "Request disclosure before PTPH",
                "Prepare case management submissions",
            ),
            warning="PTPH date unknown - add date to track leverage windows",
        )
    days = days_between(reference, ptph)
    return PressureWindow(
        id="ptph",
        type="ptph",
        label="PTPH (Plea and Trial Preparation Hearing)",
        date=ptph,
        is_placeholder=False,
        days_until=days,
        actions=(
            "Finalise disclosure requests",
            "Prepare case management submissions",
            "Confirm strategy commitment",
            "Negotiate charge reduction if applicable",
        ),
        warning="PTPH approaching - leverage window closing" if 0 <= days <= TIME_CRITICAL_DAYS else None,
    )


def build_pressure_windows(
    ptph: date | None,
    disclosure_deadline: date | None,
    reference: date,
) -> tuple[PressureWindow, ...]:
    windows = [_ptph_window(ptph, reference)]

    if disclosure_deadline is not None:
        days = days_between(reference, disclosure_deadline)
        windows.append(
            PressureWindow(
                id="disclosure",
                type="disclosure_deadline",
                label="Disclosure Deadline",
                date=disclosure_deadline,
                is_placeholder=False,
                days_until=days,
                actions=(
                    "Chase outstanding disclosure",
                    "Document chase trail",
                    "Prepare abuse application if failures persist",
                ),
                warning="Disclosure deadline approaching" if 0 <= days <= TIME_CRITICAL_DAYS else None,
            )
        )

    if ptph is not None:
        plea_drop = ptph + timedelta(
            days=ESTIMATED_TRIAL_AFTER_PTPH_DAYS - PLEA_CREDIT_DROP_BEFORE_TRIAL_DAYS
        )
        days = days_between(reference, plea_drop)
        windows.append(
            PressureWindow(
                id="plea_credit",
                type="plea_credit_drop",
                label="Plea Credit Drop Point (estimated)",
                date=plea_drop,
                is_placeholder=True,
                days_until=days,
                actions=(
                    "Assess plea position before credit drops",
                    "Consider early plea if case is strong",
                ),
                warning="Plea credit window closing" if 0 <= days <= TIME_CRITICAL_DAYS else None,
            )
        )

        pivot = ptph - timedelta(days=PIVOT_BEFORE_PTPH_DAYS)
        days = days_between(reference, pivot)
        windows.append(
            PressureWindow(
                id="pivot",
                type="pivot_moment",
                label="Last Safe Pivot Moment",
                date=pivot,
                is_placeholder=False,
                days_until=days,
                actions=(
                    "Reassess strategy based on disclosure",
                    "Pivot if evidence supports different route",
                    "Commit to strategy before PTPH",
                ),
                warning=(
                    "Last safe pivot moment approaching"
                    if 0 <= days <= LOSING_LEVERAGE_BEFORE_PTPH_DAYS
                    else None
                ),
            )
        )

    return tuple(windows)


def classify_leverage(
    days: int | None,
    label: str = "the next deadline",
    high_days: int = DEFAULT_HIGH_DAYS,
    low_days: int = DEFAULT_LOW_DAYS,
) -> tuple[Leverage, str]:
    """Leverage from days remaining to the earliest relevant date."""
    if days is None:
        return Leverage.MEDIUM, NO_DATES_EXPLANATION
    if days < 0:
        return (
            Leverage.LOW,
            f"{label} passed {-days} day(s) ago; negotiating leverage has been lost.",
        )
    if days <= low_days:
        return (
            Leverage.LOW,
            f"{days} day(s) until {label}; leverage is nearly exhausted.",
        )
    if days <= high_days:
        return (
            Leverage.MEDIUM,
            f"{days} days until {label}; the leverage window is narrowing.",
        )
    return (
        Leverage.HIGH,
        f"{days} days until {label}; leverage is high while there is time to press "
        "disclosure and negotiate.",
    )


def _dedupe(items: Sequence[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(items))


def adjust_route_leverage(route_id: RouteId, current: Leverage) -> RouteLeverage:
    explanation, actions = ROUTE_TIME_GUIDANCE[route_id][current]
    return RouteLeverage(
        route_id=route_id,
        adjusted_leverage=current,
        explanation=explanation,
        time_aware_actions=actions,
    )


def build_time_pressure(
    hearings: Sequence[Hearing],
    disclosure_deadline: date | None,
    reference: date,
    high_days: int = DEFAULT_HIGH_DAYS,
    low_days: int = DEFAULT_LOW_DAYS,
) -> TimePressureState:
    """Current leverage plus pressure windows; never returns an undefined leverage."""
    next_hearing = select_next_hearing(hearings, reference)
    next_hearing_date = next_hearing.hearing_date if next_hearing else None

    candidates: list[tuple[date, str]] = []
    if next_hearing is not None and next_hearing_date is not None:
        candidates.append((next_hearing_date, f"the {next_hearing.hearing_type or 'next'} hearing"))
    if disclosure_deadline is not None:
        candidates.append((disclosure_deadline, "the disclosure deadline"))

    if candidates:
        target, label = min(candidates)
        leverage, explanation = classify_leverage(
            days_between(reference, target), label, high_days, low_days
        )
    else:
        leverage, explanation = classify_leverage(None, high_days=high_days, low_days=low_days)

    ptph = _ptph_date(hearings, reference)
    windows = build_pressure_windows(ptph, disclosure_deadline, reference)

    time_critical = _dedupe(
        [
            action
            for window in windows
            if window.days_until is not None and 0 <= window.days_until <= TIME_CRITICAL_DAYS
            for action in window.actions
        ]
    )
    losing: list[str] = []
    no_longer: list[str] = []
    if ptph is not None:
        if reference > ptph - timedelta(days=LOSING_LEVERAGE_BEFORE_PTPH_DAYS):
            losing.append("Strategy pivot (leverage lost after PTPH)")
            losing.append("Charge reduction negotiation (less effective after PTPH)")
        if reference > ptph:
            no_longer.append("Late disclosure requests (should have been made before PTPH)")
            no_longer.append("Premature abuse applications (without proper chase trail)")

    return TimePressureState(
        current_leverage=leverage,
        leverage_explanation=explanation,
        days_to_hearing=days_between(reference, next_hearing_date) if next_hearing_date else None,
        next_hearing_date=next_hearing_date,
        next_hearing_type=next_hearing.hearing_type if next_hearing else None,
        windows=windows,
        time_critical_actions=time_critical,
        losing_leverage_actions=tuple(losing),
        no_longer_attractive_actions=tuple(no_longer),
        route_leverage=tuple(adjust_route_leverage(r, leverage) for r in ROUTE_PRIORITY),
    )
