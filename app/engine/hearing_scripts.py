"""Hearing script builder - PURE per-hearing checklists from disclosure and routes.

This module contains ZERO database access. Pure functions operating on in-memory data structures.

Scripts are short checklists, not speeches: every list is capped so a
script reads in about thirty seconds.
"""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date
from typing import Any

from app.engine.catalogue import normalize
from app.engine.disclosure_state import DisclosureState
from app.engine.strategy_routes import StrategyRoute
from app.schemas.v1.cases import Hearing
from app.schemas.v1.common import DisclosureStatus, HearingType, RouteId, Severity

DEFAULT_CHECKLIST_CAP = 6
DEFAULT_ASKS_CAP = 5
DEFAULT_DO_NOT_CONCEDE_CAP = 4

IDENTIFICATION_PATH = "IDENTIFICATION_CHALLENGE"
INTENT_PATHS = frozenset({"INTENT_CHALLENGE", "INJURY_PATTERN_INTENT_DISTINCTION"})
DISCLOSURE_LEVERAGE_PATH = "DISCLOSURE_FAILURE_ABUSE_OF_PROCESS"

# (checklist, asks, do_not_concede) caps per hearing type; the configured
# caps can only tighten these.
HEARING_CAPS: dict[HearingType, tuple[int, int, int]] = {
    HearingType.PTPH: (6, 5, 4),
    HearingType.DISCLOSURE_DIRECTIONS: (5, 5, 4),
    HearingType.CASE_MANAGEMENT: (5, 5, 4),
    HearingType.IDENTIFICATION: (5, 4, 4),
}

# Substrings of a free-text hearing type, checked in order.
HEARING_TYPE_MARKERS: tuple[tuple[HearingType, tuple[str, ...]], ...] = (
    (HearingType.PTPH, ("ptph", "plea and trial")),
    (HearingType.DISCLOSURE_DIRECTIONS, ("disclosure",)),
    (HearingType.IDENTIFICATION, ("identification", "special measures", "turnbull")),
    (HearingType.CASE_MANAGEMENT, ("case management", "cmh", "mention", "directions")),
)


@dataclass(frozen=True)
class HearingScript:
    hearing_type: HearingType
    checklist: tuple[str, ...]
    asks_of_court: tuple[str, ...]
    do_not_concede: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "hearing_type": str(self.hearing_type),
            "checklist": list(self.checklist),
            "asks_of_court": list(self.asks_of_court),
            "do_not_concede": list(self.do_not_concede),
        }


@dataclass(frozen=True)
class ScriptCaps:
    checklist: int = DEFAULT_CHECKLIST_CAP
    asks: int = DEFAULT_ASKS_CAP
    do_not_concede: int = DEFAULT_DO_NOT_CONCEDE_CAP


@dataclass(frozen=True)
class _ScriptContext:
    disclosure_state: DisclosureState
    path_names: frozenset[str]
    recommended_route: RouteId
    route_count: int

    @property
    def identification_live(self) -> bool:
        return IDENTIFICATION_PATH in self.path_names

    @property
    def intent_live(self) -> bool:
        return bool(INTENT_PATHS & self.path_names)

    @property
    def disclosure_leverage_live(self) -> bool:
        return DISCLOSURE_LEVERAGE_PATH in self.path_names

    def missing(self, severity: Severity) -> list[str]:
        return [item.label for item in self.disclosure_state.missing_with_severity(severity)]


def classify_hearing_type(raw: str) -> HearingType | None:
    """Map a free-text hearing type onto a scripted type, if any."""
    text = normalize(raw)
    if not text:
        return None
    for hearing_type, markers in HEARING_TYPE_MARKERS:
        if any(marker in text for marker in markers):
            return hearing_type
    return None


def _ptph(ctx: _ScriptContext) -> tuple[list[str], list[str], list[str]]:
    state = ctx.disclosure_state
    checklist = [
        "Confirm issues in dispute",
        "Confirm prosecution case summary",
        "Confirm disclosure status",
    ]
    if state.missing_items:
        checklist.append("Request directions for outstanding disclosure")
    if ctx.recommended_route == RouteId.FIGHT_CHARGE and ctx.identification_live:
        checklist.append("Request Turnbull direction")
    if ctx.intent_live:
        checklist.append("Confirm prosecution case on intent")

    asks: list[str] = []
    critical = ctx.missing(Severity.CRITICAL)
    if critical:
        asks.append(f"Request directions for critical disclosure: {', '.join(critical[:2])}")
    if state.missing_items:
        asks.append("Request timetable for outstanding disclosure")
    if ctx.identification_live:
        asks.append("Request Turnbull direction on identification reliability")
    asks.append("Request case management directions if disclosure affects trial readiness")

    do_not_concede: list[str] = []
    if ctx.identification_live:
        do_not_concede.append("Do not concede identification while an identification challenge is live")
    if ctx.intent_live:
        do_not_concede.append("Do not concede intent while an intent challenge is live")
    if state.status != DisclosureStatus.SAFE:
        do_not_concede.append("Do not agree to trial date until critical disclosure is served")
    if ctx.disclosure_leverage_live:
        do_not_concede.append("Do not concede disclosure is complete while disclosure failures persist")
    return checklist, asks, do_not_concede


def _disclosure_directions(ctx: _ScriptContext) -> tuple[list[str], list[str], list[str]]:
    state = ctx.disclosure_state
    checklist = [
        "Confirm what disclosure has been served",
        "Confirm what disclosure remains outstanding",
        "Request materiality assessment for outstanding items",
    ]
    critical = ctx.missing(Severity.CRITICAL)
    high = ctx.missing(Severity.HIGH)
    if critical:
        checklist.append(f"Request specific directions for: {', '.join(critical[:2])}")

    asks: list[str] = []
    if critical:
        asks.append(f"Request directions for critical disclosure: {', '.join(critical)}")
        asks.append("Request timetable for critical disclosure service")
    if high:
        asks.append(f"Request directions for high-priority disclosure: {', '.join(high[:2])}")
    asks.append("Request materiality assessment if prosecution resists disclosure")
    asks.append("Request adverse inference direction if disclosure obligations not met")

    do_not_concede = [
        "Do not accept that disclosure is complete if items remain outstanding",
        "Do not accept non-materiality without specific justification",
    ]
    if state.status == DisclosureStatus.UNSAFE:
        do_not_concede.append("Do not agree to proceed until critical disclosure is served")
    if ctx.disclosure_leverage_live:
        do_not_concede.append("Do not concede disclosure failures do not affect fair trial")
    return checklist, asks, do_not_concede


def _case_management(ctx: _ScriptContext) -> tuple[list[str], list[str], list[str]]:
    state = ctx.disclosure_state
    checklist = [
        "Confirm issues in dispute",
        "Confirm estimated trial length",
        "Confirm witness requirements",
    ]
    if state.missing_items:
        checklist.append("Confirm disclosure status affects case management")
    if ctx.route_count > 1:
        checklist.append("Confirm alternative routes may affect case management")

    asks: list[str] = []
    if state.missing_items:
        asks.append("Request case management directions if disclosure affects trial readiness")
        asks.append("Request adjournment if disclosure obligations not met")
    if ctx.identification_live:
        asks.append("Request case management directions for identification evidence")
    if ctx.intent_live:
        asks.append("Request case management directions for intent evidence")
    asks.append("Request directions for expert evidence if required")

    do_not_concede = [
        "Do not agree to trial date if disclosure affects case preparation",
        "Do not concede issues in dispute without reviewing disclosure",
    ]
    if ctx.route_count > 1:
        do_not_concede.append("Do not narrow issues if alternative routes remain viable")
    return checklist, asks, do_not_concede


def _identification(ctx: _ScriptContext) -> tuple[list[str], list[str], list[str]]:
    checklist = [
        "Confirm identification evidence requirements",
        "Request Turnbull direction if identification is disputed",
        "Request directions for identification procedure evidence",
        "Request directions for CCTV/BWV if identification is disputed",
    ]
    asks = [
        "Request Turnbull direction on identification reliability",
        "Request directions for identification procedure evidence",
    ]
    if any("cctv" in key or "bwv" in key for key in ctx.disclosure_state.missing_keys):
        asks.append("Request directions for CCTV/BWV disclosure if identification is disputed")
    asks.append("Request directions for witness statements on identification conditions")

    do_not_concede = [
        "Do not concede identification reliability without Turnbull assessment",
        "Do not accept identification evidence without reliability factors",
        "Do not agree to proceed if identification evidence is insufficient",
        "Do not accept a dock identification in place of a formal identification procedure",
    ]
    return checklist, asks, do_not_concede


_BUILDERS = {
    HearingType.PTPH: _ptph,
    HearingType.DISCLOSURE_DIRECTIONS: _disclosure_directions,
    HearingType.CASE_MANAGEMENT: _case_management,
    HearingType.IDENTIFICATION: _identification,
}


def scripted_hearing_types(
    hearings: Sequence[Hearing],
    reference: date,
    disclosure_state: DisclosureState,
    identification_live: bool,
) -> tuple[HearingType, ...]:
    """Upcoming hearing types plus the ones current state calls for, in fixed order."""
    wanted: set[HearingType] = set()
    for hearing in hearings:
        if hearing.hearing_date is not None and hearing.hearing_date < reference:
            continue
        hearing_type = classify_hearing_type(hearing.hearing_type)
        if hearing_type is not None:
            wanted.add(hearing_type)

    if not wanted:
        wanted.add(HearingType.PTPH)
    if disclosure_state.missing_items:
        wanted.add(HearingType.DISCLOSURE_DIRECTIONS)
    if identification_live:
        wanted.add(HearingType.IDENTIFICATION)
    return tuple(t for t in HearingType if t in wanted)


def build_hearing_script(
    hearing_type: HearingType,
    disclosure_state: DisclosureState,
    routes: Iterable[StrategyRoute],
    recommended_route: RouteId,
    caps: ScriptCaps | None = None,
) -> HearingScript:
    routes = tuple(routes)
    caps = caps or ScriptCaps()
    ctx = _ScriptContext(
        disclosure_state=disclosure_state,
        path_names=frozenset().union(*(route.attack_path_names for route in routes)),
        recommended_route=recommended_route,
        route_count=len(routes),
    )
    checklist, asks, do_not_concede = _BUILDERS[hearing_type](ctx)
    checklist_cap, asks_cap, dnc_cap = HEARING_CAPS[hearing_type]
    return HearingScript(
        hearing_type=hearing_type,
        checklist=tuple(checklist[: min(checklist_cap, caps.checklist)]),
        asks_of_court=tuple(asks[: min(asks_cap, caps.asks)]),
        do_not_concede=tuple(do_not_concede[: min(dnc_cap, caps.do_not_concede)]),
    )


def build_hearing_scripts(
    hearings: Sequence[Hearing],
    reference: date,
    disclosure_state: DisclosureState,
    routes: Sequence[StrategyRoute],
    recommended_route: RouteId,
    caps: ScriptCaps | None = None,
) -> tuple[HearingScript, ...]:
    identification_live = any(IDENTIFICATION_PATH in route.attack_path_names for route in routes)
    return tuple(
        build_hearing_script(hearing_type, disclosure_state, routes, recommended_route, caps)
        for hearing_type in scripted_hearing_types(
            hearings, reference, disclosure_state, identification_live
        )
    )
