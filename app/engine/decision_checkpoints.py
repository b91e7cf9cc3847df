"""Decision checkpoint generator - PURE gated pre-conditions for a route.

This module contains ZERO database access. Pure functions operating on in-memory data structures.

Each rule pairs an auditable boolean expression over DisclosureState /
EvidenceSignals with the predicate that evaluates it. Rules run in fixed
gate order: safety, then evidence, then tactical.
"""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from app.engine.disclosure_state import DisclosureState
from app.engine.evidence_signals import EvidenceSignals
from app.schemas.v1.common import CheckpointGate, DisclosureStatus, RouteId

DEFAULT_MIN_DAYS_TO_HEARING = 7

READY_CHECKPOINT_ID = "ready_to_proceed"


@dataclass(frozen=True)
class CheckpointContext:
    disclosure_state: DisclosureState
    signals: EvidenceSignals
    days_to_hearing: int | None
    min_days_to_hearing: int = DEFAULT_MIN_DAYS_TO_HEARING


@dataclass(frozen=True)
class CheckpointRule:
    id: str
    gate: CheckpointGate
    gating_condition: str
    action: str
    predicate: Callable[[CheckpointContext], bool]


@dataclass(frozen=True)
class DecisionCheckpoint:
    id: str
    priority: int
    gate: CheckpointGate
    gating_condition: str
    action: str
    satisfied: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "priority": self.priority,
            "gate": str(self.gate),
            "gating_condition": self.gating_condition,
            "action": self.action,
            "satisfied": self.satisfied,
        }


def _min_days_condition(ctx: CheckpointContext) -> bool:
    return ctx.days_to_hearing is None or ctx.days_to_hearing > ctx.min_days_to_hearing


COMMON_SAFETY_RULES: tuple[CheckpointRule, ...] = (
    CheckpointRule(
        id="critical_disclosure_served",
        gate=CheckpointGate.SAFETY,
        gating_condition="disclosure_state.status != 'unsafe'",
        action="Obtain all critical disclosure before committing to a route",
        predicate=lambda ctx: ctx.disclosure_state.status != DisclosureStatus.UNSAFE,
    ),
    CheckpointRule(
        id="disclosure_completeness_assessed",
        gate=CheckpointGate.SAFETY,
        gating_condition="signals.disclosure_completeness != 'unknown'",
        action="Assess disclosure completeness against the served schedule",
        predicate=lambda ctx: ctx.signals.disclosure_completeness != "unknown",
    ),
)

COMMON_EVIDENCE_RULES: tuple[CheckpointRule, ...] = (
    CheckpointRule(
        id="pace_compliance_assessed",
        gate=CheckpointGate.EVIDENCE,
        gating_condition="signals.pace_compliance != 'unknown'",
        action="Review interview and custody records for PACE compliance",
        predicate=lambda ctx: ctx.signals.pace_compliance != "unknown",
    ),
)

ROUTE_EVIDENCE_RULES: dict[RouteId, tuple[CheckpointRule, ...]] = {
    RouteId.FIGHT_CHARGE: (
        CheckpointRule(
            id="identification_assessed",
            gate=CheckpointGate.EVIDENCE,
            gating_condition="signals.id_strength != 'unknown'",
            action="Assess identification evidence before preparing a Turnbull challenge",
            predicate=lambda ctx: ctx.signals.id_strength != "unknown",
        ),
    ),
    RouteId.CHARGE_REDUCTION: (
        CheckpointRule(
            id="medical_evidence_assessed",
            gate=CheckpointGate.EVIDENCE,
            gating_condition="signals.medical_evidence != 'unknown'",
            action="Obtain and review medical evidence on the injury pattern",
            predicate=lambda ctx: ctx.signals.medical_evidence != "unknown",
        ),
    ),
    RouteId.OUTCOME_MANAGEMENT: (
        CheckpointRule(
            id="prosecution_strength_assessed",
            gate=CheckpointGate.EVIDENCE,
            gating_condition="signals.prosecution_strength != 'unknown'",
            action="Assess the strength of the prosecution case before advising on plea",
            predicate=lambda ctx: ctx.signals.prosecution_strength != "unknown",
        ),
    ),
}

TACTICAL_RULES: tuple[CheckpointRule, ...] = (
    CheckpointRule(
        id="time_to_hearing",
        gate=CheckpointGate.TACTICAL,
        gating_condition=(
            "time_pressure.days_to_hearing is None or time_pressure.days_to_hearing > {min_days}"
        ),
        action="Hearing is close: prioritise time-critical steps and confirm the route now",
        predicate=_min_days_condition,
    ),
)


def checkpoint_rules(route_id: RouteId) -> tuple[CheckpointRule, ...]:
    """All pre-condition rules for a route, in gate order."""
    return (
        COMMON_SAFETY_RULES
        + COMMON_EVIDENCE_RULES
        + ROUTE_EVIDENCE_RULES[route_id]
        + TACTICAL_RULES
    )


def generate_decision_checkpoints(
    route_id: RouteId,
    disclosure_state: DisclosureState,
    signals: EvidenceSignals,
    days_to_hearing: int | None,
    min_days_to_hearing: int = DEFAULT_MIN_DAYS_TO_HEARING,
) -> tuple[DecisionCheckpoint, ...]:
    """One checkpoint per unmet pre-condition, or a single ready checkpoint."""
    ctx = CheckpointContext(
        disclosure_state=disclosure_state,
        signals=signals,
        days_to_hearing=days_to_hearing,
        min_days_to_hearing=min_days_to_hearing,
    )
    rules = checkpoint_rules(route_id)
    unmet = [rule for rule in rules if not rule.predicate(ctx)]

    if not unmet:
        condition = " and ".join(
            f"({rule.gating_condition.format(min_days=min_days_to_hearing)})" for rule in rules
        )
        return (
            DecisionCheckpoint(
                id=READY_CHECKPOINT_ID,
                priority=1,
                gate=CheckpointGate.TACTICAL,
                gating_condition=condition,
                action=f"Ready to proceed with {route_id}",
                satisfied=True,
            ),
        )

    return tuple(
        DecisionCheckpoint(
            id=rule.id,
            priority=priority,
            gate=rule.gate,
            gating_condition=rule.gating_condition.format(min_days=min_days_to_hearing),
            action=rule.action,
            satisfied=False,
        )
        for priority, rule in enumerate(unmet, start=1)
    )
