"""Strategy analysis response schemas (the aggregate handed to the presentation layer)."""

import datetime

from pydantic import BaseModel, Field

from app.schemas.v1.common import (
    AttackCategory,
    CheckpointGate,
    ConfidenceLevel,
    DisclosureStatus,
    HearingType,
    Leverage,
    RouteId,
    Severity,
    StrengthTag,
    Trend,
)


class DisclosureItemOut(BaseModel):
    key: str
    label: str
    severity: Severity


class SatisfiedDisclosureItemOut(DisclosureItemOut):
    satisfied_by: str


class DisclosureStateOut(BaseModel):
    missing_items: list[DisclosureItemOut]
    satisfied_items: list[SatisfiedDisclosureItemOut]
    status: DisclosureStatus
    rationale: list[str]
    is_simulated: bool


class EvidenceSignalsOut(BaseModel):
    cctv_sequence: str
    body_worn_video_present: bool
    disclosure_completeness: str
    pace_compliance: str
    interview_evidence: bool
    custody_evidence: bool
    medical_evidence: str
    id_strength: str
    id_sources: int
    weapon_use: str
    prosecution_strength: str
    disclosure_gaps: list[str]


class AttackPathOut(BaseModel):
    name: str
    required_evidence: list[str]
    strength_tag: StrengthTag
    category: AttackCategory
    target: str
    method: str
    kill_switch: str


class StrategyRouteOut(BaseModel):
    route_id: RouteId
    label: str
    attack_paths: list[AttackPathOut]
    degraded: bool
    degraded_reason: str | None = None


class EvidenceImpactEntryOut(BaseModel):
    item_key: str
    label: str
    severity: Severity
    category: str
    affected_attack_paths: list[str]
    affected_routes: list[RouteId]
    unblock_count: int
    explanation: str
    if_arrives_adverse: str


class EvidenceImpactMapOut(BaseModel):
    entries: list[EvidenceImpactEntryOut]
    most_valuable_missing_evidence: list[str]


class PressureWindowOut(BaseModel):
    id: str
    type: str
    label: str
    date: datetime.date | None = None
    is_placeholder: bool
    days_until: int | None = None
    actions: list[str]
    warning: str | None = None


class RouteLeverageOut(BaseModel):
    route_id: RouteId
    adjusted_leverage: Leverage
    explanation: str
    time_aware_actions: list[str]


class TimePressureOut(BaseModel):
    current_leverage: Leverage
    leverage_explanation: str
    days_to_hearing: int | None = None
    next_hearing_date: datetime.date | None = None
    next_hearing_type: str | None = None
    windows: list[PressureWindowOut]
    time_critical_actions: list[str]
    losing_leverage_actions: list[str]
    no_longer_attractive_actions: list[str]
    route_leverage: list[RouteLeverageOut]


class ConfidenceStateOut(BaseModel):
    route_id: RouteId
    confidence: int = Field(ge=0, le=100)
    base_confidence: int
    level: ConfidenceLevel
    trend: Trend
    adjustments: list[str]
    explanation: str
    flip_conditions: list[str]


class RouteRankingOut(BaseModel):
    route_id: RouteId
    confidence: int
    eligible: bool


class ExcludedRouteOut(BaseModel):
    route_id: RouteId
    reason: str


class RecommendationOut(BaseModel):
    route_id: RouteId
    label: str
    confidence: int = Field(ge=0, le=100)
    level: ConfidenceLevel
    rationale: list[str]
    flip_conditions: list[str]
    narrative: str
    ranking: list[RouteRankingOut]
    excluded_routes: list[ExcludedRouteOut]


class DecisionCheckpointOut(BaseModel):
    id: str
    priority: int
    gate: CheckpointGate
    gating_condition: str
    action: str
    satisfied: bool


class HearingScriptOut(BaseModel):
    hearing_type: HearingType
    checklist: list[str]
    asks_of_court: list[str]
    do_not_concede: list[str]


class StrategyAnalysisResponse(BaseModel):
    schema_version: str
    case_id: str
    reference_date: datetime.date
    is_degraded: bool
    banner: str | None = None
    disclosure_state: DisclosureStateOut
    evidence_signals: EvidenceSignalsOut
    routes: list[StrategyRouteOut]
    evidence_impact_map: EvidenceImpactMapOut
    time_pressure: TimePressureOut
    confidence_states: dict[RouteId, ConfidenceStateOut]
    recommendation: RecommendationOut
    decision_checkpoints: list[DecisionCheckpointOut]
    hearing_scripts: list[HearingScriptOut]
