"""Common schemas: enums and error responses."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel


class Severity(StrEnum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class DisclosureStatus(StrEnum):
    SAFE = "safe"
    CONDITIONALLY_UNSAFE = "conditionally_unsafe"
    UNSAFE = "unsafe"


class RouteId(StrEnum):
    FIGHT_CHARGE = "fight_charge"
    CHARGE_REDUCTION = "charge_reduction"
    OUTCOME_MANAGEMENT = "outcome_management"


class Leverage(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class Trend(StrEnum):
    RISING = "rising"
    FALLING = "falling"
    STABLE = "stable"


class ConfidenceLevel(StrEnum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class AttackCategory(StrEnum):
    STRUCTURAL = "structural"
    EVIDENTIARY = "evidentiary"
    MITIGATION = "mitigation"


class StrengthTag(StrEnum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    HYPOTHESIS = "hypothesis"


class CheckpointGate(StrEnum):
    SAFETY = "safety"
    EVIDENCE = "evidence"
    TACTICAL = "tactical"


class HearingType(StrEnum):
    PTPH = "PTPH"
    DISCLOSURE_DIRECTIONS = "disclosure_directions"
    CASE_MANAGEMENT = "case_management"
    IDENTIFICATION = "identification"


class ApiError(BaseModel):
    code: str
    message: str
    details: dict[str, Any] | None = None
