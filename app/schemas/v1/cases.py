"""Case snapshot input shapes (version 1).

Every collection defaults to empty and every text field to an empty
string, so a snapshot assembled from sparse or partial upstream records
always validates. Statuses and actions are free text: values the engine
does not recognise are tolerated and simply never satisfy a rule.
"""

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

SNAPSHOT_SCHEMA_VERSION = "1"


class _SnapshotRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    @field_validator("*", mode="before")
    @classmethod
    def none_to_default(cls, v: Any, info: ValidationInfo) -> Any:
        if v is None:
            field = cls.model_fields[info.field_name]
            if field.default_factory is not None:
                return field.default_factory()
            return field.default
        return v


class CaseDocument(_SnapshotRecord):
    id: str = ""
    name: str = ""
    title: str = ""
    raw_text: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class Charge(_SnapshotRecord):
    id: str = ""
    offence: str = ""
    section: str = ""


class DisclosureTimelineEntry(_SnapshotRecord):
    item: str = ""
    action: str = ""
    date: str = ""

    @field_validator("date", mode="before")
    @classmethod
    def stringify_date(cls, v: Any) -> Any:
        if isinstance(v, date | datetime):
            return v.isoformat()
        return v


class DeclaredDependency(_SnapshotRecord):
    id: str = ""
    label: str = ""
    status: str = ""


class ImpactMapEntry(_SnapshotRecord):
    """Externally maintained evidence-impact note (name plus urgency text)."""

    name: str = ""
    urgency: str = ""


class StrategyCommitment(_SnapshotRecord):
    primary_route: str = ""
    committed_at: datetime | None = None
    committed_by: str = ""


class Hearing(_SnapshotRecord):
    hearing_type: str = ""
    hearing_date: date | None = None

    @field_validator("hearing_date", mode="before")
    @classmethod
    def date_only(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return datetime.fromisoformat(v).date()
        return v


class CaseSnapshot(_SnapshotRecord):
    """Complete, already-fetched input to one strategy analysis run."""

    schema_version: Literal["1"] = SNAPSHOT_SCHEMA_VERSION
    case_id: str = Field(default="", max_length=128)
    documents: list[CaseDocument] = Field(default_factory=list)
    charges: list[Charge] = Field(default_factory=list)
    disclosure_timeline: list[DisclosureTimelineEntry] = Field(default_factory=list)
    declared_dependencies: list[DeclaredDependency] = Field(default_factory=list)
    evidence_impact_entries: list[ImpactMapEntry] = Field(default_factory=list)
    commitment: StrategyCommitment | None = None
    hearings: list[Hearing] = Field(default_factory=list)
    disclosure_deadline: date | None = None
    can_generate_analysis: bool = True

    @field_validator("disclosure_deadline", mode="before")
    @classmethod
    def deadline_date_only(cls, v: Any) -> Any:
        if isinstance(v, datetime):
            return v.date()
        return v


class AnalyzeRequest(BaseModel):
    snapshot: CaseSnapshot
    reference_date: date | None = Field(
        default=None,
        description="Pins the clock for reproducible output; defaults to today (UTC).",
    )
