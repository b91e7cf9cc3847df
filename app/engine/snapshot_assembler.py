"""Case snapshot assembler - PURE mapping of persisted rows onto a CaseSnapshot.

This module contains ZERO database access. Pure functions operating on in-memory data structures.

The reader fetches rows; this module decides the text-volume diagnostics
behind ``can_generate_analysis`` and fills every default once, at the
boundary, so the engine never sees a partial record.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from app.core.config import EngineConfig
from app.schemas.v1.cases import (
    CaseDocument,
    CaseSnapshot,
    Charge,
    DeclaredDependency,
    DisclosureTimelineEntry,
    Hearing,
    ImpactMapEntry,
    StrategyCommitment,
)

Row = Mapping[str, Any]


@dataclass(frozen=True)
class CaseDiagnostics:
    doc_count: int
    total_chars: int
    thin_text: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "doc_count": self.doc_count,
            "total_chars": self.total_chars,
            "thin_text": self.thin_text,
        }


def compute_case_diagnostics(
    documents: Sequence[CaseDocument],
    config: EngineConfig | None = None,
) -> CaseDiagnostics:
    """Text-volume diagnostics over the extracted raw text of each document."""
    config = config or EngineConfig()
    doc_count = len(documents)
    total_chars = sum(len(d.raw_text.strip()) for d in documents)
    thin_text = doc_count > 0 and total_chars < doc_count * config.thin_chars_per_document
    return CaseDiagnostics(doc_count=doc_count, total_chars=total_chars, thin_text=thin_text)


def can_generate_analysis(diagnostics: CaseDiagnostics, config: EngineConfig | None = None) -> bool:
    config = config or EngineConfig()
    if diagnostics.doc_count < config.min_documents:
        return False
    if diagnostics.total_chars < config.min_total_chars:
        return False
    return not diagnostics.thin_text


def _document(row: Row) -> CaseDocument:
    metadata = row.get("metadata")
    return CaseDocument(
        id=str(row.get("id") or ""),
        name=row.get("name"),
        title=row.get("title"),
        raw_text=row.get("raw_text"),
        metadata=metadata if isinstance(metadata, Mapping) else {},
    )


def assemble_case_snapshot(
    case_row: Row,
    documents: Sequence[Row] = (),
    charges: Sequence[Row] = (),
    timeline: Sequence[Row] = (),
    dependencies: Sequence[Row] = (),
    impact_entries: Sequence[Row] = (),
    hearings: Sequence[Row] = (),
    commitment: Row | None = None,
    config: EngineConfig | None = None,
) -> tuple[CaseSnapshot, CaseDiagnostics]:
    """Build a complete snapshot plus the diagnostics that gated it."""
    docs = [_document(row) for row in documents]
    diagnostics = compute_case_diagnostics(docs, config)

    snapshot = CaseSnapshot(
        case_id=str(case_row.get("id") or ""),
        documents=docs,
        charges=[Charge.model_validate(dict(row)) for row in charges],
        disclosure_timeline=[DisclosureTimelineEntry.model_validate(dict(row)) for row in timeline],
        declared_dependencies=[DeclaredDependency.model_validate(dict(row)) for row in dependencies],
        evidence_impact_entries=[ImpactMapEntry.model_validate(dict(row)) for row in impact_entries],
        commitment=StrategyCommitment.model_validate(dict(commitment)) if commitment else None,
        hearings=[Hearing.model_validate(dict(row)) for row in hearings],
        disclosure_deadline=case_row.get("disclosure_deadline"),
        can_generate_analysis=can_generate_analysis(diagnostics, config),
    )
    return snapshot, diagnostics
