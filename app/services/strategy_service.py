"""Strategy service - load a case snapshot and run the strategy engine over it."""

import time
from datetime import date
from typing import Any

import structlog
from opentelemetry import trace
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import EngineConfig, get_settings
from app.core.errors import InternalComputationError, NotFoundError, StrategyEngineError
from app.core.metrics import (
    strategy_engine_analysis_latency_seconds,
    strategy_engine_analysis_requests_total,
    strategy_engine_disclosure_status_total,
    strategy_engine_recommended_route_total,
    strategy_engine_stage_latency_seconds,
)
from app.core.tracing import tracing_log_context
from app.engine.pipeline import StrategyAnalysis, run_strategy_analysis
from app.engine.snapshot_assembler import CaseDiagnostics, assemble_case_snapshot
from app.persistence.case_snapshot_reader import CaseSnapshotReader
from app.schemas.v1.cases import CaseSnapshot
from app.utils.clock import utc_now
from app.utils.hashing import snapshot_fingerprint

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

SOURCE_PERSISTED = "persisted"
SOURCE_POSTED = "posted"


def snapshot_diagnostics(
    snapshot: CaseSnapshot,
    reference_date: date,
    diagnostics: CaseDiagnostics | None = None,
) -> dict[str, Any]:
    """Everything needed to reproduce a run offline, without the case content."""
    data: dict[str, Any] = {
        "case_id": snapshot.case_id,
        "snapshot_fingerprint": snapshot_fingerprint(snapshot),
        "reference_date": reference_date.isoformat(),
        "can_generate_analysis": snapshot.can_generate_analysis,
        "counts": {
            "documents": len(snapshot.documents),
            "charges": len(snapshot.charges),
            "disclosure_timeline": len(snapshot.disclosure_timeline),
            "declared_dependencies": len(snapshot.declared_dependencies),
            "evidence_impact_entries": len(snapshot.evidence_impact_entries),
            "hearings": len(snapshot.hearings),
        },
        "has_commitment": snapshot.commitment is not None,
    }
    if diagnostics is not None:
        data["text_diagnostics"] = diagnostics.to_dict()
    return data


def _observe_stage(stage: str, seconds: float) -> None:
    strategy_engine_stage_latency_seconds.labels(stage=stage).observe(seconds)


class StrategyService:
    """Service for computing strategy analyses."""

    def __init__(self, session: AsyncSession | None = None, config: EngineConfig | None = None):
        self.session = session
        self.reader = CaseSnapshotReader(session) if session is not None else None
        self.config = config or get_settings().engine

    async def load_snapshot(
        self, case_id: str, org_id: str
    ) -> tuple[CaseSnapshot, CaseDiagnostics]:
        """Assemble the latest snapshot for a case in the caller's tenant."""
        if self.reader is None:
            raise RuntimeError("StrategyService needs a session to load persisted cases")

        records = await self.reader.load_case_records(case_id, org_id)
        if records is None:
            logger.info("strategy_case_not_found", case_id=case_id)
            strategy_engine_analysis_requests_total.labels(
                source=SOURCE_PERSISTED, status="not_found", degraded="false"
            ).inc()
            raise NotFoundError("Case not found", details={"case_id": case_id})

        return assemble_case_snapshot(config=self.config, **records)

    async def analyze_case(
        self,
        case_id: str,
        org_id: str,
        reference_date: date | None = None,
    ) -> StrategyAnalysis:
        """Load the persisted case and analyse it."""
        snapshot, diagnostics = await self.load_snapshot(case_id, org_id)
        return self._analyze(snapshot, reference_date, SOURCE_PERSISTED, diagnostics)

    def analyze_snapshot(
        self,
        snapshot: CaseSnapshot,
        reference_date: date | None = None,
    ) -> StrategyAnalysis:
        """Analyse a caller-supplied snapshot without touching persistence."""
        return self._analyze(snapshot, reference_date, SOURCE_POSTED)

    def _analyze(
        self,
        snapshot: CaseSnapshot,
        reference_date: date | None,
        source: str,
        diagnostics: CaseDiagnostics | None = None,
    ) -> StrategyAnalysis:
        reference = reference_date or utc_now().date()
        started = time.perf_counter()
        trace_context = tracing_log_context()
        log = logger.bind(case_id=snapshot.case_id, source=source, **trace_context)
        log.info("strategy_analysis_started", reference_date=reference.isoformat())

        if not snapshot.can_generate_analysis:
            log.warning(
                "strategy_analysis_gated",
                text_diagnostics=diagnostics.to_dict() if diagnostics else None,
            )

        with tracer.start_as_current_span("strategy_engine.analysis") as span:
            span.set_attribute("case.id", snapshot.case_id)
            span.set_attribute("analysis.source", source)
            if request_id := trace_context.get("request_id"):
                span.set_attribute("request.id", request_id)
            try:
                analysis = run_strategy_analysis(
                    snapshot, reference, config=self.config, observer=_observe_stage
                )
            except StrategyEngineError:
                raise
            except Exception as exc:
                details = snapshot_diagnostics(snapshot, reference, diagnostics)
                details["exception_type"] = type(exc).__name__
                details.update(trace_context)
                strategy_engine_analysis_requests_total.labels(
                    source=source,
                    status="error",
                    degraded=str(not snapshot.can_generate_analysis).lower(),
                ).inc()
                log.exception("strategy_analysis_failed", snapshot_diagnostics=details)
                raise InternalComputationError(
                    "Strategy analysis failed",
                    case_id=snapshot.case_id,
                    snapshot_diagnostics=details,
                ) from exc

            span.set_attribute("disclosure.status", str(analysis.disclosure_state.status))
            span.set_attribute("recommendation.route_id", str(analysis.recommendation.route_id))
            span.set_attribute("analysis.degraded", analysis.is_degraded)

        latency = time.perf_counter() - started
        strategy_engine_analysis_latency_seconds.labels(source=source).observe(latency)
        strategy_engine_analysis_requests_total.labels(
            source=source, status="success", degraded=str(analysis.is_degraded).lower()
        ).inc()
        strategy_engine_disclosure_status_total.labels(
            status=str(analysis.disclosure_state.status)
        ).inc()
        strategy_engine_recommended_route_total.labels(
            route_id=str(analysis.recommendation.route_id)
        ).inc()

        log.info(
            "strategy_analysis_completed",
            disclosure_status=str(analysis.disclosure_state.status),
            recommended_route=str(analysis.recommendation.route_id),
            confidence=analysis.recommendation.confidence,
            degraded=analysis.is_degraded,
            latency_ms=round(latency * 1000, 2),
        )
        return analysis
