"""Unit tests for the strategy service."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from sqlalchemy.exc import OperationalError

from app.core.config import EngineConfig
from app.core.errors import (
    DependencyError,
    InternalComputationError,
    NotFoundError,
    ValidationError,
)
from app.core.tracing import clear_tracing_context, set_request_id, set_trace_parent
from app.schemas.v1.cases import CaseSnapshot
from app.schemas.v1.common import RouteId
from app.services.strategy_service import StrategyService, snapshot_diagnostics
from tests.conftest import ALL_ITEMS_SERVED, REFERENCE_DATE


def _row(data: dict) -> MagicMock:
    row = MagicMock()
    row._mapping = data
    return row


def _result(rows: list[dict]) -> MagicMock:
    result = MagicMock()
    result.fetchall.return_value = [_row(r) for r in rows]
    return result


def _session(*query_rows: list[dict]) -> AsyncMock:
    session = AsyncMock()
    session.execute.side_effect = [_result(rows) for rows in query_rows]
    return session


CASE_ROW = {"id": "case-1", "org_id": "org-1", "title": "R v Doe", "disclosure_deadline": None}
DOCUMENT_ROWS = [
    {
        "id": "doc-1",
        "name": "Medical Report.pdf",
        "title": "Medical Report",
        "raw_text": "Hospital notes record a single brief laceration to the forearm. " * 20,
        "metadata": None,
    },
    {
        "id": "doc-2",
        "name": "CCTV Summary.pdf",
        "title": "CCTV Summary",
        "raw_text": "The camera footage shows a brief altercation lasting seconds. " * 20,
        "metadata": {"pages": 2},
    },
]


@pytest.mark.asyncio
async def test_analyze_case_runs_engine_over_persisted_records():
    session = _session(
        [CASE_ROW],
        DOCUMENT_ROWS,
        [{"id": "ch-1", "offence": "Wounding with intent", "section": "s18 OAPA 1861"}],
        ALL_ITEMS_SERVED,
        [],
        [],
        [{"hearing_type": "PTPH", "hearing_date": date(2026, 3, 22)}],
        [],
    )
    service = StrategyService(session, config=EngineConfig())

    analysis = await service.analyze_case("case-1", "org-1", REFERENCE_DATE)

    assert analysis.case_id == "case-1"
    assert analysis.is_degraded is False
    assert analysis.recommendation.route_id == RouteId.CHARGE_REDUCTION
    assert analysis.recommendation.confidence == 80
    assert session.execute.await_count == 8


@pytest.mark.asyncio
async def test_analyze_case_without_documents_is_degraded():
    session = _session([CASE_ROW], [], [], [], [], [], [], [])
    service = StrategyService(session, config=EngineConfig())

    analysis = await service.analyze_case("case-1", "org-1", REFERENCE_DATE)

    assert analysis.is_degraded is True
    assert analysis.banner is not None


@pytest.mark.asyncio
async def test_load_snapshot_raises_not_found_for_other_tenant():
    session = _session([])
    service = StrategyService(session, config=EngineConfig())

    with pytest.raises(NotFoundError, match="Case not found") as exc_info:
        await service.load_snapshot("case-1", "other-org")

    assert exc_info.value.details == {"case_id": "case-1"}
    assert session.execute.await_count == 1


@pytest.mark.asyncio
async def test_load_snapshot_wraps_database_failure():
    session = AsyncMock()
    session.execute.side_effect = OperationalError("SELECT 1", {}, Exception("down"))
    service = StrategyService(session, config=EngineConfig())

    with pytest.raises(DependencyError) as exc_info:
        await service.load_snapshot("case-1", "org-1")

    assert exc_info.value.details["query_name"] == "case"


@pytest.mark.asyncio
async def test_load_snapshot_requires_session():
    service = StrategyService(config=EngineConfig())

    with pytest.raises(RuntimeError, match="needs a session"):
        await service.load_snapshot("case-1", "org-1")


def test_analyze_snapshot_without_persistence(full_snapshot_payload):
    service = StrategyService(config=EngineConfig())
    snapshot = CaseSnapshot.model_validate(full_snapshot_payload)

    analysis = service.analyze_snapshot(snapshot, REFERENCE_DATE)

    assert analysis.reference_date == REFERENCE_DATE
    assert analysis.recommendation.route_id == RouteId.CHARGE_REDUCTION


def test_unexpected_engine_failure_carries_diagnostics():
    service = StrategyService(config=EngineConfig())
    snapshot = CaseSnapshot(case_id="case-x")

    with (
        patch(
            "app.services.strategy_service.run_strategy_analysis",
            side_effect=RuntimeError("boom"),
        ),
        pytest.raises(InternalComputationError) as exc_info,
    ):
        service.analyze_snapshot(snapshot, REFERENCE_DATE)

    error = exc_info.value
    assert error.case_id == "case-x"
    assert error.details["case_id"] == "case-x"
    diagnostics = error.snapshot_diagnostics
    assert diagnostics["exception_type"] == "RuntimeError"
    assert diagnostics["reference_date"] == "2026-03-02"
    assert diagnostics["counts"]["documents"] == 0
    assert isinstance(error.__cause__, RuntimeError)


def test_engine_failure_diagnostics_carry_request_context():
    service = StrategyService(config=EngineConfig())
    set_request_id("req-analysis-1")
    set_trace_parent("00-aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa-bbbbbbbbbbbbbbbb-01")

    try:
        with (
            patch(
                "app.services.strategy_service.run_strategy_analysis",
                side_effect=RuntimeError("boom"),
            ),
            pytest.raises(InternalComputationError) as exc_info,
        ):
            service.analyze_snapshot(CaseSnapshot(case_id="case-y"), REFERENCE_DATE)
    finally:
        clear_tracing_context()

    diagnostics = exc_info.value.snapshot_diagnostics
    assert diagnostics["request_id"] == "req-analysis-1"
    assert diagnostics["trace_parent"] == "00-aaaaaaaaaaaaaaaaaaaaaaaaaaaaaaaa-bbbbbbbbbbbbbbbb-01"


def test_domain_errors_are_not_wrapped():
    service = StrategyService(config=EngineConfig())

    with (
        patch(
            "app.services.strategy_service.run_strategy_analysis",
            side_effect=ValidationError("bad snapshot"),
        ),
        pytest.raises(ValidationError, match="bad snapshot"),
    ):
        service.analyze_snapshot(CaseSnapshot(), REFERENCE_DATE)


def test_snapshot_diagnostics_excludes_case_content(full_snapshot_payload):
    snapshot = CaseSnapshot.model_validate(full_snapshot_payload)

    data = snapshot_diagnostics(snapshot, REFERENCE_DATE)

    assert data["case_id"] == "case-full-001"
    assert len(data["snapshot_fingerprint"]) == 64
    assert data["counts"]["disclosure_timeline"] == 7
    assert data["has_commitment"] is False
    assert "laceration" not in str(data)
    assert "text_diagnostics" not in data


def test_snapshot_fingerprint_is_stable(full_snapshot_payload):
    first = snapshot_diagnostics(CaseSnapshot.model_validate(full_snapshot_payload), REFERENCE_DATE)
    second = snapshot_diagnostics(CaseSnapshot.model_validate(full_snapshot_payload), REFERENCE_DATE)
    assert first["snapshot_fingerprint"] == second["snapshot_fingerprint"]
