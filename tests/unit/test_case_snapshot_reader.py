"""Unit tests for the read-only case snapshot reader."""

import uuid
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from app.core.errors import DependencyError
from app.persistence.base import row_to_dict
from app.persistence.case_snapshot_reader import CASE_QUERY, CaseSnapshotReader


def _result(rows: list[dict]) -> MagicMock:
    result = MagicMock()
    result.fetchall.return_value = [MagicMock(_mapping=r) for r in rows]
    return result


def test_row_to_dict_casts_uuid_and_timestamps():
    case_id = uuid.UUID("12345678-1234-5678-1234-567812345678")
    row = MagicMock(
        _mapping={
            "id": case_id,
            "committed_at": datetime(2026, 2, 1, 9, 0, tzinfo=UTC),
            "hearing_date": date(2026, 3, 22),
            "title": "R v Doe",
        }
    )

    data = row_to_dict(row)

    assert data["id"] == "12345678-1234-5678-1234-567812345678"
    assert data["committed_at"] == "2026-02-01T09:00:00+00:00"
    assert data["hearing_date"] == date(2026, 3, 22)
    assert data["title"] == "R v Doe"


@pytest.mark.asyncio
async def test_get_case_scopes_query_by_tenant():
    session = AsyncMock()
    session.execute.return_value = _result([{"id": "case-1", "org_id": "org-1"}])
    reader = CaseSnapshotReader(session)

    case = await reader.get_case("case-1", "org-1")

    assert case == {"id": "case-1", "org_id": "org-1"}
    query, params = session.execute.await_args.args
    assert query is CASE_QUERY
    assert params == {"case_id": "case-1", "org_id": "org-1"}


@pytest.mark.asyncio
async def test_load_case_records_stops_when_case_missing():
    session = AsyncMock()
    session.execute.return_value = _result([])
    reader = CaseSnapshotReader(session)

    assert await reader.load_case_records("case-1", "org-2") is None
    assert session.execute.await_count == 1


@pytest.mark.asyncio
async def test_load_case_records_collects_every_table():
    session = AsyncMock()
    session.execute.side_effect = [
        _result([{"id": "case-1"}]),
        _result([{"id": "doc-1", "name": "BWV.mp4"}]),
        _result([]),
        _result([{"item": "BWV", "action": "served", "date": "2026-02-01"}]),
        _result([]),
        _result([]),
        _result([{"hearing_type": "PTPH", "hearing_date": date(2026, 3, 22)}]),
        _result([]),
    ]
    reader = CaseSnapshotReader(session)

    records = await reader.load_case_records("case-1", "org-1")

    assert records["case_row"] == {"id": "case-1"}
    assert records["documents"] == [{"id": "doc-1", "name": "BWV.mp4"}]
    assert records["timeline"][0]["action"] == "served"
    assert records["hearings"][0]["hearing_date"] == date(2026, 3, 22)
    assert records["commitment"] is None
    assert set(records) == {
        "case_row",
        "documents",
        "charges",
        "timeline",
        "dependencies",
        "impact_entries",
        "hearings",
        "commitment",
    }


@pytest.mark.asyncio
async def test_database_error_becomes_dependency_error():
    session = AsyncMock()
    session.execute.side_effect = OperationalError("SELECT", {}, Exception("connection reset"))
    reader = CaseSnapshotReader(session)

    with pytest.raises(DependencyError, match="Case data could not be read") as exc_info:
        await reader.get_hearings("case-1", "org-1")

    assert exc_info.value.details == {"query_name": "hearings", "case_id": "case-1"}
    assert isinstance(exc_info.value.__cause__, OperationalError)
