"""Case snapshot reader - READ-ONLY queries on case management tables.

Every query is scoped by (case_id, org_id): a case outside the caller's
tenant is indistinguishable from a case that does not exist.
"""

import time
from typing import Any

from sqlalchemy import TextClause, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import DependencyError
from app.core.metrics import (
    strategy_engine_db_query_failures_total,
    strategy_engine_db_query_latency_seconds,
)
from app.persistence.base import row_to_dict

CASE_QUERY = text("""
    SELECT c.id, c.org_id, c.title, c.disclosure_deadline
    FROM cases c
    WHERE c.id = :case_id
      AND c.org_id = :org_id
""")

DOCUMENTS_QUERY = text("""
    SELECT d.id, d.name, d.title, d.raw_text, d.metadata
    FROM documents d
    JOIN cases c ON c.id = d.case_id
    WHERE d.case_id = :case_id
      AND c.org_id = :org_id
    ORDER BY d.created_at, d.id
""")

CHARGES_QUERY = text("""
    SELECT ch.id, ch.offence, ch.section
    FROM criminal_charges ch
    JOIN cases c ON c.id = ch.case_id
    WHERE ch.case_id = :case_id
      AND c.org_id = :org_id
    ORDER BY ch.created_at, ch.id
""")

TIMELINE_QUERY = text("""
    SELECT dt.item, dt.action, dt.action_date AS date
    FROM criminal_disclosure_timeline dt
    JOIN cases c ON c.id = dt.case_id
    WHERE dt.case_id = :case_id
      AND c.org_id = :org_id
    ORDER BY dt.action_date, dt.id
""")

DEPENDENCIES_QUERY = text("""
    SELECT dep.id, dep.label, dep.status
    FROM criminal_declared_dependencies dep
    JOIN cases c ON c.id = dep.case_id
    WHERE dep.case_id = :case_id
      AND c.org_id = :org_id
    ORDER BY dep.id
""")

IMPACT_ENTRIES_QUERY = text("""
    SELECT ei.name, ei.urgency
    FROM criminal_evidence_impact ei
    JOIN cases c ON c.id = ei.case_id
    WHERE ei.case_id = :case_id
      AND c.org_id = :org_id
    ORDER BY ei.name
""")

HEARINGS_QUERY = text("""
    SELECT h.hearing_type, h.hearing_date
    FROM criminal_hearings h
    JOIN cases c ON c.id = h.case_id
    WHERE h.case_id = :case_id
      AND c.org_id = :org_id
    ORDER BY h.hearing_date NULLS LAST, h.hearing_type
""")

COMMITMENT_QUERY = text("""
    SELECT sc.primary_route, sc.committed_at, sc.committed_by
    FROM case_strategy_commitments sc
    JOIN cases c ON c.id = sc.case_id
    WHERE sc.case_id = :case_id
      AND c.org_id = :org_id
    ORDER BY sc.committed_at DESC NULLS LAST
    LIMIT 1
""")


class CaseSnapshotReader:
    """Read-only queries that fetch the records behind one case snapshot."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _fetch(
        self, query_name: str, query: TextClause, case_id: str, org_id: str
    ) -> list[dict[str, Any]]:
        started = time.perf_counter()
        try:
            result = await self.session.execute(query, {"case_id": case_id, "org_id": org_id})
            rows = [row_to_dict(row) for row in result.fetchall()]
        except SQLAlchemyError as exc:
            strategy_engine_db_query_failures_total.labels(query_name=query_name).inc()
            raise DependencyError(
                "Case data could not be read",
                details={"query_name": query_name, "case_id": case_id},
            ) from exc
        strategy_engine_db_query_latency_seconds.labels(query_name=query_name).observe(
            time.perf_counter() - started
        )
        return rows

    async def get_case(self, case_id: str, org_id: str) -> dict[str, Any] | None:
        """Get the case row, or None when absent or outside the tenant."""
        rows = await self._fetch("case", CASE_QUERY, case_id, org_id)
        return rows[0] if rows else None

    async def get_documents(self, case_id: str, org_id: str) -> list[dict[str, Any]]:
        return await self._fetch("documents", DOCUMENTS_QUERY, case_id, org_id)

    async def get_charges(self, case_id: str, org_id: str) -> list[dict[str, Any]]:
        return await self._fetch("charges", CHARGES_QUERY, case_id, org_id)

    async def get_disclosure_timeline(self, case_id: str, org_id: str) -> list[dict[str, Any]]:
        return await self._fetch("disclosure_timeline", TIMELINE_QUERY, case_id, org_id)

    async def get_declared_dependencies(self, case_id: str, org_id: str) -> list[dict[str, Any]]:
        return await self._fetch("declared_dependencies", DEPENDENCIES_QUERY, case_id, org_id)

    async def get_evidence_impact_entries(self, case_id: str, org_id: str) -> list[dict[str, Any]]:
        return await self._fetch("evidence_impact_entries", IMPACT_ENTRIES_QUERY, case_id, org_id)

    async def get_hearings(self, case_id: str, org_id: str) -> list[dict[str, Any]]:
        return await self._fetch("hearings", HEARINGS_QUERY, case_id, org_id)

    async def get_latest_commitment(self, case_id: str, org_id: str) -> dict[str, Any] | None:
        """Latest strategy commitment; only ever read, never written here."""
        rows = await self._fetch("strategy_commitment", COMMITMENT_QUERY, case_id, org_id)
        return rows[0] if rows else None

    async def load_case_records(self, case_id: str, org_id: str) -> dict[str, Any] | None:
        """All records for one case, or None when the case is not visible to the tenant.

        Queries run one after another: a single AsyncSession does not
        support concurrent statements.
        """
        case_row = await self.get_case(case_id, org_id)
        if case_row is None:
            return None
        return {
            "case_row": case_row,
            "documents": await self.get_documents(case_id, org_id),
            "charges": await self.get_charges(case_id, org_id),
            "timeline": await self.get_disclosure_timeline(case_id, org_id),
            "dependencies": await self.get_declared_dependencies(case_id, org_id),
            "impact_entries": await self.get_evidence_impact_entries(case_id, org_id),
            "hearings": await self.get_hearings(case_id, org_id),
            "commitment": await self.get_latest_commitment(case_id, org_id),
        }
