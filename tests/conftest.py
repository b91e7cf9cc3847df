"""Root conftest for tests."""

import os
from datetime import date

import pytest

if os.getenv("APP_ENV", "").strip().lower() == "prod":
    raise RuntimeError("Refusing to run tests with APP_ENV=prod")

os.environ["APP_ENV"] = "local"
os.environ["SECURITY_SKIP_JWT_VALIDATION"] = "true"
os.environ.setdefault("SERVER_PORT", "8010")
os.environ.setdefault("METRICS_TOKEN", "test-metrics-token")

REFERENCE_DATE = date(2026, 3, 2)

ALL_ITEMS_SERVED = [
    {"item": "CCTV Full Window", "action": "served", "date": "2026-02-01"},
    {"item": "CCTV Continuity", "action": "served", "date": "2026-02-01"},
    {"item": "Body Worn Video (BWV)", "action": "served", "date": "2026-02-02"},
    {"item": "999 Call Audio", "action": "served", "date": "2026-02-02"},
    {"item": "CAD Log", "action": "reviewed", "date": "2026-02-03"},
    {"item": "Interview Recording", "action": "served", "date": "2026-02-03"},
    {"item": "Custody Record / Custody CCTV", "action": "served", "date": "2026-02-04"},
]


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    dir_marker_map = {
        "unit": pytest.mark.unit,
        "smoke": pytest.mark.smoke,
    }
    for item in items:
        test_path = str(item.fspath)
        for dir_name, marker in dir_marker_map.items():
            if f"/{dir_name}/" in test_path or f"\\{dir_name}\\" in test_path:
                item.add_marker(marker)
                break


@pytest.fixture
def reference_date() -> date:
    return REFERENCE_DATE


@pytest.fixture
def mock_session():
    """Mock database session for tests."""

    class MockSession:
        async def execute(self, *args, **kwargs):
            class MockResult:
                def fetchone(self):
                    return None

                def fetchall(self):
                    return []

            return MockResult()

        async def commit(self):
            pass

        async def rollback(self):
            pass

    return MockSession()


@pytest.fixture
def full_snapshot_payload() -> dict:
    """A readable assault case with every disclosure item served."""
    return {
        "schema_version": "1",
        "case_id": "case-full-001",
        "documents": [
            {
                "id": "doc-1",
                "name": "Medical Report.pdf",
                "title": "Medical Report",
                "raw_text": "Hospital notes record a single brief laceration to the forearm. " * 20,
            },
            {
                "id": "doc-2",
                "name": "CCTV Summary.pdf",
                "title": "CCTV Summary",
                "raw_text": "The camera footage shows a brief altercation lasting seconds. " * 20,
            },
        ],
        "charges": [{"id": "ch-1", "offence": "Wounding with intent", "section": "s18 OAPA 1861"}],
        "disclosure_timeline": ALL_ITEMS_SERVED,
        "hearings": [{"hearing_type": "PTPH", "hearing_date": "2026-03-22"}],
    }
