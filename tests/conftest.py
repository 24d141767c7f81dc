"""
Pytest fixtures for the matching engine tests.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from farmwork.commands.apply import apply_to_job
from farmwork.commands.post_job import post_job
from farmwork.domain.models import Job, JobDraft, WorkerProfile
from farmwork.domain.states import DurationType, JobStatus
from farmwork.gateway.memory import InMemoryGateway

NOW = datetime(2026, 3, 10, 9, 0, tzinfo=timezone.utc)
TODAY = date(2026, 3, 10)
TOMORROW = TODAY + timedelta(days=1)


def make_job(**overrides) -> Job:
    """Build a Job directly, bypassing post_job validation."""
    values = dict(
        id="job-1",
        farmer_id="farmer-1",
        title="Apple picking",
        description="Two days in the orchard",
        location="Hood River",
        wage=150.0,
        duration=2,
        required_workers=3,
    )
    values.update(overrides)
    return Job(**values)


def make_draft(**overrides) -> JobDraft:
    values = dict(
        farmer_id="farmer-1",
        farmer_name="Ana Farmer",
        title="Apple picking",
        description="Two days in the orchard",
        location="Hood River",
        wage=150.0,
        duration=2,
        required_workers=3,
        preferred_date=TOMORROW,
    )
    values.update(overrides)
    return JobDraft(**values)


def worker(n: int) -> WorkerProfile:
    return WorkerProfile(id=f"worker-{n}", name=f"Worker {n}", email=f"worker{n}@example.com")


async def seed_discovery(gateway):
    """Three jobs with distinct wages, locations and duration types, oldest first."""
    await gateway.insert_job(make_job(id="apples", title="Apple picking", location="Hood River",
                                      wage=150, created_at=NOW - timedelta(hours=3)))
    await gateway.insert_job(make_job(id="weeding", title="Weeding", description="Hand weeding of ORCHARD rows",
                                      location="Yakima", wage=90, duration_type=DurationType.HOURS,
                                      created_at=NOW - timedelta(hours=2)))
    await gateway.insert_job(make_job(id="pruning", title="Pruning", description="Vines",
                                      location="Walla Walla", wage=200, status=JobStatus.FILLED,
                                      created_at=NOW - timedelta(hours=1)))


@pytest.fixture
def gateway():
    return InMemoryGateway()


@pytest.fixture
async def posted_job(gateway):
    """Open job for three workers, dated tomorrow."""
    return await post_job(gateway, make_draft())


@pytest.fixture
def apply_workers(gateway):
    """Returns a coroutine that applies workers 1..count to a job."""

    async def _apply(job_id: str, count: int, now: datetime = NOW):
        return [await apply_to_job(gateway, job_id, worker(n), now=now) for n in range(1, count + 1)]

    return _apply


@pytest.fixture
def client(gateway):
    """FastAPI TestClient backed by the in-memory gateway."""
    from fastapi.testclient import TestClient

    from farmwork.api.deps import get_gateway
    from farmwork.main import app

    app.dependency_overrides[get_gateway] = lambda: gateway
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
