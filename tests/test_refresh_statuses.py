"""Tests for the status reconciliation passes."""

import logging

from farmwork.commands.refresh_statuses import refresh_job_status, refresh_job_statuses
from farmwork.domain.errors import PersistenceError
from farmwork.domain.states import JobStatus
from farmwork.gateway.memory import InMemoryGateway

from conftest import TODAY, TOMORROW, make_job


async def seed(gateway):
    await gateway.insert_job(make_job(id="full", required_workers=2, accepted_worker_ids=["a", "b"],
                                      preferred_date=TOMORROW))
    await gateway.insert_job(make_job(id="started", required_workers=3, accepted_worker_ids=["a"],
                                      preferred_date=TODAY))
    await gateway.insert_job(make_job(id="waiting", required_workers=3, accepted_worker_ids=["a"],
                                      preferred_date=TOMORROW))
    await gateway.insert_job(make_job(id="done", required_workers=1, accepted_worker_ids=["a"],
                                      preferred_date=TODAY, status=JobStatus.COMPLETED))


class FlakyStatusWrites(InMemoryGateway):
    def __init__(self, failing_ids):
        super().__init__()
        self.failing_ids = set(failing_ids)

    async def update_job(self, job_id, fields, expected_version=None):
        if job_id in self.failing_ids and "status" in fields:
            raise PersistenceError("timeout")
        return await super().update_job(job_id, fields, expected_version)


class TestBulkRefresh:
    async def test_writes_only_changes(self, gateway):
        await seed(gateway)

        report = await refresh_job_statuses(gateway, today=TODAY)

        changes = {c.job_id: (c.from_status, c.to_status) for c in report.changes}
        assert changes == {
            "full": (JobStatus.OPEN, JobStatus.FILLED),
            "started": (JobStatus.OPEN, JobStatus.IN_PROGRESS),
        }
        assert report.failed == []
        assert (await gateway.get_job("waiting")).version == 1
        assert (await gateway.get_job("full")).status == JobStatus.FILLED

    async def test_completed_jobs_are_skipped(self, gateway):
        await seed(gateway)
        report = await refresh_job_statuses(gateway, today=TODAY)
        assert "done" not in {j.id for j in report.jobs}
        assert len(report.jobs) == 3

    async def test_second_pass_is_a_no_op(self, gateway):
        await seed(gateway)
        await refresh_job_statuses(gateway, today=TODAY)

        report = await refresh_job_statuses(gateway, today=TODAY)
        assert report.changes == []

    async def test_filled_moves_on_when_the_day_arrives(self, gateway):
        await seed(gateway)
        await refresh_job_statuses(gateway, today=TODAY)

        report = await refresh_job_statuses(gateway, today=TOMORROW)
        assert {c.job_id for c in report.changes} == {"full", "waiting"}
        assert (await gateway.get_job("full")).status == JobStatus.IN_PROGRESS

    async def test_failed_write_is_logged_and_skipped(self, caplog):
        gateway = FlakyStatusWrites(failing_ids={"full"})
        await seed(gateway)

        with caplog.at_level(logging.ERROR, logger="farmwork.commands.refresh_statuses"):
            report = await refresh_job_statuses(gateway, today=TODAY)

        assert report.failed == ["full"]
        assert [c.job_id for c in report.changes] == ["started"]
        # Stale status is kept in the report, and the store is untouched
        assert next(j for j in report.jobs if j.id == "full").status == JobStatus.OPEN
        assert (await gateway.get_job("full")).status == JobStatus.OPEN
        assert "Failed to update job full" in caplog.text

        gateway.failing_ids.clear()
        retry = await refresh_job_statuses(gateway, today=TODAY)
        assert [c.job_id for c in retry.changes] == ["full"]


class TestSingleRefresh:
    async def test_persists_new_status(self, gateway):
        await seed(gateway)
        job = await refresh_job_status(gateway, "started", today=TODAY)
        assert job.status == JobStatus.IN_PROGRESS
        assert (await gateway.get_job("started")).status == JobStatus.IN_PROGRESS

    async def test_unchanged_job_not_written(self, gateway):
        await seed(gateway)
        job = await refresh_job_status(gateway, "waiting", today=TODAY)
        assert job.version == 1
