import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from farmwork.domain.errors import PersistenceError, StaleWriteError
from farmwork.domain.models import Job
from farmwork.domain.states import JobStatus
from farmwork.domain.status_machine import check_job_status
from farmwork.gateway.base import JobFilter, PersistenceGateway
from farmwork.api.v1.metrics import PERSISTENCE_ERRORS_TOTAL, STATUS_TRANSITIONS_TOTAL
from farmwork.settings import settings

logger = logging.getLogger(__name__)

@dataclass
class StatusChange:
    job_id: str
    from_status: JobStatus
    to_status: JobStatus

@dataclass
class RefreshReport:
    jobs: list[Job] = field(default_factory=list)
    changes: list[StatusChange] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

async def _write_status(gateway: PersistenceGateway, job: Job, status: JobStatus) -> Job:
    updated = await gateway.update_job(job.id, {"status": status}, expected_version=job.version)
    STATUS_TRANSITIONS_TOTAL.labels(from_status=job.status, to_status=status).inc()
    logger.info(f"Job {job.id} status changed from '{job.status}' to '{status}'")
    return updated

async def refresh_job_status(
    gateway: PersistenceGateway,
    job_id: str,
    today: Optional[date] = None
) -> Job:
    """
    Single-job recheck, run right after a change that can move the lifecycle
    (worker accepted, required workers edited).

    Re-reads the job and persists the recomputed status. The write is
    conditional on the version that was read; if another writer got there
    first the job is read again and recomputed so a stale computation can
    never move the status backwards.
    """
    for _ in range(settings.ACCEPT_RETRY_LIMIT):
        job = await gateway.get_job(job_id)
        checked = check_job_status(job, today)
        if checked.status == job.status:
            return job
        try:
            return await _write_status(gateway, job, checked.status)
        except StaleWriteError:
            logger.info(f"Job {job_id} changed during status recheck, re-reading")

    # Still contended; the next bulk pass will reconcile it
    return await gateway.get_job(job_id)

async def refresh_job_statuses(
    gateway: PersistenceGateway,
    today: Optional[date] = None
) -> RefreshReport:
    """
    Bulk reconciliation pass over every non-completed job.

    Statuses are recomputed from source data and only deltas are written.
    A failed write is logged and the job keeps its stored status; because
    the guards are re-evaluated from scratch each time, the next pass
    retries it naturally.
    """
    report = RefreshReport()
    jobs = await gateway.list_jobs(
        JobFilter(exclude_status=JobStatus.COMPLETED, limit=settings.REFRESH_BATCH_LIMIT)
    )

    for job in jobs:
        checked = check_job_status(job, today)
        if checked.status == job.status:
            report.jobs.append(job)
            continue

        try:
            updated = await _write_status(gateway, job, checked.status)
        except PersistenceError as e:
            PERSISTENCE_ERRORS_TOTAL.labels(operation="refresh_status").inc()
            logger.error(f"Failed to update job {job.id} status to '{checked.status}': {e}")
            report.failed.append(job.id)
            report.jobs.append(job)
            continue

        report.changes.append(StatusChange(job.id, job.status, updated.status))
        report.jobs.append(updated)

    if report.changes:
        logger.info(f"Status refresh updated {len(report.changes)} of {len(jobs)} jobs")
    return report
