import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union

from farmwork.commands.refresh_statuses import refresh_job_status
from farmwork.domain.errors import (
    CapacityExceeded,
    InvalidStatusChange,
    JobCompleted,
    PersistenceError,
    PolicyViolation,
    StaleWriteError,
)
from farmwork.domain.models import Application, Job, utc_now
from farmwork.domain.states import ApplicationStatus, Decision, JobStatus
from farmwork.gateway.base import PersistenceGateway
from farmwork.api.v1.metrics import ACCEPT_CONFLICTS_TOTAL, DECISIONS_TOTAL, PERSISTENCE_ERRORS_TOTAL
from farmwork.settings import settings

logger = logging.getLogger(__name__)

@dataclass
class DecisionResult:
    application: Application
    job: Job

async def decide_application(
    gateway: PersistenceGateway,
    application_id: str,
    decision: Union[Decision, str],
    now: Optional[datetime] = None,
    today: Optional[date] = None
) -> DecisionResult:
    """
    Applies a farmer's accept/reject decision to an application.

    No decision is allowed once the parent job is completed.
    """
    decision = Decision(decision)
    now = now or utc_now()

    application = await gateway.get_application(application_id)
    job = await gateway.get_job(application.job_id)

    try:
        if job.status == JobStatus.COMPLETED:
            raise JobCompleted(job.id)

        if decision == Decision.REJECT:
            result = await _reject(gateway, application, job, now)
        else:
            result = await _accept(gateway, application, today)
    except PolicyViolation as e:
        DECISIONS_TOTAL.labels(decision=decision, outcome=e.code).inc()
        logger.info(f"Decision '{decision}' on application {application_id} refused: {e}")
        raise

    DECISIONS_TOTAL.labels(decision=decision, outcome="applied").inc()
    return result

async def _reject(
    gateway: PersistenceGateway,
    application: Application,
    job: Job,
    now: datetime
) -> DecisionResult:
    if application.status == ApplicationStatus.REJECTED:
        return DecisionResult(application=application, job=job)

    if application.status == ApplicationStatus.ACCEPTED:
        # The worker holds a slot in accepted_worker_ids; rejecting would orphan it
        raise InvalidStatusChange(application.status, ApplicationStatus.REJECTED, "worker is already accepted")

    # Pending applications never reserved a slot, so the job row is untouched
    application = await gateway.update_application(
        application.id,
        {"status": ApplicationStatus.REJECTED, "rejected_at": now},
    )
    logger.info(f"Application {application.id} for job {job.id} rejected")
    return DecisionResult(application=application, job=job)

async def _accept(
    gateway: PersistenceGateway,
    application: Application,
    today: Optional[date]
) -> DecisionResult:
    if application.status == ApplicationStatus.REJECTED:
        raise InvalidStatusChange(application.status, ApplicationStatus.ACCEPTED, "worker must reapply first")

    job_id = application.job_id
    worker_id = application.worker_id

    # Capacity is checked against a fresh read and written conditionally on
    # the version that was read, so two farmers' clients racing for the last
    # slot cannot both succeed.
    for attempt in range(settings.ACCEPT_RETRY_LIMIT):
        job = await gateway.get_job(job_id)
        if job.status == JobStatus.COMPLETED:
            raise JobCompleted(job_id)
        if worker_id in job.accepted_worker_ids:
            break
        if job.accepted_count + 1 > job.required_workers:
            raise CapacityExceeded(job_id, job.required_workers)
        try:
            job = await gateway.update_job(
                job_id,
                {"accepted_worker_ids": job.accepted_worker_ids + [worker_id]},
                expected_version=job.version,
            )
            break
        except StaleWriteError:
            ACCEPT_CONFLICTS_TOTAL.inc()
            logger.info(f"Job {job_id} changed while accepting worker {worker_id} (attempt {attempt + 1})")
    else:
        raise StaleWriteError(job_id, job.version)

    if application.status != ApplicationStatus.ACCEPTED:
        try:
            application = await gateway.update_application(
                application.id,
                {"status": ApplicationStatus.ACCEPTED, "rejected_at": None},
            )
        except PersistenceError:
            PERSISTENCE_ERRORS_TOTAL.labels(operation="accept_application").inc()
            await _release_slot(gateway, job_id, worker_id)
            raise

    logger.info(f"Worker {worker_id} accepted for job {job_id} ({job.accepted_count}/{job.required_workers})")

    # Reflect filled / in-progress right away instead of waiting for the bulk pass
    try:
        job = await refresh_job_status(gateway, job_id, today)
    except PersistenceError as e:
        # The accept is already stored; the next bulk pass reconciles the status
        PERSISTENCE_ERRORS_TOTAL.labels(operation="status_recheck").inc()
        logger.error(f"Status recheck after accepting worker {worker_id} on job {job_id} failed: {e}")
    return DecisionResult(application=application, job=job)


async def _release_slot(gateway: PersistenceGateway, job_id: str, worker_id: str) -> None:
    """Undo the slot reservation when the application write fails."""
    try:
        job = await gateway.get_job(job_id)
        if worker_id in job.accepted_worker_ids:
            remaining = [w for w in job.accepted_worker_ids if w != worker_id]
            await gateway.update_job(job_id, {"accepted_worker_ids": remaining})
    except PersistenceError as e:
        logger.error(f"Could not release slot of worker {worker_id} on job {job_id}: {e}")
