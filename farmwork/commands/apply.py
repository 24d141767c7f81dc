import logging
from datetime import datetime
from typing import Optional

from farmwork.domain.cooldown import application_can_reapply, hours_until_reapply
from farmwork.domain.errors import (
    AlreadyAccepted,
    AlreadyPending,
    CooldownActive,
    JobCompleted,
    PersistenceError,
    PolicyViolation,
    PositionsFilled,
)
from farmwork.domain.models import Application, WorkerProfile, new_id, utc_now
from farmwork.domain.states import ApplicationStatus, JobStatus
from farmwork.domain.status_machine import is_job_filled
from farmwork.gateway.base import ApplicationFilter, PersistenceGateway
from farmwork.api.v1.metrics import APPLICATIONS_TOTAL

logger = logging.getLogger(__name__)

async def apply_to_job(
    gateway: PersistenceGateway,
    job_id: str,
    worker: WorkerProfile,
    message: Optional[str] = None,
    now: Optional[datetime] = None
) -> Application:
    """
    Submits a worker's application to a job.

    A worker has at most one application per job. A rejected application is
    recycled (back to pending, applied_at reset, rejected_at cleared) once the
    reapply cooldown has passed instead of inserting a duplicate row.
    Either the single write lands or nothing is persisted.
    """
    now = now or utc_now()

    try:
        job = await gateway.get_job(job_id)
        if job.status == JobStatus.COMPLETED:
            raise JobCompleted(job_id)

        matches = await gateway.list_applications(
            ApplicationFilter(job_id=job_id, worker_id=worker.id, limit=1)
        )
        existing = matches[0] if matches else None

        if existing is not None:
            if existing.status == ApplicationStatus.PENDING:
                raise AlreadyPending(job_id)
            if existing.status == ApplicationStatus.ACCEPTED:
                raise AlreadyAccepted(job_id)
            if not application_can_reapply(existing, now):
                raise CooldownActive(hours_until_reapply(existing.rejected_at, now))

        if is_job_filled(job):
            raise PositionsFilled(job_id)
    except PolicyViolation as e:
        APPLICATIONS_TOTAL.labels(outcome=e.code).inc()
        logger.info(f"Worker {worker.id} cannot apply to job {job_id}: {e}")
        raise

    if existing is not None:
        fields = {
            "status": ApplicationStatus.PENDING,
            "applied_at": now,
            "rejected_at": None,
        }
        if message is not None:
            fields["message"] = message
        application = await gateway.update_application(existing.id, fields)
        APPLICATIONS_TOTAL.labels(outcome="recycled").inc()
        logger.info(f"Worker {worker.id} reapplied to job {job_id} (application {application.id})")
        return application

    application = Application(
        id=new_id(),
        job_id=job_id,
        worker_id=worker.id,
        worker_name=worker.name,
        worker_email=worker.email,
        message=message,
        status=ApplicationStatus.PENDING,
        applied_at=now,
    )
    try:
        await gateway.insert_application(application)
    except PersistenceError:
        # A concurrent apply by the same worker may have won the unique (job, worker) pair
        matches = await gateway.list_applications(
            ApplicationFilter(job_id=job_id, worker_id=worker.id, limit=1)
        )
        if not matches:
            raise
        conflict = AlreadyAccepted(job_id) if matches[0].status == ApplicationStatus.ACCEPTED else AlreadyPending(job_id)
        APPLICATIONS_TOTAL.labels(outcome=conflict.code).inc()
        logger.info(f"Worker {worker.id} cannot apply to job {job_id}: {conflict}")
        raise conflict
    APPLICATIONS_TOTAL.labels(outcome="created").inc()
    logger.info(f"Worker {worker.id} applied to job {job_id} (application {application.id})")
    return application
