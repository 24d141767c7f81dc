import logging

from farmwork.domain.errors import NotInProgress
from farmwork.domain.models import Job
from farmwork.domain.states import JobStatus
from farmwork.gateway.base import PersistenceGateway
from farmwork.api.v1.metrics import STATUS_TRANSITIONS_TOTAL

logger = logging.getLogger(__name__)

async def mark_completed(gateway: PersistenceGateway, job_id: str) -> Job:
    """
    Farmer closes a job. Only jobs that are actively being worked
    (in-progress) can be completed; completion is irreversible and freezes
    the job against edits, decisions, new applications and deletion.
    """
    job = await gateway.get_job(job_id)

    if job.status != JobStatus.IN_PROGRESS:
        raise NotInProgress(job_id, job.status)

    # Conditional on the version read so a concurrent edit cannot slip in between
    job = await gateway.update_job(job_id, {"status": JobStatus.COMPLETED}, expected_version=job.version)

    STATUS_TRANSITIONS_TOTAL.labels(from_status=JobStatus.IN_PROGRESS, to_status=JobStatus.COMPLETED).inc()
    logger.info(f"Job {job_id} marked as completed")
    return job
