import logging

from farmwork.domain.errors import JobCompleted, PersistenceError
from farmwork.domain.states import JobStatus
from farmwork.gateway.base import PersistenceGateway
from farmwork.api.v1.metrics import PERSISTENCE_ERRORS_TOTAL

logger = logging.getLogger(__name__)

async def delete_job(gateway: PersistenceGateway, job_id: str) -> int:
    """
    Deletes a job together with every application that references it.
    Returns the number of applications removed.

    Completed jobs are permanent history and cannot be deleted.
    Applications go first; if that fails the job is left in place so no
    application is ever orphaned.
    """
    job = await gateway.get_job(job_id)
    if job.status == JobStatus.COMPLETED:
        raise JobCompleted(job_id)

    try:
        removed = await gateway.delete_applications_for_job(job_id)
    except PersistenceError as e:
        PERSISTENCE_ERRORS_TOTAL.labels(operation="delete_applications").inc()
        logger.error(f"Error deleting applications of job {job_id}, job kept: {e}")
        raise

    await gateway.delete_job(job_id)
    logger.info(f"Job {job_id} deleted with {removed} applications")
    return removed
