import logging

from farmwork.domain.errors import ValidationError
from farmwork.domain.models import Job, JobDraft, new_id, utc_now
from farmwork.domain.states import JobStatus
from farmwork.gateway.base import PersistenceGateway
from farmwork.api.v1.metrics import JOBS_POSTED_TOTAL
from farmwork.settings import settings

logger = logging.getLogger(__name__)

def validate_draft(draft: JobDraft) -> None:
    if not draft.title.strip() or not draft.description.strip() or not draft.location.strip():
        raise ValidationError("Title, description and location are required")
    if draft.wage <= 0:
        raise ValidationError("Wage must be greater than 0")
    if draft.wage > settings.MAX_WAGE:
        raise ValidationError(f"Wage must not exceed {settings.MAX_WAGE:g}")
    if draft.duration <= 0:
        raise ValidationError("Duration must be greater than 0")
    if draft.required_workers <= 0:
        raise ValidationError("Required workers must be greater than 0")

async def post_job(gateway: PersistenceGateway, draft: JobDraft) -> Job:
    """
    Creates an open job with no accepted workers.
    """
    validate_draft(draft)

    now = utc_now()
    job = Job(
        id=new_id(),
        farmer_id=draft.farmer_id,
        farmer_name=draft.farmer_name,
        title=draft.title.strip(),
        description=draft.description.strip(),
        location=draft.location.strip(),
        preferred_date=draft.preferred_date,
        wage=draft.wage,
        duration=draft.duration,
        duration_type=draft.duration_type,
        required_workers=draft.required_workers,
        accepted_worker_ids=[],
        status=JobStatus.OPEN,
        created_at=now,
        updated_at=now,
    )
    await gateway.insert_job(job)

    JOBS_POSTED_TOTAL.inc()
    logger.info(f"Job {job.id} posted by farmer {job.farmer_id} ({job.required_workers} workers)")
    return job
