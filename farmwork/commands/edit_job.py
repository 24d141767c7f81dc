import logging
from datetime import date
from typing import Any, Optional

from farmwork.commands.refresh_statuses import refresh_job_status
from farmwork.domain.errors import JobCompleted, ValidationError, WageLocked
from farmwork.domain.models import Job, JobChanges
from farmwork.domain.states import JobStatus
from farmwork.domain.status_machine import validate_manual_edit
from farmwork.domain.wage_policy import validate_wage_change, wage_error_message
from farmwork.gateway.base import ApplicationFilter, PersistenceGateway
from farmwork.settings import settings

logger = logging.getLogger(__name__)

async def edit_job(
    gateway: PersistenceGateway,
    job_id: str,
    changes: JobChanges,
    today: Optional[date] = None
) -> Job:
    """
    Farmer edit of wage, required workers and status.

    - completed jobs reject every edit
    - the wage is frozen as soon as any application exists (re-submitting
      the current wage is accepted)
    - required workers may only grow once applications exist and never drop
      below the accepted count
    - manual status changes bypass the automatic guards but still cannot
      leave completed or reach in-progress without accepted workers

    After the write the automatic guards run again, so the edit may be
    followed by an immediate filled / in-progress transition.
    """
    job = await gateway.get_job(job_id)
    if job.status == JobStatus.COMPLETED:
        raise JobCompleted(job_id)
    if changes.is_empty():
        return job

    applications = await gateway.list_applications(ApplicationFilter(job_id=job_id))
    has_applications = len(applications) > 0

    fields: dict[str, Any] = {}

    if changes.wage is not None:
        decision = validate_wage_change(job.wage, changes.wage, has_applications, job.accepted_count)
        if not decision.can_modify:
            if changes.wage <= 0:
                raise ValidationError(decision.reason)
            raise WageLocked(wage_error_message(job.wage, changes.wage, has_applications, len(applications)))
        if changes.wage != job.wage:
            if changes.wage > settings.MAX_WAGE:
                raise ValidationError(f"Wage must not exceed {settings.MAX_WAGE:g}")
            fields["wage"] = changes.wage

    validate_manual_edit(job, has_applications, changes.status, changes.required_workers)

    if changes.required_workers is not None and changes.required_workers != job.required_workers:
        fields["required_workers"] = changes.required_workers
    if changes.status is not None and changes.status != job.status:
        fields["status"] = changes.status

    if not fields:
        return job

    await gateway.update_job(job_id, fields, expected_version=job.version)
    logger.info(f"Job {job_id} edited: {sorted(fields)}")

    return await refresh_job_status(gateway, job_id, today)
