"""
Job lifecycle rules.

    open -> filled -> in-progress -> completed
    open -----------> in-progress

Automatic transitions are recomputed from source data (accepted workers,
required workers, preferred date) so the same inputs always produce the same
status. ``completed`` is only reached through an explicit farmer action.
"""
from dataclasses import replace
from datetime import date, datetime
from typing import Optional, Union

from farmwork.domain.errors import (
    InvalidStatusChange,
    JobCompleted,
    NotInProgress,
    ValidationError,
    WorkerCountLocked,
)
from farmwork.domain.models import Job
from farmwork.domain.states import JobStatus


def _as_day(value: Union[date, datetime]) -> date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, datetime):
        return value.date()
    return value

def is_job_date_reached(preferred_date: Optional[Union[date, datetime]], today: Optional[date] = None) -> bool:
    if preferred_date is None:
        return False
    today = _as_day(today or date.today())
    return _as_day(preferred_date) <= today

def is_job_filled(job: Job) -> bool:
    return job.accepted_count >= job.required_workers

def next_status(
    status: JobStatus,
    accepted_workers: int,
    required_workers: int,
    preferred_date: Optional[Union[date, datetime]],
    today: Optional[date] = None
) -> JobStatus:
    """
    Applies the automatic guards in priority order:

    1. completed is terminal.
    2. open with every position accepted -> filled.
    3. open/filled, work date reached and at least one accepted worker -> in-progress.
       Evaluated on the result of guard 2, so open -> filled -> in-progress
       can happen in one pass.
    4. otherwise unchanged.
    """
    if status == JobStatus.COMPLETED:
        return status

    new_status = status

    if accepted_workers >= required_workers and new_status == JobStatus.OPEN:
        new_status = JobStatus.FILLED

    if (
        new_status in (JobStatus.OPEN, JobStatus.FILLED)
        and accepted_workers > 0
        and is_job_date_reached(preferred_date, today)
    ):
        new_status = JobStatus.IN_PROGRESS

    return new_status

def check_job_status(job: Job, today: Optional[date] = None) -> Job:
    """Returns a copy of job carrying its recomputed status. No I/O."""
    status = next_status(
        job.status,
        job.accepted_count,
        job.required_workers,
        job.preferred_date,
        today,
    )
    if status == job.status:
        return replace(job, accepted_worker_ids=list(job.accepted_worker_ids))
    return replace(job, status=status, accepted_worker_ids=list(job.accepted_worker_ids))

def validate_manual_edit(
    job: Job,
    has_applications: bool,
    new_status: Optional[JobStatus] = None,
    new_required_workers: Optional[int] = None
) -> None:
    """
    Guards for farmer-initiated edits. Manual status changes skip the
    automatic guards but may not break the invariants below.

    Raises a PolicyViolation or ValidationError; returns None when the edit is allowed.
    """
    if job.status == JobStatus.COMPLETED:
        raise JobCompleted(job.id)

    if new_required_workers is not None:
        if new_required_workers <= 0:
            raise ValidationError("Required workers must be greater than 0")
        if new_required_workers < job.accepted_count:
            raise WorkerCountLocked(
                f"Cannot set required workers below {job.accepted_count}: "
                f"{job.accepted_count} workers are already accepted"
            )
        if has_applications and new_required_workers < job.required_workers:
            raise WorkerCountLocked(
                f"Cannot reduce required workers from {job.required_workers} to {new_required_workers} "
                "once applications exist; workers applied based on the original requirement"
            )

    if new_status is None or new_status == job.status:
        return

    if new_status == JobStatus.COMPLETED and job.status != JobStatus.IN_PROGRESS:
        raise NotInProgress(job.id, job.status)

    if new_status == JobStatus.IN_PROGRESS and job.accepted_count == 0:
        raise InvalidStatusChange(job.status, new_status, "no workers have been accepted")
