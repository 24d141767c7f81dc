"""
Read-side aggregations for the farmer and worker dashboards.

Nothing here writes; every figure is derived from the gateway on each call.
"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from farmwork.domain.cooldown import application_can_reapply, hours_until_reapply
from farmwork.domain.errors import JobNotFoundError
from farmwork.domain.models import Application
from farmwork.domain.states import ApplicationStatus, JobStatus
from farmwork.gateway.base import ApplicationFilter, JobFilter, PersistenceGateway

@dataclass
class WorkerStats:
    worker_id: str
    total_applications: int = 0
    accepted_applications: int = 0
    completed_jobs: int = 0
    success_rate: int = 0

@dataclass
class FarmerDashboard:
    farmer_id: str
    jobs_by_status: dict[str, int] = field(default_factory=dict)
    total_jobs: int = 0
    workers_hired: int = 0

@dataclass
class ReapplyStatus:
    application_id: str
    status: ApplicationStatus
    can_reapply: bool
    hours_left: int

async def worker_stats(gateway: PersistenceGateway, worker_id: str) -> WorkerStats:
    """
    success_rate is the share of a worker's applications that ended in a
    completed job, as a whole percentage.
    """
    applications = await gateway.list_applications(ApplicationFilter(worker_id=worker_id))
    accepted = [a for a in applications if a.status == ApplicationStatus.ACCEPTED]

    completed = 0
    for job_id in {a.job_id for a in accepted}:
        try:
            job = await gateway.get_job(job_id)
        except JobNotFoundError:
            continue
        if job.status == JobStatus.COMPLETED:
            completed += 1

    total = len(applications)
    # Halves round up
    rate = math.floor(completed * 100 / total + 0.5) if total else 0
    return WorkerStats(
        worker_id=worker_id,
        total_applications=total,
        accepted_applications=len(accepted),
        completed_jobs=completed,
        success_rate=rate,
    )

async def farmer_dashboard(gateway: PersistenceGateway, farmer_id: str) -> FarmerDashboard:
    jobs = await gateway.list_jobs(JobFilter(farmer_id=farmer_id))
    counts = {s.value: 0 for s in JobStatus}
    for job in jobs:
        counts[job.status] += 1
    return FarmerDashboard(
        farmer_id=farmer_id,
        jobs_by_status=counts,
        total_jobs=len(jobs),
        workers_hired=sum(j.accepted_count for j in jobs),
    )

def reapply_status(application: Application, now: Optional[datetime] = None) -> ReapplyStatus:
    eligible = application_can_reapply(application, now)
    hours_left = 0
    if application.status == ApplicationStatus.REJECTED and application.rejected_at is not None:
        hours_left = hours_until_reapply(application.rejected_at, now)
    return ReapplyStatus(
        application_id=application.id,
        status=application.status,
        can_reapply=eligible,
        hours_left=hours_left,
    )
