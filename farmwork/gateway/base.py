"""
Persistence contract consumed by the matching engine.

Commands only ever talk to a PersistenceGateway, so the rules stay free of
any concrete storage technology. Two implementations ship with the package:
InMemoryGateway (tests, local runs) and SqlGateway (SQLAlchemy).
"""
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from farmwork.domain.models import Application, Job
from farmwork.domain.states import ApplicationStatus, DurationType, JobStatus

# Fields a partial update may touch. Posting fields are immutable.
JOB_MUTABLE_FIELDS = frozenset({"wage", "required_workers", "status", "accepted_worker_ids"})
APPLICATION_MUTABLE_FIELDS = frozenset({"status", "applied_at", "rejected_at", "message"})

@dataclass
class JobFilter:
    """
    Job listing criteria. search matches title, description or location;
    search and location are case-insensitive substring matches.
    """
    farmer_id: Optional[str] = None
    status: Optional[JobStatus] = None
    exclude_status: Optional[JobStatus] = None
    search: Optional[str] = None
    max_wage: Optional[float] = None
    duration_type: Optional[DurationType] = None
    location: Optional[str] = None
    limit: Optional[int] = None

    def matches(self, job: Job) -> bool:
        if self.farmer_id is not None and job.farmer_id != self.farmer_id:
            return False
        if self.status is not None and job.status != self.status:
            return False
        if self.exclude_status is not None and job.status == self.exclude_status:
            return False
        if self.search:
            term = self.search.lower()
            if not any(term in text.lower() for text in (job.title, job.description, job.location)):
                return False
        if self.max_wage is not None and job.wage > self.max_wage:
            return False
        if self.duration_type is not None and job.duration_type != self.duration_type:
            return False
        if self.location and self.location.lower() not in job.location.lower():
            return False
        return True

@dataclass
class ApplicationFilter:
    job_id: Optional[str] = None
    worker_id: Optional[str] = None
    status: Optional[ApplicationStatus] = None
    limit: Optional[int] = None

    def matches(self, application: Application) -> bool:
        if self.job_id is not None and application.job_id != self.job_id:
            return False
        if self.worker_id is not None and application.worker_id != self.worker_id:
            return False
        if self.status is not None and application.status != self.status:
            return False
        return True

def check_fields(fields: dict[str, Any], allowed: frozenset[str]) -> None:
    unknown = set(fields) - allowed
    if unknown:
        raise ValueError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

class PersistenceGateway(Protocol):
    # Jobs
    async def list_jobs(self, filters: Optional[JobFilter] = None) -> list[Job]:
        """Jobs ordered by created_at descending, capped by filters.limit or the configured default."""
        ...

    async def get_job(self, job_id: str) -> Job:
        """Raises JobNotFoundError."""
        ...

    async def insert_job(self, job: Job) -> None:
        ...

    async def update_job(
        self,
        job_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None
    ) -> Job:
        """
        Partial update. With expected_version the write only lands if the row
        is still at that version, otherwise StaleWriteError is raised.
        Returns the stored job after the write.
        """
        ...

    async def delete_job(self, job_id: str) -> None:
        ...

    # Applications
    async def list_applications(self, filters: Optional[ApplicationFilter] = None) -> list[Application]:
        """Applications ordered by applied_at descending."""
        ...

    async def get_application(self, application_id: str) -> Application:
        """Raises ApplicationNotFoundError."""
        ...

    async def insert_application(self, application: Application) -> None:
        ...

    async def update_application(self, application_id: str, fields: dict[str, Any]) -> Application:
        ...

    async def delete_applications_for_job(self, job_id: str) -> int:
        """Returns the number of applications removed."""
        ...
