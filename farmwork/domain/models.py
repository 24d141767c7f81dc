from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Optional
from uuid import uuid4

from farmwork.domain.states import ApplicationStatus, DurationType, JobStatus


def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def new_id() -> str:
    return uuid4().hex

@dataclass
class Job:
    id: str
    farmer_id: str
    title: str
    description: str
    location: str
    wage: float
    duration: int
    required_workers: int

    farmer_name: str = ""
    duration_type: DurationType = DurationType.DAYS
    preferred_date: Optional[date] = None

    accepted_worker_ids: list[str] = field(default_factory=list)
    status: JobStatus = JobStatus.OPEN

    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    # Bumped on every write; used for update-if-unchanged
    version: int = 1

    @property
    def accepted_count(self) -> int:
        return len(self.accepted_worker_ids)

    @property
    def open_positions(self) -> int:
        return max(self.required_workers - self.accepted_count, 0)

@dataclass
class Application:
    id: str
    job_id: str
    worker_id: str
    status: ApplicationStatus = ApplicationStatus.PENDING

    # Display cache copied from the worker profile at apply time
    worker_name: str = ""
    worker_email: str = ""
    message: Optional[str] = None

    applied_at: datetime = field(default_factory=utc_now)
    rejected_at: Optional[datetime] = None

@dataclass(frozen=True)
class WorkerProfile:
    id: str
    name: str = ""
    email: str = ""

@dataclass
class JobDraft:
    """Fields a farmer submits when posting a job."""
    farmer_id: str
    title: str
    description: str
    location: str
    wage: float
    duration: int
    required_workers: int = 1
    farmer_name: str = ""
    duration_type: DurationType = DurationType.DAYS
    preferred_date: Optional[date] = None

@dataclass
class JobChanges:
    """Farmer edit form. None means "leave unchanged"."""
    wage: Optional[float] = None
    required_workers: Optional[int] = None
    status: Optional[JobStatus] = None

    def is_empty(self) -> bool:
        return self.wage is None and self.required_workers is None and self.status is None
