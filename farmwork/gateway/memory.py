import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Optional

from farmwork.domain.errors import (
    ApplicationNotFoundError,
    JobNotFoundError,
    PersistenceError,
    StaleWriteError,
)
from farmwork.domain.models import Application, Job, utc_now
from farmwork.gateway.base import (
    APPLICATION_MUTABLE_FIELDS,
    JOB_MUTABLE_FIELDS,
    ApplicationFilter,
    JobFilter,
    check_fields,
)
from farmwork.settings import settings

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)

def _sort_key(value: Optional[datetime]) -> datetime:
    if value is None:
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

class InMemoryGateway:
    """
    Dict-backed gateway for tests and local development.

    Records are copied on the way in and out so callers can never mutate
    stored state without going through an update call. A single asyncio lock
    makes each call atomic, which gives update_job(expected_version=...) the
    same update-if-unchanged behaviour as the SQL implementation.
    """

    def __init__(self):
        self._jobs: dict[str, Job] = {}
        self._applications: dict[str, Application] = {}
        self._lock = asyncio.Lock()

    # === Jobs ===

    async def list_jobs(self, filters: Optional[JobFilter] = None) -> list[Job]:
        filters = filters or JobFilter()
        limit = filters.limit if filters.limit is not None else settings.JOB_LIST_LIMIT
        async with self._lock:
            jobs = [j for j in self._jobs.values() if filters.matches(j)]
            jobs.sort(key=lambda j: _sort_key(j.created_at), reverse=True)
            return [copy.deepcopy(j) for j in jobs[:limit]]

    async def get_job(self, job_id: str) -> Job:
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            return copy.deepcopy(job)

    async def insert_job(self, job: Job) -> None:
        async with self._lock:
            if job.id in self._jobs:
                raise PersistenceError(f"Job {job.id} already exists")
            self._jobs[job.id] = copy.deepcopy(job)

    async def update_job(
        self,
        job_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None
    ) -> Job:
        check_fields(fields, JOB_MUTABLE_FIELDS)
        async with self._lock:
            job = self._jobs.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if expected_version is not None and job.version != expected_version:
                raise StaleWriteError(job_id, expected_version)

            for name, value in fields.items():
                setattr(job, name, copy.deepcopy(value))
            job.version += 1
            job.updated_at = utc_now()
            return copy.deepcopy(job)

    async def delete_job(self, job_id: str) -> None:
        async with self._lock:
            if self._jobs.pop(job_id, None) is None:
                raise JobNotFoundError(job_id)

    # === Applications ===

    async def list_applications(self, filters: Optional[ApplicationFilter] = None) -> list[Application]:
        filters = filters or ApplicationFilter()
        limit = filters.limit if filters.limit is not None else settings.APPLICATION_LIST_LIMIT
        async with self._lock:
            apps = [a for a in self._applications.values() if filters.matches(a)]
            apps.sort(key=lambda a: _sort_key(a.applied_at), reverse=True)
            return [copy.deepcopy(a) for a in apps[:limit]]

    async def get_application(self, application_id: str) -> Application:
        async with self._lock:
            app = self._applications.get(application_id)
            if app is None:
                raise ApplicationNotFoundError(application_id)
            return copy.deepcopy(app)

    async def insert_application(self, application: Application) -> None:
        async with self._lock:
            if application.id in self._applications:
                raise PersistenceError(f"Application {application.id} already exists")
            for existing in self._applications.values():
                # Mirrors the unique (job_id, worker_id) constraint of the SQL schema
                if existing.job_id == application.job_id and existing.worker_id == application.worker_id:
                    raise PersistenceError(
                        f"Worker {application.worker_id} already has an application for job {application.job_id}"
                    )
            self._applications[application.id] = copy.deepcopy(application)

    async def update_application(self, application_id: str, fields: dict[str, Any]) -> Application:
        check_fields(fields, APPLICATION_MUTABLE_FIELDS)
        async with self._lock:
            app = self._applications.get(application_id)
            if app is None:
                raise ApplicationNotFoundError(application_id)
            for name, value in fields.items():
                setattr(app, name, copy.deepcopy(value))
            return copy.deepcopy(app)

    async def delete_applications_for_job(self, job_id: str) -> int:
        async with self._lock:
            doomed = [a.id for a in self._applications.values() if a.job_id == job_id]
            for app_id in doomed:
                del self._applications[app_id]
            return len(doomed)
