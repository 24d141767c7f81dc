import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

from sqlalchemy import select, update, delete, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farmwork.db.models import ApplicationRecord, JobRecord
from farmwork.domain.errors import (
    ApplicationNotFoundError,
    JobNotFoundError,
    PersistenceError,
    StaleWriteError,
)
from farmwork.domain.models import Application, Job, utc_now
from farmwork.domain.states import ApplicationStatus, DurationType, JobStatus
from farmwork.gateway.base import (
    APPLICATION_MUTABLE_FIELDS,
    JOB_MUTABLE_FIELDS,
    ApplicationFilter,
    JobFilter,
    check_fields,
)
from farmwork.settings import settings

logger = logging.getLogger(__name__)

def _utc(value: Optional[datetime]) -> Optional[datetime]:
    # Some backends (sqlite) hand back naive datetimes for timezone=True columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value

def _job_from_record(row: JobRecord) -> Job:
    return Job(
        id=row.id,
        farmer_id=row.farmer_id,
        farmer_name=row.farmer_name or "",
        title=row.title,
        description=row.description,
        location=row.location,
        preferred_date=row.preferred_date,
        duration=row.duration,
        duration_type=DurationType(row.duration_type),
        wage=row.wage,
        required_workers=row.required_workers,
        accepted_worker_ids=list(row.accepted_worker_ids or []),
        status=JobStatus(row.status),
        created_at=_utc(row.created_at),
        updated_at=_utc(row.updated_at),
        version=row.version,
    )

def _application_from_record(row: ApplicationRecord) -> Application:
    return Application(
        id=row.id,
        job_id=row.job_id,
        worker_id=row.worker_id,
        worker_name=row.worker_name or "",
        worker_email=row.worker_email or "",
        message=row.message,
        status=ApplicationStatus(row.status),
        applied_at=_utc(row.applied_at),
        rejected_at=_utc(row.rejected_at),
    )

class SqlGateway:
    """
    SQLAlchemy-backed gateway. Every call runs in its own short transaction.

    Conditional job writes use UPDATE ... WHERE id = :id AND version = :v so
    two clients racing on the same row cannot both succeed.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @asynccontextmanager
    async def _transaction(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except SQLAlchemyError as e:
            logger.error(f"Database error: {e}", exc_info=True)
            raise PersistenceError(f"Database error: {e.__class__.__name__}") from e

    # === Jobs ===

    async def list_jobs(self, filters: Optional[JobFilter] = None) -> list[Job]:
        filters = filters or JobFilter()
        stmt = select(JobRecord)
        if filters.farmer_id is not None:
            stmt = stmt.where(JobRecord.farmer_id == filters.farmer_id)
        if filters.status is not None:
            stmt = stmt.where(JobRecord.status == filters.status)
        if filters.exclude_status is not None:
            stmt = stmt.where(JobRecord.status != filters.exclude_status)
        if filters.search:
            stmt = stmt.where(or_(
                JobRecord.title.icontains(filters.search, autoescape=True),
                JobRecord.description.icontains(filters.search, autoescape=True),
                JobRecord.location.icontains(filters.search, autoescape=True),
            ))
        if filters.max_wage is not None:
            stmt = stmt.where(JobRecord.wage <= filters.max_wage)
        if filters.duration_type is not None:
            stmt = stmt.where(JobRecord.duration_type == filters.duration_type)
        if filters.location:
            stmt = stmt.where(JobRecord.location.icontains(filters.location, autoescape=True))
        limit = filters.limit if filters.limit is not None else settings.JOB_LIST_LIMIT
        stmt = stmt.order_by(JobRecord.created_at.desc()).limit(limit)

        async with self._transaction() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_job_from_record(r) for r in rows]

    async def get_job(self, job_id: str) -> Job:
        async with self._transaction() as session:
            row = await session.get(JobRecord, job_id)
            if row is None:
                raise JobNotFoundError(job_id)
            return _job_from_record(row)

    async def insert_job(self, job: Job) -> None:
        async with self._transaction() as session:
            session.add(JobRecord(
                id=job.id,
                farmer_id=job.farmer_id,
                farmer_name=job.farmer_name,
                title=job.title,
                description=job.description,
                location=job.location,
                preferred_date=job.preferred_date,
                duration=job.duration,
                duration_type=job.duration_type,
                wage=job.wage,
                required_workers=job.required_workers,
                accepted_worker_ids=list(job.accepted_worker_ids),
                status=job.status,
                created_at=job.created_at,
                updated_at=job.updated_at,
                version=job.version,
            ))

    async def update_job(
        self,
        job_id: str,
        fields: dict[str, Any],
        expected_version: Optional[int] = None
    ) -> Job:
        check_fields(fields, JOB_MUTABLE_FIELDS)
        values = dict(fields)
        if "accepted_worker_ids" in values:
            values["accepted_worker_ids"] = list(values["accepted_worker_ids"])

        stmt = update(JobRecord).where(JobRecord.id == job_id)
        if expected_version is not None:
            stmt = stmt.where(JobRecord.version == expected_version)
        stmt = stmt.values(
            **values,
            version=JobRecord.version + 1,
            updated_at=utc_now(),
        )

        async with self._transaction() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                if await session.get(JobRecord, job_id) is None:
                    raise JobNotFoundError(job_id)
                raise StaleWriteError(job_id, expected_version)

            row = await session.scalar(
                select(JobRecord).where(JobRecord.id == job_id).execution_options(populate_existing=True)
            )
            return _job_from_record(row)

    async def delete_job(self, job_id: str) -> None:
        async with self._transaction() as session:
            result = await session.execute(delete(JobRecord).where(JobRecord.id == job_id))
            if result.rowcount == 0:
                raise JobNotFoundError(job_id)

    # === Applications ===

    async def list_applications(self, filters: Optional[ApplicationFilter] = None) -> list[Application]:
        filters = filters or ApplicationFilter()
        stmt = select(ApplicationRecord)
        if filters.job_id is not None:
            stmt = stmt.where(ApplicationRecord.job_id == filters.job_id)
        if filters.worker_id is not None:
            stmt = stmt.where(ApplicationRecord.worker_id == filters.worker_id)
        if filters.status is not None:
            stmt = stmt.where(ApplicationRecord.status == filters.status)
        limit = filters.limit if filters.limit is not None else settings.APPLICATION_LIST_LIMIT
        stmt = stmt.order_by(ApplicationRecord.applied_at.desc()).limit(limit)

        async with self._transaction() as session:
            rows = (await session.execute(stmt)).scalars().all()
            return [_application_from_record(r) for r in rows]

    async def get_application(self, application_id: str) -> Application:
        async with self._transaction() as session:
            row = await session.get(ApplicationRecord, application_id)
            if row is None:
                raise ApplicationNotFoundError(application_id)
            return _application_from_record(row)

    async def insert_application(self, application: Application) -> None:
        async with self._transaction() as session:
            session.add(ApplicationRecord(
                id=application.id,
                job_id=application.job_id,
                worker_id=application.worker_id,
                worker_name=application.worker_name,
                worker_email=application.worker_email,
                message=application.message,
                status=application.status,
                applied_at=application.applied_at,
                rejected_at=application.rejected_at,
            ))

    async def update_application(self, application_id: str, fields: dict[str, Any]) -> Application:
        check_fields(fields, APPLICATION_MUTABLE_FIELDS)
        async with self._transaction() as session:
            row = await session.get(ApplicationRecord, application_id)
            if row is None:
                raise ApplicationNotFoundError(application_id)
            for name, value in fields.items():
                setattr(row, name, value)
            await session.flush()
            return _application_from_record(row)

    async def delete_applications_for_job(self, job_id: str) -> int:
        async with self._transaction() as session:
            result = await session.execute(
                delete(ApplicationRecord).where(ApplicationRecord.job_id == job_id)
            )
            return result.rowcount
