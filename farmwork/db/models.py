from datetime import date, datetime
from typing import Optional

from sqlalchemy import String, Integer, Float, Date, DateTime, ForeignKey, Index, JSON, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from farmwork.db.session import Base
from farmwork.domain.states import ApplicationStatus, DurationType, JobStatus

class JobRecord(Base):
    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    farmer_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    farmer_name: Mapped[str] = mapped_column(String, default="")

    # Posting fields, immutable after insert
    title: Mapped[str] = mapped_column(String, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    location: Mapped[str] = mapped_column(String, nullable=False)
    preferred_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_type: Mapped[DurationType] = mapped_column(String, default=DurationType.DAYS)

    # Economic / capacity fields
    wage: Mapped[float] = mapped_column(Float, nullable=False)
    required_workers: Mapped[int] = mapped_column(Integer, default=1)
    accepted_worker_ids: Mapped[list[str]] = mapped_column(JSON, default=list)

    status: Mapped[JobStatus] = mapped_column(String, default=JobStatus.OPEN, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Optimistic concurrency counter
    version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    __table_args__ = (
        # Listing query: newest first, optionally per farmer
        Index("ix_jobs_farmer_created", "farmer_id", "created_at"),
    )

class ApplicationRecord(Base):
    __tablename__ = "applications"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    job_id: Mapped[str] = mapped_column(String(32), ForeignKey("jobs.id"), index=True, nullable=False)
    worker_id: Mapped[str] = mapped_column(String, index=True, nullable=False)

    # Display cache; identity is worker_id
    worker_name: Mapped[str] = mapped_column(String, default="")
    worker_email: Mapped[str] = mapped_column(String, default="")
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[ApplicationStatus] = mapped_column(String, default=ApplicationStatus.PENDING, index=True)
    applied_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # One record per (job, worker); rejected ones are recycled
        UniqueConstraint("job_id", "worker_id", name="uq_applications_job_worker"),
    )
