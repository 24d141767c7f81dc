from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict, Field

from farmwork.api.deps import Gateway, to_http_error
from farmwork.api.v1.applications import ApplicationResponse
from farmwork.commands.apply import apply_to_job
from farmwork.commands.delete_job import delete_job
from farmwork.commands.edit_job import edit_job
from farmwork.commands.mark_completed import mark_completed
from farmwork.commands.post_job import post_job
from farmwork.commands.refresh_statuses import refresh_job_status, refresh_job_statuses
from farmwork.domain.errors import MarketplaceError
from farmwork.domain.models import JobChanges, JobDraft, WorkerProfile
from farmwork.domain.states import DurationType, JobStatus
from farmwork.gateway.base import ApplicationFilter, JobFilter

router = APIRouter()

class JobCreate(BaseModel):
    farmer_id: str
    farmer_name: str = ""
    title: str
    description: str
    location: str
    wage: float
    duration: int
    duration_type: DurationType = DurationType.DAYS
    required_workers: int = 1
    preferred_date: Optional[date] = None

class JobUpdate(BaseModel):
    wage: Optional[float] = None
    required_workers: Optional[int] = None
    status: Optional[JobStatus] = None

class JobResponse(BaseModel):
    id: str
    farmer_id: str
    farmer_name: str
    title: str
    description: str
    location: str
    preferred_date: Optional[date] = None
    wage: float
    duration: int
    duration_type: DurationType
    required_workers: int
    accepted_worker_ids: list[str]
    status: JobStatus
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)

class ApplyRequest(BaseModel):
    worker_id: str
    worker_name: str = ""
    worker_email: str = ""
    message: Optional[str] = Field(default=None, max_length=2000)

@router.post("", response_model=JobResponse, status_code=201)
async def create_job(payload: JobCreate, gateway: Gateway):
    try:
        return await post_job(gateway, JobDraft(**payload.model_dump()))
    except MarketplaceError as e:
        raise to_http_error(e)

@router.get("", response_model=list[JobResponse])
async def list_jobs(
    gateway: Gateway,
    farmer_id: Optional[str] = None,
    status: Optional[JobStatus] = None,
    search: Optional[str] = None,
    max_wage: Optional[float] = Query(default=None, gt=0),
    duration_type: Optional[DurationType] = None,
    location: Optional[str] = None,
    limit: Optional[int] = Query(default=None, ge=1),
    refresh: bool = False
):
    try:
        if refresh:
            # Callers that render a listing reconcile statuses first
            await refresh_job_statuses(gateway)
        return await gateway.list_jobs(JobFilter(
            farmer_id=farmer_id,
            status=status,
            search=search,
            max_wage=max_wage,
            duration_type=duration_type,
            location=location,
            limit=limit,
        ))
    except MarketplaceError as e:
        raise to_http_error(e)

@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, gateway: Gateway):
    try:
        return await gateway.get_job(job_id)
    except MarketplaceError as e:
        raise to_http_error(e)

@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(job_id: str, payload: JobUpdate, gateway: Gateway):
    try:
        return await edit_job(gateway, job_id, JobChanges(**payload.model_dump()))
    except MarketplaceError as e:
        raise to_http_error(e)

@router.delete("/{job_id}")
async def remove_job(job_id: str, gateway: Gateway):
    try:
        removed = await delete_job(gateway, job_id)
        return {"deleted": job_id, "deleted_applications": removed}
    except MarketplaceError as e:
        raise to_http_error(e)

@router.post("/{job_id}/complete", response_model=JobResponse)
async def complete_job(job_id: str, gateway: Gateway):
    try:
        return await mark_completed(gateway, job_id)
    except MarketplaceError as e:
        raise to_http_error(e)

@router.post("/{job_id}/refresh-status", response_model=JobResponse)
async def recheck_job(job_id: str, gateway: Gateway):
    try:
        return await refresh_job_status(gateway, job_id)
    except MarketplaceError as e:
        raise to_http_error(e)

@router.get("/{job_id}/applications", response_model=list[ApplicationResponse])
async def list_job_applications(job_id: str, gateway: Gateway):
    try:
        await gateway.get_job(job_id)
        return await gateway.list_applications(ApplicationFilter(job_id=job_id))
    except MarketplaceError as e:
        raise to_http_error(e)

@router.post("/{job_id}/applications", response_model=ApplicationResponse, status_code=201)
async def apply(job_id: str, payload: ApplyRequest, gateway: Gateway):
    worker = WorkerProfile(id=payload.worker_id, name=payload.worker_name, email=payload.worker_email)
    try:
        return await apply_to_job(gateway, job_id, worker, message=payload.message)
    except MarketplaceError as e:
        raise to_http_error(e)
