from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Query
from pydantic import BaseModel, ConfigDict

from farmwork.api.deps import Gateway, to_http_error
from farmwork.commands.decide import decide_application
from farmwork.domain.errors import MarketplaceError
from farmwork.domain.states import ApplicationStatus, Decision, JobStatus
from farmwork.gateway.base import ApplicationFilter
from farmwork.services.stats import reapply_status

router = APIRouter()

class ApplicationResponse(BaseModel):
    id: str
    job_id: str
    worker_id: str
    worker_name: str
    worker_email: str
    message: Optional[str] = None
    status: ApplicationStatus
    applied_at: datetime
    rejected_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)

class DecisionRequest(BaseModel):
    decision: Decision

class DecisionResponse(BaseModel):
    application: ApplicationResponse
    job_status: JobStatus
    accepted_workers: int
    required_workers: int

class ReapplyStatusResponse(BaseModel):
    application_id: str
    status: ApplicationStatus
    can_reapply: bool
    hours_left: int
    model_config = ConfigDict(from_attributes=True)

@router.get("", response_model=list[ApplicationResponse])
async def list_applications(
    gateway: Gateway,
    worker_id: Optional[str] = None,
    job_id: Optional[str] = None,
    status: Optional[ApplicationStatus] = None,
    limit: Optional[int] = Query(default=None, ge=1)
):
    try:
        return await gateway.list_applications(
            ApplicationFilter(job_id=job_id, worker_id=worker_id, status=status, limit=limit)
        )
    except MarketplaceError as e:
        raise to_http_error(e)

@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(application_id: str, gateway: Gateway):
    try:
        return await gateway.get_application(application_id)
    except MarketplaceError as e:
        raise to_http_error(e)

@router.get("/{application_id}/reapply-status", response_model=ReapplyStatusResponse)
async def get_reapply_status(application_id: str, gateway: Gateway):
    try:
        application = await gateway.get_application(application_id)
    except MarketplaceError as e:
        raise to_http_error(e)
    return reapply_status(application)

@router.post("/{application_id}/decision", response_model=DecisionResponse)
async def decide(application_id: str, body: DecisionRequest, gateway: Gateway):
    try:
        result = await decide_application(gateway, application_id, body.decision)
    except MarketplaceError as e:
        raise to_http_error(e)

    return DecisionResponse(
        application=ApplicationResponse.model_validate(result.application),
        job_status=result.job.status,
        accepted_workers=result.job.accepted_count,
        required_workers=result.job.required_workers,
    )
