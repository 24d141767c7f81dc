from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict

from farmwork.api.deps import Gateway, to_http_error
from farmwork.domain.errors import MarketplaceError
from farmwork.services.stats import farmer_dashboard, worker_stats

router = APIRouter()

class WorkerStatsResponse(BaseModel):
    worker_id: str
    total_applications: int
    accepted_applications: int
    completed_jobs: int
    success_rate: int
    model_config = ConfigDict(from_attributes=True)

class FarmerDashboardResponse(BaseModel):
    farmer_id: str
    jobs_by_status: dict[str, int]
    total_jobs: int
    workers_hired: int
    model_config = ConfigDict(from_attributes=True)

@router.get("/workers/{worker_id}/stats", response_model=WorkerStatsResponse)
async def get_worker_stats(worker_id: str, gateway: Gateway):
    try:
        return await worker_stats(gateway, worker_id)
    except MarketplaceError as e:
        raise to_http_error(e)

@router.get("/farmers/{farmer_id}/dashboard", response_model=FarmerDashboardResponse)
async def get_farmer_dashboard(farmer_id: str, gateway: Gateway):
    try:
        return await farmer_dashboard(gateway, farmer_id)
    except MarketplaceError as e:
        raise to_http_error(e)
