from fastapi import APIRouter

from farmwork.api.deps import Gateway, to_http_error
from farmwork.commands.refresh_statuses import refresh_job_statuses
from farmwork.domain.errors import MarketplaceError

router = APIRouter()

@router.post("/refresh-statuses")
async def trigger_refresh_statuses(gateway: Gateway):
    try:
        report = await refresh_job_statuses(gateway)
    except MarketplaceError as e:
        raise to_http_error(e)
    return {
        "checked": len(report.jobs),
        "changed": [
            {"job_id": c.job_id, "from": c.from_status, "to": c.to_status}
            for c in report.changes
        ],
        "failed": report.failed,
    }
