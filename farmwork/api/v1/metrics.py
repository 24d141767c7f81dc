from prometheus_client import Counter, generate_latest, CONTENT_TYPE_LATEST
from fastapi import APIRouter, Response

router = APIRouter()

# Metrics Definitions
JOBS_POSTED_TOTAL = Counter('jobs_posted_total', 'Total jobs posted by farmers')

APPLICATIONS_TOTAL = Counter(
    'applications_total',
    'Apply attempts by outcome',
    ['outcome']  # created|recycled|<policy code>
)

DECISIONS_TOTAL = Counter(
    'application_decisions_total',
    'Farmer decisions on applications',
    ['decision', 'outcome']  # accept|reject, applied|<policy code>
)

STATUS_TRANSITIONS_TOTAL = Counter(
    'job_status_transitions_total',
    'Job status changes',
    ['from_status', 'to_status']
)

ACCEPT_CONFLICTS_TOTAL = Counter(
    'accept_write_conflicts_total',
    'Capacity writes that lost an optimistic concurrency race and were retried'
)

PERSISTENCE_ERRORS_TOTAL = Counter(
    'persistence_errors_total',
    'Gateway writes that failed',
    ['operation']
)

@router.get("/metrics")
async def metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
