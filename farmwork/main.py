import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from farmwork.settings import settings
from farmwork.api.v1.jobs import router as jobs_router
from farmwork.api.v1.applications import router as applications_router
from farmwork.api.v1.workers import router as workers_router
from farmwork.api.v1.admin import router as admin_router
from farmwork.api.v1.metrics import router as metrics_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    if settings.CREATE_TABLES_ON_STARTUP:
        from sqlalchemy.exc import SQLAlchemyError
        from farmwork.db.session import create_tables

        # Database container may still be starting
        for i in range(10):
            try:
                await create_tables()
                logger.info("Bootstrap: tables ready")
                break
            except (SQLAlchemyError, OSError) as e:
                logger.warning(f"Bootstrap: database not ready ({e}), retrying in 2s... ({i+1}/10)")
                await asyncio.sleep(2)
        else:
            logger.error("Bootstrap: giving up on table creation")

    yield

    # Shutdown
    from farmwork.db.session import engine
    await engine.dispose()

app = FastAPI(
    title=settings.PROJECT_NAME,
    lifespan=lifespan
)

app.include_router(jobs_router, prefix="/api/v1/jobs", tags=["jobs"])
app.include_router(applications_router, prefix="/api/v1/applications", tags=["applications"])
app.include_router(workers_router, prefix="/api/v1", tags=["dashboards"])
app.include_router(admin_router, prefix="/api/v1/admin", tags=["admin"])
app.include_router(metrics_router, tags=["metrics"])

@app.get("/health")
async def health():
    return {"status": "ok"}
