import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from app.api.v1.endpoints import admin, device_models, devices, events, outbox
from app.background.jobs import process_outbox_events_job, purge_processed_outbox_job
from app.core.config import settings
from app.core.logging import configure_logging, set_run_id
from app.repositories.base import RepositoryError

# Logging is owned by the entry point; components only receive loggers
configure_logging()
set_run_id()  # unique run ID for this application instance

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(timezone=settings.SCHEDULER_TIMEZONE)


def register_jobs() -> None:
    # max_instances=1 keeps drain ticks from overlapping
    scheduler.add_job(
        process_outbox_events_job,
        'interval',
        seconds=settings.OUTBOX_POLL_SECONDS,
        id='process_outbox',
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    scheduler.add_job(
        purge_processed_outbox_job,
        CronTrigger(hour=settings.OUTBOX_PURGE_CRON_HOUR, minute=0),
        id='purge_outbox',
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )


@asynccontextmanager
async def lifespan(_: FastAPI):
    logger.info("Starting scheduler...")
    register_jobs()
    scheduler.start()
    logger.info("Scheduler started.")
    try:
        yield
    finally:
        logger.info("Shutting down scheduler...")
        scheduler.shutdown()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(RepositoryError)
async def repository_error_handler(request: Request, exc: RepositoryError):
    logger.error("Store failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/", tags=["Health Check"])
def read_root():
    return {"status": "ok", "project_name": settings.PROJECT_NAME}


@app.get("/health/db", tags=["Health Check"])
async def health_db():
    """Database connectivity check."""
    from app.db.session import async_session_factory
    from sqlalchemy import text

    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
            return {"db": "ok"}
    except Exception as e:
        raise HTTPException(status_code=503, detail={"db": "error", "message": str(e)})

app.include_router(devices.router, prefix="/api/v1", tags=["Devices"])
app.include_router(device_models.router, prefix="/api/v1", tags=["Device Models"])
app.include_router(events.router, prefix="/api/v1", tags=["Inbound Events"])
app.include_router(outbox.router, prefix="/api/v1", tags=["Triggers"])
app.include_router(admin.router, tags=["Admin"])
