from datetime import timedelta

from app.core.config import settings
from app.core.logging import log_context, new_run_id
from app.db.session import async_session_factory
from app.integrations.event_grid_client import EventGridPublisher
from app.repositories.outbox_repo import OutboxRepository
from app.services.outbox_processor_service import DrainResult, OutboxProcessorService


def outbox_retention() -> timedelta:
    return timedelta(days=settings.OUTBOX_RETENTION_DAYS)


async def process_outbox_events_job() -> DrainResult:
    """
    APScheduler job: one drain tick over the outbox.
    """
    with log_context(job_name="process_outbox_events_job", run_id=new_run_id()):
        publisher = EventGridPublisher.from_settings()
        try:
            async with async_session_factory() as session:
                service = OutboxProcessorService(
                    outbox_repo=OutboxRepository(session, retention=outbox_retention()),
                    publisher=publisher,
                    batch_size=settings.OUTBOX_BATCH_SIZE,
                )
                return await service.process_pending_events()
        finally:
            await publisher.close()


async def purge_processed_outbox_job() -> int:
    """
    APScheduler job: deletes processed outbox messages past their retention window.
    """
    with log_context(job_name="purge_processed_outbox_job", run_id=new_run_id()):
        async with async_session_factory() as session:
            repo = OutboxRepository(session, retention=outbox_retention())
            service = OutboxProcessorService(outbox_repo=repo, publisher=None)
            return await service.purge_expired()
