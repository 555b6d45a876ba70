from fastapi import APIRouter, Depends, Query

from app.api.deps import get_outbox_repo
from app.core.config import settings
from app.repositories.outbox_repo import OutboxRepository
from app.schemas.events import OutboxMessageRead, OutboxStats

router = APIRouter(prefix="/admin")


@router.get("/outbox/stats", response_model=OutboxStats, summary="Outbox backlog summary")
async def outbox_stats(
    retry_threshold: int | None = Query(default=None, ge=1, description="Retries after which a message counts as stuck"),
    repo: OutboxRepository = Depends(get_outbox_repo),
):
    """
    Pending and stuck message counts. Messages are never dead-lettered, so a growing
    ``stuck`` count is the signal that delivery needs attention.
    """
    threshold = retry_threshold or settings.OUTBOX_STUCK_RETRY_THRESHOLD
    return OutboxStats(
        pending=await repo.count_pending(),
        stuck=await repo.count_stuck(threshold),
        stuck_retry_threshold=threshold,
        oldest_pending_event_time=await repo.oldest_pending_event_time(),
    )


@router.get("/outbox/pending", response_model=list[OutboxMessageRead], summary="Oldest pending outbox messages")
async def outbox_pending(
    limit: int = Query(default=50, ge=1, le=500),
    repo: OutboxRepository = Depends(get_outbox_repo),
):
    return await repo.list_unprocessed(limit)
