from fastapi import APIRouter, BackgroundTasks
from uuid import uuid4

from app.background.jobs import process_outbox_events_job
from app.core.logging import set_request_id


router = APIRouter()


@router.post(
    "/trigger/process-outbox",
    status_code=202,  # Accepted
    summary="Run one outbox drain tick now",
)
async def trigger_process_outbox(background_tasks: BackgroundTasks):
    """
    Schedules a single drain of the outbox outside the regular interval.

    Responds `202 Accepted` immediately; the drain runs in the background and
    its outcome is only visible in the logs and on the outbox messages.
    """
    request_id = set_request_id(str(uuid4()))
    background_tasks.add_task(process_outbox_events_job)
    return {
        "message": "Outbox processing started in the background.",
        "request_id": request_id,
    }
