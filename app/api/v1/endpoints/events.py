import logging

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from app.api.deps import get_availability_handler, get_reservation_handler
from app.schemas.events import SUBSCRIPTION_VALIDATION_EVENT, EventGridEvent
from app.services.errors import ReconciliationError
from app.services.status_reconciliation import (
    AvailabilityEventHandler,
    ReservationEventHandler,
    StatusReconciliationHandler,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/events")


def _as_list(payload) -> list:
    return payload if isinstance(payload, list) else [payload]


async def _deliver(payload, handler: StatusReconciliationHandler) -> dict:
    """
    Apply an Event Grid push delivery.

    Malformed or unknown events are dropped with 200 so Event Grid does not retry
    them. A ReconciliationError becomes 500, which makes Event Grid redeliver the
    whole batch; already applied events are then no-ops.
    """
    results = []
    for raw in _as_list(payload):
        try:
            event = EventGridEvent.model_validate(raw)
        except ValidationError:
            logger.warning("Dropping malformed Event Grid event", extra={"extra": {"source": handler.source}})
            results.append({"outcome": "dropped", "reason": "malformed event"})
            continue

        if event.event_type == SUBSCRIPTION_VALIDATION_EVENT:
            code = (event.data or {}).get("validationCode") if isinstance(event.data, dict) else None
            logger.info("Answering Event Grid subscription validation", extra={"extra": {"source": handler.source}})
            return {"validationResponse": code}

        try:
            result = await handler.handle(event)
        except ReconciliationError as e:
            raise HTTPException(status_code=500, detail=str(e))
        results.append({"eventId": event.id, "outcome": result.outcome.value, "deviceId": result.device_id})
    return {"results": results}


@router.post("/reservations", summary="Event Grid webhook for reservation events")
async def reservation_events(
    payload: list | dict = Body(...),
    handler: ReservationEventHandler = Depends(get_reservation_handler),
):
    return await _deliver(payload, handler)


@router.post("/availability", summary="Event Grid webhook for availability events")
async def availability_events(
    payload: list | dict = Body(...),
    handler: AvailabilityEventHandler = Depends(get_availability_handler),
):
    return await _deliver(payload, handler)
