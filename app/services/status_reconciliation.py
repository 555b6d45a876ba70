"""
Status reconciliation for inbound lifecycle events.

The reservation and availability services both drive ``Device.status``. Each has
its own handler; both share one algorithm:

1. resolve the device id and target status from the event, dropping the event
   when either is missing;
2. load the device, dropping the event when it does not exist;
3. skip the write when the device already has the target status;
4. otherwise save the new status and queue Catalogue.Device.StatusChanged.

Drops complete normally so the delivery mechanism does not retry them. Any other
failure is raised as ReconciliationError so the event is redelivered. The two
sources are not ordered against each other: the last write wins.
"""
import abc
import enum
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError

from app.core.logging import log_context
from app.models.device import DeviceStatus
from app.schemas.events import AvailabilityEventData, EventGridEvent, ReservationEventData
from .device_service import DeviceService
from .errors import DeviceNotFoundError, ReconciliationError


class ReservationEventType(str, enum.Enum):
    CREATED = "Reservation.Created"
    CANCELLED = "Reservation.Cancelled"
    COLLECTED = "Reservation.Collected"
    RETURNED = "Reservation.Returned"
    EXPIRED = "Reservation.Expired"


AVAILABILITY_CHANGED = "Availability.Changed"

RESERVATION_STATUS_MAP: dict[str, DeviceStatus] = {
    ReservationEventType.CREATED.value: DeviceStatus.UNAVAILABLE,
    ReservationEventType.COLLECTED.value: DeviceStatus.UNAVAILABLE,
    ReservationEventType.RETURNED.value: DeviceStatus.AVAILABLE,
    ReservationEventType.CANCELLED.value: DeviceStatus.AVAILABLE,
    ReservationEventType.EXPIRED.value: DeviceStatus.AVAILABLE,
}


class ReconciliationOutcome(str, enum.Enum):
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    NOT_FOUND = "not_found"
    DROPPED = "dropped"


@dataclass(frozen=True)
class ReconciliationResult:
    outcome: ReconciliationOutcome
    device_id: str | None = None
    previous_status: DeviceStatus | None = None
    new_status: DeviceStatus | None = None
    reason: str | None = None


class StatusReconciliationHandler(abc.ABC):
    """Base handler. Subclasses define the source name, the payload model and the status mapping."""

    source: str
    data_model: type[BaseModel]

    def __init__(self, device_service: DeviceService, logger: logging.Logger | None = None):
        self.device_service = device_service
        self._logger = logger or logging.getLogger(__name__)

    @abc.abstractmethod
    def resolve_target_status(self, event_type: str, data: Any) -> DeviceStatus | None:
        """Target status for the event, or None when the event does not set one."""

    def _drop(self, reason: str, device_id: str | None = None, level: int = logging.WARNING,
              outcome: ReconciliationOutcome = ReconciliationOutcome.DROPPED) -> ReconciliationResult:
        self._logger.log(level, "[%s] %s, skipping", self.source, reason,
                         extra={"extra": {"source": self.source, "device_id": device_id, "reason": reason}})
        return ReconciliationResult(outcome=outcome, device_id=device_id, reason=reason)

    async def handle(self, event: EventGridEvent) -> ReconciliationResult:
        with log_context(event_id=event.id):
            return await self._handle(event)

    async def _handle(self, event: EventGridEvent) -> ReconciliationResult:
        self._logger.info("[%s] Received event %s", self.source, event.event_type,
                          extra={"extra": {"source": self.source, "event_type": event.event_type,
                                           "subject": event.subject}})

        if not isinstance(event.data, dict):
            return self._drop("Missing event data")
        try:
            data = self.data_model.model_validate(event.data)
        except ValidationError as e:
            return self._drop(f"Malformed event data: {e.error_count()} error(s)")

        device_id = getattr(data, "device_id", None)
        if not device_id:
            return self._drop("Missing deviceId in event data")

        target = self.resolve_target_status(event.event_type, data)
        if target is None:
            return self._drop(f"No target status for event {event.event_type}", device_id, level=logging.INFO)

        try:
            update = await self.device_service.update_device_status(device_id, target)
        except DeviceNotFoundError:
            # The device may not exist yet or may have been removed; retrying cannot help
            return self._drop(f"Device {device_id} not found in catalogue", device_id,
                              outcome=ReconciliationOutcome.NOT_FOUND)
        except Exception as e:
            self._logger.error("[%s] Failed to sync device %s: %s", self.source, device_id, e,
                               extra={"extra": {"source": self.source, "device_id": device_id}}, exc_info=True)
            raise ReconciliationError(f"Failed to sync device {device_id}: {e}") from e

        if not update.changed:
            self._logger.info("[%s] Device %s already has status %s, skipping", self.source, device_id, target.value,
                              extra={"extra": {"source": self.source, "device_id": device_id}})
            return ReconciliationResult(outcome=ReconciliationOutcome.UNCHANGED, device_id=device_id,
                                        previous_status=update.previous_status, new_status=target)

        self._logger.info("[%s] Synced device %s from %s to %s", self.source, device_id,
                          update.previous_status.value, target.value,
                          extra={"extra": {"source": self.source, "device_id": device_id}})
        return ReconciliationResult(outcome=ReconciliationOutcome.UPDATED, device_id=device_id,
                                    previous_status=update.previous_status, new_status=target)


class ReservationEventHandler(StatusReconciliationHandler):
    """Reservation.* events: a live reservation makes the device unavailable, any ending frees it."""

    source = "reservation-events"
    data_model = ReservationEventData

    def resolve_target_status(self, event_type: str, data: Any) -> DeviceStatus | None:
        return RESERVATION_STATUS_MAP.get(event_type)


class AvailabilityEventHandler(StatusReconciliationHandler):
    """Availability.Changed events: the availability service is the source of truth."""

    source = "availability-events"
    data_model = AvailabilityEventData

    def resolve_target_status(self, event_type: str, data: Any) -> DeviceStatus | None:
        if event_type != AVAILABILITY_CHANGED:
            return None
        new_status = getattr(data, "new_status", None)
        if not isinstance(new_status, str) or not new_status:
            return None
        try:
            return DeviceStatus(new_status)
        except ValueError:
            return None
