from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class EventEnvelope(BaseModel):
    """
    Transport-neutral domain event.
    Both EventPublisher implementations accept it, so the outbox publisher and the
    live Event Grid publisher are interchangeable.
    ``id`` is the outbox message id when the envelope comes from the outbox, so
    redelivered duplicates carry the same id downstream.
    """
    id: str | None = None
    topic: str
    event_type: str
    subject: str
    data: Any = None
    data_version: str = "1.0"
    event_time: datetime | None = None


# --- Inbound Event Grid deliveries ---
class EventGridEvent(BaseModel):
    """One event of an Event Grid push delivery (Event Grid schema)."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str | None = None
    topic: str | None = None
    subject: str | None = None
    event_type: str = Field(alias="eventType")
    event_time: datetime | None = Field(default=None, alias="eventTime")
    data_version: str | None = Field(default=None, alias="dataVersion")
    data: Any = None


SUBSCRIPTION_VALIDATION_EVENT = "Microsoft.EventGrid.SubscriptionValidationEvent"


class ReservationEventData(BaseModel):
    """
    Payload of Reservation.* events published by the reservation service.
    Only ``deviceId`` is read; the other fields are carried untyped so a bad
    value in one of them cannot reject the event.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    device_id: str | None = Field(default=None, alias="deviceId")
    reservation_id: Any = Field(default=None, alias="reservationId")
    user_id: Any = Field(default=None, alias="userId")
    user_email: Any = Field(default=None, alias="userEmail")
    device_model_id: Any = Field(default=None, alias="deviceModelId")
    reserved_at: Any = Field(default=None, alias="reservedAt")
    expires_at: Any = Field(default=None, alias="expiresAt")
    collected_at: Any = Field(default=None, alias="collectedAt")
    return_due_at: Any = Field(default=None, alias="returnDueAt")
    returned_at: Any = Field(default=None, alias="returnedAt")
    cancelled_at: Any = Field(default=None, alias="cancelledAt")


class AvailabilityEventData(BaseModel):
    """Payload of Availability.Changed events. Only ``deviceId`` and ``newStatus`` are read."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    device_id: str | None = Field(default=None, alias="deviceId")
    new_status: Any = Field(default=None, alias="newStatus")
    previous_status: Any = Field(default=None, alias="previousStatus")
    reservation_id: Any = Field(default=None, alias="reservationId")
    updated_at: Any = Field(default=None, alias="updatedAt")


class DeviceStatusChangedData(BaseModel):
    """Payload of Catalogue.Device.StatusChanged."""
    model_config = ConfigDict(populate_by_name=True)

    device_id: str = Field(alias="deviceId")
    previous_status: str = Field(alias="previousStatus")
    new_status: str = Field(alias="newStatus")
    updated_at: datetime = Field(alias="updatedAt")


# --- Outbox monitoring ---
class OutboxStats(BaseModel):
    pending: int
    stuck: int
    stuck_retry_threshold: int
    oldest_pending_event_time: datetime | None = None


class OutboxMessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    topic: str
    event_type: str
    subject: str
    data_version: str
    event_time: datetime
    processed: bool
    processed_at: datetime | None = None
    error: str | None = None
    retry_count: int
