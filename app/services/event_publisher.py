import abc
import logging
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from app.models.outbox import DEFAULT_DATA_VERSION, OutboxMessage
from app.repositories.outbox_repo import OutboxRepository
from app.schemas.events import EventEnvelope


class EventPublisher(abc.ABC):
    """Port for emitting domain events."""

    @abc.abstractmethod
    async def publish(self, topic: str, event_type: str, subject: str, data: Any,
                      data_version: str = DEFAULT_DATA_VERSION) -> None:
        ...

    @abc.abstractmethod
    async def publish_batch(self, events: Iterable[EventEnvelope]) -> None:
        ...


class OutboxEventPublisher(EventPublisher):
    """
    Write-side publisher: records events in the outbox instead of sending them.
    No network I/O happens here; the drain loop delivers the messages later.
    """

    def __init__(self, outbox_repo: OutboxRepository, logger: logging.Logger | None = None):
        self.outbox_repo = outbox_repo
        self._logger = logger or logging.getLogger(__name__)

    async def publish(self, topic: str, event_type: str, subject: str, data: Any,
                      data_version: str = DEFAULT_DATA_VERSION) -> None:
        message = OutboxMessage(
            id=str(uuid.uuid4()),
            topic=topic,
            event_type=event_type,
            subject=subject,
            data=data,
            data_version=data_version or DEFAULT_DATA_VERSION,
            event_time=datetime.now(timezone.utc),
            processed=False,
            retry_count=0,
        )
        await self.outbox_repo.save(message)
        self._logger.info("Event queued in outbox",
                          extra={"extra": {"message_id": message.id, "event_type": event_type, "subject": subject}})

    async def publish_batch(self, events: Iterable[EventEnvelope]) -> None:
        # Sequential and non-atomic: a failure leaves earlier events queued
        for event in events:
            await self.publish(event.topic, event.event_type, event.subject, event.data, event.data_version)
