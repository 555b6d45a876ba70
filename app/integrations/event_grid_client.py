import logging
import uuid
from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Any

from .base_client import BaseApiClient
from app.core.config import settings
from app.models.outbox import DEFAULT_DATA_VERSION
from app.schemas.events import EventEnvelope
from app.services.event_publisher import EventPublisher


class EventGridClient(BaseApiClient):
    """Thin client for an Event Grid custom topic endpoint (Event Grid schema)."""

    def __init__(self, topic_endpoint: str, key: str, **kwargs):
        super().__init__(base_url=topic_endpoint, headers={"aeg-sas-key": key}, **kwargs)
        self.topic_endpoint = topic_endpoint

    async def send_events(self, events: list[dict[str, Any]]) -> None:
        await self._request("POST", self.topic_endpoint, json=events)


def to_event_grid_event(envelope: EventEnvelope) -> dict[str, Any]:
    event_time = envelope.event_time or datetime.now(timezone.utc)
    return {
        "id": envelope.id or str(uuid.uuid4()),
        "eventType": envelope.event_type,
        "subject": envelope.subject,
        "dataVersion": envelope.data_version or DEFAULT_DATA_VERSION,
        "data": envelope.data,
        "eventTime": event_time.isoformat(),
    }


class EventGridPublisher(EventPublisher):
    """
    Transmit-side publisher used by the outbox drain loop.

    Transport errors propagate to the caller, which records them on the outbox
    message. Without an endpoint or key the publisher is unconfigured and every
    publish is a silent no-op.
    """

    def __init__(self, topic_endpoint: str | None, key: str | None, *,
                 client: EventGridClient | None = None, logger: logging.Logger | None = None,
                 **client_kwargs):
        self._logger = logger or logging.getLogger(__name__)
        self.topic_endpoint = (topic_endpoint or "").strip()
        self._client = client
        if self._client is None and self.topic_endpoint and (key or "").strip():
            self._client = EventGridClient(self.topic_endpoint, key.strip(), **client_kwargs)
        if self._client is None:
            self._logger.warning("Event Grid publisher is missing endpoint or key; events will not be published")

    @classmethod
    def from_settings(cls) -> "EventGridPublisher":
        return cls(
            settings.EVENT_GRID_TOPIC_ENDPOINT,
            settings.EVENT_GRID_TOPIC_KEY,
            timeout=settings.EVENT_GRID_TIMEOUT_SECONDS,
            tries=settings.EVENT_GRID_MAX_TRIES,
        )

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def publish(self, topic: str, event_type: str, subject: str, data: Any,
                      data_version: str = DEFAULT_DATA_VERSION) -> None:
        await self.publish_envelope(EventEnvelope(
            topic=topic, event_type=event_type, subject=subject, data=data, data_version=data_version,
        ))

    async def publish_envelope(self, envelope: EventEnvelope) -> None:
        if self._client is None:
            return
        await self._client.send_events([to_event_grid_event(envelope)])
        self._logger.debug("Event sent to Event Grid",
                           extra={"extra": {"event_id": envelope.id, "event_type": envelope.event_type,
                                            "topic": envelope.topic, "subject": envelope.subject}})

    async def publish_batch(self, events: Iterable[EventEnvelope]) -> None:
        if self._client is None:
            return
        payload = [to_event_grid_event(e) for e in events]
        if payload:
            await self._client.send_events(payload)

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
