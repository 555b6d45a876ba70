import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base, JSONType, TimestampMixin
from app.schemas.events import EventEnvelope


DEFAULT_DATA_VERSION = "1.0"


def _new_id() -> str:
    return str(uuid.uuid4())


class OutboxMessage(Base, TimestampMixin):
    """A pending at-least-once delivery obligation for one domain event."""

    __tablename__ = "outbox_messages"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    topic: Mapped[str] = mapped_column(String(100))
    event_type: Mapped[str] = mapped_column(String(200), index=True, comment="e.g. Catalogue.Device.StatusChanged")
    subject: Mapped[str] = mapped_column(String(200), comment="Natural key of the affected aggregate")
    data: Mapped[Any] = mapped_column(JSONType)
    data_version: Mapped[str] = mapped_column(String(20), default=DEFAULT_DATA_VERSION)
    event_time: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    processed: Mapped[bool] = mapped_column(Boolean, default=False)
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    retry_count: Mapped[int] = mapped_column(Integer, default=0)
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True, comment="Retention deadline, set once processed"
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        Index("ix_outbox_messages_processed_event_time", "processed", "event_time"),
    )
    __mapper_args__ = {"version_id_col": version}

    def to_envelope(self) -> EventEnvelope:
        return EventEnvelope(
            id=self.id,
            topic=self.topic,
            event_type=self.event_type,
            subject=self.subject,
            data=self.data,
            data_version=self.data_version,
            event_time=self.event_time,
        )

    def __repr__(self) -> str:
        state = "processed" if self.processed else f"pending (retries={self.retry_count})"
        return f"OutboxMessage(id={self.id}, event_type={self.event_type!r}, {state})"
