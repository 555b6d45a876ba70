from collections.abc import Sequence
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, select

from app.models.outbox import OutboxMessage
from .base import SQLAlchemyRepository

DEFAULT_BATCH_SIZE = 20
DEFAULT_RETENTION = timedelta(days=7)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OutboxRepository(SQLAlchemyRepository):
    """Durable log of pending domain events.

    Rows are mutated in place by the drain loop and are only ever deleted by
    ``purge_expired``, which touches processed rows past their retention deadline.
    Mark operations are read-modify-write guarded by the ``version`` column, so two
    overlapping drain ticks cannot both update the same row unnoticed.
    """

    def __init__(self, session, logger=None, retention: timedelta = DEFAULT_RETENTION):
        super().__init__(session, logger)
        self.retention = retention

    async def save(self, message: OutboxMessage) -> None:
        """Upsert by id. Raises RepositoryError on failure, never retries."""
        async with self._operation(
            f"Failed to save outbox message {message.id}" if message.id else "Failed to save outbox message",
            message_id=message.id, event_type=message.event_type,
        ):
            await self.session.merge(message)
            await self.session.commit()

    async def get(self, message_id: str) -> OutboxMessage | None:
        async with self._operation(f"Failed to read outbox message {message_id}", message_id=message_id):
            return await self.session.get(OutboxMessage, message_id, populate_existing=True)

    async def list_unprocessed(self, batch_size: int = DEFAULT_BATCH_SIZE) -> Sequence[OutboxMessage]:
        """Up to ``batch_size`` unprocessed messages, oldest ``event_time`` first."""
        stmt = (
            select(OutboxMessage)
            .where(OutboxMessage.processed.is_(False))
            .order_by(OutboxMessage.event_time.asc(), OutboxMessage.id.asc())
            .limit(batch_size)
        )
        async with self._operation("Failed to list unprocessed outbox messages", batch_size=batch_size):
            result = await self.session.execute(stmt)
            return result.scalars().all()

    async def mark_as_processed(self, message_id: str) -> None:
        async with self._operation(f"Failed to mark outbox message {message_id} as processed", message_id=message_id):
            message = await self.session.get(OutboxMessage, message_id, populate_existing=True)
            if message is None:
                self._logger.warning("Outbox message not found for marking as processed",
                                     extra={"extra": {"message_id": message_id}})
                return
            now = _utcnow()
            message.processed = True
            message.processed_at = now
            message.error = None
            message.expires_at = now + self.retention
            await self.session.commit()

    async def mark_as_failed(self, message_id: str, error: str) -> None:
        async with self._operation(f"Failed to mark outbox message {message_id} as failed", message_id=message_id):
            message = await self.session.get(OutboxMessage, message_id, populate_existing=True)
            if message is None:
                self._logger.warning("Outbox message not found for marking as failed",
                                     extra={"extra": {"message_id": message_id}})
                return
            message.retry_count = (message.retry_count or 0) + 1
            message.error = error
            await self.session.commit()
            self._logger.warning(
                "Outbox message marked as failed",
                extra={"extra": {"message_id": message_id, "event_type": message.event_type,
                                 "retry_count": message.retry_count, "error": error}},
            )

    async def purge_expired(self, now: datetime | None = None) -> int:
        """Delete processed messages whose retention deadline has passed."""
        cutoff = now or _utcnow()
        stmt = (
            delete(OutboxMessage)
            .where(
                OutboxMessage.processed.is_(True),
                OutboxMessage.expires_at.is_not(None),
                OutboxMessage.expires_at <= cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        async with self._operation("Failed to purge expired outbox messages"):
            result = await self.session.execute(stmt)
            await self.session.commit()
            return result.rowcount or 0

    async def count_pending(self) -> int:
        stmt = select(func.count()).select_from(OutboxMessage).where(OutboxMessage.processed.is_(False))
        async with self._operation("Failed to count pending outbox messages"):
            return (await self.session.execute(stmt)).scalar_one()

    async def count_stuck(self, retry_threshold: int) -> int:
        """Unprocessed messages that have failed at least ``retry_threshold`` times."""
        stmt = (
            select(func.count())
            .select_from(OutboxMessage)
            .where(OutboxMessage.processed.is_(False), OutboxMessage.retry_count >= retry_threshold)
        )
        async with self._operation("Failed to count stuck outbox messages"):
            return (await self.session.execute(stmt)).scalar_one()

    async def oldest_pending_event_time(self) -> datetime | None:
        stmt = select(func.min(OutboxMessage.event_time)).where(OutboxMessage.processed.is_(False))
        async with self._operation("Failed to read oldest pending outbox message"):
            return (await self.session.execute(stmt)).scalar_one_or_none()
