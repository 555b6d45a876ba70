import logging
from dataclasses import dataclass

from app.core.observability import log_step
from app.integrations.event_grid_client import EventGridPublisher
from app.repositories.outbox_repo import DEFAULT_BATCH_SIZE, OutboxRepository


@dataclass
class DrainResult:
    fetched: int = 0
    processed: int = 0
    failed: int = 0
    skipped: bool = False


class OutboxProcessorService:
    """Drains the outbox: sends each pending message through the live publisher.

    One call is one scheduler tick. Messages are sent one by one, oldest first.
    A send failure is recorded on its message (retry count and error) and the
    tick moves on; the next tick retries it. Delivery is at-least-once: a crash
    between a send and its mark repeats the send on the next tick.
    """

    PROCESS_NAME = "OutboxProcessor"

    def __init__(self, outbox_repo: OutboxRepository, publisher: EventGridPublisher | None,
                 batch_size: int = DEFAULT_BATCH_SIZE, logger: logging.Logger | None = None):
        self.outbox_repo = outbox_repo
        self.publisher = publisher
        self.batch_size = batch_size
        self.logger = logger or logging.getLogger(__name__)

    @log_step("outbox.drain")
    async def process_pending_events(self) -> DrainResult:
        """Process one batch of pending outbox messages."""
        result = DrainResult()

        if self.publisher is None or not self.publisher.is_configured:
            # Messages stay queued until the transport is configured
            self.logger.warning("Event publisher not configured, leaving outbox messages queued")
            result.skipped = True
            return result

        try:
            messages = await self.outbox_repo.list_unprocessed(self.batch_size)
        except Exception as e:
            self.logger.error("Failed to fetch outbox messages: %s", e, exc_info=True)
            return result

        if not messages:
            return result

        # Snapshot before any commit/rollback can expire the ORM instances
        batch = [message.to_envelope() for message in messages]
        result.fetched = len(batch)
        self.logger.info("Processing %d outbox messages", len(batch),
                         extra={"extra": {"batch_size": self.batch_size, "fetched": len(batch)}})

        for envelope in batch:
            try:
                await self.publisher.publish_envelope(envelope)
                await self.outbox_repo.mark_as_processed(envelope.id)
                result.processed += 1
            except Exception as e:
                result.failed += 1
                error_message = str(e) or type(e).__name__
                self.logger.error(
                    "Failed to process outbox message %s: %s", envelope.id, error_message,
                    extra={"extra": {"message_id": envelope.id, "event_type": envelope.event_type}},
                )
                await self._mark_failed(envelope.id, error_message)

        self.logger.info("Outbox batch finished",
                         extra={"extra": {"fetched": result.fetched, "processed": result.processed,
                                          "failed": result.failed}})
        return result

    async def _mark_failed(self, message_id: str, error_message: str) -> None:
        try:
            await self.outbox_repo.mark_as_failed(message_id, error_message)
        except Exception as e:
            # The message is still unprocessed, so the next tick picks it up anyway
            self.logger.error("Failed to record outbox failure for %s: %s", message_id, e, exc_info=True)

    async def purge_expired(self) -> int:
        deleted = await self.outbox_repo.purge_expired()
        if deleted:
            self.logger.info("Purged %d processed outbox messages", deleted)
        return deleted
