from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from app.background import jobs
from app.core.config import settings
from app.repositories.outbox_repo import OutboxRepository


@pytest.mark.asyncio
async def test_process_outbox_job_leaves_messages_when_unconfigured(session_factory, outbox_message_factory):
    async with session_factory() as session:
        await OutboxRepository(session).save(outbox_message_factory("m1", datetime.now(timezone.utc)))

    with patch.object(jobs, "async_session_factory", session_factory):
        result = await jobs.process_outbox_events_job()

    assert result.skipped is True
    async with session_factory() as session:
        assert await OutboxRepository(session).count_pending() == 1


@pytest.mark.asyncio
async def test_process_outbox_job_closes_publisher(session_factory):
    publisher = AsyncMock()
    publisher.is_configured = True

    with patch.object(jobs, "async_session_factory", session_factory), \
            patch.object(jobs.EventGridPublisher, "from_settings", return_value=publisher):
        result = await jobs.process_outbox_events_job()

    assert result.fetched == 0
    publisher.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_purge_job_removes_expired_messages(session_factory, outbox_message_factory):
    past = datetime.now(timezone.utc) - timedelta(days=1)
    async with session_factory() as session:
        repo = OutboxRepository(session)
        await repo.save(outbox_message_factory("old", past, processed=True, expires_at=past))
        await repo.save(outbox_message_factory("pending", past))

    with patch.object(jobs, "async_session_factory", session_factory):
        deleted = await jobs.purge_processed_outbox_job()

    assert deleted == 1


def test_outbox_retention_follows_settings(monkeypatch):
    monkeypatch.setattr(settings, "OUTBOX_RETENTION_DAYS", 3)

    assert jobs.outbox_retention() == timedelta(days=3)
