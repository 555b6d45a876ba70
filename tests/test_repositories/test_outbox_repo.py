from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from app.repositories.base import RepositoryError
from app.repositories.outbox_repo import OutboxRepository

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_list_unprocessed_oldest_first_and_limited(db_session, outbox_message_factory):
    repo = OutboxRepository(db_session)
    await repo.save(outbox_message_factory("c", T0 + timedelta(minutes=2)))
    await repo.save(outbox_message_factory("a", T0))
    await repo.save(outbox_message_factory("b", T0 + timedelta(minutes=1)))

    messages = await repo.list_unprocessed(batch_size=2)

    assert [m.id for m in messages] == ["a", "b"]


@pytest.mark.asyncio
async def test_list_unprocessed_skips_processed(db_session, outbox_message_factory):
    repo = OutboxRepository(db_session)
    await repo.save(outbox_message_factory("done", T0, processed=True))
    await repo.save(outbox_message_factory("todo", T0 + timedelta(seconds=1)))

    messages = await repo.list_unprocessed()

    assert [m.id for m in messages] == ["todo"]


@pytest.mark.asyncio
async def test_list_unprocessed_empty_store(db_session):
    assert list(await OutboxRepository(db_session).list_unprocessed()) == []


@pytest.mark.asyncio
async def test_mark_as_processed_sets_retention_deadline(db_session, outbox_message_factory):
    repo = OutboxRepository(db_session, retention=timedelta(days=7))
    await repo.save(outbox_message_factory("m1", T0, error="previous failure", retry_count=2))

    await repo.mark_as_processed("m1")

    message = await repo.get("m1")
    assert message.processed is True
    assert message.processed_at is not None
    assert message.error is None
    # retry history is kept for diagnostics
    assert message.retry_count == 2
    delta = message.expires_at - message.processed_at
    assert delta == timedelta(days=7)
    assert list(await repo.list_unprocessed()) == []


@pytest.mark.asyncio
async def test_mark_as_processed_unknown_id_is_noop(db_session, caplog):
    repo = OutboxRepository(db_session)

    await repo.mark_as_processed("missing")

    assert any("not found" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_mark_as_failed_increments_retry_count(db_session, outbox_message_factory):
    repo = OutboxRepository(db_session)
    await repo.save(outbox_message_factory("m1", T0))

    await repo.mark_as_failed("m1", "HTTP 503")
    await repo.mark_as_failed("m1", "timeout")

    message = await repo.get("m1")
    assert message.processed is False
    assert message.retry_count == 2
    assert message.error == "timeout"


@pytest.mark.asyncio
async def test_mark_as_failed_unknown_id_is_noop(db_session):
    await OutboxRepository(db_session).mark_as_failed("missing", "boom")


@pytest.mark.asyncio
async def test_save_is_upsert_by_id(db_session, outbox_message_factory):
    repo = OutboxRepository(db_session)
    await repo.save(outbox_message_factory("m1", T0, subject="d1"))
    await repo.save(outbox_message_factory("m1", T0, subject="d2"))

    messages = await repo.list_unprocessed()

    assert len(messages) == 1
    assert messages[0].subject == "d2"


@pytest.mark.asyncio
async def test_purge_expired_only_removes_processed_past_deadline(db_session, outbox_message_factory):
    repo = OutboxRepository(db_session)
    now = datetime(2025, 4, 1, tzinfo=timezone.utc)
    await repo.save(outbox_message_factory("expired", T0, processed=True, expires_at=now - timedelta(days=1)))
    await repo.save(outbox_message_factory("retained", T0, processed=True, expires_at=now + timedelta(days=1)))
    await repo.save(outbox_message_factory("pending", T0))

    deleted = await repo.purge_expired(now=now)

    assert deleted == 1
    assert await repo.get("expired") is None
    assert await repo.get("retained") is not None
    assert await repo.get("pending") is not None


@pytest.mark.asyncio
async def test_monitoring_counts(db_session, outbox_message_factory):
    repo = OutboxRepository(db_session)
    await repo.save(outbox_message_factory("old", T0, retry_count=6))
    await repo.save(outbox_message_factory("new", T0 + timedelta(hours=1), retry_count=1))
    await repo.save(outbox_message_factory("done", T0 - timedelta(hours=1), processed=True))

    assert await repo.count_pending() == 2
    assert await repo.count_stuck(5) == 1
    oldest = await repo.oldest_pending_event_time()
    assert oldest.replace(tzinfo=None) == T0.replace(tzinfo=None)


@pytest.mark.asyncio
async def test_store_failure_raises_repository_error_with_context(outbox_message_factory):
    session = AsyncMock()
    session.merge.side_effect = OperationalError("INSERT", {}, Exception("database is locked"))
    repo = OutboxRepository(session)

    with pytest.raises(RepositoryError, match="Failed to save outbox message m1") as exc_info:
        await repo.save(outbox_message_factory("m1", T0))

    assert isinstance(exc_info.value.__cause__, OperationalError)
    session.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_concurrent_write_on_stale_copy_is_rejected(session_factory, outbox_message_factory):
    """A second writer holding an outdated version cannot overwrite a newer mark."""
    async with session_factory() as setup:
        await OutboxRepository(setup).save(outbox_message_factory("m1", T0))

    async with session_factory() as session_a, session_factory() as session_b:
        repo_a = OutboxRepository(session_a)
        repo_b = OutboxRepository(session_b)

        stale = await repo_a.get("m1")
        assert stale.version == 1

        await repo_b.mark_as_processed("m1")

        stale.retry_count = 1
        stale.error = "late failure"
        with pytest.raises(RepositoryError, match="Failed to save outbox message m1") as exc_info:
            await repo_a.save(stale)
        assert isinstance(exc_info.value.__cause__, StaleDataError)

    async with session_factory() as check:
        message = await OutboxRepository(check).get("m1")
        assert message.processed is True
        assert message.retry_count == 0
        assert message.error is None
        assert message.version == 2
