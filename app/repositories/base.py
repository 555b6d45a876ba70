import logging
import time
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession


class RepositoryError(Exception):
    """A store failure, prefixed with the operation that failed. The original error is chained."""


class SQLAlchemyRepository:
    """Session-bound repository base.

    Every write commits its own unit of work. SQLAlchemy errors roll the session back
    and are re-raised as RepositoryError carrying the operation description.
    """

    def __init__(self, session: AsyncSession, logger: logging.Logger | None = None):
        self.session = session
        self._logger = logger or logging.getLogger(type(self).__module__)

    @asynccontextmanager
    async def _operation(self, description: str, **fields):
        t0 = time.perf_counter()
        try:
            yield
        except SQLAlchemyError as e:
            await self.session.rollback()
            elapsed = round((time.perf_counter() - t0) * 1000)
            self._logger.error(
                "%s failed", description,
                extra={"extra": {**fields, "elapsed_ms": elapsed, "error": str(e)}},
            )
            raise RepositoryError(f"{description}: {e}") from e
        elapsed = round((time.perf_counter() - t0) * 1000)
        self._logger.debug("%s", description, extra={"extra": {**fields, "elapsed_ms": elapsed}})
