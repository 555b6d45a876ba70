import functools
import inspect
import logging
import time
from typing import Any, Callable

from .logging import _redact

logger = logging.getLogger("steps")

RESULT_PREVIEW_MAX = 200


def _elapsed_ms(t0: float) -> int:
    return round((time.perf_counter() - t0) * 1000)


def _preview(result: Any) -> str:
    return str(result)[:RESULT_PREVIEW_MAX]


def log_step(step: str, *, level: int = logging.INFO):
    """
    Logs entry, exit, timing and exceptions of a step.

    The exit record carries ``elapsed_ms`` and a short preview of the result, the
    error record carries ``elapsed_ms`` and the traceback. Exceptions are re-raised.

    Example: @log_step("outbox.drain")
    """
    def decorator(fn: Callable):
        def _enter(kwargs):
            logger.debug("ENTER %s", step, extra={"extra": {"step": step, "args": _redact(kwargs)}})

        def _exit(t0, result):
            logger.log(level, "EXIT %s", step, extra={"extra": {"step": step, "elapsed_ms": _elapsed_ms(t0), "result_preview": _preview(result)}})

        def _error(t0, exc):
            logger.error("ERROR %s: %s", step, exc, extra={"extra": {"step": step, "elapsed_ms": _elapsed_ms(t0)}}, exc_info=True)

        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def awrapped(*args, **kwargs):
                t0 = time.perf_counter()
                _enter(kwargs)
                try:
                    result = await fn(*args, **kwargs)
                except Exception as e:
                    _error(t0, e)
                    raise
                _exit(t0, result)
                return result

            return awrapped

        @functools.wraps(fn)
        def wrapped(*args, **kwargs):
            t0 = time.perf_counter()
            _enter(kwargs)
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                _error(t0, e)
                raise
            _exit(t0, result)
            return result

        return wrapped

    return decorator
