import json
import logging
import os
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator

# Correlation ids stamped on every record: the app run, an HTTP request,
# a scheduler job and the inbound Event Grid event being reconciled
run_id_var: ContextVar[str | None] = ContextVar("run_id", default=None)
request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
job_name_var: ContextVar[str | None] = ContextVar("job_name", default=None)
event_id_var: ContextVar[str | None] = ContextVar("event_id", default=None)

CONTEXT_VARS: Dict[str, ContextVar] = {
    "run_id": run_id_var,
    "request_id": request_id_var,
    "job_name": job_name_var,
    "event_id": event_id_var,
}

REDACT_KEYS = {
    k.strip().lower()
    for k in os.getenv("LOG_REDACT_KEYS", "password,authorization,aeg-sas-key,apikey,token").split(",")
    if k.strip()
}
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").lower()
LOG_BODY_MAX = int(os.getenv("LOG_BODY_MAX", "2000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


def _redact(value: Any) -> Any:
    """Mask secret keys and truncate long strings, recursively."""
    if isinstance(value, dict):
        return {k: ("***" if str(k).lower() in REDACT_KEYS else _redact(v)) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_redact(v) for v in value]
    if isinstance(value, str) and len(value) > LOG_BODY_MAX:
        return value[:LOG_BODY_MAX] + f"...(+{len(value) - LOG_BODY_MAX} chars)"
    return value


def current_context() -> Dict[str, str | None]:
    return {name: var.get() for name, var in CONTEXT_VARS.items()}


class JsonFormatter(logging.Formatter):
    """One JSON object per record: level, logger, message, correlation ids and ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        base: Dict[str, Any] = {
            "ts": round(time.time() * 1000),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **current_context(),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            base.update(_redact(extra))
        return json.dumps(base, ensure_ascii=False, default=str)


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    handler = logging.StreamHandler(sys.stdout)
    if (fmt or LOG_FORMAT) == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s"))
    root.addHandler(handler)
    # BaseApiClient logs each Event Grid call itself
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)


@contextmanager
def log_context(**values: str | None) -> Iterator[Dict[str, str | None]]:
    """
    Bind correlation ids for the duration of a block.

    Unknown names raise KeyError. Previous values are restored on exit, so a
    job or an event handler never leaks its ids into the next one.

    Example: with log_context(job_name="purge_processed_outbox_job", run_id=new_run_id()): ...
    """
    tokens = []
    try:
        for name, value in values.items():
            var = CONTEXT_VARS[name]
            tokens.append((var, var.set(value)))
        yield current_context()
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def new_run_id() -> str:
    return str(uuid.uuid4())


def set_run_id(value: str | None = None) -> str:
    rid = value or new_run_id()
    run_id_var.set(rid)
    return rid


def set_request_id(value: str | None) -> str | None:
    request_id_var.set(value)
    return value
