import hashlib
import httpx
import logging
import os
import time
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_exponential

from app.core.logging import _redact


def is_retryable_exception(exception: BaseException) -> bool:
    """Whether an HTTP failure is worth another attempt."""
    if isinstance(exception, (httpx.ConnectError, httpx.TimeoutException)):
        return True
    if isinstance(exception, httpx.HTTPStatusError):
        # Only server-side errors and throttling
        status = exception.response.status_code
        return status == 429 or 500 <= status < 600
    return False


LOG_SAMPLE_RATE = float(os.getenv("LOG_SAMPLE_RATE", "1.0"))
LOG_BODY_MAX = int(os.getenv("LOG_BODY_MAX", "2000"))

class BaseApiClient:
    """
    httpx client with tenacity retries and per-attempt request/response logging.

    ``tries`` bounds the attempts of one logical request; ``backoff`` is the
    exponential wait multiplier in seconds (0 disables waiting).
    """

    def __init__(self, base_url: str, *, timeout: float = 30.0, tries: int = 5,
                 backoff: float = 1.0, max_wait: float = 30.0, headers: dict | None = None):
        self.client = httpx.AsyncClient(base_url=base_url, timeout=timeout, headers=headers)
        self.tries = max(1, tries)
        self.backoff = backoff
        self.max_wait = max_wait
        self._logger = logging.getLogger("http")

    def _maybe_hash(self, body: str) -> str:
        return hashlib.sha256(body.encode("utf-8", "ignore")).hexdigest()[:16]

    async def _send(self, method: str, url: str, attempt: int, t0: float, **kwargs) -> httpx.Response:
        req_body = kwargs.get("content") or kwargs.get("data") or (kwargs.get("json") and str(kwargs["json"])) or ""
        headers = _redact({**dict(self.client.headers), **dict(kwargs.get("headers") or {})})
        self._logger.debug("HTTP %s %s (attempt %d)", method, url, attempt,
                           extra={"extra": {"method": method, "url": url, "attempt": attempt,
                                            "headers": headers, "body_preview": str(req_body)[:LOG_BODY_MAX]}})

        response: httpx.Response = await self.client.request(method, url, **kwargs)
        dt = round((time.perf_counter() - t0) * 1000)

        body_text = response.text or ""
        body_hash = self._maybe_hash(body_text)
        if LOG_SAMPLE_RATE >= 1.0:
            body_preview = body_text[:LOG_BODY_MAX]
        else:
            body_preview = f"[sampled hash:{body_hash}]"

        self._logger.info("HTTP %s %s -> %d in %dms", method, url, response.status_code, dt,
                          extra={"extra": {"method": method, "url": url, "status_code": response.status_code,
                                           "elapsed_ms": dt, "attempt": attempt,
                                           "response_preview": body_preview, "response_hash": body_hash}})
        response.raise_for_status()
        return response

    async def _request(self, method: str, url: str, **kwargs):
        """Send a request, retrying transient failures, and return the parsed body."""
        t0 = time.perf_counter()
        attempt_no = 0
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.tries),
                wait=wait_exponential(multiplier=self.backoff, max=self.max_wait),
                retry=retry_if_exception(is_retryable_exception),
                reraise=True,
            ):
                with attempt:
                    attempt_no = attempt.retry_state.attempt_number
                    response = await self._send(method, url, attempt_no, t0, **kwargs)
        except httpx.HTTPError as e:
            dt = round((time.perf_counter() - t0) * 1000)
            self._logger.error("HTTP FAIL %s %s after %d tries: %s", method, url, attempt_no, repr(e),
                               extra={"extra": {"method": method, "url": url, "elapsed_ms": dt,
                                                "attempts": attempt_no}})
            raise
        return self._parse_response(response)

    def _parse_response(self, response: httpx.Response):
        """Parse a JSON body, tolerating empty and non-JSON responses."""
        # Empty response (e.g. 204 No Content, or Event Grid's empty 200)
        if response.status_code == 204 or not response.content:
            return {}

        content_type = response.headers.get("content-type", "").lower()
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                return {}
        return {}

    async def close(self):
        await self.client.aclose()
