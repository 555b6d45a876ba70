import logging
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from app.integrations.base_client import BaseApiClient, is_retryable_exception

URL = "https://topic.example.com/api/events"


def _response(status_code: int, json=None, text: str | None = None) -> httpx.Response:
    request = httpx.Request("POST", URL)
    if json is not None:
        return httpx.Response(status_code, json=json, request=request)
    return httpx.Response(status_code, text=text or "", request=request)


def _client(**kwargs) -> BaseApiClient:
    kwargs.setdefault("backoff", 0)
    return BaseApiClient("https://topic.example.com", **kwargs)


@pytest.mark.asyncio
async def test_http_logging_success(caplog):
    """A successful call logs one record with status, timing and a body preview."""
    caplog.set_level(logging.DEBUG)
    client = _client()

    with patch.object(client.client, "request", AsyncMock(return_value=_response(200, json={"result": "ok"}))):
        result = await client._request("POST", URL, json=[{"id": "1"}])

    assert result == {"result": "ok"}
    success_logs = [r for r in caplog.records if r.name == "http" and "-> 200" in r.getMessage()]
    assert len(success_logs) == 1
    extra = success_logs[0].extra
    assert extra["method"] == "POST"
    assert extra["status_code"] == 200
    assert extra["attempt"] == 1
    assert "elapsed_ms" in extra
    assert "response_hash" in extra
    await client.close()


@pytest.mark.asyncio
async def test_http_logging_redacts_sas_key():
    client = _client(headers={"aeg-sas-key": "secret-key", "Content-Type": "application/json"})

    with patch.object(client.client, "request", AsyncMock(return_value=_response(200))), \
            patch.object(client._logger, "debug") as mock_debug:
        await client._request("POST", URL, json=[])

    headers = mock_debug.call_args[1]["extra"]["extra"]["headers"]
    assert headers["aeg-sas-key"] == "***"
    assert headers["content-type"] == "application/json"
    await client.close()


@pytest.mark.asyncio
async def test_empty_body_parses_to_empty_dict():
    client = _client()

    with patch.object(client.client, "request", AsyncMock(return_value=_response(200))):
        assert await client._request("POST", URL, json=[]) == {}
    await client.close()


@pytest.mark.asyncio
async def test_retry_on_server_error_then_success():
    client = _client(tries=3)
    mock_request = AsyncMock(side_effect=[_response(503, text="busy"), _response(200, json={"ok": True})])

    with patch.object(client.client, "request", mock_request):
        result = await client._request("POST", URL, json=[])

    assert result == {"ok": True}
    assert mock_request.await_count == 2
    await client.close()


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    client = _client(tries=3)
    mock_request = AsyncMock(return_value=_response(401, text="bad key"))

    with patch.object(client.client, "request", mock_request), \
            patch.object(client._logger, "error") as mock_error:
        with pytest.raises(httpx.HTTPStatusError):
            await client._request("POST", URL, json=[])

    assert mock_request.await_count == 1
    assert "HTTP FAIL" in mock_error.call_args[0][0]
    extra = mock_error.call_args[1]["extra"]["extra"]
    assert extra["attempts"] == 1
    await client.close()


@pytest.mark.asyncio
async def test_retries_are_bounded():
    client = _client(tries=2)
    mock_request = AsyncMock(side_effect=httpx.ConnectError("refused"))

    with patch.object(client.client, "request", mock_request):
        with pytest.raises(httpx.ConnectError):
            await client._request("POST", URL, json=[])

    assert mock_request.await_count == 2
    await client.close()


@pytest.mark.parametrize("exc, expected", [
    (httpx.ConnectError("refused"), True),
    (httpx.ReadTimeout("slow"), True),
    (httpx.HTTPStatusError("x", request=httpx.Request("POST", URL), response=_response(429)), True),
    (httpx.HTTPStatusError("x", request=httpx.Request("POST", URL), response=_response(500)), True),
    (httpx.HTTPStatusError("x", request=httpx.Request("POST", URL), response=_response(400)), False),
    (ValueError("nope"), False),
])
def test_is_retryable_exception(exc, expected):
    assert is_retryable_exception(exc) is expected


def test_response_hash_generation():
    client = _client()

    hash_result = client._maybe_hash("test response content")

    assert len(hash_result) == 16
    assert all(c in "0123456789abcdef" for c in hash_result)
    assert client._maybe_hash("test response content") == hash_result
