from unittest.mock import patch

import pytest

from app.repositories.outbox_repo import OutboxRepository

DEVICE = {
    "id": "d1",
    "deviceModelId": "m1",
    "serialNumber": "SN-1",
    "assetId": "A-1",
    "status": "Available",
    "condition": "Good",
    "purchaseDate": "2024-01-15",
}


@pytest.mark.asyncio
async def test_device_crud(client):
    created = await client.post("/api/v1/devices", json=DEVICE)
    assert created.status_code == 201
    body = created.json()
    assert body["serialNumber"] == "SN-1"
    assert body["status"] == "Available"
    assert "updatedAt" in body

    fetched = await client.get("/api/v1/devices/d1")
    assert fetched.status_code == 200
    assert fetched.json()["assetId"] == "A-1"

    updated = await client.put("/api/v1/devices/d1", json={"condition": "Fair"})
    assert updated.status_code == 200
    assert updated.json()["condition"] == "Fair"

    deleted = await client.delete("/api/v1/devices/d1")
    assert deleted.status_code == 204
    assert (await client.get("/api/v1/devices/d1")).status_code == 404


@pytest.mark.asyncio
async def test_device_list_filters(client):
    await client.post("/api/v1/devices", json=DEVICE)
    await client.post("/api/v1/devices", json={**DEVICE, "id": "d2", "deviceModelId": "m2", "status": "Lost"})

    by_model = await client.get("/api/v1/devices", params={"model_id": "m2"})
    by_status = await client.get("/api/v1/devices", params={"status": "Available"})

    assert [d["id"] for d in by_model.json()] == ["d2"]
    assert [d["id"] for d in by_status.json()] == ["d1"]


@pytest.mark.asyncio
async def test_device_validation_errors(client):
    response = await client.post("/api/v1/devices", json={**DEVICE, "serialNumber": "  "})
    assert response.status_code == 422

    missing = await client.put("/api/v1/devices/ghost", json={"condition": "Fair"})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_device_model_endpoints(client):
    body = {"id": "m1", "brand": "Canon", "model": "EOS R50", "category": "Camera",
            "description": "Mirrorless camera", "specifications": {"sensor": "APS-C"}}

    created = await client.post("/api/v1/device-models", json=body)
    assert created.status_code == 201
    assert created.json()["specifications"] == {"sensor": "APS-C"}

    listed = await client.get("/api/v1/device-models", params={"category": "Camera", "search": "eos"})
    assert [m["id"] for m in listed.json()] == ["m1"]

    assert (await client.get("/api/v1/device-models/nope")).status_code == 404
    assert (await client.delete("/api/v1/device-models/m1")).status_code == 204


@pytest.mark.asyncio
async def test_outbox_admin_stats(client, session_factory):
    await client.post("/api/v1/devices", json=DEVICE)
    async with session_factory() as session:
        repo = OutboxRepository(session)
        message = (await repo.list_unprocessed())[0]
        for _ in range(3):
            await repo.mark_as_failed(message.id, "HTTP 503")

    stats = await client.get("/admin/outbox/stats", params={"retry_threshold": 3})
    pending = await client.get("/admin/outbox/pending")

    assert stats.status_code == 200
    assert stats.json()["pending"] == 1
    assert stats.json()["stuck"] == 1
    assert stats.json()["stuck_retry_threshold"] == 3
    assert pending.json()[0]["retry_count"] == 3
    assert pending.json()[0]["error"] == "HTTP 503"


@pytest.mark.asyncio
async def test_trigger_process_outbox_schedules_drain(client):
    with patch("app.api.v1.endpoints.outbox.process_outbox_events_job") as mock_job:
        response = await client.post("/api/v1/trigger/process-outbox")

    assert response.status_code == 202
    assert "request_id" in response.json()
    mock_job.assert_called_once()
