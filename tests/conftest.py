import os
from datetime import date, datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Keep the suite off the real database and the real Event Grid topic
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["EVENT_GRID_TOPIC_ENDPOINT"] = ""
os.environ["EVENT_GRID_TOPIC_KEY"] = ""

from app.db.base_class import Base  # noqa: E402
from app.models.device import Device, DeviceStatus  # noqa: E402
from app.models.device_model import DeviceCategory, DeviceModel  # noqa: E402
from app.models.outbox import OutboxMessage  # noqa: E402


@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine):
    return async_sessionmaker(db_engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


def make_device(device_id: str = "d1", status: DeviceStatus = DeviceStatus.AVAILABLE, **overrides) -> Device:
    fields = dict(
        id=device_id,
        device_model_id="m1",
        serial_number=f"SN-{device_id}",
        asset_id=f"ASSET-{device_id}",
        status=status,
        condition="Good",
        notes=None,
        purchase_date=date(2024, 1, 15),
        updated_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return Device(**fields)


def make_device_model(model_id: str = "m1", **overrides) -> DeviceModel:
    fields = dict(
        id=model_id,
        brand="Dell",
        model="XPS 13",
        category=DeviceCategory.LAPTOP,
        description="13 inch ultrabook",
        specifications={"ram": "16GB"},
        image_url=None,
        updated_at=datetime(2025, 1, 1, tzinfo=timezone.utc),
    )
    fields.update(overrides)
    return DeviceModel(**fields)


def make_outbox_message(message_id: str, event_time: datetime, **overrides) -> OutboxMessage:
    fields = dict(
        id=message_id,
        topic="Catalogue",
        event_type="Catalogue.Device.StatusChanged",
        subject="d1",
        data={"deviceId": "d1"},
        data_version="1.0",
        event_time=event_time,
        processed=False,
        retry_count=0,
    )
    fields.update(overrides)
    return OutboxMessage(**fields)


@pytest.fixture
def device_factory():
    return make_device


@pytest.fixture
def device_model_factory():
    return make_device_model


@pytest.fixture
def outbox_message_factory():
    return make_outbox_message


@pytest.fixture
def api_app(session_factory):
    """FastAPI app with the catalogue routers bound to the test database."""
    from fastapi import FastAPI

    from app.api.v1.endpoints import admin, device_models, devices, events, outbox
    from app.db.session import get_session

    async def override_get_session():
        async with session_factory() as session:
            yield session

    app = FastAPI()
    app.include_router(devices.router, prefix="/api/v1")
    app.include_router(device_models.router, prefix="/api/v1")
    app.include_router(events.router, prefix="/api/v1")
    app.include_router(outbox.router, prefix="/api/v1")
    app.include_router(admin.router)
    app.dependency_overrides[get_session] = override_get_session
    return app


@pytest_asyncio.fixture
async def client(api_app):
    from httpx import ASGITransport, AsyncClient

    async with AsyncClient(transport=ASGITransport(app=api_app), base_url="http://test") as ac:
        yield ac
