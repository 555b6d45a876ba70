from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.session import get_session
from app.repositories.device_model_repo import DeviceModelRepository
from app.repositories.device_repo import DeviceRepository
from app.repositories.outbox_repo import OutboxRepository
from app.background.jobs import outbox_retention
from app.services.device_model_service import DeviceModelService
from app.services.device_service import DeviceService
from app.services.event_publisher import OutboxEventPublisher
from app.services.status_reconciliation import AvailabilityEventHandler, ReservationEventHandler


def get_outbox_repo(db: AsyncSession = Depends(get_session)) -> OutboxRepository:
    return OutboxRepository(db, retention=outbox_retention())


def get_event_publisher(outbox_repo: OutboxRepository = Depends(get_outbox_repo)) -> OutboxEventPublisher:
    return OutboxEventPublisher(outbox_repo)


def get_device_service(
    db: AsyncSession = Depends(get_session),
    publisher: OutboxEventPublisher = Depends(get_event_publisher),
) -> DeviceService:
    return DeviceService(DeviceRepository(db), publisher)


def get_device_model_service(
    db: AsyncSession = Depends(get_session),
    publisher: OutboxEventPublisher = Depends(get_event_publisher),
) -> DeviceModelService:
    return DeviceModelService(DeviceModelRepository(db), publisher)


def get_reservation_handler(service: DeviceService = Depends(get_device_service)) -> ReservationEventHandler:
    return ReservationEventHandler(service)


def get_availability_handler(service: DeviceService = Depends(get_device_service)) -> AvailabilityEventHandler:
    return AvailabilityEventHandler(service)
