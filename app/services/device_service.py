import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime, timezone

from app.core.config import settings
from app.models.device import Device, DeviceStatus
from app.repositories.device_repo import DeviceRepository
from app.schemas.device import DeviceCreate, DeviceUpdate
from app.schemas.events import DeviceStatusChangedData
from .errors import DeviceNotFoundError
from .event_publisher import EventPublisher

logger = logging.getLogger(__name__)

DEVICE_UPSERTED = "Catalogue.Device.Upserted"
DEVICE_DELETED = "Catalogue.Device.Deleted"
DEVICE_STATUS_CHANGED = "Catalogue.Device.StatusChanged"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class StatusUpdate:
    device: Device
    previous_status: DeviceStatus
    changed: bool


class DeviceService:
    """Device use cases. Every mutation saves the device first, then queues its event."""

    def __init__(self, device_repo: DeviceRepository, event_publisher: EventPublisher,
                 topic: str | None = None):
        self.device_repo = device_repo
        self.event_publisher = event_publisher
        self.topic = topic or settings.CATALOGUE_TOPIC

    async def get_device(self, device_id: str) -> Device:
        device = await self.device_repo.get_by_id(device_id)
        if device is None:
            raise DeviceNotFoundError(device_id)
        return device

    async def list_devices(self, *, status: DeviceStatus | None = None,
                           device_model_id: str | None = None) -> Sequence[Device]:
        if status is not None:
            devices = await self.list_devices_by_status(status)
            if device_model_id is not None:
                devices = [d for d in devices if d.device_model_id == device_model_id]
            return devices
        if device_model_id is not None:
            return await self.list_devices_by_model(device_model_id)
        return await self.device_repo.list()

    async def list_devices_by_model(self, device_model_id: str) -> Sequence[Device]:
        return await self.device_repo.list_by_device_model_id(device_model_id)

    async def list_devices_by_status(self, status: DeviceStatus) -> Sequence[Device]:
        return await self.device_repo.list_by_status(status)

    async def create_device(self, params: DeviceCreate) -> Device:
        device = Device(
            id=params.id,
            device_model_id=params.device_model_id,
            serial_number=params.serial_number,
            asset_id=params.asset_id,
            status=params.status,
            condition=params.condition,
            notes=params.notes,
            purchase_date=params.purchase_date,
            updated_at=_utcnow(),
        )
        return await self.save_device(device)

    async def update_device(self, device_id: str, params: DeviceUpdate) -> Device:
        device = await self.get_device(device_id)
        for field, value in params.model_dump(exclude_none=True).items():
            setattr(device, field, value)
        device.updated_at = _utcnow()
        return await self.save_device(device)

    async def save_device(self, device: Device) -> Device:
        saved = await self.device_repo.save(device)
        await self.event_publisher.publish(self.topic, DEVICE_UPSERTED, saved.id, saved.to_dict())
        return saved

    async def delete_device(self, device_id: str) -> None:
        await self.device_repo.delete(device_id)
        await self.event_publisher.publish(self.topic, DEVICE_DELETED, device_id, {"id": device_id})

    async def update_device_status(self, device_id: str, status: DeviceStatus) -> StatusUpdate:
        """
        Set the cached status of a device.

        A device already in ``status`` is left untouched: no write, no event.
        Otherwise the device is saved with a refreshed ``updated_at`` and
        Catalogue.Device.StatusChanged is queued.

        Raises DeviceNotFoundError when the device does not exist.
        """
        device = await self.device_repo.get_by_id(device_id)
        if device is None:
            raise DeviceNotFoundError(device_id)

        previous = device.status
        if previous == status:
            return StatusUpdate(device=device, previous_status=previous, changed=False)

        device.status = status
        device.updated_at = _utcnow()
        saved = await self.device_repo.save(device)

        payload = DeviceStatusChangedData(
            device_id=saved.id,
            previous_status=previous.value,
            new_status=saved.status.value,
            updated_at=saved.updated_at,
        )
        await self.event_publisher.publish(
            self.topic, DEVICE_STATUS_CHANGED, saved.id, payload.model_dump(mode="json", by_alias=True),
        )
        logger.info("Device status changed",
                    extra={"extra": {"device_id": saved.id, "previous_status": previous.value,
                                     "new_status": saved.status.value}})
        return StatusUpdate(device=saved, previous_status=previous, changed=True)
