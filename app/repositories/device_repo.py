from collections.abc import Sequence

from sqlalchemy import delete, select

from app.models.device import Device, DeviceStatus
from .base import SQLAlchemyRepository


class DeviceRepository(SQLAlchemyRepository):
    """Device store. ``get_by_id`` and ``save`` are atomic per key."""

    async def get_by_id(self, device_id: str) -> Device | None:
        async with self._operation(f"Failed to get device {device_id}", device_id=device_id):
            return await self.session.get(Device, device_id, populate_existing=True)

    async def list(self) -> Sequence[Device]:
        async with self._operation("Failed to list devices"):
            result = await self.session.execute(select(Device).order_by(Device.id))
            return result.scalars().all()

    async def list_by_device_model_id(self, device_model_id: str) -> Sequence[Device]:
        stmt = select(Device).where(Device.device_model_id == device_model_id).order_by(Device.id)
        async with self._operation(f"Failed to list devices for model {device_model_id}"):
            result = await self.session.execute(stmt)
            return result.scalars().all()

    async def list_by_status(self, status: DeviceStatus) -> Sequence[Device]:
        stmt = select(Device).where(Device.status == status).order_by(Device.id)
        async with self._operation(f"Failed to list devices with status {status.value}"):
            result = await self.session.execute(stmt)
            return result.scalars().all()

    async def save(self, device: Device) -> Device:
        async with self._operation(f"Failed to save device {device.id}", device_id=device.id):
            saved = await self.session.merge(device)
            await self.session.commit()
            return saved

    async def delete(self, device_id: str) -> None:
        async with self._operation(f"Failed to delete device {device_id}", device_id=device_id):
            await self.session.execute(delete(Device).where(Device.id == device_id))
            await self.session.commit()
