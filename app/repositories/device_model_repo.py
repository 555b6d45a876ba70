from collections.abc import Sequence

from sqlalchemy import delete, select

from app.models.device_model import DeviceCategory, DeviceModel
from .base import SQLAlchemyRepository


class DeviceModelRepository(SQLAlchemyRepository):

    async def get_by_id(self, model_id: str) -> DeviceModel | None:
        async with self._operation(f"Failed to get device model {model_id}", device_model_id=model_id):
            return await self.session.get(DeviceModel, model_id, populate_existing=True)

    async def list(self) -> Sequence[DeviceModel]:
        async with self._operation("Failed to list device models"):
            result = await self.session.execute(select(DeviceModel).order_by(DeviceModel.id))
            return result.scalars().all()

    async def list_by_category(self, category: DeviceCategory) -> Sequence[DeviceModel]:
        stmt = select(DeviceModel).where(DeviceModel.category == category).order_by(DeviceModel.id)
        async with self._operation(f"Failed to list device models in category {category.value}"):
            result = await self.session.execute(stmt)
            return result.scalars().all()

    async def save(self, device_model: DeviceModel) -> DeviceModel:
        async with self._operation(f"Failed to save device model {device_model.id}", device_model_id=device_model.id):
            saved = await self.session.merge(device_model)
            await self.session.commit()
            return saved

    async def delete(self, model_id: str) -> None:
        async with self._operation(f"Failed to delete device model {model_id}", device_model_id=model_id):
            await self.session.execute(delete(DeviceModel).where(DeviceModel.id == model_id))
            await self.session.commit()
