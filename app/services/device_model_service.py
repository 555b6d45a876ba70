from collections.abc import Sequence
from datetime import datetime, timezone

from app.core.config import settings
from app.models.device_model import DeviceCategory, DeviceModel
from app.repositories.device_model_repo import DeviceModelRepository
from app.schemas.device_model import DeviceModelCreate, DeviceModelFilters, DeviceModelSort, DeviceModelUpdate
from .errors import DeviceModelNotFoundError
from .event_publisher import EventPublisher

DEVICE_MODEL_UPSERTED = "Catalogue.DeviceModel.Upserted"


def _matches_search(device_model: DeviceModel, search: str) -> bool:
    needle = search.lower()
    haystack = (device_model.brand, device_model.model, device_model.category.value, device_model.description)
    return any(needle in value.lower() for value in haystack)


def _display_name(device_model: DeviceModel) -> str:
    return f"{device_model.brand} {device_model.model}".lower()


def sort_device_models(device_models: Sequence[DeviceModel], sort: DeviceModelSort | None) -> list[DeviceModel]:
    items = list(device_models)
    if sort is DeviceModelSort.NEWEST:
        items.sort(key=lambda m: m.updated_at, reverse=True)
    elif sort is DeviceModelSort.OLDEST:
        items.sort(key=lambda m: m.updated_at)
    elif sort is DeviceModelSort.NAME_ASC:
        items.sort(key=_display_name)
    elif sort is DeviceModelSort.NAME_DESC:
        items.sort(key=_display_name, reverse=True)
    return items


class DeviceModelService:

    def __init__(self, device_model_repo: DeviceModelRepository, event_publisher: EventPublisher,
                 topic: str | None = None):
        self.device_model_repo = device_model_repo
        self.event_publisher = event_publisher
        self.topic = topic or settings.CATALOGUE_TOPIC

    async def get_device_model(self, model_id: str) -> DeviceModel:
        device_model = await self.device_model_repo.get_by_id(model_id)
        if device_model is None:
            raise DeviceModelNotFoundError(model_id)
        return device_model

    async def list_device_models(self) -> Sequence[DeviceModel]:
        return await self.device_model_repo.list()

    async def list_device_models_with_filters(self, filters: DeviceModelFilters) -> list[DeviceModel]:
        """List models, optionally narrowed by category and a free-text search, then sorted."""
        if filters.category is not None:
            items = await self.device_model_repo.list_by_category(filters.category)
        else:
            items = await self.device_model_repo.list()
        if filters.search and filters.search.strip():
            items = [m for m in items if _matches_search(m, filters.search.strip())]
        return sort_device_models(items, filters.sort)

    async def list_device_models_by_category(self, category: DeviceCategory) -> Sequence[DeviceModel]:
        return await self.device_model_repo.list_by_category(category)

    async def create_device_model(self, params: DeviceModelCreate) -> DeviceModel:
        device_model = DeviceModel(
            id=params.id,
            brand=params.brand,
            model=params.model,
            category=params.category,
            description=params.description,
            specifications=params.specifications,
            image_url=params.image_url,
            updated_at=datetime.now(timezone.utc),
        )
        return await self.save_device_model(device_model)

    async def update_device_model(self, model_id: str, params: DeviceModelUpdate) -> DeviceModel:
        device_model = await self.get_device_model(model_id)
        for field, value in params.model_dump(exclude_none=True).items():
            setattr(device_model, field, value)
        device_model.updated_at = datetime.now(timezone.utc)
        return await self.save_device_model(device_model)

    async def save_device_model(self, device_model: DeviceModel) -> DeviceModel:
        saved = await self.device_model_repo.save(device_model)
        await self.event_publisher.publish(self.topic, DEVICE_MODEL_UPSERTED, saved.id, saved.to_dict())
        return saved

    async def delete_device_model(self, model_id: str) -> None:
        # No event for model deletion
        await self.device_model_repo.delete(model_id)
