from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.device_model import DeviceCategory


def _non_empty(value: str | None, field: str) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError(f"DeviceModel {field} must be a non-empty string.")
    return value


class DeviceModelCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    brand: str
    model: str
    category: DeviceCategory
    description: str
    specifications: dict[str, str] = Field(default_factory=dict)
    image_url: str | None = Field(default=None, alias="imageUrl")

    @field_validator("id", "brand", "model", "description", "image_url")
    @classmethod
    def _strip(cls, value, info):
        return _non_empty(value, info.field_name)


class DeviceModelUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    brand: str | None = None
    model: str | None = None
    category: DeviceCategory | None = None
    description: str | None = None
    specifications: dict[str, str] | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")

    @field_validator("brand", "model", "description", "image_url")
    @classmethod
    def _strip(cls, value, info):
        return _non_empty(value, info.field_name)


class DeviceModelRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    brand: str
    model: str
    category: DeviceCategory
    description: str
    specifications: dict[str, str] = Field(default_factory=dict)
    image_url: str | None = Field(default=None, serialization_alias="imageUrl")
    updated_at: datetime = Field(serialization_alias="updatedAt")


class DeviceModelSort(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"


class DeviceModelFilters(BaseModel):
    category: DeviceCategory | None = None
    search: str | None = None
    sort: DeviceModelSort | None = None
