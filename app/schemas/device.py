from datetime import date, datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.device import DeviceStatus


def _non_empty(value: str | None, field: str) -> str | None:
    if value is None:
        return None
    value = value.strip()
    if not value:
        raise ValueError(f"Device {field} must be a non-empty string.")
    return value


def _not_in_future(value: date | None) -> date | None:
    if value is not None and value > datetime.now(timezone.utc).date():
        raise ValueError("Device purchaseDate cannot be in the future.")
    return value


class DeviceCreate(BaseModel):
    """Body of POST /devices. Field names follow the public camelCase JSON contract."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    device_model_id: str = Field(alias="deviceModelId")
    serial_number: str = Field(alias="serialNumber")
    asset_id: str = Field(alias="assetId")
    status: DeviceStatus
    condition: str
    notes: str | None = None
    purchase_date: date = Field(alias="purchaseDate")

    @field_validator("id", "device_model_id", "serial_number", "asset_id", "condition", "notes")
    @classmethod
    def _strip(cls, value, info):
        return _non_empty(value, info.field_name)

    @field_validator("purchase_date")
    @classmethod
    def _purchase_date(cls, value):
        return _not_in_future(value)


class DeviceUpdate(BaseModel):
    """Body of PUT /devices/{id}; omitted fields keep their current value."""
    model_config = ConfigDict(populate_by_name=True)

    device_model_id: str | None = Field(default=None, alias="deviceModelId")
    serial_number: str | None = Field(default=None, alias="serialNumber")
    asset_id: str | None = Field(default=None, alias="assetId")
    status: DeviceStatus | None = None
    condition: str | None = None
    notes: str | None = None
    purchase_date: date | None = Field(default=None, alias="purchaseDate")

    @field_validator("device_model_id", "serial_number", "asset_id", "condition", "notes")
    @classmethod
    def _strip(cls, value, info):
        return _non_empty(value, info.field_name)

    @field_validator("purchase_date")
    @classmethod
    def _purchase_date(cls, value):
        return _not_in_future(value)


class DeviceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    device_model_id: str = Field(serialization_alias="deviceModelId")
    serial_number: str = Field(serialization_alias="serialNumber")
    asset_id: str = Field(serialization_alias="assetId")
    status: DeviceStatus
    condition: str
    notes: str | None = None
    purchase_date: date = Field(serialization_alias="purchaseDate")
    updated_at: datetime = Field(serialization_alias="updatedAt")
