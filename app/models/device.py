import enum
from datetime import date, datetime

from sqlalchemy import Date, DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base, CreatedAtMixin


class DeviceStatus(str, enum.Enum):
    AVAILABLE = "Available"
    UNAVAILABLE = "Unavailable"
    MAINTENANCE = "Maintenance"
    RETIRED = "Retired"
    LOST = "Lost"


class Device(Base, CreatedAtMixin):
    """A physical loanable unit.

    ``status`` is a cached copy: the availability service owns the real value and the
    catalogue converges to it through reservation and availability events.
    """

    __tablename__ = "devices"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    device_model_id: Mapped[str] = mapped_column(String(64), index=True)
    serial_number: Mapped[str] = mapped_column(String(200))
    asset_id: Mapped[str] = mapped_column(String(200))
    status: Mapped[DeviceStatus] = mapped_column(
        Enum(DeviceStatus, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        index=True,
    )
    condition: Mapped[str] = mapped_column(String(200))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    purchase_date: Mapped[date] = mapped_column(Date)
    # Domain timestamp: only changes when the device itself changes
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "deviceModelId": self.device_model_id,
            "serialNumber": self.serial_number,
            "assetId": self.asset_id,
            "status": self.status.value,
            "condition": self.condition,
            "notes": self.notes,
            "purchaseDate": self.purchase_date.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }
