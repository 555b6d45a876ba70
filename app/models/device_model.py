import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.db.base_class import Base, CreatedAtMixin, JSONType


class DeviceCategory(str, enum.Enum):
    LAPTOP = "Laptop"
    TABLET = "Tablet"
    CAMERA = "Camera"
    MOBILE_PHONE = "MobilePhone"
    KEYBOARD = "Keyboard"
    MOUSE = "Mouse"
    CHARGER = "Charger"
    OTHER = "Other"


class DeviceModel(Base, CreatedAtMixin):
    """A rental model (brand + model) that devices are instances of."""

    __tablename__ = "device_models"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    brand: Mapped[str] = mapped_column(String(200))
    model: Mapped[str] = mapped_column(String(200))
    category: Mapped[DeviceCategory] = mapped_column(
        Enum(DeviceCategory, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
        index=True,
    )
    description: Mapped[str] = mapped_column(Text)
    specifications: Mapped[dict] = mapped_column(JSONType, default=dict)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "brand": self.brand,
            "model": self.model,
            "category": self.category.value,
            "description": self.description,
            "specifications": self.specifications or {},
            "imageUrl": self.image_url,
            "updatedAt": self.updated_at.isoformat(),
        }
