"""
Device model for EcoWitt weather stations
"""
import uuid
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from app.models.database import Base


class DeviceStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class DeviceType(str, Enum):
    CONTROLLED_ENVIRONMENTS = "Controlled environments"
    PLANTS = "Plants"
    SOIL = "Soil"
    CLIMATE = "Climate"
    LARGE_SCALE_FARMING = "Large-scale farming"
    HOME_GARDENS = "home gardens"
    MANUAL = "Manual"
    AUTOMATED = "Automated"
    DELICATE = "Delicate"
    TOUGH = "Tough"
    OUTDOOR = "Outdoor"
    INDOOR = "Indoor"


class Device(Base):
    __tablename__ = "devices"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(100), nullable=False)

    # Vendor key material
    mac = Column(String(17), unique=True, index=True, nullable=False)
    application_key = Column(String(255), unique=True, nullable=False)
    api_key = Column(String(255), nullable=False)

    device_type = Column(SQLEnum(DeviceType), nullable=False)
    status = Column(SQLEnum(DeviceStatus), default=DeviceStatus.ACTIVE, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    owner = relationship("User", back_populates="devices")
    memberships = relationship("DeviceGroupMember", back_populates="device", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Device {self.name} - {self.mac}>"
