"""
Pydantic schemas for Device API
"""
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator
from app.models.device import DeviceStatus, DeviceType
from app.services.ecowitt_params import is_valid_mac, normalize_mac


def _check_mac(v):
    if v is None:
        return v
    if not is_valid_mac(v):
        raise ValueError("Invalid MAC address format")
    return normalize_mac(v)


# Base schemas
class DeviceBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    mac: str
    device_type: DeviceType
    status: DeviceStatus = DeviceStatus.ACTIVE

    @field_validator("mac")
    @classmethod
    def validate_mac(cls, v):
        return _check_mac(v)


# Create schemas
class DeviceCreate(DeviceBase):
    application_key: str = Field(..., min_length=1, max_length=255)
    api_key: str = Field(..., min_length=1, max_length=255)


# Update schemas
class DeviceUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    mac: Optional[str] = None
    application_key: Optional[str] = Field(None, min_length=1, max_length=255)
    api_key: Optional[str] = Field(None, min_length=1, max_length=255)
    device_type: Optional[DeviceType] = None
    status: Optional[DeviceStatus] = None

    @field_validator("mac")
    @classmethod
    def validate_mac(cls, v):
        return _check_mac(v)


# Response schemas
class DeviceResponse(DeviceBase):
    id: UUID
    user_id: UUID
    application_key: str
    created_at: datetime

    class Config:
        from_attributes = True


class DeviceListResponse(BaseModel):
    devices: list[DeviceResponse]
    total: int
