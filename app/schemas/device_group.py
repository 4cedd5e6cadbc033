"""
Pydantic schemas for device groups and comparisons
"""
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field


class GroupCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    device_ids: list[UUID] = Field(..., min_length=1)


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    # When present the membership set is replaced wholesale
    device_ids: Optional[list[UUID]] = None


class GroupResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    description: Optional[str] = None
    device_ids: list[UUID]
    device_count: int
    created_at: datetime
    updated_at: datetime


class CompareRequest(BaseModel):
    device_ids: list[UUID] = Field(..., min_length=1)
    rangeType: Optional[str] = None
