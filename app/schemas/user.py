"""
Pydantic schemas for User and auth API
"""
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, EmailStr, Field
from app.models.user import UserStatus


# Base schemas
class UserBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr


# Create schemas
class UserCreate(UserBase):
    password: str = Field(..., min_length=8, max_length=128)
    country_id: Optional[UUID] = None


# Update schemas
class ProfileUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    country_id: Optional[UUID] = None
    image_url: Optional[str] = Field(None, max_length=500)


# Response schemas
class UserResponse(UserBase):
    id: UUID
    role_id: UUID
    country_id: Optional[UUID] = None
    image_url: Optional[str] = None
    status: UserStatus
    email_verified: bool
    is_admin: bool
    created_at: datetime

    class Config:
        from_attributes = True


class UserListResponse(BaseModel):
    users: list[UserResponse]
    total: int


# Auth schemas
class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class DetailMessage(BaseModel):
    message: str


class EmailRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, max_length=128)


class TokenMessageResponse(BaseModel):
    message: str
    access_token: str
    token_type: str = "bearer"


class ResetTokenStatus(BaseModel):
    valid: bool
    email: Optional[str] = None
    expires_at: Optional[datetime] = None


# Country schemas
class CountryCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    code: Optional[str] = Field(None, min_length=2, max_length=3)


class CountryResponse(BaseModel):
    id: UUID
    name: str
    code: Optional[str] = None

    class Config:
        from_attributes = True
