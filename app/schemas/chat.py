"""
Pydantic schemas for chats, messages and files
"""
from datetime import datetime
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field
from app.models.chat import SenderType


class ChatCreate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)


class ChatUpdate(BaseModel):
    name: str = Field(..., min_length=2, max_length=255)


class ChatResponse(BaseModel):
    id: UUID
    user_id: UUID
    name: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class MessageCreate(BaseModel):
    chat_id: UUID
    content: str = Field(..., min_length=1)
    file_id: Optional[UUID] = None
    language: Optional[str] = Field(None, pattern="^(es|en)$")


class MessageUpdate(BaseModel):
    content: str = Field(..., min_length=1)


class MessageResponse(BaseModel):
    id: UUID
    chat_id: UUID
    file_id: Optional[UUID] = None
    sendertype: SenderType
    content: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class MessageExchangeResponse(BaseModel):
    user_message: MessageResponse
    ai_message: MessageResponse


class AIQuestionRequest(BaseModel):
    question: str = Field(..., min_length=1)
    file_id: Optional[UUID] = None
    language: Optional[str] = Field(None, pattern="^(es|en)$")


class FileResponse(BaseModel):
    id: UUID
    user_id: UUID
    file_name: str
    content_url: str
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class FileUpdate(BaseModel):
    file_name: str = Field(..., min_length=1, max_length=255)


class ReadPdfResponse(BaseModel):
    text: str
    word_count: int
    line_count: int
