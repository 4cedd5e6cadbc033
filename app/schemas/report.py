"""
Pydantic schemas for report generation
"""
from typing import Literal, Optional
from uuid import UUID
from pydantic import BaseModel


class ReportOptions(BaseModel):
    include_history: bool = False
    history_range: Optional[str] = None
    format: Literal["pdf", "json"] = "pdf"
    create_chat: bool = True


class DeviceReportRequest(ReportOptions):
    device_id: UUID


class GroupReportRequest(ReportOptions):
    group_id: UUID


class ReportChatInfo(BaseModel):
    chatId: UUID
    chatName: str
    fileId: UUID
    fileName: str
    fileUrl: str


class ReportResponse(BaseModel):
    message: str
    fileId: UUID
    fileName: str
    fileUrl: str
    format: str
    report: dict
    chat: Optional[ReportChatInfo] = None
