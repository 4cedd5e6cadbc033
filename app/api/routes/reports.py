"""
Device and group report routes
"""
import logging
from datetime import datetime
from typing import Callable, Optional
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.models import get_db, User, File
from app.schemas import DeviceReportRequest, GroupReportRequest, ReportResponse, ReportOptions, FileResponse
from app.core.security import get_current_user
from app.api.errors import resolve_range
from app.services import (
    report_service,
    storage_service,
    chat_service,
    ReportError,
    ReportNotFoundError,
    StorageError,
    UploadTimeoutError,
)
from app.services.report_service import (
    build_file_name,
    device_report_summary,
    group_report_summary,
    device_chat_message,
    group_chat_message,
)
from app.services.pdf_renderer import render_device_report, render_group_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])

DEFAULT_HISTORY_RANGE = "day"


def _time_range(options: ReportOptions):
    if options.history_range:
        return resolve_range(options.history_range)
    if options.include_history:
        return resolve_range(DEFAULT_HISTORY_RANGE)
    return None


async def _render(report: dict, report_type: str, fmt: str, renderer: Callable[[dict], bytes]) -> bytes:
    if fmt == "json":
        return report_service.to_json_bytes(report, report_type)
    return await run_in_threadpool(renderer, report)


async def _publish(
    db: AsyncSession,
    user: User,
    content: bytes,
    file_name: str
) -> File:
    """Upload the rendered report and record it as a File owned by the user"""
    try:
        url = await storage_service.upload_bytes(content, file_name)
    except UploadTimeoutError as e:
        raise HTTPException(status_code=status.HTTP_408_REQUEST_TIMEOUT, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    file = File(user_id=user.id, file_name=file_name, content_url=url)
    db.add(file)
    await db.commit()
    await db.refresh(file)
    return file


async def _attach_chat(
    db: AsyncSession,
    user: User,
    chat_name: str,
    file: File,
    opening_message: str
) -> Optional[dict]:
    """Create the follow-up chat; a failure here does not fail the report"""
    try:
        chat = await chat_service.create_report_chat(db, user.id, chat_name, file, opening_message)
        await db.commit()
    except Exception as e:
        logger.error(f"Could not create chat for report {file.file_name}: {e}", exc_info=True)
        await db.rollback()
        return None
    return {
        "chatId": chat.id,
        "chatName": chat.name,
        "fileId": file.id,
        "fileName": file.file_name,
        "fileUrl": file.content_url,
    }


@router.post("/device", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_device_report(
    request: DeviceReportRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Build, render and store a report for one device.
    """
    time_range = _time_range(request)
    try:
        report = await report_service.generate_device_report(
            db, request.device_id, current_user.id, request.include_history, time_range
        )
    except ReportNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ReportError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    name = report["device"]["name"]
    file_name = build_file_name("device", name, request.format)
    content = await _render(report, "device_report", request.format, render_device_report)
    file = await _publish(db, current_user, content, file_name)
    logger.info(f"Device report stored: {file_name}")

    chat = None
    if request.create_chat:
        chat_name = f"Analysis: {name} - {datetime.now().strftime('%Y-%m-%d')}"
        chat = await _attach_chat(db, current_user, chat_name, file, device_chat_message(report, request.format))

    return {
        "message": "Device report generated successfully",
        "fileId": file.id,
        "fileName": file.file_name,
        "fileUrl": file.content_url,
        "format": request.format,
        "report": device_report_summary(report),
        "chat": chat,
    }


@router.post("/group", response_model=ReportResponse, status_code=status.HTTP_201_CREATED)
async def create_group_report(
    request: GroupReportRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Build, render and store a combined report for every device in a group.
    """
    time_range = _time_range(request)
    try:
        report = await report_service.generate_group_report(
            db, request.group_id, current_user.id, request.include_history, time_range
        )
    except ReportNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ReportError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    name = report["group"]["name"]
    file_name = build_file_name("group", name, request.format)
    content = await _render(report, "group_report", request.format, render_group_report)
    file = await _publish(db, current_user, content, file_name)
    logger.info(f"Group report stored: {file_name}")

    chat = None
    if request.create_chat:
        chat_name = f"Group Analysis: {name} - {datetime.now().strftime('%Y-%m-%d')}"
        chat = await _attach_chat(db, current_user, chat_name, file, group_chat_message(report, request.format))

    return {
        "message": "Group report generated successfully",
        "fileId": file.id,
        "fileName": file.file_name,
        "fileUrl": file.content_url,
        "format": request.format,
        "report": group_report_summary(report),
        "chat": chat,
    }


@router.get("", response_model=list[FileResponse])
async def list_reports(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List the caller's stored reports, newest first.
    """
    result = await db.execute(
        select(File).where(
            File.user_id == current_user.id,
            File.file_name.contains("weather-report")
        ).order_by(File.created_at.desc())
    )
    return result.scalars().all()
