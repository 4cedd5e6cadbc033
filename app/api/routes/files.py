"""
Uploaded file routes and PDF text extraction
"""
import logging
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status, Response, UploadFile, Form
from fastapi import File as FileField
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import get_db, User, File
from app.schemas import FileResponse, FileUpdate, ReadPdfResponse
from app.core.security import get_current_user
from app.services import (
    chat_service,
    pdf_reader,
    storage_service,
    PDFReadError,
    StorageError,
    UploadTimeoutError,
)
from app.services.pdf_reader import MAX_PDF_BYTES, text_summary

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])


async def get_owned_file(
    file_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> File:
    """Dependency resolving a file owned by the caller"""
    file = await chat_service.get_user_file(db, file_id, current_user.id)
    if not file:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found"
        )
    return file


@router.post("/files", response_model=FileResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = FileField(...),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Upload a PDF to object storage and register it for the caller.
    """
    if file.content_type != "application/pdf":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only PDF files are allowed"
        )

    content = await file.read()
    if len(content) > MAX_PDF_BYTES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File size exceeds 10MB limit"
        )

    file_name = file.filename or "document.pdf"
    try:
        url = await storage_service.upload_bytes(content, file_name)
    except UploadTimeoutError as e:
        raise HTTPException(status_code=status.HTTP_408_REQUEST_TIMEOUT, detail=str(e))
    except StorageError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    stored = File(user_id=current_user.id, file_name=file_name, content_url=url)
    db.add(stored)
    await db.commit()
    await db.refresh(stored)

    logger.info(f"File uploaded: {file_name} by {current_user.email}")
    return stored


@router.get("/files", response_model=list[FileResponse])
async def list_files(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    result = await db.execute(
        select(File).where(File.user_id == current_user.id).order_by(File.created_at.desc())
    )
    return result.scalars().all()


@router.put("/files/{file_id}", response_model=FileResponse)
async def rename_file(
    file_data: FileUpdate,
    file: File = Depends(get_owned_file),
    db: AsyncSession = Depends(get_db)
):
    """
    Rename a stored file. The storage URL is unchanged.
    """
    file.file_name = file_data.file_name
    await db.commit()
    await db.refresh(file)
    return file


@router.delete("/files/{file_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_file(
    file: File = Depends(get_owned_file),
    db: AsyncSession = Depends(get_db)
):
    await db.delete(file)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/read-pdf", response_model=ReadPdfResponse)
async def read_pdf(
    file: Optional[UploadFile] = FileField(None),
    file_id: Optional[UUID] = Form(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Extract the text of an uploaded PDF or of one of the caller's stored files.
    """
    if (file is None) == (file_id is None):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Provide exactly one of file or file_id"
        )

    try:
        if file is not None:
            if file.content_type != "application/pdf":
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Only PDF files are allowed"
                )
            content = await file.read()
            if len(content) > MAX_PDF_BYTES:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="PDF file size exceeds 10MB limit"
                )
            text = await pdf_reader.extract_text(content)
        else:
            stored = await chat_service.get_user_file(db, file_id, current_user.id)
            if not stored:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND,
                    detail="File not found"
                )
            text = await pdf_reader.read_url(stored.content_url)
    except PDFReadError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return text_summary(text)
