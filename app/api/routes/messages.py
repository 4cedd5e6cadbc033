"""
Message routes
"""
import logging
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import get_db, User, Message, SenderType
from app.schemas import MessageCreate, MessageUpdate, MessageResponse, MessageExchangeResponse
from app.core.security import get_current_user
from app.services import chat_service, AIServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["Messages"])


async def get_owned_message(
    message_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Message:
    """Dependency resolving a message in one of the caller's chats"""
    message = await chat_service.get_user_message(db, message_id, current_user.id)
    if not message:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Message not found"
        )
    return message


@router.post("", response_model=MessageExchangeResponse, status_code=status.HTTP_201_CREATED)
async def post_message(
    message_data: MessageCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Send a message and receive the assistant's reply.

    When a file is attached its PDF text is used as context. If the model
    call fails the user message is kept and 502 is returned.
    """
    chat = await chat_service.get_user_chat(db, message_data.chat_id, current_user.id)
    if not chat:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Chat not found"
        )

    file = None
    if message_data.file_id:
        file = await chat_service.get_user_file(db, message_data.file_id, current_user.id)
        if not file:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="File not found"
            )

    try:
        user_message, ai_message = await chat_service.post_message(
            db,
            chat,
            current_user.id,
            message_data.content,
            file,
            message_data.language
        )
    except AIServiceError as e:
        logger.error(f"AI reply for chat {chat.id} failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    await db.commit()
    return {"user_message": user_message, "ai_message": ai_message}


@router.put("/{message_id}", response_model=MessageResponse)
async def update_message(
    message_data: MessageUpdate,
    message: Message = Depends(get_owned_message),
    db: AsyncSession = Depends(get_db)
):
    """
    Edit the text of a message the user wrote.
    """
    if message.sendertype != SenderType.USER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only user messages can be edited"
        )
    message.content = message_data.content
    await db.commit()
    await db.refresh(message)
    return message


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message: Message = Depends(get_owned_message),
    db: AsyncSession = Depends(get_db)
):
    await db.delete(message)
    await db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
