"""
Chat routes
"""
import logging
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status, Response
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import get_db, User, Chat
from app.schemas import ChatCreate, ChatUpdate, ChatResponse, MessageResponse, AIQuestionRequest
from app.core.security import get_current_user
from app.services import chat_service, AIServiceError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chats", tags=["Chats"])


async def get_owned_chat(
    chat_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Chat:
    """Dependency resolving a chat owned by the caller"""
    chat = await chat_service.get_user_chat(db, chat_id, current_user.id)
    if not chat:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Chat not found"
        )
    return chat


@router.get("", response_model=list[ChatResponse])
async def list_chats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    List the caller's chats, oldest first.
    """
    return await chat_service.list_user_chats(db, current_user.id)


@router.post("", response_model=ChatResponse, status_code=status.HTTP_201_CREATED)
async def create_chat(
    chat_data: ChatCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Start a new chat.
    """
    chat = await chat_service.create_chat(db, current_user.id, chat_data.name)
    await db.commit()
    return chat


@router.put("/{chat_id}", response_model=ChatResponse)
async def rename_chat(
    chat_data: ChatUpdate,
    chat: Chat = Depends(get_owned_chat),
    db: AsyncSession = Depends(get_db)
):
    chat.name = chat_data.name
    await db.commit()
    await db.refresh(chat)
    return chat


@router.delete("/{chat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_chat(
    chat: Chat = Depends(get_owned_chat),
    db: AsyncSession = Depends(get_db)
):
    """
    Delete a chat together with its messages.
    """
    await db.delete(chat)
    await db.commit()
    logger.info(f"Chat deleted: {chat.id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{chat_id}/messages", response_model=list[MessageResponse])
async def get_chat_messages(
    chat: Chat = Depends(get_owned_chat),
    db: AsyncSession = Depends(get_db)
):
    """
    Messages of a chat in the order they were written.
    """
    return await chat_service.get_messages(db, chat.id)


@router.post("/{chat_id}/ai-response", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def generate_ai_response(
    request: AIQuestionRequest,
    chat: Chat = Depends(get_owned_chat),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Ask the assistant an explicit question in the context of this chat.
    Only the answer is stored.
    """
    file = None
    if request.file_id:
        file = await chat_service.get_user_file(db, request.file_id, current_user.id)
        if not file:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="File not found"
            )

    history = await chat_service.get_messages(db, chat.id)
    try:
        message = await chat_service.answer(
            db, chat, current_user.id, request.question, history, file, request.language
        )
    except AIServiceError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    await db.commit()
    return message
