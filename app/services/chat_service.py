"""
Chats, messages and the question/answer flow with the AI assistant
"""
import logging
from typing import Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from app.models import Chat, Message, SenderType, File
from app.services.ai_service import ai_service
from app.services.device_service import device_service
from app.services.ecowitt_service import ecowitt_service
from app.services.extractors import normalize_realtime
from app.services.pdf_reader import pdf_reader

logger = logging.getLogger(__name__)

DEVICE_KEYWORDS = (
    "device", "dispositivo", "sensor", "station", "estación", "ecowitt",
    "temperature", "temperatura", "humidity", "humedad", "pressure", "presión",
    "weather", "clima",
)


def mentions_devices(question: str) -> bool:
    text = (question or "").lower()
    return any(keyword in text for keyword in DEVICE_KEYWORDS)


def _reading_line(label: str, reading: Optional[dict]) -> str:
    if not reading:
        return ""
    unit = f" {reading['unit']}" if reading.get("unit") else ""
    return f"- {label}: {reading['value']}{unit}\n"


class ChatService:
    """Chat persistence plus the AI reply pipeline"""

    async def get_user_chat(self, db: AsyncSession, chat_id: UUID, user_id: UUID) -> Optional[Chat]:
        result = await db.execute(select(Chat).where(Chat.id == chat_id, Chat.user_id == user_id))
        return result.scalar_one_or_none()

    async def list_user_chats(self, db: AsyncSession, user_id: UUID) -> list[Chat]:
        result = await db.execute(
            select(Chat).where(Chat.user_id == user_id).order_by(Chat.created_at)
        )
        return list(result.scalars().all())

    async def create_chat(self, db: AsyncSession, user_id: UUID, name: str) -> Chat:
        chat = Chat(user_id=user_id, name=name)
        db.add(chat)
        await db.flush()
        await db.refresh(chat)
        return chat

    async def get_messages(self, db: AsyncSession, chat_id: UUID) -> list[Message]:
        result = await db.execute(
            select(Message).where(Message.chat_id == chat_id).order_by(Message.created_at)
        )
        return list(result.scalars().all())

    async def get_user_message(self, db: AsyncSession, message_id: UUID, user_id: UUID) -> Optional[Message]:
        result = await db.execute(
            select(Message).join(Chat, Message.chat_id == Chat.id).where(
                Message.id == message_id, Chat.user_id == user_id
            )
        )
        return result.scalar_one_or_none()

    async def get_user_file(self, db: AsyncSession, file_id: UUID, user_id: UUID) -> Optional[File]:
        result = await db.execute(select(File).where(File.id == file_id, File.user_id == user_id))
        return result.scalar_one_or_none()

    async def add_message(
        self,
        db: AsyncSession,
        chat_id: UUID,
        sendertype: SenderType,
        content: str,
        file_id: Optional[UUID] = None
    ) -> Message:
        message = Message(chat_id=chat_id, sendertype=sendertype, content=content, file_id=file_id)
        db.add(message)
        await db.flush()
        await db.refresh(message)
        return message

    async def document_text(self, file: Optional[File]) -> str:
        """Extracted PDF text for a stored file; empty on any failure"""
        if file is None or not file.content_url:
            return ""
        try:
            text = await pdf_reader.read_url(file.content_url)
        except Exception as e:
            logger.error(f"Could not read PDF for file {file.id}: {e}", exc_info=True)
            return ""
        logger.info(f"PDF for file {file.id} processed ({len(text)} chars)")
        return text

    async def device_context(self, db: AsyncSession, user_id: UUID) -> str:
        """Current readings for the user's devices, as prompt text"""
        devices = await device_service.list_user_devices(db, user_id)
        if not devices:
            return ""
        results = await ecowitt_service.get_multiple_realtime(devices)

        context = ""
        for device in devices:
            payload = results.get(device.mac) or {}
            online = "error" not in payload and payload.get("code") == 0
            context += f"\n**Device: {device.name}**\n- ID: {device.id}\n- MAC: {device.mac}\n"
            context += f"- Type: {device.device_type.value}\n- Status: {'online' if online else 'offline'}\n"
            if online:
                readings = normalize_realtime(payload)
                context += _reading_line("Temperature", readings["temperature"])
                context += _reading_line("Humidity", readings["humidity"])
                context += _reading_line("Pressure", readings["pressure"])
                context += _reading_line("Soil moisture", readings["soilMoisture"])
        return context

    async def answer(
        self,
        db: AsyncSession,
        chat: Chat,
        user_id: UUID,
        question: str,
        history: list[Message],
        file: Optional[File] = None,
        language: Optional[str] = None
    ) -> Message:
        """Ask the model and persist its reply. Raises AIServiceError on failure."""
        document = await self.document_text(file)

        devices = ""
        if mentions_devices(question):
            devices = await self.device_context(db, user_id)

        reply = await ai_service.generate_response(
            question,
            history=history,
            document_text=document,
            language=language,
            device_context=devices
        )
        return await self.add_message(
            db, chat.id, SenderType.AI, reply, file_id=file.id if file else None
        )

    async def post_message(
        self,
        db: AsyncSession,
        chat: Chat,
        user_id: UUID,
        content: str,
        file: Optional[File] = None,
        language: Optional[str] = None
    ) -> tuple[Message, Message]:
        """
        Persist the user's message, then generate and persist the AI reply.
        The user message is committed before the model is called so it
        survives a failed completion.
        """
        history = await self.get_messages(db, chat.id)
        user_message = await self.add_message(
            db, chat.id, SenderType.USER, content, file_id=file.id if file else None
        )
        await db.commit()

        ai_message = await self.answer(db, chat, user_id, content, history, file, language)
        return user_message, ai_message

    async def create_report_chat(
        self,
        db: AsyncSession,
        user_id: UUID,
        name: str,
        file: File,
        opening_message: str
    ) -> Chat:
        """Chat seeded with an AI message that references a generated report"""
        chat = await self.create_chat(db, user_id, name)
        await self.add_message(db, chat.id, SenderType.AI, opening_message, file_id=file.id)
        logger.info(f"Report chat created: {name}")
        return chat


chat_service = ChatService()
