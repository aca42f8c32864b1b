"""Controller for the Chat feature."""
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.dtos import ChatRequest, ChatResponse
from api.features.chat.service import ChatService

logger = structlog.get_logger("chatbot.chat.controller")


class ChatController:
    """Controller for chat turns."""

    def __init__(self, chat_service: ChatService):
        self.chat_service = chat_service

    async def chat(
        self, request: ChatRequest, *, db_session: AsyncSession
    ) -> ChatResponse:
        logger.info(
            "chat_request_received",
            conversation_id=str(request.conversation_id)
            if request.conversation_id
            else None,
        )

        result = await self.chat_service.chat(
            request.message, request.conversation_id, db_session=db_session
        )

        logger.info(
            "chat_request_processed", conversation_id=str(result.conversation_id)
        )
        return ChatResponse(
            response=result.response,
            model=result.model,
            conversation_id=result.conversation_id,
        )
