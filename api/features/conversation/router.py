"""Router for the Conversation feature."""
from typing import List, Optional
from uuid import UUID

from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.di.container import ApplicationContainer as DependencyContainer
from api.features.conversation.controller import ConversationController
from api.features.conversation.dtos import (
    ConversationDetailResponse,
    ConversationSummaryResponse,
)
from api.shared.db import get_db_session
from api.shared.dtos import ErrorResponse

router = APIRouter()


@router.get(
    "",
    response_model=List[ConversationSummaryResponse],
    responses={500: {"model": ErrorResponse}},
    summary="List user conversations",
)
@inject
async def list_conversations(
    user_id: Optional[UUID] = Query(
        None,
        alias="userId",
        description="User UUID; defaults to the default user",
    ),
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """Conversations ordered by most recently updated."""
    return await controller.list_conversations(user_id=user_id, db_session=db_session)


@router.get(
    "/{conversation_id}",
    response_model=ConversationDetailResponse,
    responses={404: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Get conversation by ID",
)
@inject
async def get_conversation(
    conversation_id: UUID,
    controller: ConversationController = Depends(
        Provide[DependencyContainer.controllers.conversation_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    """A complete conversation with all messages in chronological order."""
    return await controller.get_conversation(
        conversation_id=conversation_id, db_session=db_session
    )
