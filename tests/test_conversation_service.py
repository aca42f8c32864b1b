from datetime import timedelta
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import OperationalError

from api.features.conversation.entities.conversation import MessageRole
from api.features.conversation.exceptions import (
    ConversationNotFoundError,
    ConversationPersistenceError,
)
from api.features.conversation.repository import ConversationRepository
from api.shared.entities.base import as_utc, utc_now
from api.shared.transaction import transaction
from api.shared.utils import DEFAULT_TITLE

USER_ID = UUID("11111111-2222-3333-4444-555555555555")


async def fresh_detail(db_resource, service, public_id):
    session = db_resource.get_session()
    try:
        return await service.get_by_id(public_id, db_session=session)
    finally:
        await session.close()


async def test_create_conversation_is_empty_and_untitled(
    db_resource, db_session, conversation_service
):
    conversation = await conversation_service.create_conversation(
        USER_ID, db_session=db_session
    )

    assert isinstance(conversation.public_id, UUID)
    assert conversation.title is None
    assert conversation.updated_at == conversation.created_at

    detail = await fresh_detail(db_resource, conversation_service, conversation.public_id)
    assert detail.user_id == USER_ID
    assert detail.messages == []


async def test_append_message_pair_stores_user_then_assistant(
    db_resource, db_session, conversation_service
):
    conversation = await conversation_service.create_conversation(
        USER_ID, db_session=db_session
    )

    await conversation_service.append_message_pair(
        conversation.public_id, "hello", "hi, how can I help?", db_session=db_session
    )

    detail = await fresh_detail(db_resource, conversation_service, conversation.public_id)
    assert [(m.role, m.content) for m in detail.messages] == [
        ("user", "hello"),
        ("assistant", "hi, how can I help?"),
    ]
    assert detail.messages[0].timestamp <= detail.messages[1].timestamp
    assert detail.title == "hello"
    assert as_utc(detail.updated_at) >= as_utc(detail.created_at)


async def test_second_turn_appends_two_and_keeps_title(
    db_resource, db_session, conversation_service
):
    conversation = await conversation_service.create_conversation(
        USER_ID, db_session=db_session
    )
    await conversation_service.append_message_pair(
        conversation.public_id, "first question", "first answer", db_session=db_session
    )
    before = await fresh_detail(db_resource, conversation_service, conversation.public_id)

    await conversation_service.append_message_pair(
        conversation.public_id, "second question", "second answer", db_session=db_session
    )
    after = await fresh_detail(db_resource, conversation_service, conversation.public_id)

    assert len(after.messages) == len(before.messages) + 2
    assert [m.content for m in after.messages] == [
        "first question",
        "first answer",
        "second question",
        "second answer",
    ]
    assert after.title == "first question"
    assert as_utc(after.updated_at) >= as_utc(before.updated_at)


async def test_blank_first_message_gets_default_title(
    db_resource, db_session, conversation_service
):
    conversation = await conversation_service.create_conversation(
        USER_ID, db_session=db_session
    )
    await conversation_service.append_message_pair(
        conversation.public_id, "\x07\x00", "?", db_session=db_session
    )

    detail = await fresh_detail(db_resource, conversation_service, conversation.public_id)
    assert detail.title == DEFAULT_TITLE


async def test_append_to_unknown_conversation_raises_not_found(
    db_session, conversation_service
):
    with pytest.raises(ConversationNotFoundError) as exc_info:
        await conversation_service.append_message_pair(
            uuid4(), "hello", "hi", db_session=db_session
        )

    assert exc_info.value.resource == "Conversation"


async def test_get_unknown_conversation_raises_not_found(db_session, conversation_service):
    with pytest.raises(ConversationNotFoundError):
        await conversation_service.get_by_id(uuid4(), db_session=db_session)


async def test_messages_with_equal_timestamps_come_back_in_insertion_order(
    db_resource, db_session, conversation_service
):
    conversation = await conversation_service.create_conversation(
        USER_ID, db_session=db_session
    )
    same_instant = utc_now()
    async with transaction(db_session):
        repository = ConversationRepository(db_session)
        for i in range(5):
            role = MessageRole.USER if i % 2 == 0 else MessageRole.ASSISTANT
            repository.add_message(conversation, role, f"message {i}", same_instant)
        await repository.save(conversation)

    detail = await fresh_detail(db_resource, conversation_service, conversation.public_id)
    assert [m.content for m in detail.messages] == [f"message {i}" for i in range(5)]


async def test_messages_are_ordered_by_timestamp_not_insertion(
    db_resource, db_session, conversation_service
):
    conversation = await conversation_service.create_conversation(
        USER_ID, db_session=db_session
    )
    now = utc_now()
    async with transaction(db_session):
        repository = ConversationRepository(db_session)
        repository.add_message(
            conversation, MessageRole.ASSISTANT, "later", now + timedelta(seconds=1)
        )
        repository.add_message(conversation, MessageRole.USER, "earlier", now)
        await repository.save(conversation)

    detail = await fresh_detail(db_resource, conversation_service, conversation.public_id)
    assert [m.content for m in detail.messages] == ["earlier", "later"]


async def test_list_for_user_orders_by_most_recent_update(
    db_session, conversation_service
):
    first = await conversation_service.create_conversation(USER_ID, db_session=db_session)
    second = await conversation_service.create_conversation(USER_ID, db_session=db_session)
    await conversation_service.create_conversation(uuid4(), db_session=db_session)

    listed = await conversation_service.list_for_user(USER_ID, db_session=db_session)
    assert [c.id for c in listed] == [second.public_id, first.public_id]

    await conversation_service.append_message_pair(
        first.public_id, "bump", "bumped", db_session=db_session
    )

    listed = await conversation_service.list_for_user(USER_ID, db_session=db_session)
    assert [c.id for c in listed] == [first.public_id, second.public_id]
    assert listed[0].title == "bump"
    assert listed[1].title is None


async def test_list_for_user_without_conversations_is_empty(
    db_session, conversation_service
):
    assert await conversation_service.list_for_user(uuid4(), db_session=db_session) == []


async def test_database_failure_is_wrapped_and_rolled_back(
    db_resource, db_session, conversation_service, monkeypatch
):
    conversation = await conversation_service.create_conversation(
        USER_ID, db_session=db_session
    )
    # The rollback expires the instance, so keep the id as a plain value.
    public_id = conversation.public_id

    async def broken_save(self, conversation):
        raise OperationalError("UPDATE conversations", {}, Exception("disk I/O error"))

    monkeypatch.setattr(ConversationRepository, "save", broken_save)

    with pytest.raises(ConversationPersistenceError):
        await conversation_service.append_message_pair(
            public_id, "hello", "hi", db_session=db_session
        )

    monkeypatch.undo()
    detail = await fresh_detail(db_resource, conversation_service, public_id)
    assert detail.messages == []
    assert detail.title is None

    await conversation_service.append_message_pair(
        public_id, "retry", "works now", db_session=db_session
    )
    detail = await fresh_detail(db_resource, conversation_service, public_id)
    assert [m.content for m in detail.messages] == ["retry", "works now"]
    assert detail.title == "retry"
