from types import SimpleNamespace
from uuid import UUID, uuid4

import pytest
from sqlalchemy.exc import OperationalError

from api.features.chat.exceptions import (
    ChatServiceError,
    MalformedReplyError,
    UpstreamUnavailableError,
)
from api.features.chat.service import ChatService
from api.features.conversation.exceptions import (
    ConversationNotFoundError,
    ConversationPersistenceError,
)
from api.features.conversation.service import ConversationService
from tests.conftest import TEST_MODEL, FakeChatClient, make_completion

DEFAULT_USER = UUID(int=0)


def build_chat_service(conversation_service, chat_client):
    return ChatService(
        conversation_service=conversation_service,
        chat_client=chat_client,
        model_name=TEST_MODEL,
        default_user_id=DEFAULT_USER,
    )


async def test_first_turn_creates_conversation_for_default_user(
    db_session, conversation_service, fake_chat_client
):
    service = build_chat_service(conversation_service, fake_chat_client)

    result = await service.chat("hello", db_session=db_session)

    assert result.response == "Hello from the assistant"
    assert result.model == TEST_MODEL
    listed = await conversation_service.list_for_user(DEFAULT_USER, db_session=db_session)
    assert [c.id for c in listed] == [result.conversation_id]
    assert listed[0].title == "hello"


async def test_only_the_current_message_is_sent_upstream(
    db_session, conversation_service, fake_chat_client
):
    service = build_chat_service(conversation_service, fake_chat_client)

    first = await service.chat("first", db_session=db_session)
    await service.chat("second", first.conversation_id, db_session=db_session)

    assert fake_chat_client.calls == [
        {"model": TEST_MODEL, "messages": [{"role": "user", "content": "first"}]},
        {"model": TEST_MODEL, "messages": [{"role": "user", "content": "second"}]},
    ]


async def test_continuation_appends_to_the_same_conversation(
    db_session, conversation_service, fake_chat_client
):
    service = build_chat_service(conversation_service, fake_chat_client)

    first = await service.chat("first", db_session=db_session)
    fake_chat_client.reply = "second reply"
    second = await service.chat("second", first.conversation_id, db_session=db_session)

    assert second.conversation_id == first.conversation_id
    detail = await conversation_service.get_by_id(
        first.conversation_id, db_session=db_session
    )
    assert [(m.role, m.content) for m in detail.messages] == [
        ("user", "first"),
        ("assistant", "Hello from the assistant"),
        ("user", "second"),
        ("assistant", "second reply"),
    ]


async def test_upstream_failure_on_new_conversation_leaves_nothing_behind(
    db_session, conversation_service, failing_chat_client
):
    service = build_chat_service(conversation_service, failing_chat_client)

    with pytest.raises(UpstreamUnavailableError):
        await service.chat("hello", db_session=db_session)

    assert await conversation_service.list_for_user(DEFAULT_USER, db_session=db_session) == []


async def test_upstream_failure_leaves_existing_conversation_unchanged(
    db_session, conversation_service, fake_chat_client
):
    service = build_chat_service(conversation_service, fake_chat_client)
    first = await service.chat("hello", db_session=db_session)

    fake_chat_client.reply = UpstreamUnavailableError("Rate limited")
    with pytest.raises(UpstreamUnavailableError):
        await service.chat("again", first.conversation_id, db_session=db_session)

    detail = await conversation_service.get_by_id(
        first.conversation_id, db_session=db_session
    )
    assert [m.content for m in detail.messages] == ["hello", "Hello from the assistant"]


@pytest.mark.parametrize(
    "completion",
    [
        None,
        SimpleNamespace(choices=[]),
        SimpleNamespace(choices=None),
        SimpleNamespace(choices=[SimpleNamespace(message=None)]),
        make_completion(content=None),
    ],
)
async def test_malformed_reply_is_rejected_and_not_persisted(
    db_session, conversation_service, completion
):
    service = build_chat_service(conversation_service, FakeChatClient(reply=completion))

    with pytest.raises(MalformedReplyError) as exc_info:
        await service.chat("hello", db_session=db_session)

    assert exc_info.value.details == {"model": TEST_MODEL}
    assert await conversation_service.list_for_user(DEFAULT_USER, db_session=db_session) == []


async def test_empty_reply_content_is_accepted(db_session, conversation_service):
    service = build_chat_service(conversation_service, FakeChatClient(reply=""))

    result = await service.chat("hello", db_session=db_session)

    assert result.response == ""


async def test_unknown_conversation_raises_not_found(
    db_session, conversation_service, fake_chat_client
):
    service = build_chat_service(conversation_service, fake_chat_client)

    with pytest.raises(ConversationNotFoundError):
        await service.chat("hello", uuid4(), db_session=db_session)


async def test_unexpected_failure_is_wrapped(db_session, conversation_service):
    service = build_chat_service(
        conversation_service, FakeChatClient(reply=RuntimeError("boom"))
    )

    with pytest.raises(ChatServiceError) as exc_info:
        await service.chat("hello", db_session=db_session)

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert await conversation_service.list_for_user(DEFAULT_USER, db_session=db_session) == []


async def test_store_failure_during_turn_is_a_persistence_error(
    db_session, conversation_service, fake_chat_client, monkeypatch
):
    async def failing_append(self, *args, **kwargs):
        raise OperationalError("INSERT INTO messages", {}, Exception("database is locked"))

    monkeypatch.setattr(ConversationService, "append_message_pair", failing_append)
    service = build_chat_service(conversation_service, fake_chat_client)

    with pytest.raises(ConversationPersistenceError) as exc_info:
        await service.chat("hello", db_session=db_session)

    assert isinstance(exc_info.value.__cause__, OperationalError)
    monkeypatch.undo()
    assert await conversation_service.list_for_user(DEFAULT_USER, db_session=db_session) == []
