from unittest.mock import AsyncMock

import pytest

from reengagement.models.domain.reengagement_domain import ChatOrder
from reengagement.repositories.reengagement_repository import QueryError
from reengagement.services.chat_relevance_service import ChatRelevanceResolver, NoChatsFoundError


@pytest.mark.asyncio
async def test_most_recent_message_wins(fake_store):
    fake_store.add_chat("user-1", "old", "Old Friend", last_message_days=20, created_days=1)
    fake_store.add_chat("user-1", "recent", "Aria", last_message_days=2, created_days=40)
    fake_store.add_chat("user-1", "middle", "Nova", last_message_days=5, created_days=10)

    chat = await ChatRelevanceResolver(fake_store).resolve("user-1")

    assert chat.id == "recent"


@pytest.mark.asyncio
async def test_chats_without_messages_lose_to_any_chat_with_messages(fake_store):
    fake_store.add_chat("user-1", "brand-new", "Fresh", last_message_days=None, created_days=0.5)
    fake_store.add_chat("user-1", "talked", "Aria", last_message_days=60, created_days=90)

    chat = await ChatRelevanceResolver(fake_store).resolve("user-1")

    assert chat.id == "talked"


@pytest.mark.asyncio
async def test_falls_back_to_newest_created_chat(fake_store):
    fake_store.add_chat("user-1", "older", "Sage", created_days=14)
    fake_store.add_chat("user-1", "newer", "Nova", created_days=3)

    chat = await ChatRelevanceResolver(fake_store).resolve("user-1")

    assert chat.id == "newer"


@pytest.mark.asyncio
async def test_tie_on_message_time_breaks_on_chat_id(fake_store):
    fake_store.add_chat("user-1", "chat-a", "Aria", last_message_days=2)
    fake_store.add_chat("user-1", "chat-b", "Nova", last_message_days=2)

    resolver = ChatRelevanceResolver(fake_store)
    first = await resolver.resolve("user-1")
    second = await resolver.resolve("user-1")

    assert first.id == "chat-b"
    assert second.id == first.id


@pytest.mark.asyncio
async def test_no_chats_raises_non_recoverable_error(fake_store):
    with pytest.raises(NoChatsFoundError) as exc_info:
        await ChatRelevanceResolver(fake_store).resolve("user-1")

    assert str(exc_info.value) == "No chats found"
    assert exc_info.value.recoverable is False


@pytest.mark.asyncio
async def test_query_error_propagates(fake_store):
    fake_store.failing_chat_users.add("user-1")

    with pytest.raises(QueryError):
        await ChatRelevanceResolver(fake_store).resolve("user-1")


@pytest.mark.asyncio
async def test_second_query_skipped_when_first_has_activity(fake_store):
    chat = fake_store.add_chat("user-1", "chat-1", "Aria", last_message_days=1)
    repository = AsyncMock()
    repository.select_chats_by_user.return_value = [chat]

    result = await ChatRelevanceResolver(repository).resolve("user-1")

    assert result is chat
    repository.select_chats_by_user.assert_awaited_once_with(
        "user-1", order_by=ChatOrder.LAST_MESSAGE_TIME, limit=1
    )
