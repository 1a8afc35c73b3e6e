"""
Chat relevance resolution - picks the conversation a notification refers to.

Most recent message activity wins; users whose chats have no messages yet
fall back to the most recently created chat. Ties break on chat id.
"""

from reengagement.infrastructure.observability.logging import get_logger
from reengagement.models.domain.reengagement_domain import Chat, ChatOrder
from reengagement.repositories.reengagement_repository import ReEngagementRepository

logger = get_logger(__name__)


class NoChatsFoundError(Exception):
    """The user has no chats to reference; not worth retrying."""

    recoverable = False

    def __init__(self, user_id: str):
        super().__init__("No chats found")
        self.user_id = user_id


class ChatRelevanceResolver:
    def __init__(self, repository: ReEngagementRepository | None = None):
        self.repository = repository or ReEngagementRepository()

    async def resolve(self, user_id: str) -> Chat:
        """
        Return the single most relevant chat for a user.

        Raises:
            NoChatsFoundError: If the user has no chats at all
            QueryError: If either chat query fails
        """
        chats = await self.repository.select_chats_by_user(
            user_id, order_by=ChatOrder.LAST_MESSAGE_TIME, limit=1
        )
        if chats and chats[0].last_message_time is not None:
            return chats[0]

        # No chat has message activity yet
        recent_chats = await self.repository.select_chats_by_user(
            user_id, order_by=ChatOrder.CREATED_AT, limit=1
        )
        if not recent_chats:
            raise NoChatsFoundError(user_id)

        logger.debug(
            "No chat with messages, using newest chat",
            user_id=user_id,
            chat_id=recent_chats[0].id,
        )
        return recent_chats[0]
