"""
Repository for the re-engagement pipeline.

Reads candidate users and their chats from Supabase Postgres and records
when a re-engagement notification was sent.
"""

from datetime import datetime, timedelta

from reengagement.db.helpers import DatabaseError, execute_query, fetch_all
from reengagement.infrastructure.observability.logging import get_logger
from reengagement.models.domain.reengagement_domain import Chat, ChatOrder, UserProfile

logger = get_logger(__name__)


class QueryError(DatabaseError):
    """A read against the store failed."""


class UpdateError(DatabaseError):
    """A write against the store failed."""


_CHAT_ORDER_CLAUSES = {
    ChatOrder.LAST_MESSAGE_TIME: "ORDER BY last_message_time DESC NULLS LAST, id DESC",
    ChatOrder.CREATED_AT: "ORDER BY created_at DESC, id DESC",
}


class ReEngagementRepository:
    """Thin wrappers around the user_profiles and chats tables."""

    @staticmethod
    async def select_eligible_users(
        now: datetime, inactivity_threshold: timedelta, cooldown_threshold: timedelta
    ) -> list[UserProfile]:
        inactive_before = now - inactivity_threshold
        last_sent_before = now - cooldown_threshold

        try:
            rows = await fetch_all(
                """
                SELECT id, last_app_activity, last_re_engagement_sent, re_engagement_enabled
                FROM user_profiles
                WHERE re_engagement_enabled = true
                  AND last_app_activity < %s
                  AND (last_re_engagement_sent IS NULL OR last_re_engagement_sent < %s)
                """,
                (inactive_before, last_sent_before),
            )
        except (DatabaseError, RuntimeError) as e:
            raise QueryError(
                f"Error fetching inactive users: {e}", operation="select_eligible_users"
            ) from e

        return [UserProfile.from_row(row) for row in rows]

    @staticmethod
    async def select_chats_by_user(
        user_id: str, order_by: ChatOrder, limit: int | None = None
    ) -> list[Chat]:
        query = f"""
            SELECT id, user_id, name, last_message_time, created_at
            FROM chats
            WHERE user_id = %s
            {_CHAT_ORDER_CLAUSES[order_by]}
        """
        params: tuple = (user_id,)
        if limit is not None:
            query += " LIMIT %s"
            params = (user_id, limit)

        try:
            rows = await fetch_all(query, params)
        except (DatabaseError, RuntimeError) as e:
            raise QueryError(
                f"Error fetching chats: {e}", operation="select_chats_by_user"
            ) from e

        return [Chat.from_row(row) for row in rows]

    @staticmethod
    async def update_last_re_engagement_sent(user_id: str, timestamp: datetime) -> None:
        try:
            updated = await execute_query(
                "UPDATE user_profiles SET last_re_engagement_sent = %s WHERE id = %s",
                (timestamp, user_id),
            )
        except (DatabaseError, RuntimeError) as e:
            raise UpdateError(
                f"Error updating last_re_engagement_sent: {e}",
                operation="update_last_re_engagement_sent",
            ) from e

        if updated == 0:
            raise UpdateError(
                f"User profile {user_id} not found",
                operation="update_last_re_engagement_sent",
                recoverable=False,
            )

        logger.debug("Recorded re-engagement send", user_id=user_id, sent_at=timestamp.isoformat())
