import random
from datetime import UTC, datetime, timedelta

import pytest

from reengagement.config import ReEngagementConfig, Settings, get_settings
from reengagement.models.domain.reengagement_domain import Chat, ChatOrder, UserProfile
from reengagement.repositories.reengagement_repository import QueryError, UpdateError
from reengagement.services.chat_relevance_service import ChatRelevanceResolver
from reengagement.services.message_composer import MessageComposer
from reengagement.services.onesignal_service import DispatchAck
from reengagement.services.reengagement_service import ReEngagementService

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=UTC)


class FakeStore:
    """In-memory stand-in for ReEngagementRepository with the same query semantics."""

    def __init__(self):
        self.users: dict[str, UserProfile] = {}
        self.chats: list[Chat] = []
        self.fail_eligibility = False
        self.failing_chat_users: set[str] = set()
        self.failing_update_users: set[str] = set()
        self.updates: list[tuple[str, datetime]] = []

    def add_user(
        self,
        user_id: str,
        *,
        inactive_days: float | None = 10,
        last_sent_days: float | None = None,
        enabled: bool = True,
    ) -> UserProfile:
        user = UserProfile(
            id=user_id,
            last_app_activity=NOW - timedelta(days=inactive_days) if inactive_days is not None else None,
            last_re_engagement_sent=(
                NOW - timedelta(days=last_sent_days) if last_sent_days is not None else None
            ),
            re_engagement_enabled=enabled,
        )
        self.users[user_id] = user
        return user

    def add_chat(
        self,
        user_id: str,
        chat_id: str,
        name: str,
        *,
        last_message_days: float | None = None,
        created_days: float = 30,
    ) -> Chat:
        chat = Chat(
            id=chat_id,
            user_id=user_id,
            name=name,
            last_message_time=(
                NOW - timedelta(days=last_message_days) if last_message_days is not None else None
            ),
            created_at=NOW - timedelta(days=created_days),
        )
        self.chats.append(chat)
        return chat

    async def select_eligible_users(self, now, inactivity_threshold, cooldown_threshold):
        if self.fail_eligibility:
            raise QueryError(
                "Error fetching inactive users: connection refused",
                operation="select_eligible_users",
            )
        return [
            user
            for user in self.users.values()
            if user.re_engagement_enabled
            and user.last_app_activity is not None
            and user.last_app_activity < now - inactivity_threshold
            and (
                user.last_re_engagement_sent is None
                or user.last_re_engagement_sent < now - cooldown_threshold
            )
        ]

    async def select_chats_by_user(self, user_id, order_by, limit=None):
        if user_id in self.failing_chat_users:
            raise QueryError("Error fetching chats: statement timeout", operation="select_chats_by_user")

        chats = [chat for chat in self.chats if chat.user_id == user_id]
        if order_by is ChatOrder.LAST_MESSAGE_TIME:
            with_messages = sorted(
                (c for c in chats if c.last_message_time is not None),
                key=lambda c: (c.last_message_time, c.id),
                reverse=True,
            )
            without_messages = sorted(
                (c for c in chats if c.last_message_time is None),
                key=lambda c: c.id,
                reverse=True,
            )
            ordered = with_messages + without_messages
        else:
            ordered = sorted(chats, key=lambda c: (c.created_at, c.id), reverse=True)

        return ordered[:limit] if limit is not None else ordered

    async def update_last_re_engagement_sent(self, user_id, timestamp):
        if user_id in self.failing_update_users:
            raise UpdateError("Error updating last_re_engagement_sent: statement timeout")
        self.users[user_id].last_re_engagement_sent = timestamp
        self.updates.append((user_id, timestamp))


class FakeDispatcher:
    def __init__(self):
        self.sent: list[dict] = []
        self.failures: dict[str, Exception] = {}

    async def send_notification(self, target_user_id, heading, body, data):
        self.sent.append(
            {"user_id": target_user_id, "heading": heading, "body": body, "data": data}
        )
        if target_user_id in self.failures:
            raise self.failures[target_user_id]
        return DispatchAck(notification_id=f"notif-{len(self.sent)}", recipients=1, raw={})


@pytest.fixture
def fake_store():
    return FakeStore()


@pytest.fixture
def fake_dispatcher():
    return FakeDispatcher()


@pytest.fixture
def reengagement_config():
    return ReEngagementConfig(onesignal_app_id="app-123", onesignal_api_key="rest-key")


@pytest.fixture
def make_service(fake_store, fake_dispatcher, reengagement_config):
    def _make(clock=lambda: NOW, seed: int = 7) -> ReEngagementService:
        return ReEngagementService(
            config=reengagement_config,
            repository=fake_store,
            resolver=ChatRelevanceResolver(fake_store),
            composer=MessageComposer(random.Random(seed)),
            dispatcher=fake_dispatcher,
            clock=clock,
        )

    return _make


@pytest.fixture
def complete_settings():
    return Settings(
        _env_file=None,
        ONESIGNAL_APP_ID="app-123",
        ONESIGNAL_REST_API_KEY="rest-key",
        SUPABASE_DB_URL="postgresql://service_role@localhost:5432/postgres",
        REENGAGEMENT_TRIGGER_SECRET=None,
    )


@pytest.fixture
def apply_settings_override(complete_settings):
    applied = []

    def _apply(app, settings=None):
        chosen = settings if settings is not None else complete_settings
        app.dependency_overrides[get_settings] = lambda: chosen
        applied.append(app)

    yield _apply

    for app in applied:
        app.dependency_overrides.pop(get_settings, None)


@pytest.fixture
def now():
    return NOW
