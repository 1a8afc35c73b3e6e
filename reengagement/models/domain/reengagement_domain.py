"""
Domain models for the re-engagement pipeline.

UserProfile and Chat mirror rows of the user_profiles and chats tables.
The remaining types only live for the duration of one invocation.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass(slots=True)
class UserProfile:
    id: str
    last_app_activity: datetime | None
    last_re_engagement_sent: datetime | None
    re_engagement_enabled: bool = True

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> UserProfile:
        return cls(
            id=str(row["id"]),
            last_app_activity=row.get("last_app_activity"),
            last_re_engagement_sent=row.get("last_re_engagement_sent"),
            re_engagement_enabled=bool(row.get("re_engagement_enabled", True)),
        )


@dataclass(slots=True)
class Chat:
    id: str
    user_id: str
    name: str
    last_message_time: datetime | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> Chat:
        return cls(
            id=str(row["id"]),
            user_id=str(row["user_id"]),
            name=row["name"],
            last_message_time=row.get("last_message_time"),
            created_at=row["created_at"],
        )


class ChatOrder(str, Enum):
    """Orderings the chat query supports; both tie-break on chat id."""

    LAST_MESSAGE_TIME = "last_message_time"
    CREATED_AT = "created_at"


@dataclass(slots=True)
class NotificationContent:
    heading: str
    body: str
    data: dict[str, Any]


@dataclass(slots=True)
class NotificationOutcome:
    user_id: str
    success: bool
    error: str | None = None


@dataclass(slots=True)
class BatchResult:
    total_candidates: int
    success_count: int
    error_count: int
    outcomes: list[NotificationOutcome] = field(default_factory=list)
