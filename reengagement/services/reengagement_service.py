"""
Re-engagement notification pipeline.

One invocation selects inactive users, then for each user in turn resolves
the most relevant chat, composes a message, sends it through OneSignal and
records the send time. Failures for one user are captured in that user's
outcome and never stop the batch; only configuration problems and a failed
eligibility query abort the whole run.
"""

import random
import time
from collections.abc import Callable
from datetime import UTC, datetime

import httpx

from reengagement.config import ReEngagementConfig, Settings
from reengagement.infrastructure.observability.logging import get_logger
from reengagement.models.domain.reengagement_domain import (
    BatchResult,
    NotificationOutcome,
    UserProfile,
)
from reengagement.repositories.reengagement_repository import ReEngagementRepository
from reengagement.services.chat_relevance_service import ChatRelevanceResolver, NoChatsFoundError
from reengagement.services.message_composer import MessageComposer
from reengagement.services.onesignal_service import OneSignalClient

logger = get_logger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class ReEngagementError(Exception):
    """Global failure that aborts an invocation before any user is processed."""

    def __init__(self, message: str, operation: str | None = None, recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class ReEngagementMetrics:
    """Accumulates per-user outcomes for a single invocation."""

    def __init__(self):
        self.reset()

    def reset(self):
        """Reset all metrics for a new run."""
        self.start_time = time.time()
        self.total_candidates = 0
        self.success_count = 0
        self.error_count = 0
        self.duration_seconds = 0.0
        self.outcomes: list[NotificationOutcome] = []

    def record(self, outcome: NotificationOutcome) -> None:
        self.total_candidates += 1
        if outcome.success:
            self.success_count += 1
        else:
            self.error_count += 1
        self.outcomes.append(outcome)

    def finalize(self) -> BatchResult:
        self.duration_seconds = time.time() - self.start_time
        return BatchResult(
            total_candidates=self.total_candidates,
            success_count=self.success_count,
            error_count=self.error_count,
            outcomes=list(self.outcomes),
        )

    def to_dict(self) -> dict:
        """Summary fields for logging."""
        return {
            "job_run": "reengagement",
            "duration_seconds": round(self.duration_seconds, 2),
            "total_candidates": self.total_candidates,
            "successful": self.success_count,
            "errors": self.error_count,
            "success_rate_percent": round(
                (self.success_count / self.total_candidates * 100)
                if self.total_candidates > 0
                else 0,
                2,
            ),
        }


class ReEngagementService:
    def __init__(
        self,
        config: ReEngagementConfig,
        repository: ReEngagementRepository,
        resolver: ChatRelevanceResolver,
        composer: MessageComposer,
        dispatcher: OneSignalClient,
        clock: Clock = utc_now,
    ):
        self.config = config
        self.repository = repository
        self.resolver = resolver
        self.composer = composer
        self.dispatcher = dispatcher
        self.clock = clock

    async def run(self) -> BatchResult:
        """
        Run one invocation of the pipeline.

        Returns:
            BatchResult: Per-user outcomes; empty when nobody is eligible

        Raises:
            ReEngagementError: If the eligible users cannot be fetched
        """
        now = self.clock()
        candidates = await self._select_candidates(now)

        if not candidates:
            logger.info("No inactive users found")
            return BatchResult(total_candidates=0, success_count=0, error_count=0)

        logger.info("Found inactive users", user_count=len(candidates))

        metrics = ReEngagementMetrics()
        for user in candidates:
            metrics.record(await self.process_user(user))

        batch = metrics.finalize()
        logger.info("Re-engagement run completed", **metrics.to_dict())
        return batch

    async def _select_candidates(self, now: datetime) -> list[UserProfile]:
        try:
            return await self.repository.select_eligible_users(
                now, self.config.inactivity_threshold, self.config.cooldown_threshold
            )
        except Exception as e:
            logger.error("Failed to fetch inactive users", error=str(e), error_type=type(e).__name__)
            raise ReEngagementError(str(e), operation="select_eligible_users") from e

    async def process_user(self, user: UserProfile) -> NotificationOutcome:
        """Run one user through the pipeline; never raises for per-user failures."""
        try:
            chat = await self.resolver.resolve(user.id)
            content = self.composer.compose(chat)
            ack = await self.dispatcher.send_notification(
                user.id, content.heading, content.body, content.data
            )
        except NoChatsFoundError as e:
            logger.info("User has no chats, skipping", user_id=user.id)
            return NotificationOutcome(user_id=user.id, success=False, error=str(e))
        except Exception as e:
            logger.error(
                "Error processing user",
                user_id=user.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return NotificationOutcome(user_id=user.id, success=False, error=str(e))

        logger.info(
            "Sent re-engagement notification",
            user_id=user.id,
            chat_id=chat.id,
            notification_id=ack.notification_id,
        )

        await self._record_sent(user.id)
        return NotificationOutcome(user_id=user.id, success=True)

    async def _record_sent(self, user_id: str) -> None:
        # The push already went out; a lost timestamp only risks an early resend
        try:
            await self.repository.update_last_re_engagement_sent(user_id, self.clock())
        except Exception as e:
            logger.error(
                "Error updating last_re_engagement_sent",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )


def build_reengagement_service(
    config: ReEngagementConfig,
    http_client: httpx.AsyncClient,
    *,
    rng: random.Random | None = None,
    clock: Clock = utc_now,
) -> ReEngagementService:
    """Wire the pipeline against the Postgres repository and OneSignal."""
    repository = ReEngagementRepository()
    return ReEngagementService(
        config=config,
        repository=repository,
        resolver=ChatRelevanceResolver(repository),
        composer=MessageComposer(rng),
        dispatcher=OneSignalClient(config, http_client),
        clock=clock,
    )


async def run_reengagement(
    settings: Settings, *, rng: random.Random | None = None, clock: Clock = utc_now
) -> BatchResult:
    """
    Validate configuration and run one invocation against the live collaborators.

    Raises:
        ConfigurationError: If a required setting is missing
        ReEngagementError: If the eligible users cannot be fetched
    """
    config = ReEngagementConfig.from_settings(settings)

    async with httpx.AsyncClient(timeout=config.request_timeout) as client:
        service = build_reengagement_service(config, client, rng=rng, clock=clock)
        return await service.run()
