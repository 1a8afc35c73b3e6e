from pydantic import BaseModel, Field

from reengagement.models.domain.reengagement_domain import BatchResult, NotificationOutcome


class NotificationOutcomeResponse(BaseModel):
    """Per-user result of one invocation."""

    user_id: str = Field(..., serialization_alias="userId")
    success: bool
    error: str | None = None

    @classmethod
    def from_outcome(cls, outcome: NotificationOutcome) -> "NotificationOutcomeResponse":
        return cls(user_id=outcome.user_id, success=outcome.success, error=outcome.error)


class ReEngagementStats(BaseModel):
    total: int
    successful: int
    errors: int


class ReEngagementRunResponse(BaseModel):
    """Response for POST /notifications/re-engagement when users were processed."""

    success: bool = True
    message: str
    stats: ReEngagementStats
    results: list[NotificationOutcomeResponse]

    @classmethod
    def from_batch(cls, batch: BatchResult) -> "ReEngagementRunResponse":
        return cls(
            message=f"Processed {batch.total_candidates} inactive users",
            stats=ReEngagementStats(
                total=batch.total_candidates,
                successful=batch.success_count,
                errors=batch.error_count,
            ),
            results=[NotificationOutcomeResponse.from_outcome(o) for o in batch.outcomes],
        )


class NoInactiveUsersResponse(BaseModel):
    """Response when no user matched the eligibility filter."""

    success: bool = True
    message: str = "No inactive users found"
    users_processed: int = Field(0, serialization_alias="usersProcessed")


class ReEngagementErrorResponse(BaseModel):
    """Response for global failures (configuration, eligibility query)."""

    success: bool = False
    error: str
