"""
Re-engagement trigger endpoint.

Called by the scheduler; runs one invocation of the pipeline and reports
per-user outcomes. Per-user failures still return 200, only global failures
(configuration, eligibility query) return 500.
"""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from reengagement.auth.verify import trigger_auth_dependency
from reengagement.config import ConfigurationError, Settings, get_settings
from reengagement.infrastructure.observability.logging import get_logger
from reengagement.models.api.reengagement_response import (
    NoInactiveUsersResponse,
    ReEngagementErrorResponse,
    ReEngagementRunResponse,
)
from reengagement.services.reengagement_service import ReEngagementError, run_reengagement

router = APIRouter(prefix="/notifications", tags=["Re-engagement"])
logger = get_logger(__name__)


@router.post("/re-engagement", dependencies=[Depends(trigger_auth_dependency)])
async def send_reengagement_notifications(settings: Settings = Depends(get_settings)):
    try:
        batch = await run_reengagement(settings)
    except (ConfigurationError, ReEngagementError) as e:
        logger.error("Re-engagement invocation failed", error=str(e), error_type=type(e).__name__)
        body = ReEngagementErrorResponse(error=str(e))
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=body.model_dump(),
        )

    if batch.total_candidates == 0:
        return JSONResponse(content=NoInactiveUsersResponse().model_dump(by_alias=True))

    response = ReEngagementRunResponse.from_batch(batch)
    return JSONResponse(content=response.model_dump(mode="json", by_alias=True, exclude_none=True))
