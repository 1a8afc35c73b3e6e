"""
verify.py
---------
Purpose:
    Guards the re-engagement trigger with a shared bearer secret.

Notes:
    - The scheduler (Supabase cron, GitHub Actions, etc.) sends
      `Authorization: Bearer <REENGAGEMENT_TRIGGER_SECRET>`.
    - When no secret is configured the trigger is open, for local development.
"""

import hmac

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from reengagement.config import Settings, get_settings
from reengagement.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

_security = HTTPBearer(auto_error=False)


def trigger_auth_dependency(
    credentials: HTTPAuthorizationCredentials | None = Depends(_security),
    settings: Settings = Depends(get_settings),
) -> None:
    expected = settings.REENGAGEMENT_TRIGGER_SECRET
    if not expected:
        return

    supplied = credentials.credentials if credentials else ""
    if not hmac.compare_digest(supplied.encode(), expected.encode()):
        logger.warning("Rejected re-engagement trigger with invalid secret")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid trigger secret",
            headers={"WWW-Authenticate": "Bearer"},
        )
