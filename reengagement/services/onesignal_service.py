"""
OneSignal push notification client.

Sends one notification per call, targeting the Supabase user id through
OneSignal's external user id. There is no retry here: a failed send is
reported to the caller and the user is picked up again on a later run.
"""

from dataclasses import dataclass
from typing import Any

import httpx

from reengagement.config import ReEngagementConfig
from reengagement.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CONTENT_LANGUAGE = "en"
ERROR_BODY_PREVIEW_CHARS = 500


class DispatchError(Exception):
    """Push provider rejected the notification or could not be reached."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


@dataclass(slots=True)
class DispatchAck:
    notification_id: str | None
    recipients: int | None
    raw: dict[str, Any]


class OneSignalClient:
    def __init__(self, config: ReEngagementConfig, client: httpx.AsyncClient):
        self.app_id = config.onesignal_app_id
        self.api_key = config.onesignal_api_key
        self.api_url = config.onesignal_api_url
        self.client = client

    def _build_payload(
        self, target_user_id: str, heading: str, body: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        return {
            "app_id": self.app_id,
            "include_external_user_ids": [target_user_id],
            "contents": {CONTENT_LANGUAGE: body},
            "headings": {CONTENT_LANGUAGE: heading},
            "data": data,
        }

    async def send_notification(
        self, target_user_id: str, heading: str, body: str, data: dict[str, Any]
    ) -> DispatchAck:
        """
        Send a push notification to a single user.

        Raises:
            DispatchError: On a non-2xx response or a transport failure
        """
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Basic {self.api_key}",
        }
        payload = self._build_payload(target_user_id, heading, body, data)

        try:
            response = await self.client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.error(
                "OneSignal request failed",
                user_id=target_user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise DispatchError(f"OneSignal request failed: {type(e).__name__}: {e}") from e

        if not response.is_success:
            error_text = response.text
            logger.warning(
                "OneSignal API error",
                user_id=target_user_id,
                status_code=response.status_code,
                body=error_text[:ERROR_BODY_PREVIEW_CHARS],
            )
            raise DispatchError(
                f"OneSignal API error: {response.status_code} - {error_text}",
                status_code=response.status_code,
                body=error_text,
            )

        try:
            result = response.json()
        except ValueError:
            result = {}
        if not isinstance(result, dict):
            result = {}

        # OneSignal reports unknown external ids inside a 200 response
        if result.get("errors"):
            logger.warning(
                "OneSignal accepted notification with errors",
                user_id=target_user_id,
                errors=result["errors"],
            )

        return DispatchAck(
            notification_id=result.get("id"),
            recipients=result.get("recipients"),
            raw=result,
        )
