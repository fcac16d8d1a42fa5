"""Best-effort delivery of assignment events to the email edge function."""

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

REVIEW_ASSIGNED = "review_assigned"
EXTENSION_ASSIGNED_TO_REVIEWER = "extension_assigned_to_reviewer"


class NotificationDispatcher:
    """Send events to a Supabase edge function (MailerLite integration by default).

    `send_event` never raises. A failed notification must not undo or fail an
    assignment, so errors are logged and reported as False.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        function_name: str = "mailerlite-integration",
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ):
        self.url = f"{supabase_url.rstrip('/')}/functions/v1/{function_name}"
        self.timeout = timeout
        self.session = session or requests.Session()
        self.headers = {
            "Authorization": f"Bearer {supabase_key}",
            "apikey": supabase_key,
            "Content-Type": "application/json",
        }

    def send_event(
        self,
        user_email: str,
        event_type: str,
        custom_data: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """Post one event. Returns True if the function accepted it."""
        payload = {
            "user_email": user_email,
            "event_type": event_type,
            "custom_data": custom_data or {},
        }
        try:
            response = self.session.post(
                self.url, json=payload, headers=self.headers, timeout=self.timeout
            )
            response.raise_for_status()
        except Exception as e:
            logger.error(f"❌ Failed to send '{event_type}' notification: {e}")
            return False

        logger.info(f"📧 '{event_type}' notification sent")
        return True
