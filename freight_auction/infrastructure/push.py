"""
Push notification transport (Expo push API)

Token-based delivery only; deciding what to send and to whom is the
notification dispatcher's job.
"""
import logging
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class PushDeliveryError(Exception):
    """Raised when the push service rejects or cannot accept a message"""


class ExpoPushTransport:
    """Sends one push message per call through a shared httpx client"""

    def __init__(self, api_url: str, timeout: float = 5.0, client: Optional[httpx.Client] = None):
        self.api_url = api_url
        self.client = client or httpx.Client(
            timeout=httpx.Timeout(timeout),
            headers={"Accept": "application/json", "Content-Type": "application/json"},
        )

    def send(self, token: str, title: str, body: str, data: Dict[str, Any]) -> None:
        """
        Deliver one push message

        Raises:
            PushDeliveryError: On HTTP errors, timeouts or a ticket with status "error"
        """
        payload = {
            "to": token,
            "sound": "default",
            "title": title,
            "body": body,
            "data": data,
        }

        try:
            response = self.client.post(self.api_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise PushDeliveryError(f"Push request failed: {e}") from e

        ticket = response.json().get("data") or {}
        if isinstance(ticket, list):
            ticket = ticket[0] if ticket else {}
        if ticket.get("status") == "error":
            raise PushDeliveryError(ticket.get("message", "Push service returned an error ticket"))

    def close(self):
        self.client.close()
