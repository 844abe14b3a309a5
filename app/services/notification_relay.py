"""
Best-effort relay of storefront events to the n8n automation webhooks.

Events are posted as JSON with the shared secret header. Delivery is never
retried and failures are only logged: callers submit the send as a FastAPI
background task so it runs after the response and cannot change it.
"""
from datetime import datetime, timezone
from typing import Optional

import httpx
from fastapi import BackgroundTasks

from app.core.config import Settings
import logging

logger = logging.getLogger(__name__)


class NotificationRelay:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.secret = settings.webhook_secret
        self.secret_header = settings.webhook_secret_header
        self.timeout = settings.http_timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.secret:
            headers[self.secret_header] = self.secret
        return headers

    async def send(self, url: str, event: dict) -> bool:
        """POST one event. Returns False on any failure instead of raising."""
        event_type = event.get("type", "unknown")
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(url, json=event, headers=self._headers())
        except httpx.HTTPError as exc:
            logger.error(f"❌ Relay of {event_type} failed: {exc}")
            return False

        if not resp.is_success:
            logger.error(f"❌ Relay of {event_type} rejected with status {resp.status_code}")
            return False

        logger.info(f"✅ Relayed {event_type}")
        return True

    def schedule(self, background_tasks: BackgroundTasks, url: Optional[str], event: dict) -> bool:
        """Queue a send to run after the response. Nothing is queued when the webhook is not configured."""
        if not url:
            logger.warning(f"⚠️  Webhook for {event.get('type', 'unknown')} not configured. Event not sent.")
            return False
        background_tasks.add_task(self.send, url, event)
        return True


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def auth_code_event(email: str, code: str, mode: str) -> dict:
    return {
        "email": email,
        "code": code,
        "mode": mode,
        "type": "auth_code_request",
        "timestamp": _timestamp(),
    }


def welcome_event(email: str) -> dict:
    return {"email": email, "type": "welcome_message"}


def magic_link_event(email: str, magic_link: str) -> dict:
    return {
        "email": email,
        "magicLink": magic_link,
        "type": "auth_request",
        "timestamp": _timestamp(),
    }


def order_event(order: dict) -> dict:
    return {**order, "type": "new_order", "timestamp": _timestamp()}


def enquiry_event(enquiry: dict) -> dict:
    return {**enquiry, "type": "new_enquiry", "timestamp": _timestamp()}
