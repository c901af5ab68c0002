"""Notification dispatch for booking and payout events.

Notifications are best effort: they are sent after the financial change is
committed, and a failing sink is logged without affecting the caller.
"""

import logging
from datetime import UTC, datetime
from typing import Any, Protocol
from uuid import UUID

import httpx

from app.config import settings

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    async def send(self, event: str, recipient_id: UUID | None, payload: dict[str, Any]) -> None: ...


class LoggingNotificationSink:
    """Writes notifications to the application log."""

    async def send(self, event: str, recipient_id: UUID | None, payload: dict[str, Any]) -> None:
        logger.info(f"Notification {event} for {recipient_id}: {payload}")


class WebhookNotificationSink:
    """Posts notifications as JSON to an HTTP endpoint."""

    def __init__(self, url: str, timeout: float = 5.0) -> None:
        self.url = url
        self.timeout = timeout
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()

    async def send(self, event: str, recipient_id: UUID | None, payload: dict[str, Any]) -> None:
        response = await self.http_client.post(
            self.url,
            json={
                "event": event,
                "recipient_id": str(recipient_id) if recipient_id else None,
                "payload": payload,
                "sent_at": datetime.now(UTC).isoformat(),
            },
        )
        response.raise_for_status()


class NotificationService:
    """Fire-and-forget front for a notification sink."""

    BOOKING_CREATED = "booking_created"
    PAYMENT_RECEIVED = "payment_received"
    BOOKING_CONFIRMED = "booking_confirmed"
    BOOKING_REJECTED = "booking_rejected"
    BOOKING_CANCELLED = "booking_cancelled"
    BOOKING_COMPLETED = "booking_completed"
    WITHDRAWAL_PROCESSED = "withdrawal_processed"
    PAYOUT_SENT = "payout_sent"
    EARNING_CLAWBACK_REQUIRED = "earning_clawback_required"

    def __init__(self, sink: NotificationSink | None = None) -> None:
        self.sink = sink or LoggingNotificationSink()

    async def notify(
        self,
        event: str,
        recipient_id: UUID | None,
        payload: dict[str, Any] | None = None,
    ) -> None:
        """Send a notification; failures are logged and swallowed."""
        try:
            await self.sink.send(event, recipient_id, _jsonable(payload or {}))
        except Exception:
            logger.exception(f"Failed to send {event} notification to {recipient_id}")


def _jsonable(payload: dict[str, Any]) -> dict[str, Any]:
    converted: dict[str, Any] = {}
    for key, value in payload.items():
        if isinstance(value, UUID):
            value = str(value)
        elif isinstance(value, datetime):
            value = value.isoformat()
        converted[key] = value
    return converted


def build_notification_service() -> NotificationService:
    """Webhook sink when a URL is configured, otherwise the log."""
    if settings.notification_webhook_url:
        return NotificationService(
            WebhookNotificationSink(
                settings.notification_webhook_url,
                timeout=settings.notification_timeout_seconds,
            )
        )
    return NotificationService()
