# inkwell/newsletter/webhooks.py
import hmac
import hashlib
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict
from inkwell.database.issue_repository import IssueRepository
from inkwell.database.send_repository import SendRepository
from inkwell.database.subscriber_repository import SubscriberRepository
from inkwell.models.newsletter import SendMessage
import logging

logger = logging.getLogger(__name__)

class WebhookEventType(str, Enum):
    SENT = "email.sent"
    DELIVERED = "email.delivered"
    DELIVERY_DELAYED = "email.delivery_delayed"
    OPENED = "email.opened"
    CLICKED = "email.clicked"
    BOUNCED = "email.bounced"
    COMPLAINED = "email.complained"

class WebhookEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    email_id: Optional[str] = None
    reason: Optional[str] = None

class WebhookEvent(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: str
    created_at: Optional[str] = None
    data: WebhookEventData = WebhookEventData()

    @property
    def event_type(self) -> Optional[WebhookEventType]:
        try:
            return WebhookEventType(self.type)
        except ValueError:
            return None

def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """Check a hex HMAC-SHA256 of the raw body in constant time"""
    if not signature:
        return False
    expected = hmac.new(secret.encode(), payload, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature.strip().lower())

class WebhookReconciler:
    """Applies provider delivery events to send messages, subscribers and issues.

    Every transition is idempotent so redelivered or reordered events are safe.
    """

    def __init__(
        self,
        sends: SendRepository,
        subscribers: SubscriberRepository,
        issues: IssueRepository
    ):
        self.sends = sends
        self.subscribers = subscribers
        self.issues = issues

    async def handle(self, event: WebhookEvent) -> Optional[SendMessage]:
        """Reconcile one event. Returns the matched message, if any."""
        email_id = event.data.email_id
        logger.info(f"Webhook received: {event.type} for {email_id}")

        message = None
        if email_id:
            message = await self.sends.get_message_by_provider_id(email_id)

        if not message:
            logger.warning(f"Send message not found for provider id {email_id}")
            return None

        await self._record(event, message)

        event_type = event.event_type
        if event_type == WebhookEventType.SENT:
            await self.sends.mark_message_sent(message.id)
        elif event_type == WebhookEventType.DELIVERED:
            await self.sends.mark_message_delivered(message.id)
        elif event_type == WebhookEventType.OPENED:
            if await self.sends.mark_message_opened(message.id):
                await self.issues.increment_issue_counter(message.issue_id, "open_count")
        elif event_type == WebhookEventType.CLICKED:
            if await self.sends.mark_message_clicked(message.id):
                await self.issues.increment_issue_counter(message.issue_id, "click_count")
        elif event_type == WebhookEventType.BOUNCED:
            await self.sends.mark_message_bounced(message.id, event.data.reason or "Email bounced")
            await self.subscribers.mark_bounced(message.subscriber_id)
            logger.warning(f"Subscriber {message.subscriber_id} bounced on message {message.id}")
        elif event_type == WebhookEventType.COMPLAINED:
            await self.sends.mark_message_complained(message.id)
            await self.subscribers.mark_complained(message.subscriber_id)
            logger.warning(f"Subscriber {message.subscriber_id} complained on message {message.id}")
        elif event_type == WebhookEventType.DELIVERY_DELAYED:
            logger.info(f"Email delivery delayed for message {message.id}")
        else:
            logger.warning(f"Unknown webhook type: {event.type}")

        return message

    async def _record(self, event: WebhookEvent, message: Optional[SendMessage]):
        try:
            await self.sends.record_event(
                event.type,
                event.model_dump(mode="json"),
                message=message,
                provider_event_id=event.data.email_id,
            )
        except Exception as e:
            logger.error(f"Failed to record webhook event {event.type}: {e}")
