import hashlib
import hmac

import pytest

from inkwell.models.newsletter import SendMessageStatus, SubscriberStatus
from inkwell.newsletter.webhooks import (
    WebhookEvent, WebhookEventType, WebhookReconciler, verify_webhook_signature,
)


@pytest.fixture
def reconciler(sends, subscribers, issues):
    return WebhookReconciler(sends, subscribers, issues)


@pytest.fixture
def delivered(store):
    subscriber = store.add_subscriber("reader@example.com")
    message = store.add_message("email-123", subscriber)
    return subscriber, message


def event(event_type, email_id="email-123", **data):
    return WebhookEvent.model_validate({"type": event_type, "data": {"email_id": email_id, **data}})


class TestWebhookEvent:
    def test_known_and_unknown_types(self):
        assert event("email.opened").event_type == WebhookEventType.OPENED
        assert event("contact.created").event_type is None

    def test_extra_fields_are_kept(self):
        parsed = event("email.clicked", click={"link": "https://x.example"})
        assert parsed.data.model_dump()["click"] == {"link": "https://x.example"}


class TestSignature:
    def test_valid_signature(self):
        body = b'{"type":"email.sent"}'
        signature = hmac.new(b"secret", body, hashlib.sha256).hexdigest()
        assert verify_webhook_signature(body, signature, "secret")

    def test_invalid_or_missing_signature(self):
        body = b'{"type":"email.sent"}'
        assert not verify_webhook_signature(body, "deadbeef", "secret")
        assert not verify_webhook_signature(body, None, "secret")
        assert not verify_webhook_signature(body + b" ", hmac.new(b"secret", body, hashlib.sha256).hexdigest(), "secret")


class TestWebhookReconciler:
    async def test_delivered(self, store, reconciler, delivered):
        _, message = delivered
        await reconciler.handle(event("email.delivered"))

        updated = store.messages[message.id]
        assert updated.status == SendMessageStatus.DELIVERED
        assert updated.delivered_at is not None

    async def test_late_sent_does_not_downgrade_delivered(self, store, reconciler, delivered):
        _, message = delivered
        await reconciler.handle(event("email.delivered"))
        await reconciler.handle(event("email.sent"))

        assert store.messages[message.id].status == SendMessageStatus.DELIVERED

    async def test_duplicate_opens_count_once(self, store, reconciler, delivered):
        _, message = delivered
        await reconciler.handle(event("email.opened"))
        first_open = store.messages[message.id].opened_at
        await reconciler.handle(event("email.opened"))

        assert store.issues["issue-1"].open_count == 1
        assert store.messages[message.id].opened_at == first_open

    async def test_duplicate_clicks_count_once(self, store, reconciler, delivered):
        await reconciler.handle(event("email.clicked"))
        await reconciler.handle(event("email.clicked"))

        assert store.issues["issue-1"].click_count == 1

    async def test_bounce_excludes_subscriber(self, store, reconciler, subscribers, delivered):
        subscriber, message = delivered
        await reconciler.handle(event("email.bounced", reason="Mailbox full"))

        assert store.messages[message.id].status == SendMessageStatus.BOUNCED
        assert store.messages[message.id].error_message == "Mailbox full"
        assert store.subscribers[subscriber.id].status == SubscriberStatus.BOUNCED
        assert store.subscribers[subscriber.id].bounced_at is not None
        assert subscriber.id not in [s.id for s in await subscribers.get_active_subscribers("pub-1")]

    async def test_bounce_without_reason(self, store, reconciler, delivered):
        _, message = delivered
        await reconciler.handle(event("email.bounced"))
        assert store.messages[message.id].error_message == "Email bounced"

    async def test_complaint_excludes_subscriber(self, store, reconciler, subscribers, delivered):
        subscriber, message = delivered
        await reconciler.handle(event("email.complained"))

        assert store.messages[message.id].status == SendMessageStatus.COMPLAINED
        assert store.subscribers[subscriber.id].status == SubscriberStatus.COMPLAINED
        assert await subscribers.get_active_subscribers("pub-1") == []

    async def test_delivered_after_bounce_keeps_bounce(self, store, reconciler, delivered):
        _, message = delivered
        await reconciler.handle(event("email.bounced"))
        await reconciler.handle(event("email.delivered"))

        assert store.messages[message.id].status == SendMessageStatus.BOUNCED

    async def test_unknown_message_is_acknowledged_without_writes(self, store, reconciler, delivered):
        subscriber, message = delivered
        before_messages = dict(store.messages)
        before_subscribers = dict(store.subscribers)
        before_issues = dict(store.issues)

        assert await reconciler.handle(event("email.bounced", email_id="unknown")) is None

        assert store.messages == before_messages
        assert store.subscribers == before_subscribers
        assert store.issues == before_issues
        assert store.events == []

    async def test_delayed_and_unknown_types_only_logged(self, store, reconciler, delivered):
        _, message = delivered
        before = store.messages[message.id]
        await reconciler.handle(event("email.delivery_delayed"))
        await reconciler.handle(event("email.scheduled"))

        assert store.messages[message.id] == before

    async def test_events_are_recorded(self, store, reconciler, delivered):
        _, message = delivered
        await reconciler.handle(event("email.opened"))

        assert store.events[-1]["type"] == "email.opened"
        assert store.events[-1]["send_message_id"] == message.id

    async def test_event_record_failure_does_not_block(self, store, sends, reconciler, delivered):
        async def broken(*args, **kwargs):
            raise RuntimeError("audit table missing")

        sends.record_event = broken
        await reconciler.handle(event("email.opened"))
        assert store.issues["issue-1"].open_count == 1
