import itertools
from datetime import datetime, timezone
from typing import Dict, List, Optional

import pytest

from inkwell.models.blocks import FooterContent, PublicationBrand, SocialLink
from inkwell.models.newsletter import (
    ContentBlock, DefaultFooter, Issue, Publication, SendJob, SendJobStatus,
    SendMessage, SendMessageStatus, Subscriber, SubscriberStatus,
)
from inkwell.newsletter.errors import EmailSendError


def _now():
    return datetime.now(timezone.utc)


class FakeStore:
    """In-memory stand-in for the PostgreSQL tables the pipeline touches."""

    def __init__(self):
        self._ids = itertools.count(1)
        self.publications: Dict[str, Publication] = {}
        self.issues: Dict[str, Issue] = {}
        self.blocks: List[ContentBlock] = []
        self.footers: Dict[str, DefaultFooter] = {}
        self.admins = set()
        self.subscribers: Dict[str, Subscriber] = {}
        self.jobs: Dict[str, SendJob] = {}
        self.messages: Dict[str, SendMessage] = {}
        self.events: List[dict] = []
        self.short_links: Dict[str, str] = {}
        self.rate_limits: List[dict] = []
        self.calls: List[str] = []

    def next_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def add_subscriber(self, email: str, status=SubscriberStatus.ACTIVE, publication_id="pub-1") -> Subscriber:
        subscriber_id = self.next_id("sub")
        subscriber = Subscriber(
            id=subscriber_id,
            publication_id=publication_id,
            email=email,
            status=status,
            confirmation_token=f"confirm-{subscriber_id}",
            unsubscribe_token=f"unsub-{subscriber_id}",
        )
        self.subscribers[subscriber.id] = subscriber
        return subscriber

    def add_message(self, provider_message_id: str, subscriber: Subscriber, issue_id="issue-1",
                    status=SendMessageStatus.SENT) -> SendMessage:
        message = SendMessage(
            id=self.next_id("msg"),
            send_job_id="job-0",
            subscriber_id=subscriber.id,
            issue_id=issue_id,
            provider_message_id=provider_message_id,
            status=status,
            sent_at=_now(),
        )
        self.messages[message.id] = message
        return message


class FakeIssueRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    async def get_issue(self, issue_id):
        return self.store.issues.get(issue_id)

    async def get_publication(self, publication_id):
        publication = self.store.publications.get(publication_id)
        if publication and publication.deleted_at:
            return None
        return publication

    async def get_blocks(self, issue_id):
        return sorted((b for b in self.store.blocks if b.issue_id == issue_id), key=lambda b: b.sort_order)

    async def get_footer(self, footer_id):
        return self.store.footers.get(footer_id)

    async def is_publication_admin(self, publication_id, user_id):
        return (publication_id, user_id) in self.store.admins

    async def mark_issue_sent(self, issue_id, send_count):
        self.store.calls.append("mark_issue_sent")
        issue = self.store.issues[issue_id]
        self.store.issues[issue_id] = issue.model_copy(
            update={"status": "sent", "sent_at": _now(), "send_count": send_count}
        )

    async def increment_issue_counter(self, issue_id, column):
        issue = self.store.issues[issue_id]
        self.store.issues[issue_id] = issue.model_copy(update={column: getattr(issue, column) + 1})


class FakeSubscriberRepository:
    def __init__(self, store: FakeStore):
        self.store = store

    def _update(self, subscriber_id, **changes) -> Subscriber:
        subscriber = self.store.subscribers[subscriber_id].model_copy(update=changes)
        self.store.subscribers[subscriber_id] = subscriber
        return subscriber

    async def get_active_subscribers(self, publication_id):
        return sorted(
            (s for s in self.store.subscribers.values()
             if s.publication_id == publication_id and s.status == SubscriberStatus.ACTIVE),
            key=lambda s: s.email
        )

    async def get_by_email(self, publication_id, email):
        for subscriber in self.store.subscribers.values():
            if subscriber.publication_id == publication_id and subscriber.email == email.strip().lower():
                return subscriber
        return None

    async def get_by_confirmation_token(self, token):
        return next((s for s in self.store.subscribers.values() if s.confirmation_token == token), None)

    async def get_by_unsubscribe_token(self, token):
        return next((s for s in self.store.subscribers.values() if s.unsubscribe_token == token), None)

    async def create_subscriber(self, publication_id, email):
        return self.store.add_subscriber(email.strip().lower(), SubscriberStatus.PENDING, publication_id)

    async def confirm(self, subscriber_id):
        if self.store.subscribers[subscriber_id].status != SubscriberStatus.PENDING:
            return None
        return self._update(subscriber_id, status=SubscriberStatus.ACTIVE, confirmed_at=_now())

    async def unsubscribe(self, subscriber_id):
        if self.store.subscribers[subscriber_id].status not in (SubscriberStatus.ACTIVE, SubscriberStatus.PENDING):
            return None
        return self._update(subscriber_id, status=SubscriberStatus.UNSUBSCRIBED, unsubscribed_at=_now())

    async def reactivate(self, subscriber_id):
        if self.store.subscribers[subscriber_id].status != SubscriberStatus.UNSUBSCRIBED:
            return None
        return self._update(
            subscriber_id,
            status=SubscriberStatus.PENDING,
            confirmation_token=self.store.next_id("confirm"),
            unsubscribe_token=self.store.next_id("unsub"),
            unsubscribed_at=None,
            confirmed_at=None,
        )

    async def mark_bounced(self, subscriber_id):
        self._update(subscriber_id, status=SubscriberStatus.BOUNCED, bounced_at=_now())

    async def mark_complained(self, subscriber_id):
        self._update(subscriber_id, status=SubscriberStatus.COMPLAINED, complained_at=_now())


class FakeSendRepository:
    def __init__(self, store: FakeStore):
        self.store = store
        self.progress_updates = []
        self.fail_message_inserts = False

    def _update_job(self, job_id, **changes):
        self.store.jobs[job_id] = self.store.jobs[job_id].model_copy(update=changes)

    def _update_message(self, message_id, **changes):
        self.store.messages[message_id] = self.store.messages[message_id].model_copy(update=changes)

    async def create_job(self, publication_id, issue_id, total_recipients):
        self.store.calls.append("create_job")
        job = SendJob(
            id=self.store.next_id("job"),
            publication_id=publication_id,
            issue_id=issue_id,
            total_recipients=total_recipients,
            created_at=_now(),
        )
        self.store.jobs[job.id] = job
        return job

    async def get_job(self, job_id):
        return self.store.jobs.get(job_id)

    async def mark_job_processing(self, job_id):
        self.store.calls.append("mark_job_processing")
        self._update_job(job_id, status=SendJobStatus.PROCESSING, started_at=_now())

    async def update_job_progress(self, job_id, sent_count, failed_count):
        self.progress_updates.append((sent_count, failed_count))
        self._update_job(job_id, sent_count=sent_count, failed_count=failed_count)

    async def complete_job(self, job_id, sent_count, failed_count):
        self.store.calls.append("complete_job")
        self._update_job(
            job_id, status=SendJobStatus.COMPLETED, completed_at=_now(),
            sent_count=sent_count, failed_count=failed_count
        )

    async def fail_job(self, job_id, error_message):
        self.store.calls.append("fail_job")
        if self.store.jobs[job_id].status not in (SendJobStatus.PENDING, SendJobStatus.PROCESSING):
            return
        self._update_job(job_id, status=SendJobStatus.FAILED, error_message=error_message, completed_at=_now())

    async def create_message(self, send_job_id, subscriber_id, issue_id, status,
                             provider_message_id=None, error_message=None):
        if self.fail_message_inserts:
            raise RuntimeError("insert failed")
        message = SendMessage(
            id=self.store.next_id("msg"),
            send_job_id=send_job_id,
            subscriber_id=subscriber_id,
            issue_id=issue_id,
            provider_message_id=provider_message_id,
            status=status,
            error_message=error_message,
            sent_at=_now() if status == SendMessageStatus.SENT else None,
        )
        self.store.messages[message.id] = message
        return message

    async def get_message_by_provider_id(self, provider_message_id):
        return next(
            (m for m in self.store.messages.values() if m.provider_message_id == provider_message_id),
            None
        )

    async def mark_message_sent(self, message_id):
        message = self.store.messages[message_id]
        status = message.status
        if status not in (SendMessageStatus.DELIVERED, SendMessageStatus.BOUNCED, SendMessageStatus.COMPLAINED):
            status = SendMessageStatus.SENT
        self._update_message(message_id, status=status, sent_at=message.sent_at or _now())

    async def mark_message_delivered(self, message_id):
        message = self.store.messages[message_id]
        status = message.status
        if status not in (SendMessageStatus.BOUNCED, SendMessageStatus.COMPLAINED):
            status = SendMessageStatus.DELIVERED
        self._update_message(message_id, status=status, delivered_at=message.delivered_at or _now())

    async def mark_message_opened(self, message_id):
        if self.store.messages[message_id].opened_at:
            return False
        self._update_message(message_id, opened_at=_now())
        return True

    async def mark_message_clicked(self, message_id):
        if self.store.messages[message_id].clicked_at:
            return False
        self._update_message(message_id, clicked_at=_now())
        return True

    async def mark_message_bounced(self, message_id, reason):
        self._update_message(message_id, status=SendMessageStatus.BOUNCED, error_message=reason)

    async def mark_message_complained(self, message_id):
        self._update_message(message_id, status=SendMessageStatus.COMPLAINED)

    async def record_event(self, event_type, payload, message=None, provider_event_id=None):
        self.store.events.append({
            "type": event_type,
            "payload": payload,
            "send_message_id": message.id if message else None,
            "provider_event_id": provider_event_id,
        })


class FakeLinkCacheRepository:
    def __init__(self, store: FakeStore):
        self.store = store
        self.fail_reads = False

    async def get_short_url(self, original_url):
        if self.fail_reads:
            raise RuntimeError("cache unavailable")
        return self.store.short_links.get(original_url)

    async def save_short_url(self, original_url, short_url, short_code=""):
        self.store.short_links.setdefault(original_url, short_url)


class FakeRateLimitRepository:
    def __init__(self, store: FakeStore):
        self.store = store
        self.broken = False

    def _check(self):
        if self.broken:
            raise RuntimeError("rate limit table unavailable")

    async def get_current_window(self, identifier, endpoint, since):
        self._check()
        windows = [
            w for w in self.store.rate_limits
            if w["identifier"] == identifier and w["endpoint"] == endpoint and w["window_start"] >= since
        ]
        return max(windows, key=lambda w: w["window_start"]) if windows else None

    async def create_window(self, identifier, endpoint, window_start):
        self._check()
        self.store.rate_limits.append({
            "id": self.store.next_id("rl"),
            "identifier": identifier,
            "endpoint": endpoint,
            "count": 1,
            "window_start": window_start,
        })

    async def increment_window(self, window_id):
        self._check()
        for window in self.store.rate_limits:
            if window["id"] == window_id:
                window["count"] += 1

    async def delete_windows_before(self, cutoff):
        self._check()
        before = len(self.store.rate_limits)
        self.store.rate_limits = [w for w in self.store.rate_limits if w["window_start"] >= cutoff]
        return f"DELETE {before - len(self.store.rate_limits)}"


class FakeEmailSender:
    def __init__(self):
        self.sent = []
        self.fail_for = set()

    async def send(self, email):
        if email.to in self.fail_for:
            raise EmailSendError(f"Email rejected: {email.to}")
        self.sent.append(email)
        return f"provider-{len(self.sent)}"


@pytest.fixture
def store():
    store = FakeStore()
    store.publications["pub-1"] = Publication(
        id="pub-1",
        slug="the-weekly",
        name="The Weekly",
        from_name="The Weekly",
        from_email="news@weekly.example",
        reply_to="editor@weekly.example",
        brand=PublicationBrand(logo_url="https://cdn.example/logo.png", accent_color="#123456"),
        default_footer_id="footer-1",
    )
    store.footers["footer-1"] = DefaultFooter(
        id="footer-1",
        publication_id="pub-1",
        content=FooterContent(
            text="Thanks for reading",
            social_links=[SocialLink(platform="twitter", url="https://twitter.com/weekly")],
            address="1 Main St",
        ),
    )
    store.issues["issue-1"] = Issue(
        id="issue-1",
        publication_id="pub-1",
        slug="issue-one",
        subject="Issue One",
        preheader="This week in review",
        status="published",
    )
    store.blocks.extend([
        ContentBlock(id="block-2", issue_id="issue-1", type="promo", sort_order=2,
                     data={"title": "Sponsor", "content": "Buy things", "link": "https://sponsor.example"}),
        ContentBlock(id="block-1", issue_id="issue-1", type="story", sort_order=1,
                     data={"title": "Big News", "link": "https://news.example/a", "blurb": "Something happened"}),
        ContentBlock(id="block-3", issue_id="issue-1", type="text", sort_order=3,
                     data={"content": "<p>Hello <strong>readers</strong></p>"}),
    ])
    store.admins.add(("pub-1", "user-1"))
    return store


@pytest.fixture
def issues(store):
    return FakeIssueRepository(store)


@pytest.fixture
def subscribers(store):
    return FakeSubscriberRepository(store)


@pytest.fixture
def sends(store):
    return FakeSendRepository(store)


@pytest.fixture
def link_cache(store):
    return FakeLinkCacheRepository(store)


@pytest.fixture
def rate_limits(store):
    return FakeRateLimitRepository(store)


@pytest.fixture
def sender():
    return FakeEmailSender()
