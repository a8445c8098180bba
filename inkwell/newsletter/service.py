# inkwell/newsletter/service.py
import html
import logging
from dataclasses import dataclass
from typing import Optional
from inkwell.config import settings
from inkwell.database.issue_repository import IssueRepository
from inkwell.database.subscriber_repository import SubscriberRepository
from inkwell.models.newsletter import Publication, Subscriber, SubscriberStatus, SubscribeResponse
from inkwell.newsletter.compositor import compose_email
from inkwell.newsletter.errors import (
    IssueNotFoundError, PublicationNotFoundError, InvalidTokenError, RateLimitExceeded
)
from inkwell.newsletter.render_model import RenderModelBuilder
from inkwell.services.email_service import EmailSender, OutboundEmail
from inkwell.utils.rate_limiting import RateLimiter, RATE_LIMITS
from inkwell.utils.validation import validate_email, normalize_email

logger = logging.getLogger(__name__)

@dataclass
class TokenOutcome:
    """Result of following a confirmation or unsubscribe link"""
    subscriber: Subscriber
    publication_slug: Optional[str]
    message: str

class NewsletterService:
    """Subscriber lifecycle (double opt-in) and test sends"""

    def __init__(
        self,
        subscribers: SubscriberRepository,
        issues: IssueRepository,
        rate_limiter: RateLimiter,
        sender: EmailSender,
        builder: RenderModelBuilder,
        base_url: Optional[str] = None
    ):
        self.subscribers = subscribers
        self.issues = issues
        self.rate_limiter = rate_limiter
        self.sender = sender
        self.builder = builder
        self.base_url = (base_url if base_url is not None else settings.app_url).rstrip("/")

    async def subscribe(self, publication_id: str, email: str) -> SubscribeResponse:
        """Process a newsletter subscription request"""
        email = normalize_email(email)
        if not validate_email(email):
            raise ValueError("Invalid email format")

        rule = RATE_LIMITS["subscribe"]
        limit = await self.rate_limiter.check_rule(email, rule)
        if not limit.allowed:
            raise RateLimitExceeded(email, rule.endpoint, limit.reset_at)

        publication = await self.issues.get_publication(publication_id)
        if not publication:
            raise PublicationNotFoundError(publication_id)

        existing = await self.subscribers.get_by_email(publication_id, email)
        if existing:
            if existing.status == SubscriberStatus.ACTIVE:
                logger.info(f"User already subscribed: {email}")
                return SubscribeResponse(message="You are already subscribed!", status="already_subscribed")

            if existing.status == SubscriberStatus.PENDING:
                logger.info(f"Resending confirmation email: {email}")
                await self._send_confirmation_email(existing, publication)
                return SubscribeResponse(
                    message="Confirmation email resent! Check your inbox.",
                    status="confirmation_resent"
                )

            if existing.status == SubscriberStatus.UNSUBSCRIBED:
                updated = await self.subscribers.reactivate(existing.id)
                if not updated:
                    raise RuntimeError(f"Failed to reactivate subscriber {existing.id}")
                await self._send_confirmation_email(updated, publication)
                logger.info(f"Reactivated subscription: {email}")
                return SubscribeResponse(
                    message="Welcome back! Please confirm your subscription.",
                    status="resubscribed"
                )

            # bounced or complained addresses stay suppressed
            logger.warning(f"Subscription refused for suppressed address {email} ({existing.status.value})")
            raise ValueError("This email address cannot be subscribed")

        subscriber = await self.subscribers.create_subscriber(publication_id, email)
        await self._send_confirmation_email(subscriber, publication)
        logger.info(f"Newsletter subscription created: {email}")

        return SubscribeResponse(
            message="Success! Check your email to confirm your subscription.",
            status="confirmation_sent"
        )

    async def confirm(self, token: str) -> TokenOutcome:
        subscriber = await self.subscribers.get_by_confirmation_token(token)
        if not subscriber:
            logger.warning("Invalid confirmation token")
            raise InvalidTokenError("Invalid or expired confirmation link")

        slug = await self._publication_slug(subscriber.publication_id)
        if subscriber.status == SubscriberStatus.ACTIVE:
            logger.info(f"Subscriber already confirmed: {subscriber.id}")
            return TokenOutcome(subscriber, slug, "already_subscribed")

        if subscriber.status != SubscriberStatus.PENDING:
            raise InvalidTokenError("Invalid or expired confirmation link")

        confirmed = await self.subscribers.confirm(subscriber.id)
        if not confirmed:
            raise RuntimeError(f"Failed to confirm subscriber {subscriber.id}")

        logger.info(f"Subscriber confirmed: {subscriber.id}")
        return TokenOutcome(confirmed, slug, "confirmed")

    async def unsubscribe(self, token: str) -> TokenOutcome:
        subscriber = await self.subscribers.get_by_unsubscribe_token(token)
        if not subscriber:
            logger.warning("Invalid unsubscribe token")
            raise InvalidTokenError("Invalid unsubscribe link")

        slug = await self._publication_slug(subscriber.publication_id)
        if subscriber.status == SubscriberStatus.UNSUBSCRIBED:
            logger.info(f"Subscriber already unsubscribed: {subscriber.id}")
            return TokenOutcome(subscriber, slug, "already_unsubscribed")

        if subscriber.status in (SubscriberStatus.BOUNCED, SubscriberStatus.COMPLAINED):
            # bounced and complained addresses stay suppressed
            logger.info(f"Unsubscribe ignored for suppressed subscriber {subscriber.id} ({subscriber.status.value})")
            return TokenOutcome(subscriber, slug, "unsubscribed")

        updated = await self.subscribers.unsubscribe(subscriber.id)
        logger.info(f"Subscriber unsubscribed: {subscriber.id}")
        return TokenOutcome(updated or subscriber, slug, "unsubscribed")

    async def send_test(self, issue_id: str, test_email: str, user_id: str) -> str:
        """Send a one-off preview of an issue. Nothing is recorded."""
        rule = RATE_LIMITS["send_test"]
        limit = await self.rate_limiter.check_rule(user_id, rule)
        if not limit.allowed:
            raise RateLimitExceeded(user_id, rule.endpoint, limit.reset_at)

        model = await self.builder.build(issue_id, base_url=self.base_url)
        if not model:
            raise IssueNotFoundError(issue_id)

        composed = compose_email(model, model.urls.unsubscribe)
        message_id = await self.sender.send(
            OutboundEmail(
                sender=model.sender,
                to=test_email,
                subject=f"[TEST] {composed.subject}",
                html=composed.html,
                text=composed.text,
                reply_to=model.publication.reply_to,
            )
        )
        logger.info(f"Test email for issue {issue_id} sent to {test_email}: {message_id}")
        return message_id

    async def _publication_slug(self, publication_id: str) -> Optional[str]:
        publication = await self.issues.get_publication(publication_id)
        return publication.slug if publication else None

    async def _send_confirmation_email(self, subscriber: Subscriber, publication: Publication):
        """Send double opt-in confirmation email"""
        confirm_url = f"{self.base_url}/api/confirm?token={subscriber.confirmation_token}"
        try:
            await self.sender.send(
                OutboundEmail(
                    sender=f"{publication.from_name} <{publication.from_email}>",
                    to=subscriber.email,
                    subject=f"Confirm your subscription to {publication.name}",
                    html=self._create_confirmation_email_html(publication.name, confirm_url),
                    text=self._create_confirmation_email_text(publication.name, confirm_url),
                    reply_to=publication.reply_to,
                )
            )
            logger.info(f"Confirmation email sent to {subscriber.email}")
        except Exception as e:
            # The subscriber stays pending and can request the email again
            logger.error(f"Failed to send confirmation email to {subscriber.email}: {e}")

    def _create_confirmation_email_html(self, publication_name: str, confirm_url: str) -> str:
        name = html.escape(publication_name)
        url = html.escape(confirm_url, quote=True)
        return f"""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
</head>
<body style="font-family: 'Inter', sans-serif; line-height: 1.6; color: #353535;">
    <div style="max-width: 600px; margin: 0 auto; padding: 40px 20px;">
        <h1>Welcome to {name}!</h1>
        <p>Thanks for subscribing! Please confirm your email address to start receiving our newsletter.</p>
        <p style="margin: 30px 0;">
            <a href="{url}" style="display: inline-block; padding: 12px 30px; background: #e73b42; color: #ffffff; text-decoration: none; border-radius: 4px; font-weight: 500;">Confirm Subscription</a>
        </p>
        <p>Or copy and paste this link into your browser:</p>
        <p style="word-break: break-all; color: #7d7d7d;">{url}</p>
        <div style="color: #7d7d7d; font-size: 14px; margin-top: 40px;">
            <p>If you didn't request this subscription, you can safely ignore this email.</p>
        </div>
    </div>
</body>
</html>
"""

    def _create_confirmation_email_text(self, publication_name: str, confirm_url: str) -> str:
        return f"""Welcome to {publication_name}!

Thanks for subscribing! Please confirm your email address to start receiving our newsletter:

{confirm_url}

If you didn't request this subscription, you can safely ignore this email.
"""
