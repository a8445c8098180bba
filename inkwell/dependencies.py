# inkwell/dependencies.py - FastAPI providers wiring repositories and services
import asyncpg
from fastapi import Depends
from functools import lru_cache
from typing import Optional
from inkwell.config import settings
from inkwell.database import (
    DatabaseConnection, IssueRepository, SubscriberRepository, SendRepository,
    LinkCacheRepository, RateLimitRepository,
)
from inkwell.newsletter.dispatcher import CampaignDispatcher
from inkwell.newsletter.link_rewriter import LinkRewriter
from inkwell.newsletter.render_model import RenderModelBuilder
from inkwell.newsletter.service import NewsletterService
from inkwell.newsletter.url_shortener import UrlShortener
from inkwell.newsletter.webhooks import WebhookReconciler
from inkwell.services.email_service import EmailSender, create_email_sender
from inkwell.utils.rate_limiting import RateLimiter

async def get_pool() -> asyncpg.Pool:
    return await DatabaseConnection.get_pool()

def get_issue_repository(pool: asyncpg.Pool = Depends(get_pool)) -> IssueRepository:
    return IssueRepository(pool)

def get_subscriber_repository(pool: asyncpg.Pool = Depends(get_pool)) -> SubscriberRepository:
    return SubscriberRepository(pool)

def get_send_repository(pool: asyncpg.Pool = Depends(get_pool)) -> SendRepository:
    return SendRepository(pool)

def get_link_cache_repository(pool: asyncpg.Pool = Depends(get_pool)) -> LinkCacheRepository:
    return LinkCacheRepository(pool)

def get_rate_limit_repository(pool: asyncpg.Pool = Depends(get_pool)) -> RateLimitRepository:
    return RateLimitRepository(pool)

@lru_cache()
def get_email_sender() -> EmailSender:
    return create_email_sender()

def get_webhook_secret() -> Optional[str]:
    return settings.resend_webhook_secret

def get_url_shortener(
    cache: LinkCacheRepository = Depends(get_link_cache_repository)
) -> UrlShortener:
    return UrlShortener(cache)

def get_render_model_builder(
    issues: IssueRepository = Depends(get_issue_repository)
) -> RenderModelBuilder:
    return RenderModelBuilder(issues)

def get_rate_limiter(
    repository: RateLimitRepository = Depends(get_rate_limit_repository)
) -> RateLimiter:
    return RateLimiter(repository)

def get_dispatcher(
    issues: IssueRepository = Depends(get_issue_repository),
    subscribers: SubscriberRepository = Depends(get_subscriber_repository),
    sends: SendRepository = Depends(get_send_repository),
    builder: RenderModelBuilder = Depends(get_render_model_builder),
    shortener: UrlShortener = Depends(get_url_shortener),
    sender: EmailSender = Depends(get_email_sender)
) -> CampaignDispatcher:
    return CampaignDispatcher(issues, subscribers, sends, builder, LinkRewriter(shortener), sender)

def get_reconciler(
    sends: SendRepository = Depends(get_send_repository),
    subscribers: SubscriberRepository = Depends(get_subscriber_repository),
    issues: IssueRepository = Depends(get_issue_repository)
) -> WebhookReconciler:
    return WebhookReconciler(sends, subscribers, issues)

def get_newsletter_service(
    subscribers: SubscriberRepository = Depends(get_subscriber_repository),
    issues: IssueRepository = Depends(get_issue_repository),
    rate_limiter: RateLimiter = Depends(get_rate_limiter),
    sender: EmailSender = Depends(get_email_sender),
    builder: RenderModelBuilder = Depends(get_render_model_builder)
) -> NewsletterService:
    return NewsletterService(subscribers, issues, rate_limiter, sender, builder)
