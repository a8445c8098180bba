# inkwell/newsletter/__init__.py
from .render_model import RenderModelBuilder, build_render_model
from .link_rewriter import LinkRewriter
from .compositor import compose_email, ComposedEmail
from .dispatcher import CampaignDispatcher
from .webhooks import WebhookReconciler, WebhookEvent, verify_webhook_signature
from .service import NewsletterService

__all__ = [
    'RenderModelBuilder',
    'build_render_model',
    'LinkRewriter',
    'compose_email',
    'ComposedEmail',
    'CampaignDispatcher',
    'WebhookReconciler',
    'WebhookEvent',
    'verify_webhook_signature',
    'NewsletterService'
]
