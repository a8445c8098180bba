# inkwell/routes/webhooks.py - email provider delivery events
from fastapi import APIRouter, Depends, Header, HTTPException, Request
from typing import Optional
import logging
from inkwell.dependencies import get_reconciler, get_webhook_secret
from inkwell.newsletter.webhooks import WebhookEvent, WebhookReconciler, verify_webhook_signature

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])

@router.post("/resend")
async def resend_webhook(
    request: Request,
    resend_signature: Optional[str] = Header(None),
    secret: Optional[str] = Depends(get_webhook_secret),
    reconciler: WebhookReconciler = Depends(get_reconciler)
):
    """Reconcile a delivery event.

    Always acknowledged once the signature checks out, so the provider does not
    retry events we could not process.
    """
    raw_body = await request.body()

    if secret and not verify_webhook_signature(raw_body, resend_signature, secret):
        logger.warning("Invalid webhook signature")
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        event = WebhookEvent.model_validate_json(raw_body)
        await reconciler.handle(event)
    except Exception as e:
        logger.error(f"Webhook handler error: {e}", exc_info=True)
        return {"received": True, "error": "Processing failed"}

    return {"received": True}
