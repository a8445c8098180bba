# inkwell/routes/newsletter.py - public subscriber lifecycle
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import RedirectResponse
from urllib.parse import quote
from typing import Optional
import logging
from inkwell.config import settings
from inkwell.dependencies import get_newsletter_service
from inkwell.models.newsletter import SubscribeRequest, SubscribeResponse
from inkwell.newsletter.errors import InvalidTokenError, PublicationNotFoundError, RateLimitExceeded
from inkwell.newsletter.service import NewsletterService, TokenOutcome
from inkwell.routes.send import rate_limited_response

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["newsletter"])

def _redirect(path: str) -> RedirectResponse:
    return RedirectResponse(url=f"{settings.app_url.rstrip('/')}{path}", status_code=307)

def _error_redirect(message: str) -> RedirectResponse:
    return _redirect(f"/error?message={quote(message)}")

def _outcome_redirect(outcome: TokenOutcome) -> RedirectResponse:
    if not outcome.publication_slug:
        return _redirect(f"/?message={outcome.message}")
    return _redirect(f"/n/{outcome.publication_slug}?message={outcome.message}")

@router.post("/subscribe", response_model=SubscribeResponse)
async def subscribe(
    request: SubscribeRequest,
    service: NewsletterService = Depends(get_newsletter_service)
):
    """Subscribe an address to a publication (double opt-in)"""
    logger.info(f"Subscribe request received for publication {request.publication_id}")
    try:
        return await service.subscribe(request.publication_id, request.email)
    except RateLimitExceeded as e:
        logger.warning(f"Rate limit exceeded for {request.email}")
        return rate_limited_response(e, "Too many subscription attempts. Please try again later.")
    except PublicationNotFoundError:
        raise HTTPException(status_code=404, detail="Publication not found")
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Newsletter subscription error for {request.email}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="An error occurred. Please try again.")

@router.get("/confirm")
async def confirm_subscription(
    token: Optional[str] = Query(None),
    service: NewsletterService = Depends(get_newsletter_service)
):
    if not token:
        logger.warning("Confirmation attempted without token")
        return _error_redirect("Invalid confirmation link")

    try:
        outcome = await service.confirm(token)
    except InvalidTokenError as e:
        return _error_redirect(str(e))
    except Exception as e:
        logger.error(f"Confirmation endpoint error: {e}", exc_info=True)
        return _error_redirect("An error occurred")

    return _outcome_redirect(outcome)

@router.get("/unsubscribe")
async def unsubscribe(
    token: Optional[str] = Query(None),
    service: NewsletterService = Depends(get_newsletter_service)
):
    if not token:
        logger.warning("Unsubscribe attempted without token")
        return _error_redirect("Invalid unsubscribe link")

    try:
        outcome = await service.unsubscribe(token)
    except InvalidTokenError as e:
        return _error_redirect(str(e))
    except Exception as e:
        logger.error(f"Unsubscribe endpoint error: {e}", exc_info=True)
        return _error_redirect("Failed to unsubscribe")

    return _outcome_redirect(outcome)
