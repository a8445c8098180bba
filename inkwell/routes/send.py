# inkwell/routes/send.py - campaign and test sends
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from fastapi.responses import JSONResponse
import logging
from inkwell.auth.dependencies import AuthenticatedUser, get_current_user
from inkwell.database.issue_repository import IssueRepository
from inkwell.database.send_repository import SendRepository
from inkwell.dependencies import (
    get_dispatcher, get_issue_repository, get_newsletter_service, get_send_repository
)
from inkwell.models.newsletter import (
    Issue, SendCampaignRequest, SendCampaignResponse, SendJob, SendTestRequest
)
from inkwell.newsletter.dispatcher import CampaignDispatcher
from inkwell.newsletter.errors import (
    EmailSendError, IssueNotFoundError, NoActiveSubscribersError, RateLimitExceeded
)
from inkwell.newsletter.service import NewsletterService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/send", tags=["send"])

async def _authorize_issue(issue_id: str, user: AuthenticatedUser, issues: IssueRepository) -> Issue:
    issue = await issues.get_issue(issue_id)
    if not issue:
        logger.error(f"Issue not found: {issue_id}")
        raise HTTPException(status_code=404, detail="Issue not found")

    if not await issues.is_publication_admin(issue.publication_id, user.id):
        logger.warning(f"Unauthorized send attempt by {user.id} on issue {issue_id}")
        raise HTTPException(status_code=403, detail="Unauthorized")
    return issue

def rate_limited_response(error: RateLimitExceeded, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"detail": detail},
        headers={
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": error.reset_at.isoformat(),
        }
    )

@router.post("/campaign", response_model=SendCampaignResponse)
async def send_campaign(
    request: SendCampaignRequest,
    background_tasks: BackgroundTasks,
    user: AuthenticatedUser = Depends(get_current_user),
    issues: IssueRepository = Depends(get_issue_repository),
    dispatcher: CampaignDispatcher = Depends(get_dispatcher)
):
    """Start sending an issue to every active subscriber of its publication"""
    logger.info(f"Campaign send requested for issue {request.issue_id} by {user.id}")
    await _authorize_issue(request.issue_id, user, issues)

    try:
        job, recipients = await dispatcher.start_campaign(request.issue_id)
    except IssueNotFoundError:
        raise HTTPException(status_code=404, detail="Issue not found")
    except NoActiveSubscribersError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to start campaign for issue {request.issue_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create send job")

    # Sending continues after the response is returned
    background_tasks.add_task(dispatcher.process_job, job, recipients)

    return SendCampaignResponse(
        success=True,
        message=f"Campaign send started for {len(recipients)} subscribers",
        job_id=job.id,
        recipient_count=len(recipients)
    )

@router.post("/test")
async def send_test(
    request: SendTestRequest,
    user: AuthenticatedUser = Depends(get_current_user),
    issues: IssueRepository = Depends(get_issue_repository),
    service: NewsletterService = Depends(get_newsletter_service)
):
    """Send a [TEST] copy of an issue to one address"""
    logger.info(f"Test email send requested for issue {request.issue_id} to {request.test_email}")
    await _authorize_issue(request.issue_id, user, issues)

    try:
        message_id = await service.send_test(request.issue_id, request.test_email, user.id)
    except RateLimitExceeded as e:
        logger.warning(f"Rate limit exceeded for test sends by {user.id}")
        return rate_limited_response(e, "Too many test emails sent. Please try again later.")
    except IssueNotFoundError:
        raise HTTPException(status_code=404, detail="Issue not found")
    except EmailSendError as e:
        logger.error(f"Failed to send test email for issue {request.issue_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to send test email")

    return {
        "success": True,
        "message": f"Test email sent to {request.test_email}",
        "message_id": message_id
    }

@router.get("/jobs/{job_id}", response_model=SendJob)
async def get_send_job(
    job_id: str,
    user: AuthenticatedUser = Depends(get_current_user),
    issues: IssueRepository = Depends(get_issue_repository),
    sends: SendRepository = Depends(get_send_repository)
):
    """Progress of a campaign send"""
    job = await sends.get_job(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Send job not found")

    if not await issues.is_publication_admin(job.publication_id, user.id):
        raise HTTPException(status_code=403, detail="Unauthorized")
    return job
