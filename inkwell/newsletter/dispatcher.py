# inkwell/newsletter/dispatcher.py
import asyncio
from typing import List, Optional, Tuple
from inkwell.config import settings
from inkwell.database.issue_repository import IssueRepository
from inkwell.database.subscriber_repository import SubscriberRepository
from inkwell.database.send_repository import SendRepository
from inkwell.models.newsletter import SendJob, Subscriber, SendMessageStatus
from inkwell.models.render import RenderModel
from inkwell.newsletter.compositor import compose_email
from inkwell.newsletter.errors import IssueNotFoundError, NoActiveSubscribersError, RenderModelError
from inkwell.newsletter.link_rewriter import LinkRewriter
from inkwell.newsletter.render_model import RenderModelBuilder, unsubscribe_url
from inkwell.services.email_service import EmailSender, OutboundEmail
import logging

logger = logging.getLogger(__name__)

def chunk(items: List, size: int) -> List[List]:
    if size < 1:
        raise ValueError("Batch size must be at least 1")
    return [items[i:i + size] for i in range(0, len(items), size)]

class CampaignDispatcher:
    """Sends one issue to a snapshot of a publication's active subscribers.

    ``start_campaign`` runs inside the request and creates the send job.
    ``process_job`` runs afterwards as a background task and owns the rest of
    the job lifecycle: pending -> processing -> completed | failed.
    """

    def __init__(
        self,
        issues: IssueRepository,
        subscribers: SubscriberRepository,
        sends: SendRepository,
        builder: RenderModelBuilder,
        rewriter: LinkRewriter,
        sender: EmailSender,
        batch_size: Optional[int] = None,
        batch_delay_ms: Optional[int] = None,
        base_url: Optional[str] = None
    ):
        self.issues = issues
        self.subscribers = subscribers
        self.sends = sends
        self.builder = builder
        self.rewriter = rewriter
        self.sender = sender
        self.batch_size = batch_size or settings.email_batch_size
        self.batch_delay_ms = batch_delay_ms if batch_delay_ms is not None else settings.email_batch_delay_ms
        self.base_url = base_url if base_url is not None else settings.app_url

    async def start_campaign(self, issue_id: str) -> Tuple[SendJob, List[Subscriber]]:
        issue = await self.issues.get_issue(issue_id)
        if not issue:
            raise IssueNotFoundError(issue_id)

        recipients = await self.subscribers.get_active_subscribers(issue.publication_id)
        if not recipients:
            logger.warning(f"No active subscribers for publication {issue.publication_id}")
            raise NoActiveSubscribersError(issue.publication_id)

        job = await self.sends.create_job(issue.publication_id, issue.id, len(recipients))
        logger.info(f"Campaign send started for issue {issue_id}: job {job.id}, {len(recipients)} recipients")
        return job, recipients

    async def process_job(self, job: SendJob, recipients: List[Subscriber]):
        """Background task body. Logs every exception and never raises."""
        try:
            await self._run(job, recipients)
        except Exception as e:
            logger.error(f"Send job {job.id} crashed: {e}", exc_info=True)
            try:
                await self.sends.fail_job(job.id, str(e) or type(e).__name__)
            except Exception as fail_error:
                logger.error(f"Could not mark send job {job.id} as failed: {fail_error}")

    async def _run(self, job: SendJob, recipients: List[Subscriber]):
        try:
            model = await self.builder.build(job.issue_id, base_url=self.base_url)
        except RenderModelError as e:
            logger.error(f"Send job {job.id} failed building render model: {e}")
            await self.sends.fail_job(job.id, f"Failed to build render model: {e}")
            return

        if model is None:
            logger.error(f"Send job {job.id} failed: render model for issue {job.issue_id} unavailable")
            await self.sends.fail_job(job.id, "Failed to build render model")
            return

        model = await self.rewriter.rewrite(model)

        await self.sends.mark_job_processing(job.id)

        sent_count = 0
        failed_count = 0
        batches = chunk(recipients, self.batch_size)

        for index, batch in enumerate(batches, start=1):
            results = await asyncio.gather(
                *(self._send_to(job, model, recipient) for recipient in batch),
                return_exceptions=True
            )
            batch_sent = sum(1 for result in results if result is True)
            sent_count += batch_sent
            failed_count += len(batch) - batch_sent

            await self.sends.update_job_progress(job.id, sent_count, failed_count)
            logger.info(
                f"Send job {job.id} batch {index}/{len(batches)}: "
                f"{batch_sent} sent, {len(batch) - batch_sent} failed"
            )

            if index < len(batches) and self.batch_delay_ms > 0:
                await asyncio.sleep(self.batch_delay_ms / 1000)

        await self.sends.complete_job(job.id, sent_count, failed_count)
        logger.info(f"Send job {job.id} completed: {sent_count} sent, {failed_count} failed")

        try:
            await self.issues.mark_issue_sent(job.issue_id, sent_count)
        except Exception as e:
            logger.error(f"Send job {job.id}: could not mark issue {job.issue_id} as sent: {e}")

    async def _send_to(self, job: SendJob, model: RenderModel, recipient: Subscriber) -> bool:
        """Dispatch to one recipient and record the outcome. True when sent."""
        try:
            if not recipient.unsubscribe_token:
                raise ValueError(f"Subscriber {recipient.id} has no unsubscribe token")

            composed = compose_email(model, unsubscribe_url(self.base_url, recipient.unsubscribe_token))
            provider_message_id = await self.sender.send(
                OutboundEmail(
                    sender=model.sender,
                    to=recipient.email,
                    subject=composed.subject,
                    html=composed.html,
                    text=composed.text,
                    reply_to=model.publication.reply_to,
                    headers=composed.headers,
                )
            )
        except Exception as e:
            logger.error(f"Send job {job.id}: failed to send to {recipient.email}: {e}")
            try:
                await self.sends.create_message(
                    job.id, recipient.id, job.issue_id, SendMessageStatus.FAILED,
                    error_message=str(e) or "Unknown error"
                )
            except Exception as record_error:
                logger.error(f"Send job {job.id}: could not record failure for {recipient.id}: {record_error}")
            return False

        try:
            await self.sends.create_message(
                job.id, recipient.id, job.issue_id, SendMessageStatus.SENT,
                provider_message_id=provider_message_id
            )
        except Exception as e:
            # The provider accepted the email, so it still counts as sent
            logger.error(f"Send job {job.id}: could not record send to {recipient.id}: {e}")
        return True
