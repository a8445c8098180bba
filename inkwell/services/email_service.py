# inkwell/services/email_service.py - outbound email providers
import boto3
import httpx
from botocore.exceptions import ClientError
from dataclasses import dataclass, field
from typing import Optional, Dict
from inkwell.config import settings
from inkwell.newsletter.errors import EmailSendError
import logging
import asyncio
from concurrent.futures import ThreadPoolExecutor

logger = logging.getLogger(__name__)

@dataclass
class OutboundEmail:
    sender: str
    to: str
    subject: str
    html: str
    text: Optional[str] = None
    reply_to: Optional[str] = None
    headers: Dict[str, str] = field(default_factory=dict)

class EmailSender:
    """Sends one email and returns the provider's message id.

    Any rejection or transport failure is raised as ``EmailSendError``.
    """

    async def send(self, email: OutboundEmail) -> str:
        raise NotImplementedError

class ResendEmailSender(EmailSender):
    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0
    ):
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.api_url = api_url or settings.resend_api_url
        self.transport = transport
        self.timeout = timeout

    def _payload(self, email: OutboundEmail) -> Dict:
        payload = {
            "from": email.sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
        }
        if email.text:
            payload["text"] = email.text
        if email.reply_to:
            payload["reply_to"] = email.reply_to
        if email.headers:
            payload["headers"] = email.headers
        return payload

    async def send(self, email: OutboundEmail) -> str:
        if not self.api_key:
            raise EmailSendError("Resend API key is not configured")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.api_url,
                    json=self._payload(email),
                    headers={"Authorization": f"Bearer {self.api_key}"}
                )
        except httpx.HTTPError as e:
            logger.error(f"Resend request failed for {email.to}: {e}")
            raise EmailSendError(f"Email delivery failed: {e}") from e

        if response.status_code >= 400:
            try:
                detail = response.json().get("message") or response.text
            except ValueError:
                detail = response.text
            logger.error(f"Resend rejected email to {email.to}: {response.status_code} {detail}")
            raise EmailSendError(f"Email rejected: {detail}")

        message_id = response.json().get("id")
        if not message_id:
            raise EmailSendError("Email provider returned no message id")

        logger.debug(f"Resend accepted email to {email.to}: {message_id}")
        return message_id

class SesEmailSender(EmailSender):
    def __init__(self, ses_client=None, max_workers: int = 5):
        self.ses_client = ses_client or boto3.client("sesv2", region_name=settings.aws_region)
        self.executor = ThreadPoolExecutor(max_workers=max_workers)

    async def send(self, email: OutboundEmail) -> str:
        loop = asyncio.get_running_loop()
        # boto3 is blocking, keep it off the event loop
        return await loop.run_in_executor(self.executor, self._send_email_ses, email)

    def _send_email_ses(self, email: OutboundEmail) -> str:
        body = {"Html": {"Data": email.html, "Charset": "UTF-8"}}
        if email.text:
            body["Text"] = {"Data": email.text, "Charset": "UTF-8"}

        simple: Dict = {
            "Subject": {"Data": email.subject, "Charset": "UTF-8"},
            "Body": body,
        }
        if email.headers:
            simple["Headers"] = [{"Name": name, "Value": value} for name, value in email.headers.items()]

        email_params = {
            "FromEmailAddress": email.sender,
            "Destination": {"ToAddresses": [email.to]},
            "Content": {"Simple": simple},
        }
        if email.reply_to:
            email_params["ReplyToAddresses"] = [email.reply_to]
        if settings.ses_configuration_set:
            email_params["ConfigurationSetName"] = settings.ses_configuration_set

        try:
            response = self.ses_client.send_email(**email_params)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            error_message = e.response["Error"]["Message"]
            logger.error(f"SES error sending to {email.to}: {error_code} {error_message}")

            if error_code == "MessageRejected":
                raise EmailSendError(f"Email rejected: {error_message}") from e
            elif error_code == "MailFromDomainNotVerifiedException":
                raise EmailSendError("Sender domain not verified with AWS SES") from e
            elif error_code == "SendingPausedException":
                raise EmailSendError("SES sending is paused - check your account status") from e
            elif error_code == "AccountSendingPausedException":
                raise EmailSendError("Account sending paused - likely due to bounce/complaint rate") from e
            else:
                raise EmailSendError(f"Email delivery failed: {error_message}") from e
        except Exception as e:
            logger.error(f"Unexpected error in SES send to {email.to}: {type(e).__name__}: {e}")
            raise EmailSendError(f"Email sending failed: {e}") from e

        message_id = response.get("MessageId")
        if not message_id:
            raise EmailSendError("Email provider returned no message id")
        return message_id

def create_email_sender(provider: Optional[str] = None) -> EmailSender:
    provider = (provider or settings.email_provider).lower()
    if provider == "resend":
        return ResendEmailSender()
    if provider == "ses":
        return SesEmailSender()
    raise ValueError(f"Unknown email provider: {provider}")

