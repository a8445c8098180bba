import json
from unittest.mock import MagicMock

import httpx
import pytest
from botocore.exceptions import ClientError

from inkwell.newsletter.errors import EmailSendError
from inkwell.services.email_service import (
    OutboundEmail, ResendEmailSender, SesEmailSender, create_email_sender,
)

EMAIL = OutboundEmail(
    sender="The Weekly <news@weekly.example>",
    to="reader@example.com",
    subject="Issue One",
    html="<p>Hi</p>",
    text="Hi",
    reply_to="editor@weekly.example",
    headers={"List-Unsubscribe": "<https://app.example/api/unsubscribe?token=t>"},
)


class TestResendEmailSender:
    async def test_posts_message_and_returns_id(self):
        requests = []

        def handler(request: httpx.Request):
            requests.append(request)
            return httpx.Response(200, json={"id": "re_123"})

        sender = ResendEmailSender(api_key="re_key", api_url="https://resend.test/emails",
                                   transport=httpx.MockTransport(handler))

        assert await sender.send(EMAIL) == "re_123"
        request = requests[0]
        assert request.headers["Authorization"] == "Bearer re_key"
        body = json.loads(request.content)
        assert body["from"] == EMAIL.sender
        assert body["to"] == ["reader@example.com"]
        assert body["headers"] == EMAIL.headers
        assert body["reply_to"] == "editor@weekly.example"
        assert "tags" not in body

    async def test_rejection_raises(self):
        transport = httpx.MockTransport(lambda r: httpx.Response(422, json={"message": "Invalid `to` field"}))
        sender = ResendEmailSender(api_key="re_key", transport=transport)

        with pytest.raises(EmailSendError, match="Invalid `to` field"):
            await sender.send(EMAIL)

    async def test_timeout_raises(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        sender = ResendEmailSender(api_key="re_key", transport=httpx.MockTransport(handler))
        with pytest.raises(EmailSendError):
            await sender.send(EMAIL)

    async def test_missing_api_key(self):
        with pytest.raises(EmailSendError):
            await ResendEmailSender(api_key="").send(EMAIL)


class TestSesEmailSender:
    async def test_sends_through_sesv2(self):
        client = MagicMock()
        client.send_email.return_value = {"MessageId": "ses-1"}

        assert await SesEmailSender(ses_client=client).send(EMAIL) == "ses-1"

        params = client.send_email.call_args.kwargs
        assert params["FromEmailAddress"] == EMAIL.sender
        assert params["Destination"] == {"ToAddresses": ["reader@example.com"]}
        assert params["ReplyToAddresses"] == ["editor@weekly.example"]
        simple = params["Content"]["Simple"]
        assert simple["Subject"]["Data"] == "Issue One"
        assert simple["Headers"] == [{"Name": "List-Unsubscribe", "Value": EMAIL.headers["List-Unsubscribe"]}]

    async def test_client_error_is_mapped(self):
        client = MagicMock()
        client.send_email.side_effect = ClientError(
            {"Error": {"Code": "MessageRejected", "Message": "Address blacklisted"}}, "SendEmail"
        )

        with pytest.raises(EmailSendError, match="Email rejected: Address blacklisted"):
            await SesEmailSender(ses_client=client).send(EMAIL)


def test_factory_rejects_unknown_provider():
    assert isinstance(create_email_sender("resend"), ResendEmailSender)
    with pytest.raises(ValueError):
        create_email_sender("carrier-pigeon")
