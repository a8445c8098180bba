# inkwell/newsletter/errors.py
from datetime import datetime

class NewsletterError(Exception):
    """Base class for send pipeline errors"""

class IssueNotFoundError(NewsletterError):
    def __init__(self, issue_id: str):
        super().__init__(f"Issue not found: {issue_id}")
        self.issue_id = issue_id

class NoActiveSubscribersError(NewsletterError):
    def __init__(self, publication_id: str):
        super().__init__("No active subscribers to send to")
        self.publication_id = publication_id

class RenderModelError(NewsletterError):
    """The issue content could not be assembled into an email"""

class EmailSendError(NewsletterError):
    """The email provider did not accept a message"""

class ShortenerError(NewsletterError):
    """A link could not be shortened"""

class InvalidTokenError(NewsletterError):
    """A confirmation or unsubscribe token matched no subscriber"""

class RateLimitExceeded(NewsletterError):
    def __init__(self, identifier: str, endpoint: str, reset_at: datetime):
        super().__init__(f"Rate limit exceeded for {identifier} on {endpoint}")
        self.identifier = identifier
        self.endpoint = endpoint
        self.reset_at = reset_at

class PublicationNotFoundError(NewsletterError):
    def __init__(self, publication_id: str):
        super().__init__(f"Publication not found: {publication_id}")
        self.publication_id = publication_id
