# inkwell/models/newsletter.py
from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Dict, Any
from datetime import datetime
from enum import Enum
from inkwell.models.blocks import PublicationBrand, FooterContent

class IssueStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    SCHEDULED = "scheduled"
    SENT = "sent"

class SubscriberStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    UNSUBSCRIBED = "unsubscribed"
    BOUNCED = "bounced"
    COMPLAINED = "complained"

class SendJobStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

class SendMessageStatus(str, Enum):
    SENT = "sent"
    DELIVERED = "delivered"
    FAILED = "failed"
    BOUNCED = "bounced"
    COMPLAINED = "complained"

# Stored records

class Publication(BaseModel):
    id: str
    slug: str
    name: str
    from_name: str
    from_email: str
    reply_to: Optional[str] = None
    is_public: bool = True
    brand: PublicationBrand = PublicationBrand()
    default_footer_id: Optional[str] = None
    deleted_at: Optional[datetime] = None

class Issue(BaseModel):
    id: str
    publication_id: str
    slug: str
    subject: str
    preheader: Optional[str] = None
    status: IssueStatus = IssueStatus.DRAFT
    footer_override_id: Optional[str] = None
    send_count: int = 0
    open_count: int = 0
    click_count: int = 0
    published_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None

class ContentBlock(BaseModel):
    id: str
    issue_id: str
    type: str
    sort_order: int
    data: Dict[str, Any] = {}

class DefaultFooter(BaseModel):
    id: str
    publication_id: Optional[str] = None
    name: Optional[str] = None
    content: FooterContent = FooterContent()

class Subscriber(BaseModel):
    id: str
    publication_id: str
    email: str
    status: SubscriberStatus = SubscriberStatus.PENDING
    confirmation_token: Optional[str] = None
    unsubscribe_token: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    unsubscribed_at: Optional[datetime] = None
    bounced_at: Optional[datetime] = None
    complained_at: Optional[datetime] = None

class SendJob(BaseModel):
    id: str
    publication_id: str
    issue_id: str
    status: SendJobStatus = SendJobStatus.PENDING
    total_recipients: int
    sent_count: int = 0
    failed_count: int = 0
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

class SendMessage(BaseModel):
    id: str
    send_job_id: str
    subscriber_id: str
    issue_id: str
    provider_message_id: Optional[str] = None
    status: SendMessageStatus
    error_message: Optional[str] = None
    sent_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    opened_at: Optional[datetime] = None
    clicked_at: Optional[datetime] = None

# API payloads

class SendCampaignRequest(BaseModel):
    issue_id: str

class SendCampaignResponse(BaseModel):
    success: bool
    message: str
    job_id: str
    recipient_count: int

class SendTestRequest(BaseModel):
    issue_id: str
    test_email: EmailStr

class SubscribeRequest(BaseModel):
    publication_id: str
    email: EmailStr

class SubscribeResponse(BaseModel):
    message: str
    status: str

class ExtractUrlRequest(BaseModel):
    url: str = Field(..., min_length=1)
