# inkwell/models/schema.py
from sqlalchemy import (
    Column, String, DateTime, Boolean, Text, Integer, ForeignKey,
    UniqueConstraint, Index, text,
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import declarative_base

Base = declarative_base()

def _uuid_pk():
    return Column(UUID(as_uuid=False), primary_key=True, server_default=text("gen_random_uuid()"))

def _created_at():
    return Column(DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP"))

class Publication(Base):
    __tablename__ = "publications"

    id = _uuid_pk()
    slug = Column(String(100), unique=True, nullable=False)
    name = Column(String(200), nullable=False)
    from_name = Column(String(200), nullable=False)
    from_email = Column(String(255), nullable=False)
    reply_to = Column(String(255), nullable=True)
    is_public = Column(Boolean, nullable=False, server_default=text("true"))
    brand = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    default_footer_id = Column(UUID(as_uuid=False), nullable=True)
    deleted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = _created_at()

class PublicationAdmin(Base):
    __tablename__ = "publication_admins"
    __table_args__ = (UniqueConstraint("publication_id", "user_id"),)

    id = _uuid_pk()
    publication_id = Column(UUID(as_uuid=False), ForeignKey("publications.id"), nullable=False)
    user_id = Column(String(255), nullable=False)
    created_at = _created_at()

class DefaultFooter(Base):
    __tablename__ = "default_footers"

    id = _uuid_pk()
    publication_id = Column(UUID(as_uuid=False), ForeignKey("publications.id"), nullable=True)
    name = Column(String(200), nullable=True)
    content = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    created_at = _created_at()

class Issue(Base):
    __tablename__ = "issues"
    __table_args__ = (UniqueConstraint("publication_id", "slug"),)

    id = _uuid_pk()
    publication_id = Column(UUID(as_uuid=False), ForeignKey("publications.id"), nullable=False)
    slug = Column(String(200), nullable=False)
    subject = Column(String(500), nullable=False)
    preheader = Column(String(500), nullable=True)
    status = Column(String(20), nullable=False, server_default=text("'draft'"))
    footer_override_id = Column(UUID(as_uuid=False), ForeignKey("default_footers.id"), nullable=True)
    send_count = Column(Integer, nullable=False, server_default=text("0"))
    open_count = Column(Integer, nullable=False, server_default=text("0"))
    click_count = Column(Integer, nullable=False, server_default=text("0"))
    published_at = Column(DateTime(timezone=True), nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    created_at = _created_at()

class Block(Base):
    __tablename__ = "blocks"
    __table_args__ = (UniqueConstraint("issue_id", "sort_order"),)

    id = _uuid_pk()
    issue_id = Column(UUID(as_uuid=False), ForeignKey("issues.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(20), nullable=False)
    sort_order = Column(Integer, nullable=False)
    data = Column(JSONB, nullable=False, server_default=text("'{}'::jsonb"))
    created_at = _created_at()

class Subscriber(Base):
    __tablename__ = "subscribers"
    __table_args__ = (
        UniqueConstraint("publication_id", "email"),
        Index("idx_subscribers_publication_status", "publication_id", "status"),
    )

    id = _uuid_pk()
    publication_id = Column(UUID(as_uuid=False), ForeignKey("publications.id"), nullable=False)
    email = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, server_default=text("'pending'"))
    confirmation_token = Column(String(64), unique=True, nullable=True)
    unsubscribe_token = Column(String(64), unique=True, nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    unsubscribed_at = Column(DateTime(timezone=True), nullable=True)
    bounced_at = Column(DateTime(timezone=True), nullable=True)
    complained_at = Column(DateTime(timezone=True), nullable=True)
    created_at = _created_at()

class SendJob(Base):
    __tablename__ = "send_jobs"

    id = _uuid_pk()
    publication_id = Column(UUID(as_uuid=False), ForeignKey("publications.id"), nullable=False)
    issue_id = Column(UUID(as_uuid=False), ForeignKey("issues.id"), nullable=False)
    status = Column(String(20), nullable=False, server_default=text("'pending'"))
    total_recipients = Column(Integer, nullable=False)
    sent_count = Column(Integer, nullable=False, server_default=text("0"))
    failed_count = Column(Integer, nullable=False, server_default=text("0"))
    error_message = Column(Text, nullable=True)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = _created_at()

class SendMessage(Base):
    __tablename__ = "send_messages"
    __table_args__ = (UniqueConstraint("send_job_id", "subscriber_id"),)

    id = _uuid_pk()
    send_job_id = Column(UUID(as_uuid=False), ForeignKey("send_jobs.id"), nullable=False)
    subscriber_id = Column(UUID(as_uuid=False), ForeignKey("subscribers.id"), nullable=False)
    issue_id = Column(UUID(as_uuid=False), ForeignKey("issues.id"), nullable=False)
    provider_message_id = Column(String(255), unique=True, nullable=True)
    status = Column(String(20), nullable=False)
    error_message = Column(Text, nullable=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    opened_at = Column(DateTime(timezone=True), nullable=True)
    clicked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = _created_at()

class SendEvent(Base):
    __tablename__ = "send_events"

    id = _uuid_pk()
    send_message_id = Column(UUID(as_uuid=False), ForeignKey("send_messages.id"), nullable=True)
    subscriber_id = Column(UUID(as_uuid=False), nullable=True)
    issue_id = Column(UUID(as_uuid=False), nullable=True)
    type = Column(String(50), nullable=False)
    payload = Column(JSONB, nullable=True)
    provider_event_id = Column(String(255), nullable=True)
    created_at = _created_at()

class ShortLink(Base):
    __tablename__ = "url_shortener_cache"

    id = _uuid_pk()
    original_url = Column(Text, unique=True, nullable=False)
    short_url = Column(Text, nullable=False)
    short_code = Column(String(50), nullable=False, server_default=text("''"))
    created_at = _created_at()

class RateLimit(Base):
    __tablename__ = "rate_limits"
    __table_args__ = (
        Index("idx_rate_limits_lookup", "identifier", "endpoint", "window_start"),
    )

    id = _uuid_pk()
    identifier = Column(String(255), nullable=False)
    endpoint = Column(String(100), nullable=False)
    count = Column(Integer, nullable=False, server_default=text("1"))
    window_start = Column(DateTime(timezone=True), nullable=False, server_default=text("CURRENT_TIMESTAMP"))
    created_at = _created_at()
