# inkwell/models/render.py
from pydantic import BaseModel, ConfigDict
from typing import Optional, List
from datetime import datetime
from inkwell.models.blocks import BlockData, FooterContent, PublicationBrand

class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

class PublicationSnapshot(Snapshot):
    id: str
    name: str
    slug: str
    brand: PublicationBrand = PublicationBrand()
    from_name: str
    from_email: str
    reply_to: Optional[str] = None

class IssueSnapshot(Snapshot):
    id: str
    slug: str
    subject: str
    preheader: Optional[str] = None
    published_at: Optional[datetime] = None

class RenderBlock(Snapshot):
    id: str
    type: str
    sort_order: int
    data: BlockData

class RenderUrls(Snapshot):
    web_version: str
    unsubscribe: str
    publication_home: str

class RenderModel(Snapshot):
    """Everything needed to materialize one issue's email, before personalization."""
    publication: PublicationSnapshot
    issue: IssueSnapshot
    blocks: List[RenderBlock]
    footer: Optional[FooterContent] = None
    urls: RenderUrls

    @property
    def sender(self) -> str:
        return f"{self.publication.from_name} <{self.publication.from_email}>"

    def with_unsubscribe_url(self, unsubscribe_url: str) -> "RenderModel":
        """Return a copy personalized with one recipient's unsubscribe link."""
        urls = self.urls.model_copy(update={"unsubscribe": unsubscribe_url})
        return self.model_copy(update={"urls": urls})
