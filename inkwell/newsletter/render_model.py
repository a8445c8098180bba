# inkwell/newsletter/render_model.py
from typing import Optional, List
from pydantic import ValidationError
from inkwell.config import settings
from inkwell.database.issue_repository import IssueRepository
from inkwell.models.blocks import BlockType, parse_block_data
from inkwell.models.newsletter import Publication, Issue, ContentBlock, DefaultFooter
from inkwell.models.render import (
    RenderModel, RenderBlock, RenderUrls, PublicationSnapshot, IssueSnapshot
)
from inkwell.newsletter.errors import RenderModelError
import logging

logger = logging.getLogger(__name__)

FOOTER_BLOCK_ID = "footer-auto"
FOOTER_SORT_ORDER = 9999

def unsubscribe_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/api/unsubscribe?token={token}"

def build_urls(
    base_url: str,
    publication_slug: str,
    issue_slug: str,
    unsubscribe_token: Optional[str] = None
) -> RenderUrls:
    base_url = base_url.rstrip("/")
    return RenderUrls(
        web_version=f"{base_url}/n/{publication_slug}/{issue_slug}",
        unsubscribe=(
            unsubscribe_url(base_url, unsubscribe_token)
            if unsubscribe_token
            else f"{base_url}/n/{publication_slug}/unsubscribe"
        ),
        publication_home=f"{base_url}/n/{publication_slug}",
    )

def build_render_model(
    publication: Publication,
    issue: Issue,
    blocks: List[ContentBlock],
    footer: Optional[DefaultFooter],
    base_url: str,
    unsubscribe_token: Optional[str] = None
) -> RenderModel:
    """Assemble stored issue content into a render model.

    Blocks are ordered by sort_order. When the issue has no footer block of
    its own and a footer is configured, a synthetic footer block is appended
    with a sort order that keeps it last.
    """
    render_blocks = []
    for block in sorted(blocks, key=lambda b: b.sort_order):
        try:
            data = parse_block_data(block.type, block.data)
        except ValidationError as e:
            raise RenderModelError(f"Invalid {block.type} block {block.id}: {e}") from e
        render_blocks.append(
            RenderBlock(id=block.id, type=block.type, sort_order=block.sort_order, data=data)
        )

    has_footer_block = any(b.type == BlockType.FOOTER.value for b in render_blocks)
    if footer and not has_footer_block:
        render_blocks.append(
            RenderBlock(
                id=FOOTER_BLOCK_ID,
                type=BlockType.FOOTER.value,
                sort_order=FOOTER_SORT_ORDER,
                data=footer.content,
            )
        )

    return RenderModel(
        publication=PublicationSnapshot(
            id=publication.id,
            name=publication.name,
            slug=publication.slug,
            brand=publication.brand,
            from_name=publication.from_name,
            from_email=publication.from_email,
            reply_to=publication.reply_to,
        ),
        issue=IssueSnapshot(
            id=issue.id,
            slug=issue.slug,
            subject=issue.subject,
            preheader=issue.preheader,
            published_at=issue.published_at,
        ),
        blocks=render_blocks,
        footer=footer.content if footer else None,
        urls=build_urls(base_url, publication.slug, issue.slug, unsubscribe_token),
    )

class RenderModelBuilder:
    """Loads an issue and everything it renders with from the store"""

    def __init__(self, issues: IssueRepository, base_url: Optional[str] = None):
        self.issues = issues
        self.base_url = base_url if base_url is not None else settings.app_url

    async def build(
        self,
        issue_id: str,
        base_url: Optional[str] = None,
        unsubscribe_token: Optional[str] = None
    ) -> Optional[RenderModel]:
        """Build the render model for an issue, or None if it cannot be found"""
        issue = await self.issues.get_issue(issue_id)
        if not issue:
            logger.warning(f"Render model requested for missing issue {issue_id}")
            return None

        publication = await self.issues.get_publication(issue.publication_id)
        if not publication:
            logger.warning(f"Publication {issue.publication_id} for issue {issue_id} not found")
            return None

        blocks = await self.issues.get_blocks(issue_id)

        footer = None
        footer_id = issue.footer_override_id or publication.default_footer_id
        if footer_id:
            footer = await self.issues.get_footer(footer_id)

        return build_render_model(
            publication,
            issue,
            blocks,
            footer,
            base_url=base_url if base_url is not None else self.base_url,
            unsubscribe_token=unsubscribe_token,
        )
