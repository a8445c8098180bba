# inkwell/newsletter/link_rewriter.py
import asyncio
from typing import Dict, List, Optional
from inkwell.models.blocks import (
    BlockData, StoryBlockData, PromoBlockData, ImageBlockData, FooterContent
)
from inkwell.models.render import RenderModel, RenderBlock
from inkwell.newsletter.url_shortener import UrlShortener
import logging

logger = logging.getLogger(__name__)

LINKED_BLOCK_TYPES = (StoryBlockData, PromoBlockData, ImageBlockData)

def _footer_links(footer: Optional[FooterContent]) -> List[str]:
    if not footer:
        return []
    return [social.url for social in footer.social_links if social.url]

def collect_links(model: RenderModel) -> List[str]:
    """Distinct content links in first-seen order.

    System URLs (web version, unsubscribe, publication home) are not content
    links and are never collected.
    """
    links = []
    for block in model.blocks:
        if isinstance(block.data, LINKED_BLOCK_TYPES) and block.data.link:
            links.append(block.data.link)
        elif isinstance(block.data, FooterContent):
            links.extend(_footer_links(block.data))
    links.extend(_footer_links(model.footer))
    return list(dict.fromkeys(links))

def _rewrite_footer(footer: FooterContent, mapping: Dict[str, str]) -> FooterContent:
    social_links = [
        social.model_copy(update={"url": mapping.get(social.url, social.url)})
        for social in footer.social_links
    ]
    return footer.model_copy(update={"social_links": social_links})

def _rewrite_data(data: BlockData, mapping: Dict[str, str]) -> BlockData:
    if isinstance(data, LINKED_BLOCK_TYPES) and data.link in mapping:
        return data.model_copy(update={"link": mapping[data.link]})
    if isinstance(data, FooterContent):
        return _rewrite_footer(data, mapping)
    return data

def apply_links(model: RenderModel, mapping: Dict[str, str]) -> RenderModel:
    """Return a copy of the model with every mapped link replaced"""
    blocks = [
        block.model_copy(update={"data": _rewrite_data(block.data, mapping)})
        for block in model.blocks
    ]
    footer = _rewrite_footer(model.footer, mapping) if model.footer else None
    return model.model_copy(update={"blocks": blocks, "footer": footer})

class LinkRewriter:
    """Swaps outbound content links for tracked short links.

    All or nothing: if any link cannot be shortened the original model is
    returned untouched.
    """

    def __init__(self, shortener: UrlShortener):
        self.shortener = shortener

    async def rewrite(self, model: RenderModel) -> RenderModel:
        try:
            if not self.shortener.enabled:
                logger.warning("URL shortener not configured, using original URLs")
                return model

            links = collect_links(model)
            if not links:
                logger.info("No URLs to shorten in render model")
                return model

            logger.info(f"Shortening {len(links)} URLs for issue {model.issue.id}")
            short_links = await asyncio.gather(*(self.shortener.shorten(link) for link in links))
            mapping = dict(zip(links, short_links))

            rewritten = apply_links(model, mapping)
            logger.info(f"Successfully shortened URLs in render model for issue {model.issue.id}")
            return rewritten
        except Exception as e:
            logger.error(f"Error shortening render model URLs for issue {model.issue.id}: {e}")
            return model
