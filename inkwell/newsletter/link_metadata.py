# inkwell/newsletter/link_metadata.py
import httpx
from bs4 import BeautifulSoup
from pydantic import BaseModel, Field
from typing import Optional
from inkwell.config import settings
import logging

logger = logging.getLogger(__name__)

MAX_DESCRIPTION_LENGTH = 300

REQUEST_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; NewsletterBot/1.0)",
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}

class LinkMetadata(BaseModel):
    title: str = ""
    description: str = ""
    image: str = ""
    site_name: str = Field("", serialization_alias="siteName")
    url: str

class LinkFetchError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

def _meta(soup: BeautifulSoup, key: str) -> Optional[str]:
    tag = soup.find("meta", attrs={"property": key}) or soup.find("meta", attrs={"name": key})
    if tag and tag.get("content"):
        return tag["content"].strip()
    return None

def parse_metadata(html_content: str, url: str) -> LinkMetadata:
    """Pull Open Graph (with plain HTML fallbacks) metadata out of a page"""
    soup = BeautifulSoup(html_content, "html.parser")

    title = _meta(soup, "og:title")
    if not title and soup.title and soup.title.string:
        title = soup.title.string.strip()

    description = (
        _meta(soup, "og:description")
        or _meta(soup, "description")
        or _meta(soup, "twitter:description")
        or ""
    )
    if len(description) > MAX_DESCRIPTION_LENGTH:
        description = description[:MAX_DESCRIPTION_LENGTH - 3] + "..."

    image = _meta(soup, "og:image") or _meta(soup, "twitter:image")
    if not image:
        first_image = soup.find("img", src=True)
        image = first_image["src"] if first_image else ""

    return LinkMetadata(
        title=title or "",
        description=description,
        image=image,
        site_name=_meta(soup, "og:site_name") or "",
        url=_meta(soup, "og:url") or url,
    )

async def extract_link_metadata(
    url: str,
    timeout: Optional[float] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> LinkMetadata:
    """Fetch a page and extract its preview metadata.

    Raises ``httpx.TimeoutException`` when the page does not answer in time and
    ``LinkFetchError`` for any other fetch failure.
    """
    timeout = timeout if timeout is not None else settings.link_metadata_timeout_seconds
    logger.info(f"Extracting metadata from URL: {url}")

    try:
        async with httpx.AsyncClient(
            timeout=timeout, transport=transport, follow_redirects=True, headers=REQUEST_HEADERS
        ) as client:
            response = await client.get(url)
    except httpx.TimeoutException:
        logger.error(f"Extract URL timeout: {url}")
        raise
    except httpx.HTTPError as e:
        logger.error(f"Extract URL network error for {url}: {e}")
        raise LinkFetchError(f"Network error: {e}") from e

    if response.status_code >= 400:
        logger.error(f"Failed to fetch URL {url}: {response.status_code}")
        raise LinkFetchError(
            f"Failed to fetch URL: {response.status_code} {response.reason_phrase}",
            status_code=response.status_code
        )

    return parse_metadata(response.text, url)
