# inkwell/newsletter/url_shortener.py
import httpx
from typing import Optional
from inkwell.config import settings
from inkwell.database.link_cache_repository import LinkCacheRepository
from inkwell.newsletter.errors import ShortenerError
import logging

logger = logging.getLogger(__name__)

class UrlShortener:
    """Read-through cache in front of the external short-link API.

    Cache reads and API failures raise ``ShortenerError``; cache writes are
    best-effort and only logged.
    """

    def __init__(
        self,
        cache: LinkCacheRepository,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.cache = cache
        self.api_key = api_key if api_key is not None else settings.url_shortener_api_key
        self.api_url = api_url or settings.url_shortener_api_url
        self.timeout = timeout if timeout is not None else settings.url_shortener_timeout_seconds
        self.transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self.api_key)

    async def shorten(self, original_url: str) -> str:
        url = original_url.strip()
        if not url:
            raise ShortenerError("Cannot shorten an empty URL")

        try:
            cached = await self.cache.get_short_url(url)
        except Exception as e:
            raise ShortenerError(f"Short link cache lookup failed for {url}: {e}") from e

        if cached:
            logger.info(f"URL shortener cache hit: {url}")
            return cached

        logger.info(f"URL shortener cache miss, calling API: {url}")
        short_url, short_code = await self._call_api(url)

        try:
            await self.cache.save_short_url(url, short_url, short_code)
        except Exception as e:
            logger.error(f"Error caching shortened URL {url}: {e}")

        return short_url

    async def _call_api(self, url: str):
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.api_url,
                    json={"url": url},
                    headers={"X-API-Key": self.api_key}
                )
        except httpx.HTTPError as e:
            raise ShortenerError(f"URL shortener request failed for {url}: {e}") from e

        if response.status_code >= 400:
            raise ShortenerError(
                f"URL shortener API error {response.status_code} for {url}: {response.text}"
            )

        try:
            result = response.json()
        except ValueError as e:
            raise ShortenerError(f"URL shortener returned invalid JSON for {url}") from e

        if not result.get("success") or not result.get("shortUrl"):
            raise ShortenerError(f"URL shortener returned unsuccessful response for {url}: {result}")

        return result["shortUrl"], result.get("shortCode") or ""
