# inkwell/database/link_cache_repository.py
import asyncpg
from typing import Optional
import logging

logger = logging.getLogger(__name__)

class LinkCacheRepository:
    """Persistent original URL -> short URL mapping"""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get_short_url(self, original_url: str) -> Optional[str]:
        async with self.pool.acquire() as conn:
            return await conn.fetchval(
                "SELECT short_url FROM url_shortener_cache WHERE original_url = $1",
                original_url
            )

    async def save_short_url(self, original_url: str, short_url: str, short_code: str = ""):
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO url_shortener_cache (original_url, short_url, short_code)
                VALUES ($1, $2, $3)
                ON CONFLICT (original_url) DO NOTHING
                """,
                original_url, short_url, short_code
            )
