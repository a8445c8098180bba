# inkwell/database/rate_limit_repository.py
import asyncpg
from datetime import datetime
from typing import Optional, Dict, Any
from inkwell.database.connection import record_to_dict

class RateLimitRepository:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get_current_window(
        self,
        identifier: str,
        endpoint: str,
        since: datetime
    ) -> Optional[Dict[str, Any]]:
        """Most recent window for identifier/endpoint that started after `since`"""
        async with self.pool.acquire() as conn:
            result = await conn.fetchrow(
                """
                SELECT id, identifier, endpoint, count, window_start
                FROM rate_limits
                WHERE identifier = $1 AND endpoint = $2 AND window_start >= $3
                ORDER BY window_start DESC
                LIMIT 1
                """,
                identifier, endpoint, since
            )
        return record_to_dict(result)

    async def create_window(self, identifier: str, endpoint: str, window_start: datetime):
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO rate_limits (identifier, endpoint, count, window_start)
                VALUES ($1, $2, 1, $3)
                """,
                identifier, endpoint, window_start
            )

    async def increment_window(self, window_id: str):
        async with self.pool.acquire() as conn:
            await conn.execute(
                "UPDATE rate_limits SET count = count + 1 WHERE id = $1",
                window_id
            )

    async def delete_windows_before(self, cutoff: datetime) -> str:
        async with self.pool.acquire() as conn:
            return await conn.execute(
                "DELETE FROM rate_limits WHERE window_start < $1",
                cutoff
            )
