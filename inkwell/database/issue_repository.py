# inkwell/database/issue_repository.py
import asyncpg
from typing import Optional, List
from inkwell.database.connection import record_to_dict
from inkwell.models.newsletter import Publication, Issue, ContentBlock, DefaultFooter
import logging

logger = logging.getLogger(__name__)

ISSUE_COUNTERS = ("send_count", "open_count", "click_count")

class IssueRepository:
    """Reads issue content and writes issue-level send statistics"""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def get_issue(self, issue_id: str) -> Optional[Issue]:
        """Get issue by ID"""
        query = """
            SELECT id, publication_id, slug, subject, preheader, status,
                   footer_override_id, send_count, open_count, click_count,
                   published_at, sent_at
            FROM issues
            WHERE id = $1
        """
        try:
            async with self.pool.acquire() as conn:
                result = await conn.fetchrow(query, issue_id)
            return Issue(**record_to_dict(result)) if result else None
        except Exception as e:
            logger.error(f"Failed to get issue {issue_id}: {e}")
            raise

    async def get_publication(self, publication_id: str) -> Optional[Publication]:
        """Get a publication that has not been soft-deleted"""
        query = """
            SELECT id, slug, name, from_name, from_email, reply_to, is_public,
                   brand, default_footer_id, deleted_at
            FROM publications
            WHERE id = $1 AND deleted_at IS NULL
        """
        try:
            async with self.pool.acquire() as conn:
                result = await conn.fetchrow(query, publication_id)
            if not result:
                return None
            row = record_to_dict(result)
            row["brand"] = row.get("brand") or {}
            return Publication(**row)
        except Exception as e:
            logger.error(f"Failed to get publication {publication_id}: {e}")
            raise

    async def get_blocks(self, issue_id: str) -> List[ContentBlock]:
        """Get an issue's content blocks in render order"""
        query = """
            SELECT id, issue_id, type, sort_order, data
            FROM blocks
            WHERE issue_id = $1
            ORDER BY sort_order
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, issue_id)
            blocks = []
            for row in rows:
                block = record_to_dict(row)
                block["data"] = block.get("data") or {}
                blocks.append(ContentBlock(**block))
            return blocks
        except Exception as e:
            logger.error(f"Failed to get blocks for issue {issue_id}: {e}")
            raise

    async def get_footer(self, footer_id: str) -> Optional[DefaultFooter]:
        """Get a default footer by ID"""
        query = """
            SELECT id, publication_id, name, content
            FROM default_footers
            WHERE id = $1
        """
        try:
            async with self.pool.acquire() as conn:
                result = await conn.fetchrow(query, footer_id)
            if not result:
                return None
            row = record_to_dict(result)
            row["content"] = row.get("content") or {}
            return DefaultFooter(**row)
        except Exception as e:
            logger.error(f"Failed to get footer {footer_id}: {e}")
            raise

    async def is_publication_admin(self, publication_id: str, user_id: str) -> bool:
        """Check whether a user administers a publication"""
        query = """
            SELECT 1 FROM publication_admins
            WHERE publication_id = $1 AND user_id = $2
        """
        try:
            async with self.pool.acquire() as conn:
                result = await conn.fetchval(query, publication_id, user_id)
            return result is not None
        except Exception as e:
            logger.error(f"Failed admin check for {user_id} on {publication_id}: {e}")
            raise

    async def mark_issue_sent(self, issue_id: str, send_count: int):
        """Record a finished campaign send on the issue"""
        query = """
            UPDATE issues
            SET status = 'sent', sent_at = CURRENT_TIMESTAMP, send_count = $2
            WHERE id = $1
        """
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(query, issue_id, send_count)
            logger.info(f"Issue {issue_id} marked as sent ({send_count} delivered to provider)")
        except Exception as e:
            logger.error(f"Failed to mark issue {issue_id} as sent: {e}")
            raise

    async def increment_issue_counter(self, issue_id: str, column: str):
        """Atomically add one to an issue statistic"""
        if column not in ISSUE_COUNTERS:
            raise ValueError(f"Unknown issue counter: {column}")

        query = f"UPDATE issues SET {column} = {column} + 1 WHERE id = $1"
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(query, issue_id)
        except Exception as e:
            logger.error(f"Failed to increment {column} for issue {issue_id}: {e}")
            raise
