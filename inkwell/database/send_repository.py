# inkwell/database/send_repository.py
import asyncpg
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from inkwell.database.connection import record_to_dict
from inkwell.models.newsletter import SendJob, SendMessage, SendMessageStatus
import logging

logger = logging.getLogger(__name__)

JOB_COLUMNS = """
    id, publication_id, issue_id, status, total_recipients, sent_count,
    failed_count, error_message, started_at, completed_at, created_at
"""

MESSAGE_COLUMNS = """
    id, send_job_id, subscriber_id, issue_id, provider_message_id, status,
    error_message, sent_at, delivered_at, opened_at, clicked_at
"""

class SendRepository:
    """Send jobs, per-recipient send messages and their delivery events"""

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def _fetch_job(self, query: str, *params) -> Optional[SendJob]:
        async with self.pool.acquire() as conn:
            result = await conn.fetchrow(query, *params)
        return SendJob(**record_to_dict(result)) if result else None

    async def _execute(self, query: str, *params) -> str:
        async with self.pool.acquire() as conn:
            return await conn.execute(query, *params)

    # Jobs

    async def create_job(self, publication_id: str, issue_id: str, total_recipients: int) -> SendJob:
        query = f"""
            INSERT INTO send_jobs (publication_id, issue_id, status, total_recipients)
            VALUES ($1, $2, 'pending', $3)
            RETURNING {JOB_COLUMNS}
        """
        try:
            job = await self._fetch_job(query, publication_id, issue_id, total_recipients)
            logger.info(f"Created send job {job.id} for issue {issue_id} ({total_recipients} recipients)")
            return job
        except Exception as e:
            logger.error(f"Failed to create send job for issue {issue_id}: {e}")
            raise

    async def get_job(self, job_id: str) -> Optional[SendJob]:
        try:
            return await self._fetch_job(f"SELECT {JOB_COLUMNS} FROM send_jobs WHERE id = $1", job_id)
        except Exception as e:
            logger.error(f"Failed to get send job {job_id}: {e}")
            raise

    async def mark_job_processing(self, job_id: str):
        await self._execute(
            "UPDATE send_jobs SET status = 'processing', started_at = CURRENT_TIMESTAMP WHERE id = $1",
            job_id
        )

    async def update_job_progress(self, job_id: str, sent_count: int, failed_count: int):
        await self._execute(
            "UPDATE send_jobs SET sent_count = $2, failed_count = $3 WHERE id = $1",
            job_id, sent_count, failed_count
        )

    async def complete_job(self, job_id: str, sent_count: int, failed_count: int):
        await self._execute(
            """
            UPDATE send_jobs
            SET status = 'completed', completed_at = CURRENT_TIMESTAMP,
                sent_count = $2, failed_count = $3
            WHERE id = $1
            """,
            job_id, sent_count, failed_count
        )

    async def fail_job(self, job_id: str, error_message: str):
        await self._execute(
            """
            UPDATE send_jobs
            SET status = 'failed', error_message = $2, completed_at = CURRENT_TIMESTAMP
            WHERE id = $1 AND status IN ('pending', 'processing')
            """,
            job_id, error_message
        )

    # Messages

    async def create_message(
        self,
        send_job_id: str,
        subscriber_id: str,
        issue_id: str,
        status: SendMessageStatus,
        provider_message_id: Optional[str] = None,
        error_message: Optional[str] = None
    ) -> SendMessage:
        """Record the outcome of one dispatch attempt"""
        sent_at = datetime.now(timezone.utc) if status == SendMessageStatus.SENT else None
        query = f"""
            INSERT INTO send_messages (
                send_job_id, subscriber_id, issue_id, provider_message_id,
                status, error_message, sent_at
            ) VALUES (
                $1, $2, $3, $4, $5, $6, $7
            )
            RETURNING {MESSAGE_COLUMNS}
        """
        async with self.pool.acquire() as conn:
            result = await conn.fetchrow(
                query, send_job_id, subscriber_id, issue_id,
                provider_message_id, status.value, error_message, sent_at
            )
        return SendMessage(**record_to_dict(result))

    async def get_message_by_provider_id(self, provider_message_id: str) -> Optional[SendMessage]:
        query = f"SELECT {MESSAGE_COLUMNS} FROM send_messages WHERE provider_message_id = $1"
        async with self.pool.acquire() as conn:
            result = await conn.fetchrow(query, provider_message_id)
        return SendMessage(**record_to_dict(result)) if result else None

    async def mark_message_sent(self, message_id: str):
        await self._execute(
            """
            UPDATE send_messages
            SET status = CASE WHEN status IN ('delivered', 'bounced', 'complained') THEN status ELSE 'sent' END,
                sent_at = COALESCE(sent_at, CURRENT_TIMESTAMP)
            WHERE id = $1
            """,
            message_id
        )

    async def mark_message_delivered(self, message_id: str):
        await self._execute(
            """
            UPDATE send_messages
            SET status = CASE WHEN status IN ('bounced', 'complained') THEN status ELSE 'delivered' END,
                delivered_at = COALESCE(delivered_at, CURRENT_TIMESTAMP)
            WHERE id = $1
            """,
            message_id
        )

    async def mark_message_opened(self, message_id: str) -> bool:
        """Set opened_at once; True only for the first open"""
        return await self._set_once(message_id, "opened_at")

    async def mark_message_clicked(self, message_id: str) -> bool:
        """Set clicked_at once; True only for the first click"""
        return await self._set_once(message_id, "clicked_at")

    async def _set_once(self, message_id: str, column: str) -> bool:
        query = f"""
            UPDATE send_messages
            SET {column} = CURRENT_TIMESTAMP
            WHERE id = $1 AND {column} IS NULL
            RETURNING id
        """
        async with self.pool.acquire() as conn:
            updated = await conn.fetchval(query, message_id)
        return updated is not None

    async def mark_message_bounced(self, message_id: str, reason: str):
        await self._execute(
            "UPDATE send_messages SET status = 'bounced', error_message = $2 WHERE id = $1",
            message_id, reason
        )

    async def mark_message_complained(self, message_id: str):
        await self._execute(
            "UPDATE send_messages SET status = 'complained' WHERE id = $1",
            message_id
        )

    # Events

    async def record_event(
        self,
        event_type: str,
        payload: Dict[str, Any],
        message: Optional[SendMessage] = None,
        provider_event_id: Optional[str] = None
    ):
        """Append a delivery event to the audit trail"""
        query = """
            INSERT INTO send_events (send_message_id, subscriber_id, issue_id, type, payload, provider_event_id)
            VALUES ($1, $2, $3, $4, $5, $6)
        """
        await self._execute(
            query,
            message.id if message else None,
            message.subscriber_id if message else None,
            message.issue_id if message else None,
            event_type,
            payload,
            provider_event_id
        )
