# inkwell/database/subscriber_repository.py
import asyncpg
import secrets
from typing import Optional, List
from inkwell.database.connection import record_to_dict
from inkwell.models.newsletter import Subscriber
from inkwell.utils.validation import normalize_email
import logging

logger = logging.getLogger(__name__)

SUBSCRIBER_COLUMNS = """
    id, publication_id, email, status, confirmation_token, unsubscribe_token,
    confirmed_at, unsubscribed_at, bounced_at, complained_at
"""

def generate_token() -> str:
    return secrets.token_urlsafe(32)

class SubscriberRepository:
    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def _fetch_one(self, query: str, *params) -> Optional[Subscriber]:
        async with self.pool.acquire() as conn:
            result = await conn.fetchrow(query, *params)
        return Subscriber(**record_to_dict(result)) if result else None

    async def get_active_subscribers(self, publication_id: str) -> List[Subscriber]:
        """Get every subscriber eligible for a campaign send"""
        query = f"""
            SELECT {SUBSCRIBER_COLUMNS}
            FROM subscribers
            WHERE publication_id = $1 AND status = 'active'
            ORDER BY email
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch(query, publication_id)
            return [Subscriber(**record_to_dict(row)) for row in rows]
        except Exception as e:
            logger.error(f"Failed to get active subscribers for {publication_id}: {e}")
            raise

    async def get_by_email(self, publication_id: str, email: str) -> Optional[Subscriber]:
        query = f"""
            SELECT {SUBSCRIBER_COLUMNS}
            FROM subscribers
            WHERE publication_id = $1 AND email = $2
        """
        try:
            return await self._fetch_one(query, publication_id, normalize_email(email))
        except Exception as e:
            logger.error(f"Failed to get subscriber by email {email}: {e}")
            raise

    async def get_by_confirmation_token(self, token: str) -> Optional[Subscriber]:
        query = f"SELECT {SUBSCRIBER_COLUMNS} FROM subscribers WHERE confirmation_token = $1"
        try:
            return await self._fetch_one(query, token)
        except Exception as e:
            logger.error(f"Failed to get subscriber by confirmation token: {e}")
            raise

    async def get_by_unsubscribe_token(self, token: str) -> Optional[Subscriber]:
        query = f"SELECT {SUBSCRIBER_COLUMNS} FROM subscribers WHERE unsubscribe_token = $1"
        try:
            return await self._fetch_one(query, token)
        except Exception as e:
            logger.error(f"Failed to get subscriber by unsubscribe token: {e}")
            raise

    async def create_subscriber(self, publication_id: str, email: str) -> Subscriber:
        """Create a pending subscriber awaiting double opt-in"""
        query = f"""
            INSERT INTO subscribers (publication_id, email, status, confirmation_token, unsubscribe_token)
            VALUES ($1, $2, 'pending', $3, $4)
            RETURNING {SUBSCRIBER_COLUMNS}
        """
        try:
            subscriber = await self._fetch_one(
                query, publication_id, normalize_email(email), generate_token(), generate_token()
            )
            logger.info(f"Created subscriber {subscriber.id} for publication {publication_id}")
            return subscriber
        except asyncpg.UniqueViolationError:
            logger.warning(f"Subscriber already exists: {email}")
            return await self.get_by_email(publication_id, email)
        except Exception as e:
            logger.error(f"Failed to create subscriber {email}: {e}")
            raise

    async def confirm(self, subscriber_id: str) -> Optional[Subscriber]:
        """pending -> active"""
        query = f"""
            UPDATE subscribers
            SET status = 'active', confirmed_at = CURRENT_TIMESTAMP
            WHERE id = $1 AND status = 'pending'
            RETURNING {SUBSCRIBER_COLUMNS}
        """
        try:
            return await self._fetch_one(query, subscriber_id)
        except Exception as e:
            logger.error(f"Failed to confirm subscriber {subscriber_id}: {e}")
            raise

    async def unsubscribe(self, subscriber_id: str) -> Optional[Subscriber]:
        query = f"""
            UPDATE subscribers
            SET status = 'unsubscribed', unsubscribed_at = CURRENT_TIMESTAMP
            WHERE id = $1 AND status IN ('active', 'pending')
            RETURNING {SUBSCRIBER_COLUMNS}
        """
        try:
            return await self._fetch_one(query, subscriber_id)
        except Exception as e:
            logger.error(f"Failed to unsubscribe {subscriber_id}: {e}")
            raise

    async def reactivate(self, subscriber_id: str) -> Optional[Subscriber]:
        """unsubscribed -> pending, with freshly issued tokens"""
        query = f"""
            UPDATE subscribers
            SET status = 'pending', confirmation_token = $2, unsubscribe_token = $3,
                unsubscribed_at = NULL, confirmed_at = NULL
            WHERE id = $1 AND status = 'unsubscribed'
            RETURNING {SUBSCRIBER_COLUMNS}
        """
        try:
            return await self._fetch_one(query, subscriber_id, generate_token(), generate_token())
        except Exception as e:
            logger.error(f"Failed to reactivate subscriber {subscriber_id}: {e}")
            raise

    async def mark_bounced(self, subscriber_id: str):
        await self._set_delivery_status(subscriber_id, "bounced", "bounced_at")

    async def mark_complained(self, subscriber_id: str):
        await self._set_delivery_status(subscriber_id, "complained", "complained_at")

    async def _set_delivery_status(self, subscriber_id: str, status: str, timestamp_column: str):
        query = f"""
            UPDATE subscribers
            SET status = $2, {timestamp_column} = CURRENT_TIMESTAMP
            WHERE id = $1
        """
        try:
            async with self.pool.acquire() as conn:
                await conn.execute(query, subscriber_id, status)
            logger.info(f"Subscriber {subscriber_id} marked as {status}")
        except Exception as e:
            logger.error(f"Failed to mark subscriber {subscriber_id} as {status}: {e}")
            raise
