# inkwell/database/__init__.py
from .connection import get_db_connection, release_db_connection, DatabaseConnection
from .issue_repository import IssueRepository
from .subscriber_repository import SubscriberRepository
from .send_repository import SendRepository
from .link_cache_repository import LinkCacheRepository
from .rate_limit_repository import RateLimitRepository

__all__ = [
    "get_db_connection",
    "release_db_connection",
    "DatabaseConnection",
    "IssueRepository",
    "SubscriberRepository",
    "SendRepository",
    "LinkCacheRepository",
    "RateLimitRepository",
]
