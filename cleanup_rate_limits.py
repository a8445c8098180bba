import asyncio
import logging
from dotenv import load_dotenv
from inkwell.database.connection import DatabaseConnection
from inkwell.database.rate_limit_repository import RateLimitRepository
from inkwell.utils.rate_limiting import RateLimiter

load_dotenv('.env')
logging.basicConfig(level=logging.INFO)

async def cleanup_rate_limits():
    pool = await DatabaseConnection.get_pool()
    try:
        await RateLimiter(RateLimitRepository(pool)).cleanup_old_rate_limits()
    finally:
        await DatabaseConnection.close_pool()
    return True

if __name__ == "__main__":
    success = asyncio.run(cleanup_rate_limits())
    print("✅ Rate limit cleanup completed!" if success else "❌ Rate limit cleanup failed!")
