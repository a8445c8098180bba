import asyncio
import asyncpg
import os
from dotenv import load_dotenv
from inkwell.database.schema import create_schema as create_tables

load_dotenv('.env')

async def create_schema():
    conn = await asyncpg.connect(os.getenv('DATABASE_URL'))
    try:
        # gen_random_uuid() on PostgreSQL < 13
        await conn.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto"')
        await create_tables(conn)
    finally:
        await conn.close()
    return True

if __name__ == "__main__":
    success = asyncio.run(create_schema())
    print("✅ Schema creation completed!" if success else "❌ Schema creation failed!")
