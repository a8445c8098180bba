# inkwell/database/schema.py
import asyncpg
from typing import List
from sqlalchemy.dialects import postgresql
from sqlalchemy.schema import CreateTable, CreateIndex
from inkwell.models.schema import Base
import logging

logger = logging.getLogger(__name__)

def schema_statements() -> List[str]:
    """PostgreSQL DDL for every table the send pipeline uses"""
    dialect = postgresql.dialect()
    statements = []
    for table in Base.metadata.sorted_tables:
        ddl = str(CreateTable(table, if_not_exists=True).compile(dialect=dialect)).strip()
        statements.append(ddl)
        for index in sorted(table.indexes, key=lambda i: i.name):
            statements.append(str(CreateIndex(index, if_not_exists=True).compile(dialect=dialect)).strip())
    return statements

async def create_schema(connection: asyncpg.Connection):
    """Create all tables and indexes (idempotent)"""
    async with connection.transaction():
        for statement in schema_statements():
            await connection.execute(statement)
    logger.info(f"Schema ready ({len(Base.metadata.tables)} tables)")
