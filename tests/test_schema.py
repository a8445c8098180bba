from unittest.mock import AsyncMock, MagicMock

from inkwell.database.schema import create_schema, schema_statements
from inkwell.models.schema import Base


def test_every_table_has_ddl():
    ddl = "\n".join(schema_statements())
    for table in (
        "publications", "publication_admins", "default_footers", "issues", "blocks",
        "subscribers", "send_jobs", "send_messages", "send_events",
        "url_shortener_cache", "rate_limits",
    ):
        assert f"CREATE TABLE IF NOT EXISTS {table}" in ddl


def test_send_messages_constraints():
    table = Base.metadata.tables["send_messages"]
    unique_sets = {
        tuple(sorted(c.name for c in constraint.columns))
        for constraint in table.constraints
        if constraint.__class__.__name__ == "UniqueConstraint"
    }
    assert ("send_job_id", "subscriber_id") in unique_sets
    assert table.c.provider_message_id.unique


def test_rate_limit_lookup_index():
    assert any("idx_rate_limits_lookup" in statement for statement in schema_statements())


async def test_create_schema_runs_in_transaction():
    connection = MagicMock()
    connection.execute = AsyncMock()
    transaction = MagicMock()
    transaction.__aenter__ = AsyncMock(return_value=None)
    transaction.__aexit__ = AsyncMock(return_value=False)
    connection.transaction.return_value = transaction

    await create_schema(connection)

    assert connection.execute.await_count == len(schema_statements())
    transaction.__aenter__.assert_awaited_once()
