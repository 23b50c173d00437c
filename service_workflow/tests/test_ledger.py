"""
Unit tests for workflow ledgers.
"""

import json
from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock

from shared.errors import WorkflowException
from service_workflow.app.ledger import PostgresLedger, RedisLedger
from service_workflow.app.models import WorkflowRecord


@pytest.fixture
def record():
    return WorkflowRecord(
        prompt="Explain X",
        result="X is a thing.",
        model="m1",
        created_at=datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    )


class TestRedisLedger:
    """Test cases for RedisLedger."""

    @pytest.fixture
    def redis_client(self):
        return AsyncMock()

    @pytest.mark.asyncio
    async def test_append_writes_expiring_key(self, redis_client, record):
        ledger = RedisLedger("redis://localhost:6379/0", client=redis_client)

        await ledger.append(record)

        redis_client.set.assert_awaited_once()
        args, kwargs = redis_client.set.call_args
        assert args[0].startswith("workflow:1704110400000:")
        assert json.loads(args[1]) == {
            "prompt": "Explain X",
            "result": "X is a thing.",
            "model": "m1",
            "created_at": "2024-01-01T12:00:00+00:00",
        }
        assert kwargs == {"ex": 86400, "nx": True}

    @pytest.mark.asyncio
    async def test_custom_ttl(self, redis_client, record):
        ledger = RedisLedger("redis://localhost:6379/0", ttl_seconds=60, client=redis_client)

        await ledger.append(record)

        assert redis_client.set.call_args.kwargs == {"ex": 60, "nx": True}

    @pytest.mark.asyncio
    async def test_records_in_same_millisecond_both_kept(self, record):
        store = {}

        async def fake_set(key, value, ex=None, nx=False):
            if nx and key in store:
                return None
            store[key] = value
            return True

        redis_client = AsyncMock()
        redis_client.set.side_effect = fake_set
        ledger = RedisLedger("redis://localhost:6379/0", client=redis_client)
        twin = WorkflowRecord(
            prompt="Explain Y",
            result="Y is another thing.",
            model="m1",
            created_at=record.created_at
        )

        await ledger.append(record)
        await ledger.append(twin)

        assert len(store) == 2
        assert sorted(json.loads(value)["prompt"] for value in store.values()) == ["Explain X", "Explain Y"]

    @pytest.mark.asyncio
    async def test_append_errors_propagate(self, redis_client, record):
        redis_client.set.side_effect = ConnectionError("refused")
        ledger = RedisLedger("redis://localhost:6379/0", client=redis_client)

        with pytest.raises(ConnectionError):
            await ledger.append(record)


class TestPostgresLedger:
    """Test cases for PostgresLedger."""

    @pytest.fixture
    def connection(self):
        return AsyncMock()

    @pytest.fixture
    def pool(self, connection):
        pool = MagicMock()
        pool.acquire.return_value.__aenter__.return_value = connection
        pool.close = AsyncMock()
        return pool

    @pytest.mark.asyncio
    async def test_start_creates_table(self, pool, connection):
        ledger = PostgresLedger("postgres://localhost/workflow", pool=pool)

        await ledger.start()

        statements = " ".join(call.args[0] for call in connection.execute.await_args_list)
        assert "CREATE TABLE IF NOT EXISTS workflow_records" in statements

    @pytest.mark.asyncio
    async def test_start_failure_raises(self, pool, connection):
        connection.execute.side_effect = OSError("connection refused")
        ledger = PostgresLedger("postgres://localhost/workflow", pool=pool)

        with pytest.raises(WorkflowException) as exc_info:
            await ledger.start()

        assert exc_info.value.code == "POSTGRES_START_FAILED"

    @pytest.mark.asyncio
    async def test_append_inserts_record(self, pool, connection, record):
        ledger = PostgresLedger("postgres://localhost/workflow", pool=pool)

        await ledger.append(record)

        args = connection.execute.await_args.args
        assert "INSERT INTO workflow_records" in args[0]
        assert args[1:] == ("Explain X", "X is a thing.", "m1", record.created_at)

    @pytest.mark.asyncio
    async def test_append_before_start_raises(self, record):
        ledger = PostgresLedger("postgres://localhost/workflow")

        with pytest.raises(WorkflowException):
            await ledger.append(record)

    @pytest.mark.asyncio
    async def test_health_check(self, pool, connection):
        ledger = PostgresLedger("postgres://localhost/workflow", pool=pool)
        assert await ledger.health_check() is True

        connection.fetchval.side_effect = OSError("gone")
        assert await ledger.health_check() is False

    @pytest.mark.asyncio
    async def test_stop_closes_pool(self, pool):
        ledger = PostgresLedger("postgres://localhost/workflow", pool=pool)

        await ledger.stop()

        pool.close.assert_awaited_once()
