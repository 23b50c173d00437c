"""
PostgreSQL ledger for the Workflow Service.
"""

from typing import Optional

import asyncpg

from shared.logging import get_logger
from shared.errors import WorkflowException
from .base import Ledger
from ..models import WorkflowRecord


class PostgresLedger(Ledger):
    """Appends workflow records to the ``workflow_records`` table."""

    name = "postgres"

    def __init__(self, dsn: str, pool: Optional[asyncpg.Pool] = None):
        self.dsn = dsn
        self.logger = get_logger("workflow.ledger.postgres")
        self.pool: Optional[asyncpg.Pool] = pool

    async def start(self):
        """Start the ledger."""
        try:
            if self.pool is None:
                self.pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=1,
                    max_size=5,
                    command_timeout=30
                )

            await self._create_tables()
            self.logger.info("PostgreSQL ledger started")

        except Exception as e:
            self.logger.error("Failed to start PostgreSQL ledger", error=str(e))
            raise WorkflowException("POSTGRES_START_FAILED", str(e))

    async def stop(self):
        """Stop the ledger."""
        if self.pool:
            await self.pool.close()
            self.logger.info("PostgreSQL ledger stopped")

    async def _create_tables(self):
        async with self.pool.acquire() as conn:
            await conn.execute("""
                CREATE TABLE IF NOT EXISTS workflow_records (
                    id BIGSERIAL PRIMARY KEY,
                    prompt TEXT NOT NULL,
                    result TEXT NOT NULL,
                    model VARCHAR(255) NOT NULL,
                    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT NOW()
                );
            """)
            await conn.execute("""
                CREATE INDEX IF NOT EXISTS idx_workflow_records_created ON workflow_records(created_at DESC);
            """)

    async def append(self, record: WorkflowRecord) -> None:
        if self.pool is None:
            raise WorkflowException("LEDGER_NOT_STARTED", "PostgreSQL ledger is not started")

        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                INSERT INTO workflow_records (prompt, result, model, created_at)
                VALUES ($1, $2, $3, $4)
                """,
                record.prompt, record.result, record.model, record.created_at
            )

        self.logger.debug("Workflow record appended", model=record.model)

    async def health_check(self) -> bool:
        try:
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception:
            return False
