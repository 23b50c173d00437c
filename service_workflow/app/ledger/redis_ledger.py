"""
Key-value ledger: one expiring key per workflow record.
"""

import json
import uuid
from typing import Optional

import redis.asyncio as redis

from shared.logging import get_logger
from .base import Ledger
from ..models import WorkflowRecord


LEDGER_KEY_PREFIX = "workflow:"


class RedisLedger(Ledger):
    """Writes each record under ``workflow:{epoch_ms}:{suffix}`` with a TTL.

    The random suffix keeps records created in the same millisecond apart.
    """

    name = "redis"

    def __init__(self, redis_url: str, ttl_seconds: int = 86400, client: Optional[redis.Redis] = None):
        self.redis_url = redis_url
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger("workflow.ledger.redis")
        self.redis: Optional[redis.Redis] = client

    def _client(self) -> redis.Redis:
        if self.redis is None:
            self.redis = redis.from_url(self.redis_url, decode_responses=True)
        return self.redis

    async def stop(self):
        if self.redis:
            await self.redis.aclose()

    @staticmethod
    def record_key(record: WorkflowRecord) -> str:
        return f"{LEDGER_KEY_PREFIX}{int(record.created_at.timestamp() * 1000)}:{uuid.uuid4().hex}"

    async def append(self, record: WorkflowRecord) -> None:
        key = self.record_key(record)
        await self._client().set(key, json.dumps(record.to_dict()), ex=self.ttl_seconds, nx=True)
        self.logger.debug("Workflow record appended", record_key=key, model=record.model)

    async def health_check(self) -> bool:
        try:
            await self._client().ping()
            return True
        except Exception:
            return False
