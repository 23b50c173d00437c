"""
Shared fakes for Workflow Service tests.
"""

import asyncio
import time
from typing import Any, Dict, List, Optional

import pytest

from service_workflow.app.cache import Cache, MemoryCache
from service_workflow.app.config_source import ConfigSource, StaticConfigSource
from service_workflow.app.ledger import Ledger
from service_workflow.app.models import GenerationParams, WorkflowRecord
from service_workflow.app.runner import ModelRunner


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeRunner(ModelRunner):
    """Model runner that records calls and returns a canned reply."""

    name = "fake"

    def __init__(self, reply: str = "generated text", error: Optional[Exception] = None, delay: float = 0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls: List[Dict[str, Any]] = []
        self.embed_calls: List[str] = []

    async def run(self, model: str, prompt: str, params: GenerationParams) -> str:
        self.calls.append({"model": model, "prompt": prompt, "params": params})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply

    async def embed(self, text: str) -> List[float]:
        self.embed_calls.append(text)
        if self.error is not None:
            raise self.error
        return [0.1, 0.2, 0.3]


class RecordingCache(MemoryCache):
    """Memory cache that logs operations into a shared event list."""

    def __init__(self, events: List[str], clock=None, fail_reads: bool = False, fail_writes: bool = False,
                 write_delay: float = 0.0):
        super().__init__(clock=clock or time.time)
        self.events = events
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes
        self.write_delay = write_delay

    async def get(self, key: str):
        self.events.append("cache.get")
        if self.fail_reads:
            raise ConnectionError("cache down")
        return await super().get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        self.events.append("cache.set")
        if self.write_delay:
            await asyncio.sleep(self.write_delay)
        if self.fail_writes:
            raise ConnectionError("cache down")
        return await super().set(key, value, ttl_seconds)


class RejectingCache(Cache):
    """Cache whose writes report failure without raising."""

    name = "rejecting"

    async def get(self, key: str):
        return None

    async def set(self, key: str, value: str, ttl_seconds: int) -> bool:
        return False

    async def delete(self, key: str) -> None:
        return None

    async def clear(self) -> int:
        return 0


class RecordingLedger(Ledger):
    """Ledger that keeps appended records in memory."""

    name = "recording"

    def __init__(self, events: Optional[List[str]] = None, error: Optional[Exception] = None, delay: float = 0.0):
        self.events = events if events is not None else []
        self.error = error
        self.delay = delay
        self.records: List[WorkflowRecord] = []

    async def append(self, record: WorkflowRecord) -> None:
        self.events.append("ledger.append")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.records.append(record)


class RecordingConfigSource(StaticConfigSource):
    """Static config source that counts loads."""

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None, events: Optional[List[str]] = None):
        super().__init__(documents)
        self.events = events if events is not None else []
        self.loads: List[str] = []

    async def fetch(self, name: str) -> Dict[str, Any]:
        self.events.append("config.load")
        self.loads.append(name)
        return await super().fetch(name)


class BrokenConfigSource(ConfigSource):
    """Config source whose fetch always fails."""

    name = "broken"

    async def fetch(self, name: str) -> Dict[str, Any]:
        raise ConnectionError("config store unreachable")


@pytest.fixture
def events():
    return []


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def cache(events, clock):
    return RecordingCache(events, clock=clock)


@pytest.fixture
def ledger(events):
    return RecordingLedger(events)


@pytest.fixture
def config_source(events):
    return RecordingConfigSource({"workflow": {}}, events=events)
