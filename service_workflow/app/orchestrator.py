"""
Cache-aside orchestration of a single workflow request.

One request runs through a fixed sequence:

1. validate the prompt (no external call happens before this)
2. derive the cache key and read the cache; a hit returns immediately
3. load remote config, merge parameters, run the model
4. write the cache, then append to the ledger
5. return the fresh result

Only ``InvalidInputError`` and ``UpstreamFailureError`` escape ``handle``.
Cache, config and ledger failures are reported as degraded steps on the
result. Concurrent misses for the same key are not coordinated; each one
calls the model.
"""

import asyncio
import time
from numbers import Real
from typing import Any, Awaitable, Dict, List, Optional, Tuple

from shared.logging import bind_workflow_context, get_logger
from shared.errors import InvalidInputError, UpstreamFailureError, WorkflowException
from shared.metrics import MetricsCollector
from .cache import Cache, make_cache_key
from .cache.base import DEFAULT_PROMPT_CHARS
from .config_source import ConfigSource
from .ledger import Ledger
from .models import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    GenerationParams,
    ResultSource,
    StepResult,
    WorkflowRecord,
    WorkflowRequest,
    WorkflowResult,
)
from .runner import ModelRunner


DEFAULT_MODEL = "@cf/meta/llama-2-7b-chat-int8"
DEFAULT_CACHE_TTL = 3600
DEFAULT_WRITE_TIMEOUT = 5.0

MODEL_ALIASES_KEY = "model_aliases"
# Config keys that never reach the model as extra parameters
RESERVED_CONFIG_KEYS = frozenset({MODEL_ALIASES_KEY, "prompt", "model", "temperature", "max_tokens"})


def _config_temperature(value: Any) -> Optional[float]:
    if isinstance(value, Real) and not isinstance(value, bool) and 0.0 <= float(value) <= 2.0:
        return float(value)
    return None


def _config_max_tokens(value: Any) -> Optional[int]:
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return None


def merge_params(
    request: WorkflowRequest,
    config: Dict[str, Any],
    default_model: str = DEFAULT_MODEL,
) -> Tuple[str, GenerationParams]:
    """Merge request, config and built-in defaults.

    Precedence per field: explicit request value, then config, then default.
    Config values of the wrong type or out of range are ignored. Returns the
    model to run (aliases resolved) and the generation parameters.
    """
    requested_model = request.model or default_model
    aliases = config.get(MODEL_ALIASES_KEY)
    model = aliases.get(requested_model, requested_model) if isinstance(aliases, dict) else requested_model

    temperature = request.temperature
    if temperature is None:
        temperature = _config_temperature(config.get("temperature"))
    if temperature is None:
        temperature = DEFAULT_TEMPERATURE

    max_tokens = request.max_tokens
    if max_tokens is None:
        max_tokens = _config_max_tokens(config.get("max_tokens"))
    if max_tokens is None:
        max_tokens = DEFAULT_MAX_TOKENS

    extra = {key: value for key, value in config.items() if key not in RESERVED_CONFIG_KEYS}
    return model, GenerationParams(temperature=temperature, max_tokens=max_tokens, extra=extra)


class Orchestrator:
    """Composes cache, config source, model runner and ledger.

    ``cache`` and ``ledger`` are optional. Without a cache every request is a
    miss; without a ledger nothing is recorded. Without a config source the
    config is always empty.
    """

    def __init__(
        self,
        runner: ModelRunner,
        config_source: Optional[ConfigSource] = None,
        cache: Optional[Cache] = None,
        ledger: Optional[Ledger] = None,
        *,
        config_name: str = "workflow",
        default_model: str = DEFAULT_MODEL,
        cache_ttl_seconds: int = DEFAULT_CACHE_TTL,
        cache_key_prompt_chars: int = DEFAULT_PROMPT_CHARS,
        metrics: Optional[MetricsCollector] = None,
        request_timeout_seconds: Optional[float] = None,
        cache_write_timeout_seconds: Optional[float] = DEFAULT_WRITE_TIMEOUT,
        ledger_timeout_seconds: Optional[float] = DEFAULT_WRITE_TIMEOUT,
    ):
        self.runner = runner
        self.config_source = config_source
        self.cache = cache
        self.ledger = ledger
        self.config_name = config_name
        self.default_model = default_model
        self.cache_ttl_seconds = cache_ttl_seconds
        self.cache_key_prompt_chars = cache_key_prompt_chars
        self.metrics = metrics
        self.request_timeout_seconds = request_timeout_seconds
        self.cache_write_timeout_seconds = cache_write_timeout_seconds
        self.ledger_timeout_seconds = ledger_timeout_seconds
        self.logger = get_logger("workflow.orchestrator")

    def cache_key(self, model: str, prompt: str) -> str:
        return make_cache_key(model, prompt, self.cache_key_prompt_chars)

    async def handle(self, request: WorkflowRequest) -> WorkflowResult:
        """Serve one request from cache or from a fresh model run.

        ``request_timeout_seconds`` bounds the cache read, config load and
        model call together. The cache write and ledger append run after the
        model has answered, each under its own timeout, so a slow store can
        only degrade the response.
        """
        prompt = request.prompt
        if not prompt or not prompt.strip():
            raise InvalidInputError("Prompt is required", details={"field": "prompt"})

        model = request.model or self.default_model
        cache_key = self.cache_key(model, prompt)
        bind_workflow_context(model=model)
        degraded = []

        try:
            cached, resolved_model, result = await asyncio.wait_for(
                self._lookup_or_run(request, model, cache_key, degraded),
                timeout=self.request_timeout_seconds
            )
        except asyncio.TimeoutError:
            self.logger.error("Workflow timed out", model=model, timeout=self.request_timeout_seconds)
            raise UpstreamFailureError(
                "workflow",
                "request timed out",
                details={"timeout_seconds": self.request_timeout_seconds}
            )

        if cached:
            self._count("workflow_requests_total", source=ResultSource.CACHE.value)
            return WorkflowResult(result=result, source=ResultSource.CACHE, model=model)

        written = await self._best_effort(
            "cache_write",
            self._write_cache(cache_key, result),
            timeout=self.cache_write_timeout_seconds
        )
        if written.is_degraded:
            degraded.append("cache_write")

        recorded = await self._best_effort(
            "ledger",
            self._append_ledger(WorkflowRecord(prompt=prompt, result=result, model=resolved_model)),
            timeout=self.ledger_timeout_seconds
        )
        if recorded.is_degraded:
            degraded.append("ledger")

        for step in degraded:
            self._count("workflow_degraded_total", step=step)
        self._count("workflow_requests_total", source=ResultSource.AI.value)

        self.logger.info(
            "Workflow computed",
            model=resolved_model,
            prompt_chars=len(prompt),
            result_chars=len(result),
            degraded=degraded or None
        )
        return WorkflowResult(result=result, source=ResultSource.AI, model=model, degraded=degraded)

    async def _lookup_or_run(
        self,
        request: WorkflowRequest,
        model: str,
        cache_key: str,
        degraded: List[str],
    ) -> Tuple[bool, str, str]:
        """Returns ``(from_cache, resolved_model, result)``."""
        cached = await self._read_cache(cache_key)
        if cached.is_degraded:
            degraded.append("cache_read")
        elif cached.value is not None:
            self.logger.debug("Cache hit", cache_key=cache_key, model=model)
            return True, model, cached.value

        self.logger.debug("Cache miss", cache_key=cache_key, model=model)

        config = await self._load_config()
        if config.is_degraded:
            degraded.append("config")

        resolved_model, params = merge_params(request, config.value or {}, self.default_model)
        result = await self._run_model(resolved_model, request.prompt, params)
        return False, resolved_model, result

    async def _read_cache(self, key: str) -> StepResult[str]:
        if self.cache is None:
            return StepResult.ok(None)
        return await self._best_effort("cache_read", self.cache.get(key))

    async def _write_cache(self, key: str, value: str) -> bool:
        if self.cache is None:
            return True
        if not await self.cache.set(key, value, self.cache_ttl_seconds):
            raise RuntimeError("cache rejected write")
        return True

    async def _append_ledger(self, record: WorkflowRecord) -> None:
        if self.ledger is not None:
            await self.ledger.append(record)

    async def _load_config(self) -> StepResult[Dict[str, Any]]:
        if self.config_source is None:
            return StepResult.ok({})
        try:
            return await self.config_source.load(self.config_name)
        except Exception as e:
            self.logger.warning("Config source raised, using empty config", error=str(e))
            return StepResult.degraded(str(e), fallback={})

    async def _run_model(self, model: str, prompt: str, params: GenerationParams) -> str:
        start = time.perf_counter()
        try:
            result = await self.runner.run(model, prompt, params)
        except UpstreamFailureError as e:
            self.logger.error("Model invocation failed", model=model, error=e.message)
            raise
        except WorkflowException as e:
            self.logger.error("Model invocation failed", model=model, error=e.message)
            raise UpstreamFailureError(model, e.message, details=e.details)
        except Exception as e:
            self.logger.error("Model invocation failed", model=model, error=str(e))
            raise UpstreamFailureError(model, str(e) or type(e).__name__)
        finally:
            if self.metrics is not None:
                self.metrics.observe_histogram(
                    "model_invocation_duration_seconds", time.perf_counter() - start, model=model
                )

        if not isinstance(result, str):
            raise UpstreamFailureError(model, "model returned no text")
        return result

    async def _best_effort(
        self,
        step: str,
        awaitable: Awaitable[Any],
        timeout: Optional[float] = None,
    ) -> StepResult[Any]:
        try:
            return StepResult.ok(await asyncio.wait_for(awaitable, timeout=timeout))
        except asyncio.TimeoutError:
            self.logger.warning("Workflow step timed out", step=step, timeout=timeout)
            return StepResult.degraded(f"{step} timed out after {timeout}s")
        except Exception as e:
            self.logger.warning("Workflow step degraded", step=step, error=str(e))
            return StepResult.degraded(str(e))

    def _count(self, metric_name: str, **labels):
        if self.metrics is not None:
            self.metrics.increment_counter(metric_name, **labels)
