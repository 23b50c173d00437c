"""
Builds workflow collaborators from service configuration.
"""

from dataclasses import dataclass
from typing import Optional

from shared.config import BaseConfig
from shared.logging import get_logger
from .cache import Cache, MemoryCache, RedisCache
from .config_source import ConfigSource, GistConfigSource, StaticConfigSource
from .ledger import Ledger, PostgresLedger, RedisLedger
from .runner import ModelRunner, WorkersAIRunner


logger = get_logger("workflow.components")


@dataclass
class WorkflowComponents:
    """The capabilities the orchestrator consumes."""
    runner: ModelRunner
    config_source: Optional[ConfigSource] = None
    cache: Optional[Cache] = None
    ledger: Optional[Ledger] = None


def build_cache(config: BaseConfig) -> Optional[Cache]:
    backend = config.cache_backend.lower()
    if backend == "memory":
        return MemoryCache()
    if backend == "redis":
        return RedisCache(config.redis_url)
    if backend != "none":
        logger.warning("Unknown cache backend, running uncached", backend=backend)
    return None


def build_ledger(config: BaseConfig) -> Optional[Ledger]:
    backend = config.ledger_backend.lower()
    if backend == "postgres":
        return PostgresLedger(config.postgres_dsn)
    if backend == "redis":
        return RedisLedger(config.redis_url, ttl_seconds=config.ledger_ttl_seconds)
    if backend != "none":
        logger.warning("Unknown ledger backend, ledger disabled", backend=backend)
    return None


def build_config_source(config: BaseConfig) -> ConfigSource:
    if config.gist_id and config.github_token:
        return GistConfigSource(
            config.gist_id,
            config.github_token,
            api_url=config.github_api_url,
            timeout=config.config_timeout_seconds
        )
    return StaticConfigSource()


def build_runner(config: BaseConfig) -> ModelRunner:
    if not (config.ai_account_id and config.ai_api_token):
        logger.warning("Workers AI credentials missing; model calls will fail upstream")
    return WorkersAIRunner(
        account_id=config.ai_account_id or "",
        api_token=config.ai_api_token or "",
        base_url=config.ai_base_url,
        embedding_model=config.embedding_model,
        timeout=config.model_timeout_seconds,
        max_attempts=config.model_max_attempts
    )


def build_components(config: BaseConfig) -> WorkflowComponents:
    """Assemble production components for ``config``."""
    return WorkflowComponents(
        runner=build_runner(config),
        config_source=build_config_source(config),
        cache=build_cache(config),
        ledger=build_ledger(config),
    )
