"""
Configuration source contract.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from shared.logging import get_logger
from ..models import StepResult


class ConfigSourceError(Exception):
    """Raised by a source when a document cannot be fetched or parsed."""


class ConfigSource(ABC):
    """Remote store of named configuration documents.

    Subclasses implement ``fetch`` and may raise freely; ``load`` turns any
    failure into a degraded result carrying an empty mapping.
    """

    name = "config"

    def __init__(self):
        self.logger = get_logger(f"workflow.config.{self.name}")

    @abstractmethod
    async def fetch(self, name: str) -> Dict[str, Any]:
        """Fetch and parse the document called ``name``."""

    async def load(self, name: str) -> StepResult[Dict[str, Any]]:
        try:
            document = await self.fetch(name)
        except Exception as e:
            self.logger.warning("Config load failed, using empty config", config_name=name, error=str(e))
            return StepResult.degraded(str(e), fallback={})

        if not isinstance(document, dict):
            self.logger.warning("Config document is not a mapping", config_name=name)
            return StepResult.degraded("config document is not a mapping", fallback={})

        return StepResult.ok(document)


class StaticConfigSource(ConfigSource):
    """Serves fixed documents. Used when no remote source is configured."""

    name = "static"

    def __init__(self, documents: Optional[Dict[str, Dict[str, Any]]] = None):
        super().__init__()
        self.documents = documents or {}

    async def fetch(self, name: str) -> Dict[str, Any]:
        return dict(self.documents.get(name, {}))
