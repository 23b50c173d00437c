"""
Model runner contract.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, List

from ..models import GenerationParams


def extract_text(payload: Any) -> str:
    """Pull the generated text out of a model payload.

    Looks for a string ``response`` field, first inside a ``result`` envelope
    and then at the top level. Anything else is serialised whole.
    """
    if isinstance(payload, str):
        return payload

    if isinstance(payload, dict):
        envelope = payload.get("result")
        if isinstance(envelope, dict) and isinstance(envelope.get("response"), str):
            return envelope["response"]
        if isinstance(payload.get("response"), str):
            return payload["response"]

    return json.dumps(payload)


class ModelRunner(ABC):
    """Executes a named model. Failures raise ``UpstreamFailureError``."""

    name = "model"

    async def start(self) -> None:
        """No-op by default."""

    async def stop(self) -> None:
        """No-op by default."""

    @abstractmethod
    async def run(self, model: str, prompt: str, params: GenerationParams) -> str:
        """Generate text for ``prompt``."""

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """Return the embedding vector for ``text``."""
