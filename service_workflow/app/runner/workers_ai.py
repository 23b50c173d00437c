"""
Cloudflare Workers AI client for the Workflow Service.
"""

from typing import Any, Dict, List, Optional

import httpx

from shared.logging import get_logger
from shared.errors import UpstreamFailureError
from shared.retry import RetryConfig, RetryError, retry_on_exception
from .base import ModelRunner, extract_text
from ..models import GenerationParams


class WorkersAIRunner(ModelRunner):
    """Runs models through the Workers AI REST API.

    Transport errors are retried up to ``max_attempts`` times; HTTP error
    statuses are not.
    """

    name = "workers_ai"

    def __init__(
        self,
        account_id: str,
        api_token: str,
        base_url: str = "https://api.cloudflare.com/client/v4",
        embedding_model: str = "@cf/baai/bge-base-en-v1.5",
        timeout: float = 30.0,
        max_attempts: int = 1,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.account_id = account_id
        self.api_token = api_token
        self.base_url = base_url.rstrip("/")
        self.embedding_model = embedding_model
        self.timeout = timeout
        self.logger = get_logger("workflow.runner.workers_ai")
        self._transport = transport

        self.retry_config = RetryConfig(max_attempts=max_attempts, base_delay=0.5, max_delay=5.0)
        self._invoke = retry_on_exception(
            (httpx.TransportError,),
            config=self.retry_config,
            operation="model_call",
            log_context=lambda model, body: {"model": model}
        )(self._post)

    def _url(self, model: str) -> str:
        return f"{self.base_url}/accounts/{self.account_id}/ai/run/{model}"

    async def _post(self, model: str, body: Dict[str, Any]) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                self._url(model),
                json=body,
                headers={"Authorization": f"Bearer {self.api_token}"}
            )

        if response.status_code != 200:
            raise UpstreamFailureError(
                model,
                f"model call returned {response.status_code}",
                details={"status_code": response.status_code}
            )

        try:
            return response.json()
        except ValueError:
            return response.text

    async def _call(self, model: str, body: Dict[str, Any]) -> Any:
        try:
            return await self._invoke(model, body)
        except RetryError as e:
            self.logger.error("Model unreachable", model=model, attempts=e.attempts, error=str(e.last_exception))
            raise UpstreamFailureError(
                model,
                "model unreachable",
                details={"attempts": e.attempts, "error": str(e.last_exception)}
            )

    async def run(self, model: str, prompt: str, params: GenerationParams) -> str:
        body = {"prompt": prompt, **params.to_payload()}
        payload = await self._call(model, body)
        return extract_text(payload)

    async def embed(self, text: str) -> List[float]:
        payload = await self._call(self.embedding_model, {"text": text})
        try:
            result = payload.get("result", payload)
            return list(result["data"][0])
        except (AttributeError, KeyError, IndexError, TypeError):
            raise UpstreamFailureError(self.embedding_model, "embedding payload has no data")
