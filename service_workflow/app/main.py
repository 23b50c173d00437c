"""
Workflow service: cached, config-driven model invocation over HTTP.
"""

import asyncio
from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.errors import InvalidInputError, UpstreamFailureError, utc_timestamp

from .components import WorkflowComponents, build_components
from .models import EmbedRequest, EmbedResponse, WorkflowRequest, WorkflowResponse
from .orchestrator import Orchestrator


AVAILABLE_ENDPOINTS = ["/health", "/api/workflow", "/api/embed", "/api/cache"]


class WorkflowService(BaseService):
    """Workflow service implementation."""

    def __init__(self, components: Optional[WorkflowComponents] = None, **config_overrides):
        super().__init__("workflow", 8787, **config_overrides)

        self.components = components or build_components(self.config)
        self.orchestrator = Orchestrator(
            self.components.runner,
            config_source=self.components.config_source,
            cache=self.components.cache,
            ledger=self.components.ledger,
            config_name=self.config.config_name,
            default_model=self.config.default_model,
            cache_ttl_seconds=self.config.cache_ttl_seconds,
            cache_key_prompt_chars=self.config.cache_key_prompt_chars,
            metrics=self.metrics,
            request_timeout_seconds=self.config.request_timeout_seconds,
            cache_write_timeout_seconds=self.config.cache_write_timeout_seconds,
            ledger_timeout_seconds=self.config.ledger_timeout_seconds,
        )

        self._setup_workflow_routes()

    def _setup_workflow_routes(self):
        """Set up workflow-specific routes."""

        @self.app.on_event("startup")
        async def _startup():
            await self.start()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.stop()

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "workflow",
                "message": f"{self.config.project_name} - Workflow Service",
                "version": self.config.api_version,
                "capabilities": self._capabilities(),
                "available_endpoints": AVAILABLE_ENDPOINTS
            }

        @self.app.post("/api/workflow", response_model=WorkflowResponse)
        async def run_workflow(request: WorkflowRequest):
            """Serve a prompt from cache or from a fresh model run."""
            result = await self.orchestrator.handle(request)
            return WorkflowResponse.from_result(result)

        @self.app.post("/api/embed", response_model=EmbedResponse)
        async def embed(request: EmbedRequest):
            """Embed a piece of text."""
            if not request.text:
                raise InvalidInputError("Text is required", details={"field": "text"})

            try:
                embeddings = await asyncio.wait_for(
                    self.components.runner.embed(request.text),
                    timeout=self.config.request_timeout_seconds
                )
            except asyncio.TimeoutError:
                raise UpstreamFailureError(self.config.embedding_model, "request timed out")
            return EmbedResponse(embeddings=embeddings, timestamp=utc_timestamp())

        @self.app.delete("/api/cache")
        async def clear_cache():
            """Drop every cached workflow result."""
            cache = self.components.cache
            if cache is None:
                return {"cleared": 0, "cache": None, "timestamp": utc_timestamp()}

            cleared = await cache.clear()
            self.logger.info("Workflow cache cleared", cache=cache.name, count=cleared)
            return {"cleared": cleared, "cache": cache.name, "timestamp": utc_timestamp()}

        @self.app.exception_handler(404)
        async def not_found(request: Request, exc):
            return JSONResponse(
                status_code=404,
                content={
                    "code": "NOT_FOUND",
                    "message": "Not found",
                    "available_endpoints": AVAILABLE_ENDPOINTS,
                    "timestamp": utc_timestamp()
                }
            )

    def _capabilities(self):
        capabilities = ["generation", "embedding"]
        if self.components.cache is not None:
            capabilities.append(f"cache:{self.components.cache.name}")
        if self.components.ledger is not None:
            capabilities.append(f"ledger:{self.components.ledger.name}")
        if self.components.config_source is not None:
            capabilities.append(f"config:{self.components.config_source.name}")
        return capabilities

    async def _check_dependencies(self):
        """Check workflow service dependencies."""
        dependencies = {}

        cache = self.components.cache
        if cache is not None:
            dependencies[f"cache:{cache.name}"] = "ok" if await cache.health_check() else "error"

        ledger = self.components.ledger
        if ledger is not None:
            dependencies[f"ledger:{ledger.name}"] = "ok" if await ledger.health_check() else "error"

        return dependencies

    async def start(self):
        """Start workflow service components.

        A cache or ledger that fails to start is logged and left in place;
        its later calls degrade instead of failing requests.
        """
        for component in (self.components.cache, self.components.ledger, self.components.runner):
            if component is None:
                continue
            try:
                await component.start()
            except Exception as e:
                self.logger.warning("Component failed to start", component=component.name, error=str(e))

        self.logger.info("Workflow service started", capabilities=self._capabilities())

    async def stop(self):
        """Stop workflow service components."""
        for component in (self.components.cache, self.components.ledger, self.components.runner):
            if component is None:
                continue
            try:
                await component.stop()
            except Exception as e:
                self.logger.warning("Component failed to stop", component=component.name, error=str(e))

        self.logger.info("Workflow service stopped")


def create_app(components: Optional[WorkflowComponents] = None, **config_overrides):
    """Create workflow service application."""
    service = WorkflowService(components, **config_overrides)
    return service.app


if __name__ == "__main__":
    service = WorkflowService()
    service.run()
