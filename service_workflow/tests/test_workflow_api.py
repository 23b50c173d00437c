"""
Route tests for the Workflow Service.
"""

import pytest
from fastapi.testclient import TestClient

from shared.errors import UpstreamFailureError
from service_workflow.app.cache import MemoryCache
from service_workflow.app.components import WorkflowComponents
from service_workflow.app.main import WorkflowService, create_app

from conftest import BrokenConfigSource, FakeRunner, RecordingLedger


class TestWorkflowService:
    """Test cases for WorkflowService routes."""

    @pytest.fixture
    def runner(self):
        return FakeRunner(reply="X is a thing.")

    @pytest.fixture
    def components(self, runner):
        return WorkflowComponents(
            runner=runner,
            config_source=BrokenConfigSource(),
            cache=MemoryCache(),
            ledger=RecordingLedger(),
        )

    @pytest.fixture
    def client(self, components):
        return TestClient(create_app(components))

    def test_root_endpoint(self, client):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "workflow"
        assert "cache:memory" in data["capabilities"]
        assert "/api/workflow" in data["available_endpoints"]

    def test_health_endpoint(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["service"] == "workflow"
        assert data["status"] == "healthy"
        assert data["dependencies"] == {"cache:memory": "ok", "ledger:recording": "ok"}
        assert "timestamp" in data

    def test_workflow_miss_then_hit(self, client, runner):
        body = {"prompt": "Explain X", "model": "m1"}

        first = client.post("/api/workflow", json=body)
        second = client.post("/api/workflow", json=body)

        assert first.status_code == 200
        assert first.json()["source"] == "ai"
        assert first.json()["result"] == "X is a thing."
        assert first.json()["model"] == "m1"
        assert second.json()["source"] == "cache"
        assert second.json()["result"] == "X is a thing."
        assert len(runner.calls) == 1

    def test_default_model_in_response(self, client):
        response = client.post("/api/workflow", json={"prompt": "Explain X"})

        assert response.json()["model"] == "@cf/meta/llama-2-7b-chat-int8"

    @pytest.mark.parametrize("body", [{"prompt": ""}, {}, {"prompt": "  "}])
    def test_empty_prompt_is_bad_input(self, client, runner, body):
        response = client.post("/api/workflow", json=body)

        assert response.status_code == 400
        data = response.json()
        assert data["code"] == "INVALID_INPUT"
        assert data["status_class"] == "bad-input"
        assert runner.calls == []

    @pytest.mark.parametrize("body", [
        {"prompt": "p", "temperature": 2.5},
        {"prompt": "p", "temperature": -0.1},
        {"prompt": "p", "max_tokens": 0},
    ])
    def test_out_of_range_params_are_bad_input(self, client, runner, body):
        response = client.post("/api/workflow", json=body)

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"
        assert runner.calls == []

    def test_upstream_failure(self, client, runner):
        runner.error = UpstreamFailureError("m1", "model exploded")

        response = client.post("/api/workflow", json={"prompt": "Explain X", "model": "m1"})

        assert response.status_code == 502
        data = response.json()
        assert data["code"] == "UPSTREAM_FAILURE"
        assert data["status_class"] == "upstream-failure"

    def test_request_timeout_is_upstream_failure(self, components, runner):
        runner.delay = 0.5
        client = TestClient(create_app(components, request_timeout_seconds=0.05))

        response = client.post("/api/workflow", json={"prompt": "Explain X"})

        assert response.status_code == 502
        assert response.json()["code"] == "UPSTREAM_FAILURE"

    def test_slow_ledger_does_not_fail_request(self, runner):
        components = WorkflowComponents(runner=runner, cache=MemoryCache(), ledger=RecordingLedger(delay=2.0))
        client = TestClient(create_app(components, request_timeout_seconds=0.5, ledger_timeout_seconds=0.1))

        response = client.post("/api/workflow", json={"prompt": "Explain X"})

        assert response.status_code == 200
        assert response.json()["result"] == "X is a thing."
        assert response.json()["source"] == "ai"
        assert len(runner.calls) == 1

    def test_unexpected_error_is_internal(self, components):
        service = WorkflowService(components)

        async def explode(request):
            raise RuntimeError("bug")

        service.orchestrator.handle = explode
        client = TestClient(service.app, raise_server_exceptions=False)

        response = client.post("/api/workflow", json={"prompt": "Explain X"})

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"
        assert response.json()["status_class"] == "internal"

    def test_embed(self, client, runner):
        response = client.post("/api/embed", json={"text": "hello"})

        assert response.status_code == 200
        assert response.json()["embeddings"] == [0.1, 0.2, 0.3]
        assert runner.embed_calls == ["hello"]

    def test_embed_requires_text(self, client):
        response = client.post("/api/embed", json={})

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"

    def test_clear_cache(self, client, runner):
        client.post("/api/workflow", json={"prompt": "Explain X"})

        response = client.delete("/api/cache")
        assert response.status_code == 200
        assert response.json()["cleared"] == 1

        again = client.post("/api/workflow", json={"prompt": "Explain X"})
        assert again.json()["source"] == "ai"
        assert len(runner.calls) == 2

    def test_uncached_service(self, runner):
        client = TestClient(create_app(WorkflowComponents(runner=runner)))

        client.post("/api/workflow", json={"prompt": "Explain X"})
        second = client.post("/api/workflow", json={"prompt": "Explain X"})

        assert second.json()["source"] == "ai"
        assert client.delete("/api/cache").json()["cleared"] == 0

    def test_unknown_route(self, client):
        response = client.get("/api/unknown")

        assert response.status_code == 404
        assert "/api/workflow" in response.json()["available_endpoints"]

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["x-request-id"] == "req-42"

    def test_metrics_endpoint(self, client):
        client.post("/api/workflow", json={"prompt": "Explain X"})

        response = client.get("/metrics")

        assert response.status_code == 200
        assert "workflow_requests_total" in response.text

    def test_startup_tolerates_component_failure(self, runner):
        class FailingStartLedger(RecordingLedger):
            async def start(self):
                raise ConnectionError("db down")

        components = WorkflowComponents(runner=runner, ledger=FailingStartLedger())

        with TestClient(create_app(components)) as client:
            response = client.post("/api/workflow", json={"prompt": "Explain X"})

        assert response.status_code == 200
