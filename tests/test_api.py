"""
HTTP API tests using the ASGI transport.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from agent_orchestrator.agents import AgentRegistry, AgentType
from agent_orchestrator.core.config import settings
from agent_orchestrator.llm_client import ModelClientError
from agent_orchestrator.main import create_app
from agent_orchestrator.orchestrator import AgentOrchestrator

from .fakes import StubModelClient


class TestOrchestrateEndpoint:
    """Test POST /api/v1/orchestrate."""

    @pytest.mark.asyncio
    async def test_default_pipeline(self, api_client):
        resp = await api_client.post("/api/v1/orchestrate", json={"prompt": "Add user login"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "completed"
        assert [s["agent_type"] for s in body["steps"]] == ["Spec", "Code", "Reviewer", "TestGenerator"]
        assert all(s["success"] for s in body["steps"])
        assert body["metadata"]["success_rate"] == 100.0
        assert body["metadata"]["agent_sequence"] == ["Spec", "Code", "Reviewer", "TestGenerator"]
        assert body["result"]["metadata"]["total_tests"] == 2

        review_step = body["steps"][2]
        assert review_step["input"]["requirements"] == ["REQ-001: User login", "REQ-002: Password reset"]
        assert review_step["output"]["overall_approval"] == "ApprovedWithComments"

    @pytest.mark.asyncio
    async def test_explicit_sequence_with_options(self, api_client, model_client):
        resp = await api_client.post("/api/v1/orchestrate", json={
            "prompt": "Checkout is slow",
            "agent_sequence": ["debug"],
            "context": {"service": "checkout", "replicas": 3},
            "options": {
                "logs": ["ERROR request timed out", "ERROR request timed out"],
                "codebase_files": {"src/db.py": "query()"},
            },
        })

        assert resp.status_code == 200
        step = resp.json()["steps"][0]
        assert step["agent_type"] == "Debug"
        assert step["input"]["error_context"] == {"service": "checkout", "replicas": "3"}
        assert len(step["input"]["logs"]) == 2
        assert [p["file_path"] for p in step["output"]["patch_suggestions"]] == ["src/db.py"]
        assert [call[0] for call in model_client.calls] == [AgentType.DEBUG]

    @pytest.mark.asyncio
    async def test_agent_failure_is_reported(self):
        client = StubModelClient({AgentType.CODE: ModelClientError("upstream down")})
        app = create_app(AgentOrchestrator(AgentRegistry.from_model_client(client)))

        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as api:
            resp = await api.post("/api/v1/orchestrate", json={"prompt": "Add login"})

        body = resp.json()
        assert resp.status_code == 200
        assert body["status"] == "completed"
        assert body["steps"][1]["success"] is False
        assert body["steps"][1]["output"] == {"error": "upstream down", "agent": "Code"}
        assert body["metadata"]["warnings"] == ["Agent Code failed: upstream down"]
        assert body["metadata"]["success_rate"] == 75.0

    @pytest.mark.asyncio
    async def test_non_json_model_output_fails_step(self, api_client, model_client):
        model_client.replies[AgentType.SPEC] = "Sure! Here are some requirements."
        resp = await api_client.post("/api/v1/orchestrate", json={"prompt": "x", "agent_sequence": ["spec"]})

        step = resp.json()["steps"][0]
        assert step["success"] is False
        assert "not valid JSON" in step["error_message"]

    @pytest.mark.asyncio
    async def test_unrecognized_agents(self, api_client):
        resp = await api_client.post("/api/v1/orchestrate", json={"prompt": "x", "agent_sequence": ["deploy"]})

        body = resp.json()
        assert body["status"] == "completed"
        assert body["steps"] == []
        assert body["metadata"]["warnings"] == ["No recognized agents in requested sequence"]

    @pytest.mark.asyncio
    async def test_empty_prompt_rejected(self, api_client):
        resp = await api_client.post(
            "/api/v1/orchestrate",
            json={"prompt": ""},
            headers={"X-Correlation-ID": "req-422"},
        )

        assert resp.status_code == 422
        body = resp.json()
        assert body["error"] == "Validation Error"
        assert body["details"][0]["field"] == "prompt"
        assert body["correlation_id"] == "req-422"

    @pytest.mark.asyncio
    async def test_missing_prompt_rejected(self, api_client):
        resp = await api_client.post("/api/v1/orchestrate", json={"agent_sequence": ["spec"]})
        assert resp.status_code == 422


class TestServiceEndpoints:
    """Test agents, stats, health and metrics endpoints."""

    @pytest.mark.asyncio
    async def test_list_agents(self, api_client):
        resp = await api_client.get("/api/v1/agents")

        assert resp.status_code == 200
        agents = {a["id"]: a for a in resp.json()}
        assert set(agents) == {"spec", "code", "test", "reviewer", "debug"}
        assert agents["reviewer"]["name"] == "Code Reviewer Agent"

    @pytest.mark.asyncio
    async def test_stats_after_run(self, api_client):
        await api_client.post("/api/v1/orchestrate", json={"prompt": "x", "agent_sequence": ["spec"]})
        resp = await api_client.get("/api/v1/stats")

        assert resp.json() == {"active_sessions": 0, "total_requests": 1}

    @pytest.mark.asyncio
    async def test_health(self, api_client):
        resp = await api_client.get("/health")

        assert resp.status_code == 200
        assert resp.json()["status"] == "ok"
        assert resp.json()["agents"] == 5

    @pytest.mark.asyncio
    async def test_metrics(self, api_client):
        await api_client.post("/api/v1/orchestrate", json={"prompt": "x", "agent_sequence": ["spec"]})
        resp = await api_client.get("/metrics")

        assert resp.status_code == 200
        assert 'orchestration_runs_total{status="completed"} 1.0' in resp.text
        assert 'agent_steps_total{agent_type="Spec",outcome="success"} 1.0' in resp.text

    @pytest.mark.asyncio
    async def test_correlation_id_echoed(self, api_client):
        resp = await api_client.get("/health", headers={"X-Correlation-ID": "abc-123"})
        assert resp.headers["X-Correlation-ID"] == "abc-123"

        generated = await api_client.get("/health")
        assert generated.headers["X-Correlation-ID"]

    @pytest.mark.asyncio
    async def test_ready_with_simulation_provider(self, api_client, monkeypatch):
        monkeypatch.setattr(settings, "MODEL_PROVIDER", "simulation")
        resp = await api_client.get("/ready")

        assert resp.status_code == 200
        assert resp.json() == {"status": "ready", "provider": "simulation"}

    @pytest.mark.asyncio
    async def test_not_ready_without_credentials(self, api_client, monkeypatch):
        monkeypatch.setattr(settings, "MODEL_PROVIDER", "openai")
        monkeypatch.setattr(settings, "OPENAI_API_KEY", None)
        resp = await api_client.get("/ready")

        assert resp.status_code == 503
        assert resp.json()["error"] == "Not Ready"
        assert "OPENAI_API_KEY" in resp.json()["message"]

    @pytest.mark.asyncio
    async def test_providers(self, api_client):
        resp = await api_client.get("/admin/providers")

        assert resp.status_code == 200
        providers = resp.json()["providers"]
        assert providers["simulation"]["configured"] is True
        assert "openrouter" in providers

    @pytest.mark.asyncio
    async def test_unknown_route(self, api_client):
        resp = await api_client.get("/api/v1/nothing-here")
        assert resp.status_code == 404
