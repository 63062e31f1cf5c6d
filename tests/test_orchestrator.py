"""
Tests for the orchestration service: sequence resolution, deadlines and counters.
"""

import asyncio

import pytest

from agent_orchestrator.agents import AgentRegistry, AgentType
from agent_orchestrator.agents.base import DEFAULT_SEQUENCE
from agent_orchestrator.models import OrchestrateRequest, RunStatus
from agent_orchestrator.orchestrator import (
    NO_RECOGNIZED_AGENTS_WARNING,
    AgentOrchestrator,
    resolve_sequence,
    stringify_values,
)

from .fakes import ScriptedAgent, scripted_agents


class TestRequestNormalization:
    """Test conversion of API request fields."""

    def test_stringify_values(self):
        values = {"name": "x", "count": 3, "items": [1, 2], "flag": True, "missing": None}

        assert stringify_values(values) == {
            "name": "x",
            "count": "3",
            "items": "[1, 2]",
            "flag": "true",
        }
        assert stringify_values(None) is None

    def test_resolve_sequence_defaults(self):
        assert resolve_sequence(None) == (list(DEFAULT_SEQUENCE), [])
        assert resolve_sequence([]) == (list(DEFAULT_SEQUENCE), [])

    def test_resolve_sequence_drops_unknown(self):
        sequence, warnings = resolve_sequence(["spec", "bogus", "TEST"])

        assert sequence == [AgentType.SPEC, AgentType.TEST_GENERATOR]
        assert warnings == []

    def test_resolve_sequence_nothing_recognized(self):
        assert resolve_sequence(["bogus", "deploy"]) == ([], [NO_RECOGNIZED_AGENTS_WARNING])


class TestAgentOrchestrator:
    """Test end-to-end request processing."""

    @pytest.mark.asyncio
    async def test_completed_run(self, scripted_registry, metrics):
        orchestrator = AgentOrchestrator(scripted_registry, metrics=metrics)
        response = await orchestrator.process_request(OrchestrateRequest(
            prompt="Add user login",
            agent_sequence=["spec", "code"],
            context={"retries": 2},
        ))

        assert response.status == RunStatus.completed
        assert response.request_id
        assert [s.agent_type for s in response.steps] == [AgentType.SPEC, AgentType.CODE]
        assert response.result["requirements"] == ["REQ-001: Login"]
        assert response.metadata.success is True
        assert response.metadata.agent_sequence == ["Spec", "Code"]
        assert response.metadata.agents_executed == 2
        assert response.metadata.success_rate == 100.0
        assert response.metadata.duration_ms >= 0
        assert response.steps[0].input["context"] == {"retries": "2"}

    @pytest.mark.asyncio
    async def test_no_recognized_agents(self, scripted_registry):
        orchestrator = AgentOrchestrator(scripted_registry)
        response = await orchestrator.process_request(
            OrchestrateRequest(prompt="x", agent_sequence=["bogus"])
        )

        assert response.status == RunStatus.completed
        assert response.steps == []
        assert response.result is None
        assert response.metadata.success_rate == 0.0
        assert response.metadata.warnings == [NO_RECOGNIZED_AGENTS_WARNING]

    @pytest.mark.asyncio
    async def test_step_failure_still_completes(self):
        agents = scripted_agents({
            AgentType.REVIEWER: ScriptedAgent(AgentType.REVIEWER, error=RuntimeError("review crashed")),
        })
        orchestrator = AgentOrchestrator(AgentRegistry(agents))
        response = await orchestrator.process_request(OrchestrateRequest(prompt="x"))

        assert response.status == RunStatus.completed
        assert len(response.steps) == 4
        assert response.steps[2].success is False
        assert response.metadata.success is True
        assert response.metadata.warnings == ["Agent Reviewer failed: review crashed"]

    @pytest.mark.asyncio
    async def test_every_step_failing_still_completes(self):
        agents = scripted_agents({
            t: ScriptedAgent(t, error=RuntimeError(f"{t.value} down")) for t in AgentType
        })
        orchestrator = AgentOrchestrator(AgentRegistry(agents))
        response = await orchestrator.process_request(
            OrchestrateRequest(prompt="x", agent_sequence=["spec", "code", "reviewer"])
        )

        assert response.status == RunStatus.completed
        assert len(response.steps) == 3
        assert all(s.success is False for s in response.steps)
        assert response.result is None
        assert response.metadata.success is True
        assert response.metadata.success_rate == 0.0
        assert len(response.metadata.warnings) == 3

    @pytest.mark.asyncio
    async def test_timeout_fails_run(self, metrics):
        agents = scripted_agents({AgentType.SPEC: ScriptedAgent(AgentType.SPEC, delay=1.0)})
        orchestrator = AgentOrchestrator(AgentRegistry(agents), metrics=metrics, timeout_seconds=0.05)
        response = await orchestrator.process_request(OrchestrateRequest(prompt="x"))

        assert response.status == RunStatus.failed
        assert response.steps == []
        assert response.result is None
        assert response.metadata.success is False
        assert response.metadata.error == "Orchestration timed out after 0.05s"
        assert await orchestrator.stats() == {"active_sessions": 0, "total_requests": 1}
        assert metrics.registry.get_sample_value("orchestration_runs_total", {"status": "failed"}) == 1.0

    @pytest.mark.asyncio
    async def test_unexpected_error_fails_run(self, scripted_registry, monkeypatch):
        orchestrator = AgentOrchestrator(scripted_registry)

        async def broken_run(*args, **kwargs):
            raise RuntimeError("registry exploded")

        monkeypatch.setattr(orchestrator.pipeline, "run", broken_run)
        response = await orchestrator.process_request(OrchestrateRequest(prompt="x"))

        assert response.status == RunStatus.failed
        assert response.metadata.error == "registry exploded"
        assert await orchestrator.stats() == {"active_sessions": 0, "total_requests": 1}

    @pytest.mark.asyncio
    async def test_concurrent_runs_share_registry(self, metrics):
        agents = scripted_agents({AgentType.SPEC: ScriptedAgent(AgentType.SPEC, delay=0.05)})
        orchestrator = AgentOrchestrator(AgentRegistry(agents), metrics=metrics)

        async def run_and_peek():
            task = asyncio.ensure_future(orchestrator.process_request(OrchestrateRequest(prompt="x")))
            await asyncio.sleep(0.01)
            return task

        tasks = [await run_and_peek() for _ in range(3)]
        during = await orchestrator.stats()
        responses = await asyncio.gather(*tasks)

        assert during["active_sessions"] >= 1
        assert all(r.status == RunStatus.completed for r in responses)
        assert len({r.request_id for r in responses}) == 3
        assert await orchestrator.stats() == {"active_sessions": 0, "total_requests": 3}
        assert metrics.registry.get_sample_value("orchestration_runs_total", {"status": "completed"}) == 3.0

    def test_list_agents(self, scripted_registry):
        agents = AgentOrchestrator(scripted_registry).list_agents()
        assert sorted(a["id"] for a in agents) == ["code", "debug", "reviewer", "spec", "test"]
