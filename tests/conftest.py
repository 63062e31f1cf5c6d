import os

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

os.environ.setdefault("MODEL_PROVIDER", "simulation")

from agent_orchestrator.agents import AgentRegistry  # noqa: E402
from agent_orchestrator.main import create_app  # noqa: E402
from agent_orchestrator.middleware.metrics import OrchestrationMetrics  # noqa: E402
from agent_orchestrator.orchestrator import AgentOrchestrator  # noqa: E402

from .fakes import StubModelClient, scripted_agents  # noqa: E402


@pytest.fixture
def model_client():
    return StubModelClient()


@pytest.fixture
def metrics():
    return OrchestrationMetrics()


@pytest.fixture
def agents():
    """Scripted agents keyed by type; tests replace entries before building the registry."""
    return scripted_agents()


@pytest.fixture
def scripted_registry(agents):
    return AgentRegistry(agents)


@pytest.fixture
def orchestrator(model_client, metrics):
    registry = AgentRegistry.from_model_client(model_client)
    return AgentOrchestrator(registry, metrics=metrics, timeout_seconds=5.0)


@pytest_asyncio.fixture
async def api_client(orchestrator):
    app = create_app(orchestrator)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
