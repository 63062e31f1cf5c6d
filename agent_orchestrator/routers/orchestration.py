"""
Orchestration API Routes: HTTP endpoints for agent pipeline runs.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, Request
from fastapi.responses import ORJSONResponse

from ..models import AgentInfo, OrchestrateRequest, OrchestrateResponse, OrchestratorStats
from ..orchestrator import AgentOrchestrator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["orchestration"])


def get_orchestrator(request: Request) -> AgentOrchestrator:
    return request.app.state.orchestrator


@router.post("/orchestrate", response_model=OrchestrateResponse, response_class=ORJSONResponse)
async def orchestrate(
    body: OrchestrateRequest,
    orchestrator: AgentOrchestrator = Depends(get_orchestrator),
):
    """
    Run a prompt through the agent pipeline.

    Always returns a complete response: failed steps show up as
    success=false records and warnings, a timed-out run as status "failed".
    """
    return await orchestrator.process_request(body)


@router.get("/agents", response_model=List[AgentInfo], response_class=ORJSONResponse)
async def list_agents(orchestrator: AgentOrchestrator = Depends(get_orchestrator)):
    """List the available agents."""
    return orchestrator.list_agents()


@router.get("/stats", response_model=OrchestratorStats, response_class=ORJSONResponse)
async def get_stats(orchestrator: AgentOrchestrator = Depends(get_orchestrator)):
    """Active sessions and total requests since startup."""
    return await orchestrator.stats()
