from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .workflows.models import AgentExecution


class RunStatus(str, Enum):
    completed = "completed"
    failed = "failed"


class OrchestrateRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="Natural-language task for the agents")
    context: Optional[Dict[str, Any]] = Field(default=None, description="Key/value context passed to the agents")
    agent_sequence: Optional[List[str]] = Field(
        default=None,
        description="Ordered agent names (spec, code, test, reviewer, debug); unknown names are ignored",
    )
    options: Optional[Dict[str, Any]] = Field(default=None, description="Per-agent options, e.g. test_framework, logs")


class RunMetadata(BaseModel):
    start_time: str
    end_time: str
    duration_ms: float
    agent_sequence: List[str] = Field(default_factory=list)
    success: bool
    error: Optional[str] = None
    agents_executed: int = 0
    success_rate: float = 0.0
    warnings: List[str] = Field(default_factory=list)


class OrchestrateResponse(BaseModel):
    request_id: str
    status: RunStatus
    result: Optional[Dict[str, Any]] = None
    steps: List[AgentExecution] = Field(default_factory=list)
    metadata: RunMetadata


class AgentInfo(BaseModel):
    id: str
    type: str
    name: str
    description: str


class OrchestratorStats(BaseModel):
    active_sessions: int
    total_requests: int
