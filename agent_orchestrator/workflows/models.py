"""Data carried through one pipeline run."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..agents.base import AgentType


class OrchestrationRequest(BaseModel):
    """A task submission after the service boundary has normalized it."""
    prompt: str
    context: Optional[Dict[str, str]] = None
    agent_sequence: Optional[List[AgentType]] = None
    options: Optional[Dict[str, str]] = None

    def option(self, key: str) -> Optional[str]:
        return (self.options or {}).get(key)


class AgentExecution(BaseModel):
    """Outcome of one pipeline step."""
    agent_type: AgentType
    input: Dict[str, Any] = Field(default_factory=dict)
    output: Dict[str, Any] = Field(default_factory=dict)
    success: bool
    execution_time_ms: float
    error_message: Optional[str] = None


class OrchestrationMetadata(BaseModel):
    total_execution_time_ms: float = 0.0
    agents_executed: int = 0
    success_rate: float = 0.0
    warnings: List[str] = Field(default_factory=list)


class PipelineResult(BaseModel):
    execution_order: List[AgentExecution] = Field(default_factory=list)
    final_result: Optional[Dict[str, Any]] = None
    metadata: OrchestrationMetadata = Field(default_factory=OrchestrationMetadata)
