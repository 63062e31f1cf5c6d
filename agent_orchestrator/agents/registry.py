"""Agent registry: one agent instance per agent type, fixed at startup."""

import logging
from types import MappingProxyType
from typing import Dict, List, Mapping

from ..llm_client import ModelClient
from .base import Agent, AgentType
from .coder import CodeAgent
from .debugger import DebugAgent
from .reviewer import ReviewerAgent
from .spec import SpecAgent
from .test_generator import TestGeneratorAgent

logger = logging.getLogger(__name__)

# Public ids used by the agents listing endpoint
AGENT_IDS = {
    AgentType.SPEC: "spec",
    AgentType.CODE: "code",
    AgentType.TEST_GENERATOR: "test",
    AgentType.REVIEWER: "reviewer",
    AgentType.DEBUG: "debug",
}


class AgentRegistry:
    """
    Immutable mapping from AgentType to the agent that handles it.

    Construction checks that every agent type is covered, so resolve()
    never fails afterwards. Safe to share across concurrent runs.
    """

    def __init__(self, agents: Mapping[AgentType, Agent]):
        missing = [t.value for t in AgentType if t not in agents]
        if missing:
            raise ValueError(f"Agent registry is missing agents for: {', '.join(missing)}")

        for agent_type, agent in agents.items():
            if getattr(agent, "agent_type", agent_type) != agent_type:
                raise ValueError(
                    f"Agent registered for {agent_type.value} reports type {agent.agent_type.value}"
                )

        self._agents = MappingProxyType(dict(agents))

    @classmethod
    def from_model_client(cls, model_client: ModelClient) -> "AgentRegistry":
        """Build the five standard agents around one shared model client."""
        agents: Dict[AgentType, Agent] = {
            AgentType.SPEC: SpecAgent(model_client),
            AgentType.CODE: CodeAgent(model_client),
            AgentType.TEST_GENERATOR: TestGeneratorAgent(model_client),
            AgentType.REVIEWER: ReviewerAgent(model_client),
            AgentType.DEBUG: DebugAgent(model_client),
        }
        logger.info(f"Agent registry initialized with {len(agents)} agents")
        return cls(agents)

    def resolve(self, agent_type: AgentType) -> Agent:
        return self._agents[agent_type]

    def describe(self) -> List[Dict[str, str]]:
        return [
            {
                "id": AGENT_IDS[agent_type],
                "type": agent_type.value,
                "name": getattr(agent, "name", agent_type.value),
                "description": getattr(agent, "description", ""),
            }
            for agent_type, agent in self._agents.items()
        ]

    def __len__(self) -> int:
        return len(self._agents)
