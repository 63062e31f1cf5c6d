"""
Agents for prompt-driven software delivery.

Each agent handles one pipeline stage:

- Spec: requirements, test cases and user stories from a prompt
- Code: file changes implementing the requirements
- Reviewer: findings, annotated diffs and an approval decision
- TestGenerator: test suites for the code changes
- Debug: log analysis, root causes and patch suggestions
"""

from .base import (
    DEFAULT_SEQUENCE,
    Agent,
    AgentError,
    AgentResponseError,
    AgentType,
    resolve_agent_names,
)
from .coder import CodeAgent
from .debugger import DebugAgent
from .registry import AgentRegistry
from .reviewer import ReviewerAgent
from .spec import SpecAgent
from .test_generator import TestGeneratorAgent


__all__ = [
    "DEFAULT_SEQUENCE",
    "Agent",
    "AgentError",
    "AgentResponseError",
    "AgentRegistry",
    "AgentType",
    "resolve_agent_names",
    # Agents
    "SpecAgent",
    "CodeAgent",
    "ReviewerAgent",
    "TestGeneratorAgent",
    "DebugAgent",
]
