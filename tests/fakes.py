"""
Test doubles: a scripted model client and scripted agents.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from agent_orchestrator.agents import (
    AgentRegistry,
    AgentType,
    CodeAgent,
    DebugAgent,
    ReviewerAgent,
    SpecAgent,
    TestGeneratorAgent,
)
from agent_orchestrator.agents.schemas import (
    ChangeType,
    CodeChange,
    CodeStream,
    DebugReport,
    Requirement,
    ReviewReport,
    SpecResponse,
    TestSuite,
)

SYSTEM_PROMPTS = {
    SpecAgent.system_prompt: AgentType.SPEC,
    CodeAgent.system_prompt: AgentType.CODE,
    TestGeneratorAgent.system_prompt: AgentType.TEST_GENERATOR,
    ReviewerAgent.system_prompt: AgentType.REVIEWER,
    DebugAgent.system_prompt: AgentType.DEBUG,
}


SPEC_REPLY = {
    "requirements": [
        {
            "id": "REQ-001",
            "title": "User login",
            "description": "Users log in with email and password",
            "priority": "critical",
            "category": "security",
            "acceptance_criteria": ["Valid credentials log in", "Invalid credentials are rejected"],
        },
        {
            "id": "REQ-002",
            "title": "Password reset",
            "priority": "High",
            "acceptance_criteria": ["Reset email is sent"],
        },
    ],
    "test_cases": [
        {"id": "TC-001", "title": "Login succeeds", "test_type": "unit", "requirement_id": "REQ-001"},
    ],
    "user_stories": [
        {"id": "US-001", "title": "Login", "role": "user", "goal": "log in", "benefit": "see my data"},
    ],
    "acceptance_criteria": {"REQ-999": ["made up"]},
    "metadata": {"estimated_effort": "1 week", "complexity": "VeryComplex", "risk_level": "Critical"},
}

CODE_REPLY = {
    "changes": [
        {
            "file_path": "src/auth.py",
            "old_content": "",
            "new_content": "def login(user, password):\n    # TODO: rate limit\n    return check(user, password)\n",
            "change_type": "create",
            "explanation": "Add login",
            "confidence": 0.9,
        },
        {
            "file_path": "src/reset.py",
            "new_content": "def reset_password(email):\n    return send(email)\n",
            "change_type": "Create",
            "confidence": 0.6,
        },
    ],
    "metadata": {"framework": "fastapi", "language": "cobol", "complexity_score": 0.99},
    "dependencies": ["bcrypt", "bcrypt"],
    "warnings": [],
}

REVIEW_REPLY = {
    "findings": [
        {
            "file_path": "src/auth.py",
            "line_start": 2,
            "severity": "high",
            "category": "security",
            "title": "No rate limiting",
            "description": "Login can be brute forced",
        },
    ],
    "summary": {"total_findings": 99},
    "overall_approval": "Approved",
}

TEST_REPLY = {
    "tests": [
        {"file_path": "tests/test_auth.py", "test_type": "unit", "content": "def test_login():\n    assert login('a', 'b')\n"},
        {"file_path": "tests/test_reset.py", "test_type": "Unit", "framework": "pytest", "content": "def test_reset(): ..."},
    ],
    "metadata": {"total_tests": 42},
}

DEBUG_REPLY = {
    "issues": [
        {"severity": "critical", "category": "performance", "title": "Slow checkout", "description": "p99 over 5s"},
    ],
    "root_causes": [{"description": "N+1 queries", "confidence": 0.8, "evidence": ["query took 4s"]}],
    "confidence": 1.7,
    "patch_suggestions": [
        {"file_path": "src/db.py", "new_content": "prefetch()", "related_issue_id": "ISSUE-001"},
        {"file_path": "src/elsewhere.py", "new_content": "..."},
    ],
}

DEFAULT_REPLIES = {
    AgentType.SPEC: SPEC_REPLY,
    AgentType.CODE: CODE_REPLY,
    AgentType.REVIEWER: REVIEW_REPLY,
    AgentType.TEST_GENERATOR: TEST_REPLY,
    AgentType.DEBUG: DEBUG_REPLY,
}


class StubModelClient:
    """
    Model client that answers by agent type.

    Replies may be a dict (sent as JSON), raw text, or an exception to raise.
    """

    def __init__(self, replies: Optional[Dict[AgentType, Any]] = None):
        self.replies = dict(DEFAULT_REPLIES)
        self.replies.update(replies or {})
        self.calls: List[Tuple[AgentType, str]] = []

    async def generate_with_context(self, system_prompt: str, user_prompt: str) -> str:
        agent_type = SYSTEM_PROMPTS[system_prompt]
        self.calls.append((agent_type, user_prompt))
        reply = self.replies.get(agent_type, {})
        if isinstance(reply, Exception):
            raise reply
        if isinstance(reply, str):
            return reply
        return json.dumps(reply)


def default_output(agent_type: AgentType) -> BaseModel:
    if agent_type == AgentType.SPEC:
        return SpecResponse(requirements=[Requirement(id="REQ-001", title="Login")])
    if agent_type == AgentType.CODE:
        return CodeStream(
            changes=[CodeChange(file_path="src/app.py", new_content="x = 1\n", change_type=ChangeType.CREATE)],
            requirements=["REQ-001: Login"],
        )
    if agent_type == AgentType.REVIEWER:
        return ReviewReport(
            changes=[CodeChange(file_path="src/app.py", new_content="x = 1\n")],
            requirements=["REQ-001: Login"],
        )
    if agent_type == AgentType.TEST_GENERATOR:
        return TestSuite(recommendations=["more tests"])
    return DebugReport(next_steps=["look closer"])


class ScriptedAgent:
    """Agent that returns a canned output or raises, recording what it received."""

    def __init__(
        self,
        agent_type: AgentType,
        output: Optional[BaseModel] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.agent_type = agent_type
        self.name = f"Scripted {agent_type.value}"
        self.description = "scripted"
        self.output = output if output is not None else default_output(agent_type)
        self.error = error
        self.delay = delay
        self.received: List[BaseModel] = []

    async def invoke(self, request: BaseModel) -> BaseModel:
        self.received.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.output


def scripted_agents(overrides: Optional[Dict[AgentType, ScriptedAgent]] = None) -> Dict[AgentType, ScriptedAgent]:
    agents = {agent_type: ScriptedAgent(agent_type) for agent_type in AgentType}
    agents.update(overrides or {})
    return agents
