"""
Spec Agent: turns a feature request into requirements, test cases and user stories.

The model proposes the requirement set; acceptance criteria, complexity and
risk are derived locally from it so they stay consistent with the list.
"""

import logging
from typing import Any, Dict, List

from .base import AgentType, LLMAgent, format_json_block
from .schemas import (
    Complexity,
    Priority,
    Requirement,
    RiskLevel,
    SpecRequest,
    SpecResponse,
)

logger = logging.getLogger(__name__)


SPEC_SYSTEM_PROMPT = """You are a senior product manager and systems analyst. Given a feature request, generate detailed, actionable requirements that:
1. Cover functional, non-functional, and technical aspects
2. Include clear acceptance criteria
3. Are prioritized appropriately (Critical, High, Medium, Low)
4. Are testable and measurable

Also break the feature into user stories ("As a [role], I want [goal] so that [benefit]")
and propose test cases (Unit, Integration, E2E, Manual, Regression) linked to requirement ids.

Respond with a single JSON object:
{
    "requirements": [{"id": "REQ-001", "title": "...", "description": "...", "priority": "High",
                      "category": "Functional", "acceptance_criteria": ["..."]}],
    "test_cases": [{"id": "TC-REQ-001-001", "title": "...", "description": "...", "test_type": "Unit",
                    "steps": ["..."], "expected_result": "...", "requirement_id": "REQ-001"}],
    "user_stories": [{"id": "US-001", "title": "...", "description": "...", "role": "...",
                      "goal": "...", "benefit": "..."}],
    "metadata": {"estimated_effort": "2-3 weeks", "dependencies": ["..."]}
}"""


def classify_complexity(requirement_count: int) -> Complexity:
    if requirement_count <= 3:
        return Complexity.SIMPLE
    if requirement_count <= 7:
        return Complexity.MODERATE
    if requirement_count <= 12:
        return Complexity.COMPLEX
    return Complexity.VERY_COMPLEX


def assess_risk(requirements: List[Requirement], complexity: Complexity) -> RiskLevel:
    critical_count = sum(1 for r in requirements if r.priority == Priority.CRITICAL)
    if critical_count > 2:
        return RiskLevel.HIGH
    if complexity == Complexity.VERY_COMPLEX:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class SpecAgent(LLMAgent):
    agent_type = AgentType.SPEC
    name = "Specification Agent"
    description = "Generates requirements, test cases, and user stories from prompts"
    request_model = SpecRequest
    response_model = SpecResponse
    system_prompt = SPEC_SYSTEM_PROMPT

    def build_user_prompt(self, request: SpecRequest) -> str:
        parts = [f"Generate requirements for this feature request:\n\n{request.prompt}"]
        if request.project_type:
            parts.append(f"Project type: {request.project_type}")
        if request.context:
            parts.append(format_json_block("Additional context", request.context))
        if request.existing_requirements:
            existing = "\n".join(f"- {r}" for r in request.existing_requirements)
            parts.append(f"Existing requirements (do not duplicate):\n{existing}")
        return "\n\n".join(parts)

    def prepare_output(self, raw: Dict[str, Any], request: SpecRequest) -> Dict[str, Any]:
        # Derived fields are always recomputed
        raw.pop("acceptance_criteria", None)
        metadata = raw.get("metadata")
        if isinstance(metadata, dict):
            metadata.pop("complexity", None)
            metadata.pop("risk_level", None)
        return raw

    def finalize(self, response: SpecResponse, request: SpecRequest) -> SpecResponse:
        response.acceptance_criteria = {
            r.id: list(r.acceptance_criteria) for r in response.requirements
        }
        complexity = classify_complexity(len(response.requirements))
        response.metadata.complexity = complexity
        response.metadata.risk_level = assess_risk(response.requirements, complexity)

        logger.info(
            f"Spec agent produced {len(response.requirements)} requirements, "
            f"{len(response.test_cases)} test cases (complexity {complexity.value})"
        )
        return response
