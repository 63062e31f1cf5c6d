"""Agent types, the agent capability interface and shared LLM-agent plumbing."""

import json
import logging
import re
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Protocol, Type

from pydantic import BaseModel, ValidationError

from ..llm_client import ModelClient

logger = logging.getLogger(__name__)


class AgentType(str, Enum):
    """The closed set of pipeline stages."""
    SPEC = "Spec"
    CODE = "Code"
    TEST_GENERATOR = "TestGenerator"
    REVIEWER = "Reviewer"
    DEBUG = "Debug"

    @classmethod
    def from_name(cls, name: str) -> Optional["AgentType"]:
        """Resolve a caller-supplied agent name; None for unknown names."""
        if not isinstance(name, str):
            return None
        return AGENT_NAME_ALIASES.get(name.strip().lower())


AGENT_NAME_ALIASES: Dict[str, AgentType] = {
    "spec": AgentType.SPEC,
    "code": AgentType.CODE,
    "test": AgentType.TEST_GENERATOR,
    "test_generator": AgentType.TEST_GENERATOR,
    "testgenerator": AgentType.TEST_GENERATOR,
    "review": AgentType.REVIEWER,
    "reviewer": AgentType.REVIEWER,
    "debug": AgentType.DEBUG,
}

DEFAULT_SEQUENCE = (
    AgentType.SPEC,
    AgentType.CODE,
    AgentType.REVIEWER,
    AgentType.TEST_GENERATOR,
)


def resolve_agent_names(names: Iterable[str]) -> List[AgentType]:
    """Map names to agent types, dropping unknown names and keeping order."""
    resolved = []
    for name in names:
        agent_type = AgentType.from_name(name)
        if agent_type is None:
            logger.debug(f"Dropping unknown agent name: {name!r}")
            continue
        resolved.append(agent_type)
    return resolved


class AgentError(Exception):
    """Base class for agent failures."""


class AgentResponseError(AgentError):
    """The model returned something the agent cannot use."""


class Agent(Protocol):
    agent_type: AgentType
    name: str
    description: str

    async def invoke(self, request: BaseModel) -> BaseModel:
        ...


_FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*)```\s*$", re.DOTALL)


def parse_json_output(text: str) -> Dict[str, Any]:
    """
    Parse a JSON object out of model output.

    Accepts bare JSON, a reply that is one fenced ```json block, or an
    object surrounded by prose.

    Raises:
        AgentResponseError: If no JSON object can be parsed
    """
    candidate = (text or "").strip()
    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        parsed = _parse_embedded_json(candidate)

    if not isinstance(parsed, dict):
        raise AgentResponseError(f"Expected a JSON object, got {type(parsed).__name__}")
    return parsed


def _parse_embedded_json(candidate: str) -> Any:
    fenced = _FENCE_PATTERN.match(candidate)
    if fenced:
        candidate = fenced.group(1).strip()
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            pass

    # Prose around the object: take the outermost braces
    start, end = candidate.find("{"), candidate.rfind("}")
    if start == -1 or end <= start:
        raise AgentResponseError("Model output is not valid JSON")
    try:
        return json.loads(candidate[start:end + 1])
    except json.JSONDecodeError as e:
        raise AgentResponseError(f"Model output is not valid JSON: {e}") from e


class LLMAgent:
    """
    Base class for agents that make one model call per invocation.

    Subclasses set the class attributes, build the user prompt from their
    request and derive the deterministic parts of the response in finalize().
    """

    agent_type: ClassVar[AgentType]
    name: ClassVar[str]
    description: ClassVar[str]
    request_model: ClassVar[Type[BaseModel]]
    response_model: ClassVar[Type[BaseModel]]
    system_prompt: ClassVar[str]

    def __init__(self, model_client: ModelClient):
        self.model_client = model_client

    def build_user_prompt(self, request: BaseModel) -> str:
        raise NotImplementedError

    def prepare_output(self, raw: Dict[str, Any], request: BaseModel) -> Dict[str, Any]:
        """Adjust the parsed model output before validation."""
        return raw

    def finalize(self, response: BaseModel, request: BaseModel) -> BaseModel:
        return response

    async def invoke(self, request: BaseModel) -> BaseModel:
        if not isinstance(request, self.request_model):
            raise AgentError(
                f"{self.agent_type.value} agent expects {self.request_model.__name__}, "
                f"got {type(request).__name__}"
            )

        text = await self.model_client.generate_with_context(
            self.system_prompt, self.build_user_prompt(request)
        )
        raw = self.prepare_output(parse_json_output(text), request)

        try:
            response = self.response_model.model_validate(raw)
        except ValidationError as e:
            raise AgentResponseError(
                f"{self.agent_type.value} agent output failed validation: {e.error_count()} error(s)"
            ) from e

        return self.finalize(response, request)


def format_json_block(label: str, value: Any) -> str:
    """Render a labelled JSON section for a user prompt."""
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json", exclude_none=True)
    elif isinstance(value, list):
        value = [v.model_dump(mode="json", exclude_none=True) if isinstance(v, BaseModel) else v for v in value]
    return f"{label}:\n{json.dumps(value, indent=2)}"
