"""
Input mapping between pipeline steps.

map_agent_input() builds the next agent's typed request from the original
request and the output of the last successful step. It is pure and total:
malformed options are skipped or omitted, never raised.
"""

import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from ..agents.base import AgentType
from ..agents.coder import detect_language
from ..agents.schemas import (
    AgentInput,
    CodeRequest,
    DebugFocus,
    DebugRequest,
    LogEntry,
    LogLevel,
    Requirement,
    ReviewFocus,
    ReviewRequest,
    SourceFile,
    SpecRequest,
    TestRequest,
)
from .models import OrchestrationRequest

logger = logging.getLogger(__name__)

E = TypeVar("E")

_LOG_LINE = re.compile(
    r"""^\s*
    (?:\[?(?P<timestamp>\d{4}-\d{2}-\d{2}[T\s][\d:.,]+(?:Z|[+-]\d{2}:?\d{2})?)\]?\s+)?
    (?:\[?(?P<level>TRACE|DEBUG|INFO|WARN(?:ING)?|ERROR|FATAL|CRITICAL)\]?\s*[:\-]?\s+)?
    (?P<message>.*?)\s*$""",
    re.VERBOSE,
)


def _load_json(value: str) -> Any:
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return None


def parse_list_option(value: Optional[str], split_commas: bool = False) -> Optional[List[str]]:
    """
    Parse a list-valued option.

    Accepts a JSON array, or newline separated text (also comma separated
    when split_commas is set). Returns None when nothing usable remains.
    """
    if value is None:
        return None

    parsed = _load_json(value)
    if isinstance(parsed, list):
        items = [str(item).strip() for item in parsed if item is not None and not isinstance(item, (dict, list))]
    else:
        separators = r"[\n,]" if split_commas else r"\n"
        items = [part.strip() for part in re.split(separators, value)]

    items = [item for item in items if item]
    return items or None


def parse_file_option(value: Optional[str]) -> Optional[List[SourceFile]]:
    """Parse a list of {path, content, language?} objects or a {path: content} object."""
    if value is None:
        return None

    parsed = _load_json(value)
    raw_items: List[Dict[str, Any]] = []
    if isinstance(parsed, dict):
        raw_items = [{"path": path, "content": content} for path, content in parsed.items()]
    elif isinstance(parsed, list):
        raw_items = [item for item in parsed if isinstance(item, dict)]
    else:
        logger.debug("Ignoring file option that is not a JSON list or object")
        return None

    files = []
    for item in raw_items:
        path = item.get("path") or item.get("file_path")
        content = item.get("content", "")
        if not isinstance(path, str) or not path or not isinstance(content, str):
            continue
        language = item.get("language")
        if not isinstance(language, str) or not language:
            language = detect_language(path)
        files.append(SourceFile(path=path, content=content, language=language))
    return files or None


def parse_log_line(line: str) -> Optional[LogEntry]:
    match = _LOG_LINE.match(line)
    if not match or not match.group("message"):
        return None
    level = LogLevel(match.group("level")) if match.group("level") else LogLevel.INFO
    return LogEntry(
        timestamp=match.group("timestamp") or "",
        level=level,
        message=match.group("message"),
    )


def parse_logs_option(value: Optional[str]) -> List[LogEntry]:
    """Parse log entries from a JSON array or plain text, one entry per line."""
    if not value:
        return []

    parsed = _load_json(value)
    if not isinstance(parsed, list):
        lines = value.splitlines()
        return [entry for entry in (parse_log_line(line) for line in lines if line.strip()) if entry]

    entries = []
    for item in parsed:
        if isinstance(item, str):
            entry = parse_log_line(item)
            if entry:
                entries.append(entry)
        elif isinstance(item, dict):
            try:
                entries.append(LogEntry.model_validate(item))
            except ValidationError:
                logger.debug(f"Skipping malformed log entry: {item!r}")
    return entries


def parse_enum_list(value: Optional[str], enum_cls: Type[E]) -> Optional[List[E]]:
    """Parse focus names, dropping any the enum does not know."""
    names = parse_list_option(value, split_commas=True)
    if names is None:
        return None
    members = []
    for name in names:
        try:
            member = enum_cls(name)
        except ValueError:
            logger.debug(f"Dropping unknown {enum_cls.__name__} value: {name!r}")
            continue
        if member not in members:
            members.append(member)
    return members or None


def _requirement_text(item: Any) -> Optional[str]:
    if isinstance(item, Requirement):
        return f"{item.id}: {item.title}" if item.title else item.id
    if isinstance(item, str):
        return item
    return None


def prior_requirements(prior_output: Optional[BaseModel]) -> Optional[List[str]]:
    items = getattr(prior_output, "requirements", None)
    if not items:
        return None
    texts = [text for text in (_requirement_text(item) for item in items) if text]
    return texts or None


def prior_changes(prior_output: Optional[BaseModel]) -> list:
    return list(getattr(prior_output, "changes", None) or [])


def _map_spec(request: OrchestrationRequest, prior_output: Optional[BaseModel]) -> SpecRequest:
    return SpecRequest(
        prompt=request.prompt,
        context=request.context,
        project_type=request.option("project_type"),
        existing_requirements=parse_list_option(request.option("existing_requirements")),
    )


def _map_code(request: OrchestrationRequest, prior_output: Optional[BaseModel]) -> CodeRequest:
    if prior_output is None:
        return CodeRequest(prompt=request.prompt, context=request.context)
    return CodeRequest(
        prompt=request.prompt,
        context=request.context,
        requirements=prior_requirements(prior_output),
        existing_files=parse_file_option(request.option("existing_files")),
        target_files=parse_list_option(request.option("target_files"), split_commas=True),
    )


def _map_test_generator(request: OrchestrationRequest, prior_output: Optional[BaseModel]) -> TestRequest:
    if prior_output is None:
        return TestRequest(prompt=request.prompt)
    return TestRequest(
        code_changes=prior_changes(prior_output),
        requirements=prior_requirements(prior_output),
        test_framework=request.option("test_framework"),
        coverage_goals=parse_list_option(request.option("coverage_goals")),
    )


def _map_reviewer(request: OrchestrationRequest, prior_output: Optional[BaseModel]) -> ReviewRequest:
    if prior_output is None:
        return ReviewRequest(prompt=request.prompt)
    return ReviewRequest(
        code_changes=prior_changes(prior_output),
        requirements=prior_requirements(prior_output),
        review_focus=parse_enum_list(request.option("review_focus"), ReviewFocus),
    )


def _map_debug(request: OrchestrationRequest, prior_output: Optional[BaseModel]) -> DebugRequest:
    return DebugRequest(
        logs=parse_logs_option(request.option("logs")),
        error_context=request.context,
        codebase_files=parse_file_option(request.option("codebase_files")),
        debug_focus=parse_enum_list(request.option("debug_focus"), DebugFocus),
    )


MAPPERS: Dict[AgentType, Callable[[OrchestrationRequest, Optional[BaseModel]], AgentInput]] = {
    AgentType.SPEC: _map_spec,
    AgentType.CODE: _map_code,
    AgentType.TEST_GENERATOR: _map_test_generator,
    AgentType.REVIEWER: _map_reviewer,
    AgentType.DEBUG: _map_debug,
}


def map_agent_input(
    agent_type: AgentType,
    request: OrchestrationRequest,
    prior_output: Optional[BaseModel] = None,
) -> AgentInput:
    """
    Build the typed request for the next agent.

    Args:
        agent_type: Agent about to run
        request: The original orchestration request
        prior_output: Output of the last successful step, if any

    Returns:
        The request model the agent expects
    """
    return MAPPERS[agent_type](request, prior_output)
