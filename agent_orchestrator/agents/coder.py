"""
Code Agent: generates file changes implementing a prompt and its requirements.

The model returns the changes; language, complexity and review warnings
are computed from the changes themselves.
"""

import logging
from collections import Counter
from pathlib import PurePosixPath
from typing import Any, Dict, List

from .base import AgentType, LLMAgent, format_json_block
from .schemas import CodeChange, CodeRequest, CodeStream

logger = logging.getLogger(__name__)


CODE_SYSTEM_PROMPT = """You are an expert software engineer implementing new features. Generate precise code changes that:
1. Follow the established patterns and conventions of the existing files
2. Integrate cleanly with existing code
3. Include proper error handling
4. Are well-documented and testable
5. Follow security best practices

For each file change, provide the file path, the operation (Create, Modify, Delete, Rename),
the complete old content (if modifying), the complete new content, a clear explanation
and a confidence score between 0.0 and 1.0.

Respond with a single JSON object:
{
    "changes": [{"file_path": "...", "old_content": "...", "new_content": "...", "change_type": "Modify",
                 "explanation": "...", "confidence": 0.85}],
    "metadata": {"framework": "...", "patterns_used": ["..."]},
    "dependencies": ["package names the changes need"],
    "warnings": ["..."]
}"""

LANGUAGE_BY_EXTENSION = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".jsx": "javascript",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".py": "python",
    ".rs": "rust",
    ".go": "go",
    ".java": "java",
    ".rb": "ruby",
}

LOW_CONFIDENCE_THRESHOLD = 0.7


def detect_language(file_path: str) -> str:
    """Guess a file's language from its extension."""
    return LANGUAGE_BY_EXTENSION.get(PurePosixPath(file_path).suffix.lower(), "unknown")


def calculate_complexity(changes: List[CodeChange]) -> float:
    """Score 0.3-0.9 by the total number of new lines."""
    total_lines = sum(len(c.new_content.splitlines()) for c in changes)
    if total_lines <= 50:
        return 0.3
    if total_lines <= 200:
        return 0.5
    if total_lines <= 500:
        return 0.7
    return 0.9


def primary_language(changes: List[CodeChange]) -> str:
    counts = Counter(detect_language(c.file_path) for c in changes)
    counts.pop("unknown", None)
    if not counts:
        return "unknown"
    return counts.most_common(1)[0][0]


def validate_changes(changes: List[CodeChange]) -> List[str]:
    """
    Flag changes that need a human look.

    Returns:
        Warning messages, one per finding
    """
    warnings = []
    for change in changes:
        if "TODO" in change.new_content:
            warnings.append(f"TODO comment found in {change.file_path}")
        if change.confidence < LOW_CONFIDENCE_THRESHOLD:
            warnings.append(f"Low confidence ({change.confidence:.2f}) for changes in {change.file_path}")
    return warnings


class CodeAgent(LLMAgent):
    agent_type = AgentType.CODE
    name = "Code Generation Agent"
    description = "Generates code changes with streaming diffs"
    request_model = CodeRequest
    response_model = CodeStream
    system_prompt = CODE_SYSTEM_PROMPT

    def build_user_prompt(self, request: CodeRequest) -> str:
        parts = [f"Implement this feature:\n\n{request.prompt}"]
        if request.requirements:
            parts.append("Requirements:\n" + "\n".join(f"- {r}" for r in request.requirements))
        if request.context:
            parts.append(format_json_block("Context", request.context))
        if request.existing_files:
            files = "\n\n".join(f"File: {f.path}\nContent:\n{f.content}" for f in request.existing_files)
            parts.append(f"Existing codebase:\n{files}")
        if request.target_files:
            parts.append("Target files: " + ", ".join(request.target_files))
        return "\n\n".join(parts)

    def prepare_output(self, raw: Dict[str, Any], request: CodeRequest) -> Dict[str, Any]:
        metadata = raw.get("metadata")
        if isinstance(metadata, dict):
            metadata.pop("language", None)
            metadata.pop("complexity_score", None)
        raw["requirements"] = list(request.requirements or [])
        return raw

    def finalize(self, response: CodeStream, request: CodeRequest) -> CodeStream:
        response.metadata.language = primary_language(response.changes)
        response.metadata.complexity_score = calculate_complexity(response.changes)
        response.dependencies = list(dict.fromkeys(response.dependencies))

        for warning in validate_changes(response.changes):
            if warning not in response.warnings:
                response.warnings.append(warning)

        logger.info(
            f"Code agent produced {len(response.changes)} changes "
            f"({response.metadata.language}, {len(response.warnings)} warnings)"
        )
        return response
