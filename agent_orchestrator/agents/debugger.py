"""
Debug Agent: analyzes logs to find issues, root causes and fixes.

Recurring log patterns are detected locally before the model call and merged
with whatever the model reports. Recommendations, monitoring advice and next
steps follow from the issues and patterns.
"""

import logging
import re
from typing import Any, Dict, List

from .base import AgentType, LLMAgent, format_json_block
from .schemas import (
    DebugRecommendation,
    DebugReport,
    DebugRequest,
    IssueCategory,
    IssueSeverity,
    LogEntry,
    LogLevel,
    LogPattern,
    PatternType,
    RecommendationPriority,
)

logger = logging.getLogger(__name__)


DEBUG_SYSTEM_PROMPT = """You are an expert site reliability engineer debugging a production system.
Given application logs, error context and source files:
1. Identify distinct issues (severity Critical/High/Medium/Low; category RuntimeError, Performance,
   Memory, Configuration, Integration, Logic or Security) with affected files and reproduction steps
2. Determine the most likely root cause of each issue with evidence and a fix suggestion
3. Describe recurring log patterns (ErrorSpike, ResourceExhaustion, SlowQuery, MemoryGrowth,
   FailedConnection, Timeout)
4. Where a supplied source file is at fault, propose a minimal patch

Respond with a single JSON object:
{
    "issues": [{"id": "ISSUE-001", "severity": "High", "category": "RuntimeError", "title": "...",
                "description": "...", "affected_files": ["..."], "related_logs": ["..."],
                "reproduction_steps": ["..."]}],
    "root_causes": [{"id": "RC-ISSUE-001", "description": "...", "confidence": 0.8,
                     "evidence": ["..."], "fix_suggestion": "..."}],
    "patterns": [{"pattern_type": "Timeout", "description": "...", "frequency": 3,
                  "severity": "Medium", "examples": ["..."]}],
    "patch_suggestions": [{"file_path": "...", "old_content": "...", "new_content": "...",
                           "explanation": "...", "confidence": 0.7, "related_issue_id": "ISSUE-001"}],
    "confidence": 0.85
}"""

MAX_PROMPT_LOG_ENTRIES = 50
MAX_PATTERN_EXAMPLES = 3
ERROR_SPIKE_MIN_COUNT = 5
ERROR_SPIKE_RATIO = 0.5

ERROR_LEVELS = (LogLevel.ERROR, LogLevel.FATAL)

MESSAGE_PATTERNS = {
    PatternType.TIMEOUT: (re.compile(r"time[d]?[\s-]?out", re.IGNORECASE), "Repeated timeouts"),
    PatternType.FAILED_CONNECTION: (
        re.compile(r"connection (refused|reset|failed|closed|lost)|ECONNREFUSED|unable to connect", re.IGNORECASE),
        "Repeated failed connections",
    ),
    PatternType.MEMORY_GROWTH: (
        re.compile(r"out of memory|\bOOM\b|memory usage|heap", re.IGNORECASE),
        "Memory pressure reported in logs",
    ),
    PatternType.SLOW_QUERY: (re.compile(r"slow query|query took", re.IGNORECASE), "Slow database queries"),
}

MONITORING_BY_PATTERN = {
    PatternType.ERROR_SPIKE: "Set up alerts for error rate thresholds",
    PatternType.MEMORY_GROWTH: "Monitor memory usage and set up garbage collection alerts",
    PatternType.SLOW_QUERY: "Monitor database query performance",
}

STANDARD_MONITORING = [
    "Implement structured logging with correlation IDs",
    "Set up log aggregation and alerting system",
]

STANDARD_NEXT_STEPS = [
    "Implement automated monitoring and alerting",
    "Review and update error handling patterns",
    "Consider implementing circuit breaker patterns",
]


def format_log_entry(entry: LogEntry) -> str:
    source = f" {entry.source}:" if entry.source else ""
    timestamp = f"{entry.timestamp} " if entry.timestamp else ""
    return f"{timestamp}[{entry.level.value.upper()}]{source} {entry.message}"


def _severity_for(frequency: int) -> IssueSeverity:
    if frequency >= 10:
        return IssueSeverity.HIGH
    if frequency >= 3:
        return IssueSeverity.MEDIUM
    return IssueSeverity.LOW


def detect_log_patterns(logs: List[LogEntry]) -> List[LogPattern]:
    """Find error spikes and recurring failure messages."""
    patterns = []

    errors = [e for e in logs if e.level in ERROR_LEVELS]
    if errors and (len(errors) >= ERROR_SPIKE_MIN_COUNT or (len(logs) >= 4 and len(errors) / len(logs) >= ERROR_SPIKE_RATIO)):
        fatal = any(e.level == LogLevel.FATAL for e in errors)
        patterns.append(LogPattern(
            pattern_type=PatternType.ERROR_SPIKE,
            description=f"{len(errors)} of {len(logs)} log entries are errors",
            frequency=len(errors),
            severity=IssueSeverity.CRITICAL if fatal else _severity_for(len(errors)),
            examples=[format_log_entry(e) for e in errors[:MAX_PATTERN_EXAMPLES]],
        ))

    for pattern_type, (regex, description) in MESSAGE_PATTERNS.items():
        matches = [e for e in logs if regex.search(e.message)]
        if len(matches) < 2:
            continue
        patterns.append(LogPattern(
            pattern_type=pattern_type,
            description=description,
            frequency=len(matches),
            severity=_severity_for(len(matches)),
            examples=[format_log_entry(e) for e in matches[:MAX_PATTERN_EXAMPLES]],
        ))

    return patterns


def build_recommendations(report: DebugReport) -> List[DebugRecommendation]:
    issues = report.analysis.issues
    recommendations = []

    critical = sum(1 for i in issues if i.severity == IssueSeverity.CRITICAL)
    if critical:
        recommendations.append(DebugRecommendation(
            id="REC-001",
            priority=RecommendationPriority.IMMEDIATE,
            title="Fix critical issues immediately",
            description=f"{critical} critical issues require immediate attention",
            action_items=["Deploy hotfix for critical issues", "Implement monitoring alerts"],
            estimated_effort="2-4 hours",
        ))

    for issue in issues:
        if issue.category == IssueCategory.PERFORMANCE:
            recommendations.append(DebugRecommendation(
                id=f"REC-PERF-{issue.id}",
                priority=RecommendationPriority.HIGH,
                title=f"Optimize {issue.title}",
                description=issue.description,
                action_items=["Profile performance bottlenecks", "Implement caching where appropriate"],
                estimated_effort="4-8 hours",
            ))
        elif issue.category == IssueCategory.MEMORY:
            recommendations.append(DebugRecommendation(
                id=f"REC-MEM-{issue.id}",
                priority=RecommendationPriority.HIGH,
                title=f"Fix {issue.title}",
                description=issue.description,
                action_items=["Review memory allocation patterns", "Implement proper cleanup"],
                estimated_effort="2-4 hours",
            ))

    return recommendations


def build_monitoring_recommendations(patterns: List[LogPattern]) -> List[str]:
    recommendations = []
    for pattern in patterns:
        message = MONITORING_BY_PATTERN.get(pattern.pattern_type)
        if message and message not in recommendations:
            recommendations.append(message)
    return recommendations + STANDARD_MONITORING


def build_next_steps(report: DebugReport) -> List[str]:
    issues = report.analysis.issues
    steps = []
    if any(i.severity == IssueSeverity.CRITICAL for i in issues):
        steps.append("Deploy immediate fix for critical issues")
    if len(issues) > 5:
        steps.append("Conduct comprehensive system audit")
    return steps + STANDARD_NEXT_STEPS


class DebugAgent(LLMAgent):
    agent_type = AgentType.DEBUG
    name = "Debug Agent"
    description = "Analyzes logs and provides debugging insights"
    request_model = DebugRequest
    response_model = DebugReport
    system_prompt = DEBUG_SYSTEM_PROMPT

    def build_user_prompt(self, request: DebugRequest) -> str:
        parts = []
        if request.logs:
            shown = request.logs[:MAX_PROMPT_LOG_ENTRIES]
            log_text = "\n".join(format_log_entry(e) for e in shown)
            header = f"Logs ({len(shown)} of {len(request.logs)} entries)"
            parts.append(f"{header}:\n{log_text}")
        else:
            parts.append("No log entries were supplied.")
        if request.error_context:
            parts.append(format_json_block("Error context", request.error_context))
        if request.debug_focus:
            parts.append("Focus areas: " + ", ".join(f.value for f in request.debug_focus))
        if request.recent_changes:
            parts.append("Recent changes:\n" + "\n".join(f"- {c}" for c in request.recent_changes))
        for source in request.codebase_files or []:
            parts.append(f"File: {source.path} ({source.language})\n{source.content}")
        return "\n\n".join(parts)

    def prepare_output(self, raw: Dict[str, Any], request: DebugRequest) -> Dict[str, Any]:
        analysis = raw.get("analysis") if isinstance(raw.get("analysis"), dict) else {
            key: raw[key] for key in ("issues", "root_causes", "patterns", "confidence") if key in raw
        }
        analysis.pop("recommendations", None)

        for index, issue in enumerate(analysis.get("issues") or [], start=1):
            if isinstance(issue, dict) and not issue.get("id"):
                issue["id"] = f"ISSUE-{index:03d}"
        for index, cause in enumerate(analysis.get("root_causes") or [], start=1):
            if isinstance(cause, dict) and not cause.get("id"):
                cause["id"] = f"RC-{index:03d}"

        return {
            "analysis": analysis,
            "patch_suggestions": raw.get("patch_suggestions") or [],
        }

    def finalize(self, response: DebugReport, request: DebugRequest) -> DebugReport:
        analysis = response.analysis

        local_patterns = detect_log_patterns(request.logs)
        local_types = {p.pattern_type for p in local_patterns}
        analysis.patterns = local_patterns + [p for p in analysis.patterns if p.pattern_type not in local_types]

        known_files = {f.path for f in request.codebase_files or []}
        dropped = [p.file_path for p in response.patch_suggestions if p.file_path not in known_files]
        if dropped:
            logger.debug(f"Dropping patch suggestions for unknown files: {dropped}")
        response.patch_suggestions = [p for p in response.patch_suggestions if p.file_path in known_files]

        analysis.confidence = min(max(analysis.confidence, 0.0), 1.0)
        analysis.recommendations = build_recommendations(response)
        response.monitoring_recommendations = build_monitoring_recommendations(analysis.patterns)
        response.next_steps = build_next_steps(response)

        logger.info(
            f"Debug analysis found {len(analysis.issues)} issues and {len(analysis.patterns)} patterns "
            f"across {len(request.logs)} log entries"
        )
        return response
