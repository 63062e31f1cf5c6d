"""
Reviewer Agent: reviews code changes and decides whether they can merge.

The model reports findings. Diffs, scores, recommendations and the approval
decision are computed locally so the same findings always produce the same
verdict.
"""

import difflib
import logging
from collections import Counter
from typing import Any, Dict, List

from .base import AgentType, LLMAgent
from .schemas import (
    AnnotatedDiff,
    AnnotationType,
    ApprovalStatus,
    CodeChange,
    DiffHunk,
    DiffLine,
    DiffLineType,
    LineAnnotation,
    ReviewCategory,
    ReviewFinding,
    ReviewFocus,
    ReviewReport,
    ReviewRequest,
    ReviewSummary,
    Severity,
)

logger = logging.getLogger(__name__)


REVIEW_SYSTEM_PROMPT = """You are a senior software engineer conducting a code review. Evaluate:
1. Security vulnerabilities (injection, auth issues, crypto weaknesses, input validation, information disclosure)
2. Performance problems (inefficient algorithms, blocking I/O, missing caching)
3. Code quality (readability, error handling, naming, abstraction levels)
4. Best practices (SOLID, anti-patterns, consistent standards)
5. Test coverage and documentation gaps

Report each finding with the file, 1-based line range in the NEW content, severity
(Critical, High, Medium, Low, Info), category (Security, Performance, Bug, CodeSmell,
BestPractice, Documentation, Architecture, Testing) and a concrete suggestion.

Respond with a single JSON object:
{
    "findings": [{"id": "SEC-001", "file_path": "...", "line_start": 10, "line_end": 15,
                  "severity": "High", "category": "Security", "title": "...", "description": "...",
                  "suggestion": "...", "examples": ["..."]}],
    "recommendations": ["..."]
}"""

DIFF_CONTEXT_LINES = 3

ANNOTATION_BY_SEVERITY = {
    Severity.CRITICAL: AnnotationType.ERROR,
    Severity.HIGH: AnnotationType.ERROR,
    Severity.MEDIUM: AnnotationType.WARNING,
    Severity.LOW: AnnotationType.SUGGESTION,
    Severity.INFO: AnnotationType.INFO,
}


def _count(findings: List[ReviewFinding], severity: Severity) -> int:
    return sum(1 for f in findings if f.severity == severity)


def build_hunks(change: CodeChange) -> List[DiffHunk]:
    """Split a change into unified-diff style hunks."""
    old_lines = change.old_content.splitlines()
    new_lines = change.new_content.splitlines()
    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)

    hunks = []
    for group in matcher.get_grouped_opcodes(DIFF_CONTEXT_LINES):
        first, last = group[0], group[-1]
        lines: List[DiffLine] = []
        for tag, i1, i2, j1, j2 in group:
            if tag == "equal":
                for offset, text in enumerate(old_lines[i1:i2]):
                    lines.append(DiffLine(
                        line_type=DiffLineType.CONTEXT,
                        content=text,
                        old_line_number=i1 + offset + 1,
                        new_line_number=j1 + offset + 1,
                    ))
                continue
            if tag in ("delete", "replace"):
                for offset, text in enumerate(old_lines[i1:i2]):
                    lines.append(DiffLine(
                        line_type=DiffLineType.REMOVED,
                        content=text,
                        old_line_number=i1 + offset + 1,
                    ))
            if tag in ("insert", "replace"):
                for offset, text in enumerate(new_lines[j1:j2]):
                    lines.append(DiffLine(
                        line_type=DiffLineType.ADDED,
                        content=text,
                        new_line_number=j1 + offset + 1,
                    ))

        hunks.append(DiffHunk(
            old_start=first[1] + 1,
            old_lines=last[2] - first[1],
            new_start=first[3] + 1,
            new_lines=last[4] - first[3],
            lines=lines,
        ))
    return hunks


def annotate_hunks(hunks: List[DiffHunk], findings: List[ReviewFinding]) -> None:
    """Attach each located finding to the hunk covering its first line."""
    for finding in findings:
        if finding.line_start is None:
            continue
        for hunk in hunks:
            if hunk.new_start <= finding.line_start < hunk.new_start + max(hunk.new_lines, 1):
                hunk.annotations.append(LineAnnotation(
                    line_number=finding.line_start,
                    annotation_type=ANNOTATION_BY_SEVERITY[finding.severity],
                    finding_id=finding.id,
                    message=finding.title or finding.description,
                ))
                break


def build_annotated_diffs(changes: List[CodeChange], findings: List[ReviewFinding]) -> List[AnnotatedDiff]:
    diffs = []
    for change in changes:
        relevant = [f for f in findings if f.file_path == change.file_path]
        hunks = build_hunks(change)
        annotate_hunks(hunks, relevant)

        score = 100.0 - 20.0 * _count(relevant, Severity.CRITICAL) - 10.0 * _count(relevant, Severity.HIGH)
        diffs.append(AnnotatedDiff(
            file_path=change.file_path,
            hunks=hunks,
            overall_score=max(score, 0.0),
            summary=f"{len(relevant)} findings in this file",
        ))
    return diffs


def build_summary(findings: List[ReviewFinding]) -> ReviewSummary:
    critical = _count(findings, Severity.CRITICAL)
    high = _count(findings, Severity.HIGH)

    if findings:
        quality = 100.0 - 15.0 * critical - 5.0 * high
    else:
        quality = 100.0
    security = 100.0 - 20.0 * sum(1 for f in findings if f.category == ReviewCategory.SECURITY)
    maintainability = 100.0 - 3.0 * sum(
        1 for f in findings if f.category in (ReviewCategory.CODE_SMELL, ReviewCategory.BEST_PRACTICE)
    )

    return ReviewSummary(
        total_findings=len(findings),
        findings_by_severity=dict(Counter(f.severity.value for f in findings)),
        findings_by_category=dict(Counter(f.category.value for f in findings)),
        code_quality_score=max(quality, 0.0),
        security_score=max(security, 0.0),
        maintainability_score=max(maintainability, 0.0),
    )


def build_recommendations(findings: List[ReviewFinding]) -> List[str]:
    recommendations = []
    critical = _count(findings, Severity.CRITICAL)
    if critical:
        recommendations.append(f"Fix {critical} critical issues before merging")
    if any(f.category == ReviewCategory.SECURITY for f in findings):
        recommendations.append("Security review recommended before deployment")
    if not any(f.category == ReviewCategory.TESTING for f in findings):
        recommendations.append("Consider adding more comprehensive test coverage")
    return recommendations


def determine_approval(findings: List[ReviewFinding], summary: ReviewSummary) -> ApprovalStatus:
    high = _count(findings, Severity.HIGH)
    if _count(findings, Severity.CRITICAL):
        return ApprovalStatus.REJECTED
    if high > 3 or summary.code_quality_score < 70.0:
        return ApprovalStatus.REQUIRES_CHANGES
    if high > 0 or summary.code_quality_score < 90.0:
        return ApprovalStatus.APPROVED_WITH_COMMENTS
    return ApprovalStatus.APPROVED


class ReviewerAgent(LLMAgent):
    agent_type = AgentType.REVIEWER
    name = "Code Reviewer Agent"
    description = "Reviews code changes and provides annotated feedback"
    request_model = ReviewRequest
    response_model = ReviewReport
    system_prompt = REVIEW_SYSTEM_PROMPT

    def build_user_prompt(self, request: ReviewRequest) -> str:
        parts = []
        if request.prompt:
            parts.append(f"Review request:\n{request.prompt}")
        for change in request.code_changes:
            parts.append(
                f"File: {change.file_path} ({change.change_type.value})\n"
                f"Old content:\n{change.old_content}\n\nNew content:\n{change.new_content}"
            )
        focus = request.review_focus or []
        if focus:
            parts.append("Pay particular attention to: " + ", ".join(f.value for f in focus))
        if request.requirements:
            parts.append("Requirements the changes must satisfy:\n" + "\n".join(f"- {r}" for r in request.requirements))
        return "\n\n".join(parts) or "No changes were supplied."

    def prepare_output(self, raw: Dict[str, Any], request: ReviewRequest) -> Dict[str, Any]:
        for key in ("changes", "requirements", "annotated_diffs", "summary", "overall_approval"):
            raw.pop(key, None)
        findings = raw.get("findings") or []
        for index, finding in enumerate(findings, start=1):
            if isinstance(finding, dict) and not finding.get("id"):
                finding["id"] = f"FIND-{index:03d}"
        return raw

    def finalize(self, response: ReviewReport, request: ReviewRequest) -> ReviewReport:
        findings = response.findings
        response.changes = list(request.code_changes)
        response.requirements = list(request.requirements or [])
        response.annotated_diffs = build_annotated_diffs(request.code_changes, findings)
        response.summary = build_summary(findings)
        for recommendation in build_recommendations(findings):
            if recommendation not in response.recommendations:
                response.recommendations.append(recommendation)
        response.overall_approval = determine_approval(findings, response.summary)

        if ReviewFocus.SECURITY in (request.review_focus or []):
            logger.debug(f"Security-focused review: {response.summary.security_score:.0f}/100")
        logger.info(f"Review complete: {len(findings)} findings, {response.overall_approval.value}")
        return response
