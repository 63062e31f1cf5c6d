"""
Typed request/response payloads for every agent.

Each agent type has exactly one request model and one response model.
AgentInput and AgentOutput are the unions the pipeline carries between
steps; the input mapper is the only place that converts one agent's
response into another agent's request.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CaseInsensitiveEnum(str, Enum):
    """String enum that accepts its values and names in any case."""

    @classmethod
    def _missing_(cls, value: object):
        if isinstance(value, str):
            wanted = value.strip().replace("_", "").replace("-", "").lower()
            for member in cls:
                if wanted in (member.value.lower(), member.name.replace("_", "").lower()):
                    return member
        return None


class AgentModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# Shared

class ChangeType(CaseInsensitiveEnum):
    CREATE = "Create"
    MODIFY = "Modify"
    DELETE = "Delete"
    RENAME = "Rename"


class CodeChange(AgentModel):
    file_path: str
    old_content: str = ""
    new_content: str = ""
    change_type: ChangeType = ChangeType.MODIFY
    explanation: str = ""
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)


class SourceFile(AgentModel):
    path: str
    content: str = ""
    language: str = "unknown"


# Spec agent

class Priority(CaseInsensitiveEnum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RequirementCategory(CaseInsensitiveEnum):
    FUNCTIONAL = "Functional"
    NON_FUNCTIONAL = "NonFunctional"
    TECHNICAL = "Technical"
    SECURITY = "Security"
    PERFORMANCE = "Performance"
    USABILITY = "Usability"


class SpecTestType(CaseInsensitiveEnum):
    UNIT = "Unit"
    INTEGRATION = "Integration"
    E2E = "E2E"
    MANUAL = "Manual"
    REGRESSION = "Regression"


class Complexity(CaseInsensitiveEnum):
    SIMPLE = "Simple"
    MODERATE = "Moderate"
    COMPLEX = "Complex"
    VERY_COMPLEX = "VeryComplex"


class RiskLevel(CaseInsensitiveEnum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class Requirement(AgentModel):
    id: str
    title: str
    description: str = ""
    priority: Priority = Priority.MEDIUM
    category: RequirementCategory = RequirementCategory.FUNCTIONAL
    acceptance_criteria: List[str] = Field(default_factory=list)


class SpecTestCase(AgentModel):
    id: str
    title: str
    description: str = ""
    test_type: SpecTestType = SpecTestType.UNIT
    steps: List[str] = Field(default_factory=list)
    expected_result: str = ""
    requirement_id: str = ""


class UserStory(AgentModel):
    id: str
    title: str
    description: str = ""
    role: str = ""
    goal: str = ""
    benefit: str = ""


class SpecMetadata(AgentModel):
    estimated_effort: str = "unknown"
    complexity: Complexity = Complexity.SIMPLE
    dependencies: List[str] = Field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.LOW


class SpecRequest(AgentModel):
    prompt: str
    context: Optional[Dict[str, str]] = None
    project_type: Optional[str] = None
    existing_requirements: Optional[List[str]] = None


class SpecResponse(AgentModel):
    requirements: List[Requirement] = Field(default_factory=list)
    test_cases: List[SpecTestCase] = Field(default_factory=list)
    user_stories: List[UserStory] = Field(default_factory=list)
    acceptance_criteria: Dict[str, List[str]] = Field(default_factory=dict)
    metadata: SpecMetadata = Field(default_factory=SpecMetadata)


# Code agent

class CodeRequest(AgentModel):
    prompt: str
    context: Optional[Dict[str, str]] = None
    requirements: Optional[List[str]] = None
    existing_files: Optional[List[SourceFile]] = None
    target_files: Optional[List[str]] = None


class CodeMetadata(AgentModel):
    language: str = "unknown"
    framework: Optional[str] = None
    patterns_used: List[str] = Field(default_factory=list)
    complexity_score: float = 0.0


class CodeStream(AgentModel):
    changes: List[CodeChange] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    metadata: CodeMetadata = Field(default_factory=CodeMetadata)
    dependencies: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)


# Test generator agent

class GeneratedTestType(CaseInsensitiveEnum):
    UNIT = "Unit"
    INTEGRATION = "Integration"
    E2E = "E2E"
    COMPONENT = "Component"
    API = "API"


class ExistingTest(AgentModel):
    file_path: str
    content: str = ""
    framework: str = ""


class TestCoverage(AgentModel):
    __test__ = False

    lines_covered: int = 0
    functions_covered: int = 0
    branches_covered: int = 0
    coverage_percentage: float = 0.0


class GeneratedTest(AgentModel):
    file_path: str
    test_type: GeneratedTestType = GeneratedTestType.UNIT
    framework: str = ""
    content: str = ""
    coverage: TestCoverage = Field(default_factory=TestCoverage)
    tags: List[str] = Field(default_factory=list)


class TestMetadata(AgentModel):
    __test__ = False

    total_tests: int = 0
    test_distribution: Dict[str, int] = Field(default_factory=dict)
    estimated_run_time: str = "0s"
    frameworks_used: List[str] = Field(default_factory=list)
    mock_requirements: List[str] = Field(default_factory=list)


class TestRequest(AgentModel):
    __test__ = False

    prompt: Optional[str] = None
    code_changes: List[CodeChange] = Field(default_factory=list)
    requirements: Optional[List[str]] = None
    existing_tests: Optional[List[ExistingTest]] = None
    test_framework: Optional[str] = None
    coverage_goals: Optional[List[str]] = None


class TestSuite(AgentModel):
    __test__ = False

    tests: List[GeneratedTest] = Field(default_factory=list)
    setup_code: Optional[str] = None
    teardown_code: Optional[str] = None
    metadata: TestMetadata = Field(default_factory=TestMetadata)
    recommendations: List[str] = Field(default_factory=list)


# Reviewer agent

class ReviewFocus(CaseInsensitiveEnum):
    SECURITY = "Security"
    PERFORMANCE = "Performance"
    MAINTAINABILITY = "Maintainability"
    TESTING = "Testing"
    DOCUMENTATION = "Documentation"
    BEST_PRACTICES = "BestPractices"
    ARCHITECTURE = "Architecture"


class Severity(CaseInsensitiveEnum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    INFO = "Info"


class ReviewCategory(CaseInsensitiveEnum):
    SECURITY = "Security"
    PERFORMANCE = "Performance"
    BUG = "Bug"
    CODE_SMELL = "CodeSmell"
    BEST_PRACTICE = "BestPractice"
    DOCUMENTATION = "Documentation"
    ARCHITECTURE = "Architecture"
    TESTING = "Testing"


class DiffLineType(CaseInsensitiveEnum):
    CONTEXT = "Context"
    ADDED = "Added"
    REMOVED = "Removed"
    MODIFIED = "Modified"


class AnnotationType(CaseInsensitiveEnum):
    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"
    SUGGESTION = "Suggestion"


class ApprovalStatus(CaseInsensitiveEnum):
    APPROVED = "Approved"
    APPROVED_WITH_COMMENTS = "ApprovedWithComments"
    REQUIRES_CHANGES = "RequiresChanges"
    REJECTED = "Rejected"


class ReviewFinding(AgentModel):
    id: str
    file_path: str = ""
    line_start: Optional[int] = None
    line_end: Optional[int] = None
    severity: Severity = Severity.INFO
    category: ReviewCategory = ReviewCategory.BEST_PRACTICE
    title: str = ""
    description: str = ""
    suggestion: Optional[str] = None
    examples: List[str] = Field(default_factory=list)


class DiffLine(AgentModel):
    line_type: DiffLineType
    content: str
    old_line_number: Optional[int] = None
    new_line_number: Optional[int] = None


class LineAnnotation(AgentModel):
    line_number: int
    annotation_type: AnnotationType
    finding_id: str
    message: str


class DiffHunk(AgentModel):
    old_start: int
    old_lines: int
    new_start: int
    new_lines: int
    lines: List[DiffLine] = Field(default_factory=list)
    annotations: List[LineAnnotation] = Field(default_factory=list)


class AnnotatedDiff(AgentModel):
    file_path: str
    hunks: List[DiffHunk] = Field(default_factory=list)
    overall_score: float = 100.0
    summary: str = ""


class ReviewSummary(AgentModel):
    total_findings: int = 0
    findings_by_severity: Dict[str, int] = Field(default_factory=dict)
    findings_by_category: Dict[str, int] = Field(default_factory=dict)
    code_quality_score: float = 100.0
    security_score: float = 100.0
    maintainability_score: float = 100.0


class ReviewRequest(AgentModel):
    prompt: Optional[str] = None
    code_changes: List[CodeChange] = Field(default_factory=list)
    requirements: Optional[List[str]] = None
    context: Optional[Dict[str, str]] = None
    review_focus: Optional[List[ReviewFocus]] = None


class ReviewReport(AgentModel):
    findings: List[ReviewFinding] = Field(default_factory=list)
    changes: List[CodeChange] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    annotated_diffs: List[AnnotatedDiff] = Field(default_factory=list)
    summary: ReviewSummary = Field(default_factory=ReviewSummary)
    recommendations: List[str] = Field(default_factory=list)
    overall_approval: ApprovalStatus = ApprovalStatus.APPROVED


# Debug agent

class LogLevel(CaseInsensitiveEnum):
    TRACE = "Trace"
    DEBUG = "Debug"
    INFO = "Info"
    WARN = "Warn"
    ERROR = "Error"
    FATAL = "Fatal"

    @classmethod
    def _missing_(cls, value: object):
        aliases = {"warning": cls.WARN, "critical": cls.FATAL, "err": cls.ERROR}
        if isinstance(value, str) and value.strip().lower() in aliases:
            return aliases[value.strip().lower()]
        return super()._missing_(value)


class DebugFocus(CaseInsensitiveEnum):
    ERROR_ANALYSIS = "ErrorAnalysis"
    PERFORMANCE_ISSUES = "PerformanceIssues"
    MEMORY_LEAKS = "MemoryLeaks"
    RACE_CONDITIONS = "RaceConditions"
    INTEGRATION_ISSUES = "IntegrationIssues"
    CONFIGURATION_PROBLEMS = "ConfigurationProblems"


class IssueSeverity(CaseInsensitiveEnum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class IssueCategory(CaseInsensitiveEnum):
    RUNTIME_ERROR = "RuntimeError"
    PERFORMANCE = "Performance"
    MEMORY = "Memory"
    CONFIGURATION = "Configuration"
    INTEGRATION = "Integration"
    LOGIC = "Logic"
    SECURITY = "Security"


class PatternType(CaseInsensitiveEnum):
    ERROR_SPIKE = "ErrorSpike"
    RESOURCE_EXHAUSTION = "ResourceExhaustion"
    SLOW_QUERY = "SlowQuery"
    MEMORY_GROWTH = "MemoryGrowth"
    FAILED_CONNECTION = "FailedConnection"
    TIMEOUT = "Timeout"


class RecommendationPriority(CaseInsensitiveEnum):
    IMMEDIATE = "Immediate"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class LogEntry(AgentModel):
    timestamp: str = ""
    level: LogLevel = LogLevel.INFO
    message: str
    source: str = ""
    context: Optional[Dict[str, str]] = None


class DebugIssue(AgentModel):
    id: str
    severity: IssueSeverity = IssueSeverity.MEDIUM
    category: IssueCategory = IssueCategory.RUNTIME_ERROR
    title: str = ""
    description: str = ""
    affected_files: List[str] = Field(default_factory=list)
    related_logs: List[str] = Field(default_factory=list)
    reproduction_steps: List[str] = Field(default_factory=list)


class RootCause(AgentModel):
    id: str
    description: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    evidence: List[str] = Field(default_factory=list)
    fix_suggestion: str = ""


class LogPattern(AgentModel):
    pattern_type: PatternType
    description: str = ""
    frequency: int = 0
    severity: IssueSeverity = IssueSeverity.LOW
    examples: List[str] = Field(default_factory=list)


class DebugRecommendation(AgentModel):
    id: str
    priority: RecommendationPriority = RecommendationPriority.MEDIUM
    title: str = ""
    description: str = ""
    action_items: List[str] = Field(default_factory=list)
    estimated_effort: str = ""


class PatchSuggestion(AgentModel):
    file_path: str
    old_content: str = ""
    new_content: str = ""
    explanation: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    related_issue_id: str = ""


class DebugAnalysis(AgentModel):
    issues: List[DebugIssue] = Field(default_factory=list)
    root_causes: List[RootCause] = Field(default_factory=list)
    patterns: List[LogPattern] = Field(default_factory=list)
    recommendations: List[DebugRecommendation] = Field(default_factory=list)
    confidence: float = 0.0


class DebugRequest(AgentModel):
    logs: List[LogEntry] = Field(default_factory=list)
    error_context: Optional[Dict[str, str]] = None
    codebase_files: Optional[List[SourceFile]] = None
    recent_changes: Optional[List[str]] = None
    debug_focus: Optional[List[DebugFocus]] = None


class DebugReport(AgentModel):
    analysis: DebugAnalysis = Field(default_factory=DebugAnalysis)
    patch_suggestions: List[PatchSuggestion] = Field(default_factory=list)
    monitoring_recommendations: List[str] = Field(default_factory=list)
    next_steps: List[str] = Field(default_factory=list)


AgentInput = Union[SpecRequest, CodeRequest, TestRequest, ReviewRequest, DebugRequest]
AgentOutput = Union[SpecResponse, CodeStream, TestSuite, ReviewReport, DebugReport]


def dump_payload(payload: Any) -> Dict[str, Any]:
    """Serialize a typed payload for step records and API responses."""
    if isinstance(payload, BaseModel):
        return payload.model_dump(mode="json", exclude_none=True)
    return dict(payload or {})
