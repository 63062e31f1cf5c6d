"""
Tests for mapping the orchestration request and prior output into agent inputs.
"""

import json

from agent_orchestrator.agents.base import AgentType
from agent_orchestrator.agents.schemas import (
    CodeRequest,
    DebugFocus,
    DebugRequest,
    LogLevel,
    ReviewFocus,
    ReviewRequest,
    SpecRequest,
    TestRequest,
)
from agent_orchestrator.workflows.mapping import (
    map_agent_input,
    parse_enum_list,
    parse_file_option,
    parse_list_option,
    parse_log_line,
    parse_logs_option,
)
from agent_orchestrator.workflows.models import OrchestrationRequest

from .fakes import default_output


def make_request(options=None, context=None):
    return OrchestrationRequest(
        prompt="Add user login",
        context=context,
        options=options,
    )


class TestOptionParsing:
    """Test option value parsers."""

    def test_list_from_json_array(self):
        assert parse_list_option('["a", " b ", "", null]') == ["a", "b"]

    def test_list_from_lines(self):
        assert parse_list_option("first\n\nsecond\n") == ["first", "second"]

    def test_list_commas_only_when_requested(self):
        assert parse_list_option("a.py, b.py") == ["a.py, b.py"]
        assert parse_list_option("a.py, b.py", split_commas=True) == ["a.py", "b.py"]

    def test_list_empty_is_none(self):
        assert parse_list_option(None) is None
        assert parse_list_option(" \n ") is None

    def test_files_from_object(self):
        files = parse_file_option(json.dumps({"src/app.py": "print(1)"}))

        assert len(files) == 1
        assert files[0].path == "src/app.py"
        assert files[0].content == "print(1)"
        assert files[0].language == "python"

    def test_files_from_list_skips_invalid(self):
        raw = json.dumps([
            {"path": "web/index.ts", "content": "export {}"},
            {"path": "lib/tool.rb", "content": "puts 1", "language": "ruby"},
            {"content": "no path"},
            "not an object",
        ])
        files = parse_file_option(raw)

        assert [f.path for f in files] == ["web/index.ts", "lib/tool.rb"]
        assert files[0].language == "typescript"

    def test_files_malformed_is_none(self):
        assert parse_file_option("{not json") is None
        assert parse_file_option("[]") is None

    def test_enum_list_drops_unknown(self):
        focus = parse_enum_list("security, bogus, PERFORMANCE, security", ReviewFocus)
        assert focus == [ReviewFocus.SECURITY, ReviewFocus.PERFORMANCE]

    def test_enum_list_accepts_snake_case(self):
        assert parse_enum_list('["memory_leaks"]', DebugFocus) == [DebugFocus.MEMORY_LEAKS]

    def test_enum_list_nothing_known_is_none(self):
        assert parse_enum_list("bogus", ReviewFocus) is None


class TestLogParsing:
    """Test log line and log option parsing."""

    def test_line_with_timestamp_and_level(self):
        entry = parse_log_line("2024-01-01T10:00:00Z ERROR Database timeout")

        assert entry.timestamp == "2024-01-01T10:00:00Z"
        assert entry.level == LogLevel.ERROR
        assert entry.message == "Database timeout"

    def test_bracketed_level(self):
        entry = parse_log_line("[WARN] disk almost full")

        assert entry.level == LogLevel.WARN
        assert entry.message == "disk almost full"

    def test_plain_line_defaults_to_info(self):
        entry = parse_log_line("Error connecting to cache")

        assert entry.level == LogLevel.INFO
        assert entry.message == "Error connecting to cache"

    def test_logs_from_text(self):
        entries = parse_logs_option("ERROR boom\n\nINFO started")
        assert [e.level for e in entries] == [LogLevel.ERROR, LogLevel.INFO]

    def test_logs_from_json_skips_malformed(self):
        raw = json.dumps([
            {"level": "warning", "message": "disk"},
            {"bad": 1},
            "FATAL boom",
        ])
        entries = parse_logs_option(raw)

        assert [(e.level, e.message) for e in entries] == [
            (LogLevel.WARN, "disk"),
            (LogLevel.FATAL, "boom"),
        ]

    def test_logs_absent(self):
        assert parse_logs_option(None) == []
        assert parse_logs_option("") == []


class TestSpecMapping:
    """Test inputs for the Spec agent."""

    def test_spec_input(self):
        request = make_request(
            options={"project_type": "web", "existing_requirements": "Users exist\nEmails are unique"},
            context={"team": "auth"},
        )
        spec_input = map_agent_input(AgentType.SPEC, request)

        assert isinstance(spec_input, SpecRequest)
        assert spec_input.prompt == "Add user login"
        assert spec_input.context == {"team": "auth"}
        assert spec_input.project_type == "web"
        assert spec_input.existing_requirements == ["Users exist", "Emails are unique"]

    def test_spec_ignores_prior_output(self):
        spec_input = map_agent_input(AgentType.SPEC, make_request(), default_output(AgentType.CODE))
        assert spec_input.existing_requirements is None


class TestCodeMapping:
    """Test inputs for the Code agent."""

    def test_first_step_uses_prompt_only(self):
        request = make_request(options={"target_files": "a.py"}, context={"k": "v"})
        code_input = map_agent_input(AgentType.CODE, request)

        assert isinstance(code_input, CodeRequest)
        assert code_input.prompt == "Add user login"
        assert code_input.context == {"k": "v"}
        assert code_input.requirements is None
        assert code_input.target_files is None

    def test_after_spec(self):
        request = make_request(options={
            "existing_files": json.dumps({"src/app.py": "app = 1"}),
            "target_files": "src/app.py, src/auth.py",
        })
        code_input = map_agent_input(AgentType.CODE, request, default_output(AgentType.SPEC))

        assert code_input.requirements == ["REQ-001: Login"]
        assert [f.path for f in code_input.existing_files] == ["src/app.py"]
        assert code_input.target_files == ["src/app.py", "src/auth.py"]

    def test_after_code_reuses_requirements(self):
        code_input = map_agent_input(AgentType.CODE, make_request(), default_output(AgentType.CODE))
        assert code_input.requirements == ["REQ-001: Login"]


class TestTestGeneratorMapping:
    """Test inputs for the TestGenerator agent."""

    def test_first_step_carries_prompt(self):
        test_input = map_agent_input(AgentType.TEST_GENERATOR, make_request())

        assert isinstance(test_input, TestRequest)
        assert test_input.prompt == "Add user login"
        assert test_input.code_changes == []

    def test_after_code(self):
        request = make_request(options={"test_framework": "vitest", "coverage_goals": '["branches"]'})
        test_input = map_agent_input(AgentType.TEST_GENERATOR, request, default_output(AgentType.CODE))

        assert [c.file_path for c in test_input.code_changes] == ["src/app.py"]
        assert test_input.requirements == ["REQ-001: Login"]
        assert test_input.test_framework == "vitest"
        assert test_input.coverage_goals == ["branches"]

    def test_after_review_keeps_changes(self):
        test_input = map_agent_input(AgentType.TEST_GENERATOR, make_request(), default_output(AgentType.REVIEWER))
        assert [c.file_path for c in test_input.code_changes] == ["src/app.py"]

    def test_after_spec_has_no_changes(self):
        test_input = map_agent_input(AgentType.TEST_GENERATOR, make_request(), default_output(AgentType.SPEC))

        assert test_input.code_changes == []
        assert test_input.requirements == ["REQ-001: Login"]


class TestReviewerMapping:
    """Test inputs for the Reviewer agent."""

    def test_first_step_carries_prompt(self):
        review_input = map_agent_input(AgentType.REVIEWER, make_request())

        assert isinstance(review_input, ReviewRequest)
        assert review_input.prompt == "Add user login"

    def test_after_code_with_focus(self):
        request = make_request(options={"review_focus": "Security,testing,unknown"})
        review_input = map_agent_input(AgentType.REVIEWER, request, default_output(AgentType.CODE))

        assert [c.file_path for c in review_input.code_changes] == ["src/app.py"]
        assert review_input.review_focus == [ReviewFocus.SECURITY, ReviewFocus.TESTING]


class TestDebugMapping:
    """Test inputs for the Debug agent."""

    def test_debug_input(self):
        request = make_request(
            options={
                "logs": "2024-01-01 10:00:00 ERROR db down\nretrying",
                "codebase_files": json.dumps([{"path": "src/db.py", "content": "connect()"}]),
                "debug_focus": "ErrorAnalysis",
            },
            context={"service": "checkout"},
        )
        debug_input = map_agent_input(AgentType.DEBUG, request, default_output(AgentType.CODE))

        assert isinstance(debug_input, DebugRequest)
        assert [e.level for e in debug_input.logs] == [LogLevel.ERROR, LogLevel.INFO]
        assert debug_input.error_context == {"service": "checkout"}
        assert debug_input.codebase_files[0].path == "src/db.py"
        assert debug_input.debug_focus == [DebugFocus.ERROR_ANALYSIS]

    def test_debug_without_options(self):
        debug_input = map_agent_input(AgentType.DEBUG, make_request())

        assert debug_input.logs == []
        assert debug_input.codebase_files is None
        assert debug_input.debug_focus is None
