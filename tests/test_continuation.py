from vertexmux.continuation import (
    analyze_task_continuation,
    classify_task_type,
    completion_level,
    generate_continuation_prompt,
    with_continuation_instruction,
)
from vertexmux.messages import (
    create_assistant_message_with_tool_calls,
    create_tool,
    create_tool_call,
    create_tool_result,
)
from vertexmux.types import NextStep, TaskState, TaskType


def _conversation(request, tool_name, output, call_id="call_1"):
    return [
        {"role": "user", "content": request},
        create_assistant_message_with_tool_calls("", [create_tool_call(call_id, tool_name, {"path": "app.js"})]),
        create_tool_result(call_id, output),
    ]


class TestClassification:

    def test_task_types(self):
        assert classify_task_type("Fix the bug in app.js") == TaskType.DEBUG_FIX
        assert classify_task_type("implement pagination") == TaskType.FEATURE_ADD
        assert classify_task_type("refactor the parser") == TaskType.REFACTOR
        assert classify_task_type("write a test") == TaskType.TESTING
        assert classify_task_type("explain this module") == TaskType.ANALYSIS

    def test_completion_level(self):
        assert completion_level(TaskType.DEBUG_FIX, 1) == 25
        assert completion_level(TaskType.ANALYSIS, 1) == 50
        assert completion_level(TaskType.REFACTOR, 1) == 33
        assert completion_level(TaskType.ANALYSIS, 5) == 100


class TestAnalyzeTaskContinuation:

    def test_read_then_fix(self):
        analysis = analyze_task_continuation(_conversation("fix the bug in app.js", "read_file", "...content..."))

        assert analysis.should_continue is True
        state = analysis.task_state
        assert state.task_type == TaskType.DEBUG_FIX
        assert state.completion_level == 25
        assert state.next_steps == [NextStep("builtin_edit_existing_file", "Fix identified issues in the file")]
        assert state.last_tool_call["function"]["name"] == "read_file"
        assert len(state.tool_results) == 1

    def test_suggestions_use_declared_tools(self):
        tools = [create_tool("read_file", "Read", {}), create_tool("edit_file", "Edit", {})]
        analysis = analyze_task_continuation(_conversation("fix the bug", "read_file", "code"), tools)
        assert [step.tool for step in analysis.task_state.next_steps] == ["edit_file"]

    def test_undeclared_kind_is_not_suggested(self):
        tools = [create_tool("read_file", "Read", {})]
        analysis = analyze_task_continuation(_conversation("fix the bug", "read_file", "code"), tools)
        assert analysis.task_state.next_steps == []

    def test_no_tool_calls(self):
        messages = [{"role": "user", "content": "fix the bug"}, {"role": "assistant", "content": "Sure"}]
        analysis = analyze_task_continuation(messages)
        assert analysis.should_continue is False
        assert analysis.task_state is None

    def test_unanswered_tool_call(self):
        messages = _conversation("fix the bug", "read_file", "code")[:2]
        assert analyze_task_continuation(messages).should_continue is False

    def test_read_without_action(self):
        analysis = analyze_task_continuation(_conversation("what does app.js do?", "read_file", "code"))
        assert analysis.should_continue is False
        assert analysis.task_state.task_type == TaskType.ANALYSIS

    def test_search_results(self):
        analysis = analyze_task_continuation(_conversation("where is the config", "search_files", "src/config.js"))
        assert analysis.should_continue is True
        assert analysis.task_state.next_steps[0].tool == "builtin_read_file"

        empty = analyze_task_continuation(_conversation("where is the config", "search_files", "   "))
        assert empty.should_continue is False

    def test_terminal_error(self):
        analysis = analyze_task_continuation(
            _conversation("build it", "run_terminal_command", "npm ERR! Build failed")
        )
        assert analysis.should_continue is True
        assert analysis.task_state.next_steps[0].reason == "Read configuration files to fix command errors"

    def test_list_directory(self):
        assert analyze_task_continuation(_conversation("analyze the repo", "list_directory", "a\nb")).should_continue
        assert not analyze_task_continuation(_conversation("hello", "list_directory", "a\nb")).should_continue

    def test_read_and_test_request(self):
        analysis = analyze_task_continuation(_conversation("fix the failing test", "read_file", "code"))
        assert [step.tool for step in analysis.task_state.next_steps] == [
            "builtin_edit_existing_file",
            "builtin_run_terminal_command",
        ]


class TestContinuationPrompt:

    def test_prompt_lists_steps(self):
        state = TaskState(
            task_type=TaskType.DEBUG_FIX,
            next_steps=[NextStep("builtin_edit_existing_file", "Fix identified issues in the file")],
        )
        prompt = generate_continuation_prompt(state)
        assert prompt.startswith("AUTONOMOUS TASK CONTINUATION (debug_fix)")
        assert "You are working on debugging/fixing an issue." in prompt
        assert "1. Use builtin_edit_existing_file: Fix identified issues in the file" in prompt
        assert prompt.endswith("Continue until the entire task is finished.")

    def test_prompt_without_steps(self):
        prompt = generate_continuation_prompt(TaskState(task_type=TaskType.ANALYSIS))
        assert "SUGGESTED NEXT STEPS" not in prompt
        assert "You are working on a coding task." in prompt

    def test_instruction_appended(self):
        messages = _conversation("fix the bug in app.js", "read_file", "code")
        result = with_continuation_instruction(messages)
        assert len(result) == 4
        assert result[-1]["role"] == "system"
        assert "AUTONOMOUS TASK CONTINUATION" in result[-1]["content"]
        assert len(messages) == 3

    def test_no_instruction_when_done(self):
        messages = [{"role": "user", "content": "hi"}]
        assert with_continuation_instruction(messages) is messages
