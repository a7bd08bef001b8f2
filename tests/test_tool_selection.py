import pytest

from vertexmux.messages import create_tool
from vertexmux.tool_kinds import ToolKind, classify_tool_name, tools_of_kind
from vertexmux.tool_selection import (
    ToolRotationState,
    priority_order,
    select_by_context,
    select_fallback_tool,
)


def _names(tools):
    return [tool["function"]["name"] for tool in tools]


class TestToolKinds:

    @pytest.mark.parametrize("name, kind", [
        ("builtin_read_file", ToolKind.READ_FILE),
        ("read_file", ToolKind.READ_FILE),
        ("builtin_edit_existing_file", ToolKind.EDIT_FILE),
        ("builtin_create_new_file", ToolKind.CREATE_FILE),
        ("builtin_list_directory", ToolKind.LIST_DIRECTORY),
        ("ls", ToolKind.LIST_DIRECTORY),
        ("builtin_search_files", ToolKind.SEARCH),
        ("grep_search", ToolKind.SEARCH),
        ("builtin_run_terminal_command", ToolKind.TERMINAL),
        ("get_weather", ToolKind.OTHER),
        ("", ToolKind.OTHER),
    ])
    def test_classify(self, name, kind):
        assert classify_tool_name(name) == kind

    def test_tools_of_kind(self, agent_tools):
        assert _names(tools_of_kind(agent_tools, ToolKind.EDIT_FILE)) == ["builtin_edit_existing_file"]
        assert tools_of_kind(agent_tools, ToolKind.TERMINAL) == []


class TestSelection:

    def test_context_match(self, agent_tools):
        assert _names([select_by_context(agent_tools, "Please fix the parser")]) == ["builtin_edit_existing_file"]
        assert _names([select_by_context(agent_tools, "Show me main.py")]) == ["builtin_read_file"]
        assert select_by_context(agent_tools, "hello there") is None

    def test_context_needs_word_start(self, agent_tools):
        # "already" contains "read" but not as a word
        assert select_by_context(agent_tools, "it is already done") is None

    def test_priority_order(self, agent_tools):
        reordered = [agent_tools[2], agent_tools[1], agent_tools[0]]
        assert _names(priority_order(reordered)) == [
            "builtin_read_file",
            "builtin_edit_existing_file",
            "builtin_list_directory",
        ]

    def test_fallback_prefers_context(self, agent_tools):
        state = ToolRotationState()
        selected = select_fallback_tool(agent_tools, "list the project structure", state)
        assert selected["function"]["name"] == "builtin_list_directory"
        assert state.history[-1].strategy == "context"

    def test_fallback_priority_skips_recent(self, agent_tools):
        state = ToolRotationState()
        first = select_fallback_tool(agent_tools, "hello", state)
        second = select_fallback_tool(agent_tools, "hello", state)
        third = select_fallback_tool(agent_tools, "hello", state)
        assert _names([first, second, third]) == [
            "builtin_read_file",
            "builtin_edit_existing_file",
            "builtin_list_directory",
        ]
        assert {entry.strategy for entry in state.history} == {"priority"}

    def test_fallback_rotates_when_all_recent(self, agent_tools):
        state = ToolRotationState()
        for _ in range(3):
            select_fallback_tool(agent_tools, "hello", state)
        fourth = select_fallback_tool(agent_tools, "hello", state)
        assert state.history[-1].strategy == "rotation"
        assert fourth is agent_tools[0]
        assert state.rotation_index == 0

    def test_selection_is_one_of_the_originals(self, agent_tools):
        state = ToolRotationState()
        for text in ("hello", "read it", "run the tests", "create a file", "hello"):
            assert select_fallback_tool(agent_tools, text, state) in agent_tools

    def test_history_is_bounded(self, agent_tools):
        state = ToolRotationState()
        for _ in range(25):
            select_fallback_tool(agent_tools, "hello", state)
        assert len(state.history) == 10

    def test_empty_tools(self):
        with pytest.raises(ValueError):
            select_fallback_tool([], "hello", ToolRotationState())

    def test_independent_states(self):
        tools = [create_tool("alpha", "a", {}), create_tool("beta", "b", {})]
        one, two = ToolRotationState(), ToolRotationState()
        assert select_fallback_tool(tools, "hi", one) is tools[0]
        assert select_fallback_tool(tools, "hi", two) is tools[0]
