"""
Classification of agent tool names into the capabilities they provide.

Coding agents name the same capability differently (`builtin_read_file`,
`read_file`, `view_file`, ...). Selection and continuation logic reason about
capabilities, so tool names are mapped to a `ToolKind` first.
"""
import re
from enum import Enum
from typing import Iterable, List, Optional

from .types import Tool


class ToolKind(str, Enum):
    READ_FILE = "read_file"
    EDIT_FILE = "edit_file"
    CREATE_FILE = "create_file"
    LIST_DIRECTORY = "list_directory"
    SEARCH = "search"
    TERMINAL = "terminal"
    OTHER = "other"


# Canonical names used by the Continue agent; also the fallback priority order.
CANONICAL_TOOL_NAMES = {
    ToolKind.READ_FILE: "builtin_read_file",
    ToolKind.EDIT_FILE: "builtin_edit_existing_file",
    ToolKind.CREATE_FILE: "builtin_create_new_file",
    ToolKind.LIST_DIRECTORY: "builtin_list_directory",
    ToolKind.SEARCH: "builtin_search_files",
    ToolKind.TERMINAL: "builtin_run_terminal_command",
}

# First match wins, so more specific patterns come before broader ones.
_NAME_PATTERNS = (
    (ToolKind.EDIT_FILE, re.compile(r"edit|modify|replace|patch|update_file|write_file")),
    (ToolKind.CREATE_FILE, re.compile(r"create|new_file")),
    (ToolKind.READ_FILE, re.compile(r"read|view_file|open_file|cat_file|get_file")),
    (ToolKind.LIST_DIRECTORY, re.compile(r"list|director|(?:^|_)ls(?:$|_)|tree")),
    (ToolKind.SEARCH, re.compile(r"search|grep|find|glob")),
    (ToolKind.TERMINAL, re.compile(r"terminal|command|shell|exec|bash|run")),
)


def classify_tool_name(name: Optional[str]) -> ToolKind:
    if not name:
        return ToolKind.OTHER
    lowered = name.lower()
    for kind, pattern in _NAME_PATTERNS:
        if pattern.search(lowered):
            return kind
    return ToolKind.OTHER


def tool_name(tool: Tool) -> str:
    return (tool.get("function") or {}).get("name", "")


def tools_of_kind(tools: Iterable[Tool], kind: ToolKind) -> List[Tool]:
    return [tool for tool in tools if classify_tool_name(tool_name(tool)) == kind]
