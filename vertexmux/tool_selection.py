"""
Single-tool selection for the multi-function fallback.

Some Vertex AI model versions reject requests that declare several functions
at once. The native provider then retries with exactly one declaration,
chosen here. Rotation state lives in a `ToolRotationState` owned by the
provider instance; it is not synchronized, so fairness under concurrent
requests is approximate.
"""
import logging
import re
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, List, Optional, Sequence

from .tool_kinds import CANONICAL_TOOL_NAMES, ToolKind, classify_tool_name, tool_name
from .types import Tool

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 10
RECENT_WINDOW = 3

# Checked in order against the latest user message.
CONTEXT_KEYWORDS = (
    (ToolKind.READ_FILE, ("read", "show", "view")),
    (ToolKind.EDIT_FILE, ("edit", "modify", "fix")),
    (ToolKind.CREATE_FILE, ("create", "new")),
    (ToolKind.LIST_DIRECTORY, ("list", "structure")),
    (ToolKind.SEARCH, ("search", "find")),
    (ToolKind.TERMINAL, ("run", "execute", "command")),
)

_PRIORITY = list(CANONICAL_TOOL_NAMES)


@dataclass(frozen=True)
class ToolSelection:
    tool_name: str
    strategy: str
    timestamp: float


@dataclass
class ToolRotationState:
    rotation_index: int = -1
    history: Deque[ToolSelection] = field(default_factory=lambda: deque(maxlen=HISTORY_LIMIT))

    def record(self, name: str, strategy: str) -> None:
        self.history.append(ToolSelection(name, strategy, time.time()))

    def recent(self, count: int = RECENT_WINDOW) -> List[str]:
        return [entry.tool_name for entry in list(self.history)[-count:]]


def _keyword_present(text: str, keyword: str) -> bool:
    return re.search(rf"\b{re.escape(keyword)}", text) is not None


def select_by_context(tools: Sequence[Tool], user_text: str) -> Optional[Tool]:
    """
    Pick the tool whose capability the user's request asks for, if any.
    """
    lowered = user_text.lower()
    for kind, keywords in CONTEXT_KEYWORDS:
        if not any(_keyword_present(lowered, keyword) for keyword in keywords):
            continue
        for tool in tools:
            if classify_tool_name(tool_name(tool)) == kind:
                return tool
    return None


def priority_order(tools: Sequence[Tool]) -> List[Tool]:
    def rank(indexed):
        index, tool = indexed
        kind = classify_tool_name(tool_name(tool))
        return (_PRIORITY.index(kind) if kind in _PRIORITY else len(_PRIORITY), index)

    return [tool for _, tool in sorted(enumerate(tools), key=rank)]


def select_fallback_tool(
    tools: Sequence[Tool],
    user_text: str,
    state: ToolRotationState,
) -> Tool:
    """
    Choose the single tool to declare on the fallback retry.

    Strategy, in order:
    1. a tool matching the keywords of the latest user message;
    2. the highest-priority tool not used in the last three selections;
    3. plain rotation over the declared tools.

    Args:
        tools (Sequence[Tool]): The declared tools (at least one).
        user_text (str): Text of the latest user message.
        state (ToolRotationState): Selection history, updated in place.

    Returns:
        Tool: The selected declaration.
    """
    if not tools:
        raise ValueError("select_fallback_tool requires at least one tool")

    strategy = "context"
    selected = select_by_context(tools, user_text)

    if selected is None:
        strategy = "priority"
        recent = state.recent()
        selected = next((tool for tool in priority_order(tools) if tool_name(tool) not in recent), None)

    if selected is None:
        strategy = "rotation"
        state.rotation_index = (state.rotation_index + 1) % len(tools)
        selected = tools[state.rotation_index]

    state.record(tool_name(selected), strategy)
    logger.info(
        "Fallback tool selected: %s (strategy=%s, available=%d, recent=%s)",
        tool_name(selected), strategy, len(tools), state.recent(),
    )
    return selected
