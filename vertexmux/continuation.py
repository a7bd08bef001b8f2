"""
Autonomous task continuation.

After an agent has executed tools, decide from the conversation whether the
model should keep working without new user input, and if so synthesize a
system instruction that tells it what to do next. The analysis is advisory:
a miss only ends the agent loop one turn early.
"""
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .messages import create_message, extract_content, get_last_user_message
from .tool_kinds import CANONICAL_TOOL_NAMES, ToolKind, classify_tool_name, tool_name, tools_of_kind
from .types import Message, NextStep, TaskState, TaskType, Tool

logger = logging.getLogger(__name__)

# Checked in order; the first group with a keyword in the request wins.
TASK_KEYWORDS = (
    (TaskType.DEBUG_FIX, ("fix", "bug", "error")),
    (TaskType.FEATURE_ADD, ("add", "implement", "create")),
    (TaskType.REFACTOR, ("refactor", "improve", "optimize")),
    (TaskType.TESTING, ("test", "spec")),
)

ACTION_WORDS = ("fix", "edit", "modify", "add", "implement", "create", "update", "change", "improve")

COMPLETION_WEIGHTS = {
    TaskType.DEBUG_FIX: 25,
    TaskType.FEATURE_ADD: 25,
    TaskType.ANALYSIS: 50,
}
DEFAULT_COMPLETION_WEIGHT = 33


@dataclass
class ContinuationAnalysis:
    should_continue: bool
    task_state: Optional[TaskState] = None


def _mentions(text: str, words: Sequence[str]) -> bool:
    return any(word in text for word in words)


def classify_task_type(request: str) -> TaskType:
    """
    Classify a user request by keyword membership.

    Returns:
        TaskType: The first matching type, or ANALYSIS when nothing matches.
    """
    lowered = request.lower()
    for task_type, keywords in TASK_KEYWORDS:
        if _mentions(lowered, keywords):
            return task_type
    return TaskType.ANALYSIS


def completion_level(task_type: TaskType, tool_result_count: int) -> int:
    weight = COMPLETION_WEIGHTS.get(task_type, DEFAULT_COMPLETION_WEIGHT)
    return min(tool_result_count * weight, 100)


def find_last_assistant_tool_call(messages: Sequence[Message]) -> Optional[int]:
    """
    Return the index of the last assistant message carrying tool calls.
    """
    for index in range(len(messages) - 1, -1, -1):
        message = messages[index]
        if message.get("role") == "assistant" and message.get("tool_calls"):
            return index
    return None


def find_tool_results(messages: Sequence[Message], assistant_index: int) -> List[Message]:
    call_ids = {call.get("id") for call in messages[assistant_index]["tool_calls"]}
    return [
        message for message in messages[assistant_index + 1:]
        if message.get("role") == "tool" and message.get("tool_call_id") in call_ids
    ]


class _StepSuggester:
    """
    Names suggested tools after what the caller actually declared.

    A kind with no declared tool is skipped; when no tools were declared at
    all, the canonical agent tool name is used.
    """

    def __init__(self, tools: Optional[Sequence[Tool]]):
        self.tools = list(tools or [])

    def suggest(self, kind: ToolKind, reason: str) -> Optional[NextStep]:
        if not self.tools:
            return NextStep(CANONICAL_TOOL_NAMES[kind], reason)
        matching = tools_of_kind(self.tools, kind)
        if not matching:
            return None
        return NextStep(tool_name(matching[0]), reason)


def _steps_after_read(request: str, suggester: _StepSuggester) -> List[Optional[NextStep]]:
    steps = []
    if _mentions(request, ("fix", "bug")):
        steps.append(suggester.suggest(ToolKind.EDIT_FILE, "Fix identified issues in the file"))
    if _mentions(request, ("add", "implement")):
        steps.append(suggester.suggest(ToolKind.EDIT_FILE, "Add requested functionality to the file"))
    if "test" in request:
        steps.append(suggester.suggest(ToolKind.TERMINAL, "Run tests to verify the changes"))
    if not any(steps):
        steps.append(suggester.suggest(ToolKind.EDIT_FILE, "Apply the requested changes to the file"))
    return steps


def _evaluate_tool_result(
    kind: ToolKind,
    request: str,
    output: str,
    suggester: _StepSuggester,
) -> List[Optional[NextStep]]:
    """
    Apply the continuation rule for one tool result.

    Returns:
        List[Optional[NextStep]]: Suggested steps; empty when the result does
        not call for continuation.
    """
    if kind == ToolKind.READ_FILE:
        if _mentions(request, ACTION_WORDS):
            return _steps_after_read(request, suggester)

    elif kind == ToolKind.LIST_DIRECTORY:
        if _mentions(request, ("analyze", "fix", "modify")):
            return [suggester.suggest(ToolKind.READ_FILE, "Read relevant files from the directory listing")]

    elif kind == ToolKind.SEARCH:
        if output.strip():
            return [suggester.suggest(ToolKind.READ_FILE, "Read files found in search results")]

    elif kind == ToolKind.TERMINAL:
        lowered = output.lower()
        if _mentions(lowered, ("error", "failed")):
            return [suggester.suggest(ToolKind.READ_FILE, "Read configuration files to fix command errors")]
        if _mentions(request, ("setup", "install")):
            return [suggester.suggest(ToolKind.READ_FILE, "Read configuration files to continue the setup")]

    return []


def analyze_task_continuation(
    messages: Sequence[Message],
    tools: Optional[Sequence[Tool]] = None,
) -> ContinuationAnalysis:
    """
    Decide whether an agent loop should continue after the latest tool results.

    Args:
        messages (Sequence[Message]): The conversation, cleaned of orphaned
            tool messages.
        tools (Sequence[Tool], optional): Tools declared on the request.

    Returns:
        ContinuationAnalysis: `should_continue` plus the computed task state
        (None when there is no answered tool call to reason about).
    """
    assistant_index = find_last_assistant_tool_call(messages)
    if assistant_index is None:
        return ContinuationAnalysis(False)

    tool_results = find_tool_results(messages, assistant_index)
    if not tool_results:
        return ContinuationAnalysis(False)

    tool_calls = messages[assistant_index]["tool_calls"]
    names_by_id: Dict[str, str] = {
        call.get("id"): (call.get("function") or {}).get("name", "") for call in tool_calls
    }

    last_user = get_last_user_message(messages)
    request = extract_content(last_user).lower() if last_user else ""
    suggester = _StepSuggester(tools)

    task_type = TaskType.UNKNOWN
    should_continue = False
    next_steps: List[NextStep] = []

    for result in tool_results:
        kind = classify_tool_name(names_by_id.get(result.get("tool_call_id"), ""))
        task_type = classify_task_type(request)
        steps = _evaluate_tool_result(kind, request, extract_content(result), suggester)
        if steps:
            should_continue = True
        for step in steps:
            if step is not None and all(step.tool != existing.tool for existing in next_steps):
                next_steps.append(step)

    state = TaskState(
        task_type=task_type,
        completion_level=completion_level(task_type, len(tool_results)),
        next_steps=next_steps,
        tool_results=tool_results,
        last_tool_call=tool_calls[0],
    )
    logger.info(
        "Task continuation analysis (task_type=%s, continue=%s, completion=%d, next_steps=%d)",
        task_type.value, should_continue, state.completion_level, len(next_steps),
    )
    return ContinuationAnalysis(should_continue, state)


_TASK_DESCRIPTIONS = {
    TaskType.DEBUG_FIX: "You are working on debugging/fixing an issue.",
    TaskType.FEATURE_ADD: "You are implementing a new feature.",
    TaskType.REFACTOR: "You are refactoring code.",
    TaskType.TESTING: "You are writing or running tests.",
}


def generate_continuation_prompt(task_state: TaskState) -> str:
    """
    Build the system instruction that drives the model to keep working.
    """
    description = _TASK_DESCRIPTIONS.get(task_state.task_type, "You are working on a coding task.")
    lines = [
        f"AUTONOMOUS TASK CONTINUATION ({task_state.task_type.value}): "
        f"You have executed tools and received results. {description} "
        "Based on the tool results you received, CONTINUE working to complete the task:",
        "",
    ]
    if task_state.next_steps:
        lines.append("SUGGESTED NEXT STEPS:")
        lines.extend(
            f"{index}. Use {step.tool}: {step.reason}"
            for index, step in enumerate(task_state.next_steps, start=1)
        )
        lines.append("")
    lines.append(
        "Don't ask for permission - execute the necessary tools immediately to complete the task. "
        "Continue until the entire task is finished."
    )
    return "\n".join(lines)


def with_continuation_instruction(
    messages: List[Message],
    tools: Optional[Sequence[Tool]] = None,
) -> List[Message]:
    """
    Return the conversation with a continuation instruction appended when the
    analysis calls for one. The input list is not modified.
    """
    analysis = analyze_task_continuation(messages, tools)
    if not analysis.should_continue or analysis.task_state is None:
        return messages
    return [*messages, create_message("system", generate_continuation_prompt(analysis.task_state))]
