"""
Helper functions for task management.
"""

from collections.abc import Mapping
from typing import Any
from uuid import uuid4

from a2a_tasks.types import Artifact, Message, TaskState, TextPart

TERMINAL_STATES = frozenset({TaskState.COMPLETED, TaskState.CANCELED})

# Target state -> states it may be entered from.
ALLOWED_SOURCES: Mapping[TaskState, frozenset[TaskState]] = {
    TaskState.WORKING: frozenset({TaskState.SUBMITTED, TaskState.INPUT_REQUIRED}),
    TaskState.INPUT_REQUIRED: frozenset({TaskState.WORKING}),
    TaskState.COMPLETED: frozenset({TaskState.WORKING}),
    TaskState.CANCELED: frozenset({TaskState.SUBMITTED, TaskState.WORKING, TaskState.INPUT_REQUIRED}),
}

RESPONSE_ARTIFACT_NAME = "response"


def is_terminal(state: TaskState) -> bool:
    """
    Check if a task state is terminal.

    Terminal states are those where the task has finished and will not change.

    Args:
        state: The task state to check

    Returns:
        True if the state is COMPLETED or CANCELED
    """
    return state in TERMINAL_STATES


def can_transition(current: TaskState, target: TaskState) -> bool:
    return current in ALLOWED_SOURCES.get(target, frozenset())


def generate_task_id() -> str:
    """Generate a unique task ID."""
    return str(uuid4())


def text_artifact(text: str, name: str = RESPONSE_ARTIFACT_NAME) -> Artifact:
    return Artifact(name=name, parts=[TextPart(text=text)])


def extract_text(message: Message | Mapping[str, Any] | Any) -> str:
    """
    Concatenate the text parts of a client message.

    A part counts as text when its `type` or `kind` tag is "text", or when it has
    neither tag but carries a string `text` field. Anything else is skipped, and a
    missing or malformed message or part list yields "".
    """
    if isinstance(message, Message):
        parts: Any = message.parts
    elif isinstance(message, Mapping):
        parts = message.get("parts")
    else:
        return ""
    if not isinstance(parts, list):
        return ""

    chunks: list[str] = []
    for part in parts:
        if not isinstance(part, Mapping):
            continue
        tag = part.get("type", part.get("kind"))
        text = part.get("text")
        if tag in ("text", None) and isinstance(text, str):
            chunks.append(text)
    return "".join(chunks)
