"""
Task lifecycle: storage, the single-writer controller and listener bindings.
"""

from a2a_tasks.tasks.helpers import (
    TERMINAL_STATES,
    can_transition,
    extract_text,
    generate_task_id,
    is_terminal,
    text_artifact,
)
from a2a_tasks.tasks.in_memory_task_store import InMemoryTaskStore
from a2a_tasks.tasks.listeners import ListenerRegistry, TaskListener
from a2a_tasks.tasks.manager import TaskManager
from a2a_tasks.tasks.store import TaskStore

__all__ = [
    "TERMINAL_STATES",
    "InMemoryTaskStore",
    "ListenerRegistry",
    "TaskListener",
    "TaskManager",
    "TaskStore",
    "can_transition",
    "extract_text",
    "generate_task_id",
    "is_terminal",
    "text_artifact",
]
