"""In-memory task lifecycle server speaking JSON-RPC, with streamed task updates."""

from .exceptions import (
    A2AError,
    InvalidParamsError,
    InvalidStateError,
    MethodNotFoundError,
    TaskNotCancelableError,
    TaskNotFoundError,
)
from .responder import EchoResponder, Responder
from .runtime import Runtime, open_runtime
from .server import RpcServer
from .settings import Settings
from .streaming import EventStream, StreamEvent, StreamingBridge
from .tasks import InMemoryTaskStore, ListenerRegistry, TaskManager, TaskStore
from .types import Task, TaskState

__all__ = [
    "A2AError",
    "EchoResponder",
    "EventStream",
    "InMemoryTaskStore",
    "InvalidParamsError",
    "InvalidStateError",
    "ListenerRegistry",
    "MethodNotFoundError",
    "Responder",
    "RpcServer",
    "Runtime",
    "Settings",
    "StreamEvent",
    "StreamingBridge",
    "Task",
    "TaskManager",
    "TaskNotCancelableError",
    "TaskNotFoundError",
    "TaskState",
    "TaskStore",
    "open_runtime",
]
