"""Errors raised by the task endpoint.

Every error carries the `ErrorData` that goes into the JSON-RPC error envelope, so the
dispatch boundary can convert any of them without knowing the concrete type.
"""

from typing import Any

from a2a_tasks.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    INVALID_TASK_STATE,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    TASK_NOT_CANCELABLE,
    TASK_NOT_FOUND,
    ErrorData,
    TaskState,
)


class A2AError(Exception):
    """Exception carrying a protocol error for the caller.

    Attributes:
        error: The ErrorData sent back to the peer, containing the error code,
               message, and optional additional data
    """

    error: ErrorData

    def __init__(self, error: ErrorData):
        super().__init__(error.message)
        self.error = error

    @property
    def code(self) -> int:
        return self.error.code


class ParseError(A2AError):
    def __init__(self, message: str = "Parse error", data: Any | None = None):
        super().__init__(ErrorData(code=PARSE_ERROR, message=message, data=data))


class InvalidRequestError(A2AError):
    def __init__(self, message: str = "Invalid request", data: Any | None = None):
        super().__init__(ErrorData(code=INVALID_REQUEST, message=message, data=data))


class MethodNotFoundError(A2AError):
    def __init__(self, method: str):
        super().__init__(ErrorData(code=METHOD_NOT_FOUND, message=f"Method not found: {method}"))
        self.method = method


class InvalidParamsError(A2AError):
    def __init__(self, message: str, data: Any | None = None):
        super().__init__(ErrorData(code=INVALID_PARAMS, message=message, data=data))


class InternalError(A2AError):
    """Wraps an unexpected failure so the caller still gets a well-formed envelope."""

    def __init__(self, message: str = "Internal error"):
        super().__init__(ErrorData(code=INTERNAL_ERROR, message=message))


class TaskNotFoundError(A2AError):
    def __init__(self, task_id: str | None):
        super().__init__(ErrorData(code=TASK_NOT_FOUND, message=f"Task not found: {task_id}"))
        self.task_id = task_id


class TaskNotCancelableError(A2AError):
    def __init__(self, task_id: str, state: TaskState):
        super().__init__(
            ErrorData(
                code=TASK_NOT_CANCELABLE,
                message=f"Task {task_id} cannot be canceled in state: {state.name}",
            )
        )
        self.task_id = task_id
        self.state = state


class InvalidStateError(A2AError):
    """Raised on a transition the lifecycle graph does not allow."""

    def __init__(self, task_id: str, current: TaskState, target: TaskState | None = None):
        if target is None:
            message = f"Task {task_id} is {current.name} and accepts no further updates"
        else:
            message = f"Task {task_id} cannot move from {current.name} to {target.name}"
        super().__init__(ErrorData(code=INVALID_TASK_STATE, message=message))
        self.task_id = task_id
        self.current = current
        self.target = target
