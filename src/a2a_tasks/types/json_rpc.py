"""Minimum amount of base models to represent the JSON-RPC envelopes used by the task endpoint."""

from typing import Annotated, Any, Final, Literal

from pydantic import BaseModel, ConfigDict, Field

JSONRPC_VERSION: Final[str] = "2.0"

PARSE_ERROR: Final[int] = -32700
INVALID_REQUEST: Final[int] = -32600
METHOD_NOT_FOUND: Final[int] = -32601
INVALID_PARAMS: Final[int] = -32602
INTERNAL_ERROR: Final[int] = -32603

# Task-specific codes live in the implementation-defined server error range.
TASK_NOT_FOUND: Final[int] = -32000
TASK_NOT_CANCELABLE: Final[int] = -32001
INVALID_TASK_STATE: Final[int] = -32002

RequestId = Annotated[int, Field(strict=True)] | str


class JSONRPCBase(BaseModel):
    """Base class for all JSON-RPC messages."""

    model_config = ConfigDict(extra="allow")

    jsonrpc: Literal["2.0"] = JSONRPC_VERSION


class JSONRPCRequest(JSONRPCBase):
    """A request that expects a response.

    `params` stays a loose bag here; typed extraction happens per method in the
    dispatch table.
    """

    id: RequestId | None = None
    method: str
    params: Any | None = None


class ErrorData(BaseModel):
    """Error information in a JSON-RPC error response."""

    model_config = ConfigDict(extra="allow")

    code: int
    message: str
    data: Any | None = None


class JSONRPCResultResponse(JSONRPCBase):
    """A successful (non-error) response to a request."""

    id: RequestId | None
    result: Any


class JSONRPCErrorResponse(JSONRPCBase):
    """A response to a request that indicates an error occurred."""

    id: RequestId | None = None
    error: ErrorData


JSONRPCResponse = JSONRPCResultResponse | JSONRPCErrorResponse


def dump_response(response: JSONRPCResponse) -> dict[str, Any]:
    """Serialize a response envelope the way it goes on the wire."""
    data = response.model_dump(mode="json", by_alias=True, exclude_none=True)
    # `id: null` is meaningful for errors raised before the request id was known.
    data.setdefault("id", None)
    return data
