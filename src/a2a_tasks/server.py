"""RpcServer - method registry and dispatch.

No I/O, no lifecycle, no transport knowledge. Just dispatch.
"""

import logging
from collections.abc import Callable, Sequence
from typing import Any

from pydantic import BaseModel

from a2a_tasks.exceptions import A2AError, InternalError, InvalidRequestError, MethodNotFoundError
from a2a_tasks.params import Handler, HandlerDescriptor, Param, describe
from a2a_tasks.types import JSONRPCErrorResponse, JSONRPCRequest, JSONRPCResponse, JSONRPCResultResponse

logger = logging.getLogger(__name__)


class RpcServer:
    """Handler registry + dispatch.

    Every method is registered explicitly at startup, then the table is frozen and
    only read from.

    Usage:
        server = RpcServer(name="a2a-tasks", version="1.0")

        @server.method("tasks/get", Param("id", required=True, keyword="task_id"))
        async def get_task(task_id: str) -> Task:
            return await manager.get(task_id)

        server.freeze()
        response = await server.handle_request(request)
    """

    def __init__(self, *, name: str, version: str) -> None:
        self.name = name
        self.version = version
        self._handlers: dict[str, HandlerDescriptor] = {}
        self._frozen = False

    def register(
        self,
        method: str,
        fn: Handler,
        params: Sequence[Param] = (),
        *,
        streaming: bool = False,
    ) -> HandlerDescriptor:
        if self._frozen:
            raise RuntimeError(f"Cannot register {method}: the method table is frozen")
        if method in self._handlers:
            raise ValueError(f"Method already registered: {method}")
        descriptor = describe(method, fn, params, streaming=streaming)
        self._handlers[method] = descriptor
        logger.debug("Registered %s%s", method, " (streaming)" if streaming else "")
        return descriptor

    def method(self, method: str, *params: Param, streaming: bool = False) -> Callable[[Handler], Handler]:
        """Decorator to register a handler for a given method."""

        def decorator(fn: Handler) -> Handler:
            self.register(method, fn, params, streaming=streaming)
            return fn

        return decorator

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    @property
    def methods(self) -> list[str]:
        return sorted(self._handlers)

    def get(self, method: str) -> HandlerDescriptor:
        descriptor = self._handlers.get(method)
        if descriptor is None:
            raise MethodNotFoundError(method)
        return descriptor

    def is_streaming(self, method: str) -> bool:
        descriptor = self._handlers.get(method)
        return descriptor is not None and descriptor.streaming

    async def dispatch(self, method: str, params: Any = None) -> Any:
        """Invoke the handler for `method`.

        Protocol and domain errors propagate unchanged; anything else is logged and
        raised as an InternalError.
        """
        descriptor = self.get(method)
        logger.debug("Dispatching %s", method)
        try:
            return await descriptor.invoke(params)
        except A2AError:
            raise
        except Exception as e:
            logger.exception("Handler error for %s", method)
            raise InternalError(f"Internal error: {e}") from e

    async def handle_request(self, request: JSONRPCRequest) -> JSONRPCResponse:
        """Dispatch a non-streaming request and wrap the outcome in a response envelope."""
        try:
            if self.is_streaming(request.method):
                raise InvalidRequestError(f"Method {request.method} streams its result; use the streaming endpoint")
            result = await self.dispatch(request.method, request.params)
        except A2AError as err:
            return JSONRPCErrorResponse(id=request.id, error=err.error)
        return JSONRPCResultResponse(id=request.id, result=serialize_result(result))


def serialize_result(result: Any) -> Any:
    # Handler can return a BaseModel (serialized) or plain JSON data
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", by_alias=True, exclude_none=True)
    return result
