"""Starlette adapter - serves the RpcServer over HTTP.

This is the only module with a Starlette dependency. Routes:

    POST /        JSON-RPC; plain JSON responses, streaming methods answer with SSE
    POST /stream  JSON-RPC over SSE only
    GET  /health  liveness and a few counters
"""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from pydantic import ValidationError
from sse_starlette import EventSourceResponse
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from a2a_tasks.clock import Clock
from a2a_tasks.exceptions import A2AError, InvalidRequestError, MethodNotFoundError, ParseError
from a2a_tasks.responder import Responder
from a2a_tasks.runtime import Runtime, open_runtime
from a2a_tasks.server import serialize_result
from a2a_tasks.settings import Settings
from a2a_tasks.streaming import EventStream, StreamEvent
from a2a_tasks.types import (
    ErrorData,
    JSONRPCErrorResponse,
    JSONRPCRequest,
    JSONRPCResultResponse,
    RequestId,
    dump_response,
)

logger = logging.getLogger(__name__)


async def read_request(request: Request) -> JSONRPCRequest:
    """Parse the HTTP body into a request envelope.

    Raises:
        ParseError: If the body is not JSON.
        InvalidRequestError: If the JSON is not a request envelope.
    """
    body = await request.body()
    try:
        payload = json.loads(body)
    except ValueError as e:
        raise ParseError(data=str(e)) from e
    try:
        return JSONRPCRequest.model_validate(payload)
    except ValidationError as e:
        raise InvalidRequestError(
            data=e.errors(include_url=False, include_context=False, include_input=False)
        ) from e


def _format_event(request_id: RequestId | None, event: StreamEvent) -> dict[str, str]:
    if isinstance(event.payload, ErrorData):
        envelope = dump_response(JSONRPCErrorResponse(id=request_id, error=event.payload))
    else:
        envelope = dump_response(JSONRPCResultResponse(id=request_id, result=serialize_result(event.payload)))
    return {"event": event.kind, "data": json.dumps(envelope)}


async def _stream_events(request_id: RequestId | None, stream: EventStream) -> AsyncIterator[dict[str, str]]:
    # Each pull from this generator is one credit for the bridge's pump.
    async with stream:
        async for event in stream:
            yield _format_event(request_id, event)


async def _single_error(request_id: RequestId | None, error: ErrorData) -> AsyncIterator[dict[str, str]]:
    yield _format_event(request_id, StreamEvent.error(error))


async def _stream_response(runtime: Runtime, rpc: JSONRPCRequest) -> Response:
    try:
        stream = await runtime.pool.run(runtime.server.dispatch, rpc.method, rpc.params)
    except A2AError as err:
        logger.info("Streaming call %s rejected: %s", rpc.method, err.error.message)
        return EventSourceResponse(_single_error(rpc.id, err.error))
    return EventSourceResponse(_stream_events(rpc.id, stream))


def create_starlette_app(
    settings: Settings | None = None,
    *,
    responder: Responder | None = None,
    clock: Clock | None = None,
) -> Starlette:
    """Create a Starlette ASGI app serving the task methods.

    Usage:
        app = create_starlette_app(Settings(port=9000))
        uvicorn.run(app, host="127.0.0.1", port=9000)
    """
    settings = settings or Settings()

    @asynccontextmanager
    async def app_lifespan(app: Starlette) -> AsyncIterator[None]:
        async with open_runtime(settings, responder=responder, clock=clock) as runtime:
            app.state.runtime = runtime
            yield

    async def handle_rpc(request: Request) -> Response:
        runtime: Runtime = request.app.state.runtime
        try:
            rpc = await read_request(request)
        except A2AError as err:
            return JSONResponse(dump_response(JSONRPCErrorResponse(id=None, error=err.error)))

        if runtime.server.is_streaming(rpc.method):
            return await _stream_response(runtime, rpc)

        response = await runtime.pool.run(runtime.server.handle_request, rpc)
        return JSONResponse(dump_response(response))

    async def handle_stream(request: Request) -> Response:
        runtime: Runtime = request.app.state.runtime
        try:
            rpc = await read_request(request)
        except A2AError as err:
            return EventSourceResponse(_single_error(None, err.error))

        if not runtime.server.is_streaming(rpc.method):
            if rpc.method in runtime.server.methods:
                error = InvalidRequestError(f"Method {rpc.method} does not stream").error
            else:
                error = MethodNotFoundError(rpc.method).error
            return EventSourceResponse(_single_error(rpc.id, error))
        return await _stream_response(runtime, rpc)

    async def handle_health(request: Request) -> Response:
        runtime: Runtime = request.app.state.runtime
        body: dict[str, Any] = {
            "status": "ok",
            "tasks": len(runtime.store),
            "subscriptions": len(runtime.listeners),
            "workers": {"active": runtime.pool.active, "max": runtime.pool.max_workers},
        }
        return JSONResponse(body)

    return Starlette(
        debug=settings.debug,
        lifespan=app_lifespan,
        routes=[
            Route("/", handle_rpc, methods=["POST"]),
            Route("/stream", handle_stream, methods=["POST"]),
            Route("/health", handle_health, methods=["GET"]),
        ],
    )
