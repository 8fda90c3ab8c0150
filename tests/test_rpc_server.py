"""Tests for RpcServer registration and dispatch."""

import logging
from typing import Any

import pytest

from a2a_tasks.exceptions import InternalError, MethodNotFoundError, TaskNotFoundError
from a2a_tasks.params import Param
from a2a_tasks.server import RpcServer
from a2a_tasks.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    METHOD_NOT_FOUND,
    TASK_NOT_FOUND,
    JSONRPCErrorResponse,
    JSONRPCRequest,
    JSONRPCResultResponse,
    Task,
    dump_response,
)

pytestmark = pytest.mark.anyio


def _make_server() -> RpcServer:
    server = RpcServer(name="test-server", version="0.1.0")

    @server.method("echo", Param("text", required=True))
    async def echo(text: str) -> dict[str, Any]:
        return {"text": text}

    @server.method("lookup", Param("id", required=True, keyword="task_id"))
    async def lookup(task_id: str) -> Task:
        raise TaskNotFoundError(task_id)

    @server.method("explode")
    async def explode() -> None:
        raise RuntimeError("kaboom")

    @server.method("watch", streaming=True)
    async def watch() -> None:
        return None

    server.freeze()
    return server


async def test_dispatch_returns_handler_result() -> None:
    server = _make_server()
    assert await server.dispatch("echo", {"text": "hi"}) == {"text": "hi"}


@pytest.mark.parametrize("params", [None, {}, {"id": "x"}, ["junk"]])
async def test_unregistered_method_regardless_of_params(params: Any) -> None:
    server = _make_server()

    with pytest.raises(MethodNotFoundError) as exc_info:
        await server.dispatch("nope", params)
    assert exc_info.value.code == METHOD_NOT_FOUND

    response = await server.handle_request(JSONRPCRequest(id=1, method="nope", params=params))
    assert isinstance(response, JSONRPCErrorResponse)
    assert response.error.code == METHOD_NOT_FOUND


async def test_domain_errors_propagate_unchanged() -> None:
    server = _make_server()

    with pytest.raises(TaskNotFoundError):
        await server.dispatch("lookup", {"id": "missing"})

    response = await server.handle_request(JSONRPCRequest(id="r1", method="lookup", params={"id": "missing"}))
    assert dump_response(response) == {
        "jsonrpc": "2.0",
        "id": "r1",
        "error": {"code": TASK_NOT_FOUND, "message": "Task not found: missing"},
    }


async def test_unexpected_errors_become_internal_errors(caplog: pytest.LogCaptureFixture) -> None:
    server = _make_server()

    with caplog.at_level(logging.ERROR):
        with pytest.raises(InternalError) as exc_info:
            await server.dispatch("explode")

    assert exc_info.value.code == INTERNAL_ERROR
    assert "kaboom" in exc_info.value.error.message
    assert "Handler error for explode" in caplog.text


async def test_invalid_params_envelope() -> None:
    server = _make_server()

    response = await server.handle_request(JSONRPCRequest(id=3, method="echo", params={}))

    assert isinstance(response, JSONRPCErrorResponse)
    assert response.id == 3
    assert response.error.code == INVALID_PARAMS


async def test_handle_request_wraps_result() -> None:
    server = _make_server()

    response = await server.handle_request(JSONRPCRequest(id=7, method="echo", params={"text": "hi"}))

    assert isinstance(response, JSONRPCResultResponse)
    assert dump_response(response) == {"jsonrpc": "2.0", "id": 7, "result": {"text": "hi"}}


async def test_handle_request_refuses_streaming_methods() -> None:
    server = _make_server()

    response = await server.handle_request(JSONRPCRequest(id=1, method="watch"))

    assert isinstance(response, JSONRPCErrorResponse)
    assert response.error.code == INVALID_REQUEST


async def test_registration_rules() -> None:
    server = RpcServer(name="test-server", version="0.1.0")

    async def handler() -> None:
        return None

    server.register("a", handler)
    with pytest.raises(ValueError, match="already registered"):
        server.register("a", handler)

    server.freeze()
    assert server.frozen
    with pytest.raises(RuntimeError, match="frozen"):
        server.register("b", handler)

    assert server.methods == ["a"]
    assert not server.is_streaming("a")
    assert not server.is_streaming("missing")
