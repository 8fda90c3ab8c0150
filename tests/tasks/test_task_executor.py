"""Tests for TaskExecutor."""

import anyio
import pytest

from a2a_tasks.exceptions import InvalidStateError
from a2a_tasks.responder import EchoResponder
from a2a_tasks.tasks import TaskManager
from a2a_tasks.tasks.executor import TaskExecutor
from a2a_tasks.types import TaskArtifactUpdateEvent, TaskState

pytestmark = pytest.mark.anyio


async def _working(manager: TaskManager, task_id: str) -> None:
    await manager.submit(task_id)
    await manager.start_work(task_id)


async def test_execute_completes_with_response_artifact(manager: TaskManager) -> None:
    executor = TaskExecutor(manager, EchoResponder())
    await _working(manager, "t1")

    task = await executor.execute("t1", "hello")

    assert task.state == TaskState.COMPLETED
    assert task.result == "hello"
    assert task.artifacts is not None
    assert task.artifacts[0].name == "response"
    assert task.artifacts[0].parts[0].text == "hello"


async def test_execute_emits_artifact_before_completion(manager: TaskManager) -> None:
    executor = TaskExecutor(manager, EchoResponder(prefix="echo: "))
    events: list = []
    await _working(manager, "t1")
    await manager.subscribe("t1", events.append)

    await executor.execute("t1", "hi")

    assert isinstance(events[0], TaskArtifactUpdateEvent)
    assert events[0].artifact.parts[0].text == "echo: hi"
    assert events[-1].state == TaskState.COMPLETED
    assert events[-1].final is True


async def test_execute_on_canceled_task_fails(manager: TaskManager) -> None:
    executor = TaskExecutor(manager, EchoResponder())
    await _working(manager, "t1")
    await manager.cancel("t1")

    with pytest.raises(InvalidStateError):
        await executor.execute("t1", "too late")

    assert (await manager.get("t1")).state == TaskState.CANCELED


async def test_emit_delay_uses_clock(manager: TaskManager, clock) -> None:
    executor = TaskExecutor(manager, EchoResponder(), clock=clock, emit_delay=0.05)
    await _working(manager, "t1")
    results: list = []

    async def run() -> None:
        results.append(await executor.execute("t1", "slow"))

    async with anyio.create_task_group() as tg:
        tg.start_soon(run)
        await anyio.wait_all_tasks_blocked()
        assert clock.sleepers == 1
        assert (await manager.get("t1")).state == TaskState.WORKING

        clock.advance(0.05)
        await anyio.wait_all_tasks_blocked()
        clock.advance(0.05)

    assert results[0].state == TaskState.COMPLETED


async def test_empty_message_gets_placeholder_result(manager: TaskManager) -> None:
    executor = TaskExecutor(manager, EchoResponder())
    await _working(manager, "t1")

    task = await executor.execute("t1", "")

    assert task.result == "(empty message)"
