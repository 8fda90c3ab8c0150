"""Tests for the single-subscriber ListenerRegistry."""

import logging

import pytest

from a2a_tasks.tasks import InMemoryTaskStore, ListenerRegistry
from a2a_tasks.types import TaskState, TaskStatusUpdateEvent

pytestmark = pytest.mark.anyio


def _status(task_id: str, state: TaskState = TaskState.WORKING) -> TaskStatusUpdateEvent:
    return TaskStatusUpdateEvent(task_id=task_id, state=state)


async def test_subscribe_requires_known_task(listeners: ListenerRegistry) -> None:
    events: list = []

    assert await listeners.subscribe("missing", events.append) is False
    assert not listeners.is_subscribed("missing")


async def test_duplicate_subscribe_keeps_existing_binding(
    store: InMemoryTaskStore, listeners: ListenerRegistry
) -> None:
    await store.create_task("t1")
    first: list = []
    second: list = []

    assert await listeners.subscribe("t1", first.append) is True
    assert await listeners.subscribe("t1", second.append) is False

    listeners.notify(_status("t1"))

    assert len(first) == 1
    assert second == []


async def test_resubscribe_after_unsubscribe(store: InMemoryTaskStore, listeners: ListenerRegistry) -> None:
    await store.create_task("t1")
    first: list = []
    second: list = []

    await listeners.subscribe("t1", first.append)
    listeners.unsubscribe("t1")
    listeners.unsubscribe("t1")

    assert await listeners.subscribe("t1", second.append) is True
    listeners.notify(_status("t1"))
    assert first == []
    assert len(second) == 1


async def test_unsubscribe_with_stale_listener_is_ignored(
    store: InMemoryTaskStore, listeners: ListenerRegistry
) -> None:
    await store.create_task("t1")
    stale: list = []
    current: list = []

    await listeners.subscribe("t1", stale.append)
    listeners.unsubscribe("t1", stale.append)
    await listeners.subscribe("t1", current.append)

    listeners.unsubscribe("t1", stale.append)

    assert listeners.is_subscribed("t1")
    assert len(listeners) == 1


async def test_notify_without_listener_is_noop(listeners: ListenerRegistry) -> None:
    listeners.notify(_status("nobody-listens"))


async def test_failing_listener_is_released(
    store: InMemoryTaskStore, listeners: ListenerRegistry, caplog: pytest.LogCaptureFixture
) -> None:
    await store.create_task("t1")

    def explode(event: object) -> None:
        raise RuntimeError("boom")

    await listeners.subscribe("t1", explode)

    with caplog.at_level(logging.ERROR):
        listeners.notify(_status("t1"))

    assert not listeners.is_subscribed("t1")
    assert "Listener for task t1 failed" in caplog.text
