"""
Task lifecycle controller.

TaskManager is the only writer of task state. It enforces the transition graph

    SUBMITTED -> WORKING -> {COMPLETED, CANCELED}
    WORKING -> INPUT_REQUIRED -> WORKING

stamps `updatedAt` on every mutation, and notifies the ListenerRegistry after each
successful transition. Transitions on the same task id are serialized by a per-id
lock; transitions on different ids do not wait for each other.
"""

import logging
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from datetime import timedelta

import anyio
from anyio.abc import TaskStatus

from a2a_tasks.clock import Clock, SystemClock
from a2a_tasks.exceptions import InvalidStateError, TaskNotCancelableError, TaskNotFoundError
from a2a_tasks.tasks.helpers import can_transition, generate_task_id, is_terminal, text_artifact
from a2a_tasks.tasks.listeners import ListenerRegistry, TaskListener
from a2a_tasks.tasks.store import TaskStore
from a2a_tasks.types import Artifact, Task, TaskArtifactUpdateEvent, TaskState, TaskStatusUpdateEvent

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE_SECONDS = 3600.0
DEFAULT_SWEEP_INTERVAL_SECONDS = 300.0


class TaskManager:
    def __init__(
        self,
        store: TaskStore,
        listeners: ListenerRegistry,
        *,
        clock: Clock | None = None,
        max_age: float = DEFAULT_MAX_AGE_SECONDS,
    ) -> None:
        self.store = store
        self.listeners = listeners
        self._clock = clock or SystemClock()
        self._max_age = timedelta(seconds=max_age)
        # id -> (lock, number of holders and waiters); an entry lives only while in use.
        self._locks: dict[str, tuple[anyio.Lock, int]] = {}

    @asynccontextmanager
    async def _locked(self, task_id: str) -> AsyncIterator[None]:
        lock, users = self._locks.get(task_id, (None, 0))
        if lock is None:
            lock = anyio.Lock()
        self._locks[task_id] = (lock, users + 1)
        try:
            async with lock:
                yield
        finally:
            lock, users = self._locks[task_id]
            if users == 1:
                del self._locks[task_id]
            else:
                self._locks[task_id] = (lock, users - 1)

    async def get(self, task_id: str) -> Task:
        task = await self.store.get_task(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    async def submit(self, task_id: str | None = None) -> Task:
        """Create the task in SUBMITTED, or return it unchanged if it is already in flight.

        Raises:
            InvalidStateError: If a task with this id already reached a terminal state.
        """
        task_id = task_id or generate_task_id()
        async with self._locked(task_id):
            existing = await self.store.get_task(task_id)
            if existing is not None:
                if is_terminal(existing.state):
                    raise InvalidStateError(task_id, existing.state, TaskState.SUBMITTED)
                logger.debug("Task %s resubmitted while %s, ignoring", task_id, existing.state.value)
                return existing

            task = await self.store.create_task(task_id)
            logger.info("Task %s submitted", task_id)
            self._notify_status(task)
            return task

    async def start_work(self, task_id: str) -> Task:
        return await self._transition(task_id, TaskState.WORKING)

    async def require_input(self, task_id: str) -> Task:
        return await self._transition(task_id, TaskState.INPUT_REQUIRED)

    async def complete(self, task_id: str, result: str, artifacts: Sequence[Artifact] | None = None) -> Task:
        """Move a WORKING task to COMPLETED, recording its result and artifacts.

        When no artifacts are given the result itself becomes the single "response"
        artifact.
        """
        final_artifacts = list(artifacts) if artifacts is not None else [text_artifact(result)]

        def apply(task: Task) -> None:
            task.result = result
            task.artifacts = [artifact.model_copy(deep=True) for artifact in final_artifacts]

        return await self._transition(task_id, TaskState.COMPLETED, apply)

    async def cancel(self, task_id: str) -> Task:
        async with self._locked(task_id):
            task = await self.get(task_id)
            if is_terminal(task.state):
                raise TaskNotCancelableError(task_id, task.state)
            return await self._apply(task, TaskState.CANCELED)

    async def emit_artifact(self, task_id: str, artifact: Artifact) -> None:
        """Tell the task's listener about an intermediate artifact. The task itself is unchanged."""
        async with self._locked(task_id):
            task = await self.get(task_id)
            if is_terminal(task.state):
                raise InvalidStateError(task_id, task.state)
            self.listeners.notify(TaskArtifactUpdateEvent(task_id=task_id, artifact=artifact))

    async def subscribe(self, task_id: str, listener: TaskListener, *, replay: bool = False) -> Task | None:
        """Bind `listener` and return the task as it was at the moment of binding.

        Holding the task lock means no transition can slip between the snapshot and
        the bind: the listener sees every event after the returned state. With
        `replay`, the listener first receives a status event for that state.
        Returns None if the id is unknown or already has a listener.
        """
        async with self._locked(task_id):
            if not await self.listeners.subscribe(task_id, listener):
                return None
            task = await self.store.get_task(task_id)
            if task is not None and replay:
                self._notify_status(task)
            return task

    async def _transition(
        self,
        task_id: str,
        target: TaskState,
        mutate: Callable[[Task], None] | None = None,
    ) -> Task:
        async with self._locked(task_id):
            task = await self.get(task_id)
            if not can_transition(task.state, target):
                raise InvalidStateError(task_id, task.state, target)
            return await self._apply(task, target, mutate)

    async def _apply(
        self,
        task: Task,
        target: TaskState,
        mutate: Callable[[Task], None] | None = None,
    ) -> Task:
        previous = task.state
        task.state = target
        if mutate is not None:
            mutate(task)
        # updatedAt never goes backwards, even if the wall clock does.
        task.updated_at = max(self._clock.now(), task.updated_at)
        await self.store.put_task(task)
        logger.info("Task %s: %s -> %s", task.id, previous.value, target.value)
        self._notify_status(task)
        return task.snapshot()

    def _notify_status(self, task: Task) -> None:
        self.listeners.notify(
            TaskStatusUpdateEvent(
                task_id=task.id,
                state=task.state,
                final=is_terminal(task.state),
                task=task.snapshot(),
            )
        )

    async def sweep(self) -> list[str]:
        """Remove terminal tasks left untouched for longer than the max age.

        A task is only removed if it is still terminal and unchanged when re-read under
        its lock. Any listener bound to a removed task is released.

        Returns:
            The ids that were removed.
        """
        cutoff = self._clock.now() - self._max_age
        candidates = [
            (task.id, task.updated_at)
            for task in await self.store.list_tasks()
            if is_terminal(task.state) and task.updated_at < cutoff
        ]

        removed: list[str] = []
        for task_id, seen_updated_at in candidates:
            async with self._locked(task_id):
                current = await self.store.get_task(task_id)
                if current is None or not is_terminal(current.state) or current.updated_at != seen_updated_at:
                    continue
                await self.store.delete_task(task_id)
                self.listeners.unsubscribe(task_id)
                removed.append(task_id)

        if removed:
            logger.info("Swept %d terminal task(s)", len(removed))
        return removed

    async def run_sweeper(
        self,
        interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        *,
        task_status: TaskStatus[None] = anyio.TASK_STATUS_IGNORED,
    ) -> None:
        """Sweep every `interval` seconds until cancelled."""
        task_status.started()
        while True:
            await self._clock.sleep(interval)
            try:
                await self.sweep()
            except Exception:
                logger.exception("Task sweep failed")
