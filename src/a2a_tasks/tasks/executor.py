"""Runs a task's work: ask the responder, publish the artifact, complete the task."""

import logging

from a2a_tasks.clock import Clock, SystemClock
from a2a_tasks.responder import Responder
from a2a_tasks.tasks.helpers import text_artifact
from a2a_tasks.tasks.manager import TaskManager
from a2a_tasks.types import Task

logger = logging.getLogger(__name__)


class TaskExecutor:
    """Drives a WORKING task to COMPLETED.

    `emit_delay` spaces out the intermediate events so streaming clients see them
    arrive one by one; it goes through the injected clock, so tests can run it
    without waiting.
    """

    def __init__(
        self,
        manager: TaskManager,
        responder: Responder,
        *,
        clock: Clock | None = None,
        emit_delay: float = 0.0,
    ) -> None:
        self.manager = manager
        self.responder = responder
        self._clock = clock or SystemClock()
        self._emit_delay = emit_delay

    async def execute(self, task_id: str, text: str) -> Task:
        await self._pause()
        result = await self.responder(text)
        artifact = text_artifact(result)
        await self.manager.emit_artifact(task_id, artifact)
        await self._pause()
        task = await self.manager.complete(task_id, result, [artifact])
        logger.debug("Task %s produced %d characters", task_id, len(result))
        return task

    async def _pause(self) -> None:
        if self._emit_delay > 0:
            await self._clock.sleep(self._emit_delay)
