"""The task methods served over JSON-RPC."""

import logging
from typing import Any

from a2a_tasks.params import Param
from a2a_tasks.server import RpcServer
from a2a_tasks.streaming import EventStream, StreamingBridge
from a2a_tasks.tasks.executor import TaskExecutor
from a2a_tasks.tasks.helpers import extract_text
from a2a_tasks.tasks.manager import TaskManager
from a2a_tasks.types import Task

logger = logging.getLogger(__name__)

MESSAGE_PARAMS = (
    Param("id", keyword="task_id"),
    Param("message", Any),
)
TASK_ID_PARAMS = (Param("id", required=True, keyword="task_id"),)


class TaskService:
    """Binds the method names to the lifecycle controller, the executor and the streaming bridge."""

    def __init__(self, manager: TaskManager, executor: TaskExecutor, bridge: StreamingBridge) -> None:
        self.manager = manager
        self.executor = executor
        self.bridge = bridge

    async def send(self, task_id: str | None, message: Any) -> Task:
        """Run a task to completion and return its final snapshot."""
        text = extract_text(message)
        task = await self.manager.submit(task_id)
        await self.manager.start_work(task.id)
        return await self.executor.execute(task.id, text)

    async def get(self, task_id: str) -> Task:
        return await self.manager.get(task_id)

    async def cancel(self, task_id: str) -> Task:
        return await self.manager.cancel(task_id)

    async def stream(self, task_id: str | None, message: Any) -> EventStream:
        return await self.bridge.stream_message(task_id, extract_text(message))

    async def subscribe(self, task_id: str) -> EventStream:
        return await self.bridge.subscribe(task_id)

    def register(self, server: RpcServer) -> None:
        server.register("tasks/send", self.send, MESSAGE_PARAMS)
        server.register("message/send", self.send, MESSAGE_PARAMS)
        server.register("tasks/sendSubscribe", self.send, MESSAGE_PARAMS)
        server.register("tasks/get", self.get, TASK_ID_PARAMS)
        server.register("tasks/cancel", self.cancel, TASK_ID_PARAMS)
        server.register("message/stream", self.stream, MESSAGE_PARAMS, streaming=True)
        server.register("tasks/subscribe", self.subscribe, TASK_ID_PARAMS, streaming=True)
        server.register("tasks/resubscribe", self.subscribe, TASK_ID_PARAMS, streaming=True)
        logger.debug("Registered %d task methods", len(server.methods))
