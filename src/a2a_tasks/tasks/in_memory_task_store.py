"""
In-memory implementation of TaskStore.

Tasks live in a dict keyed by id. Every read and write copies the record, so a
caller can never observe a half-applied update made by another request, and no
operation awaits while touching the dict, which keeps each one atomic under the
event loop.

Note: all data is lost on restart. Old terminal tasks are removed by the
TaskManager's sweep, not by the store itself.
"""

from a2a_tasks.clock import Clock, SystemClock
from a2a_tasks.tasks.store import TaskStore
from a2a_tasks.types import Task, TaskState


class InMemoryTaskStore(TaskStore):
    """
    A simple in-memory implementation of TaskStore.

    Features:
    - Snapshot copies on every read and write
    - Safe for concurrent use from many requests in one process

    Limitations:
    - All data lost on restart
    - Not suitable for distributed systems
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._tasks: dict[str, Task] = {}
        self._clock = clock or SystemClock()

    async def create_task(self, task_id: str) -> Task:
        if task_id in self._tasks:
            raise ValueError(f"Task with ID {task_id} already exists")

        now = self._clock.now()
        task = Task(id=task_id, state=TaskState.SUBMITTED, created_at=now, updated_at=now)
        self._tasks[task_id] = task
        return task.snapshot()

    async def get_task(self, task_id: str) -> Task | None:
        task = self._tasks.get(task_id)
        if task is None:
            return None
        return task.snapshot()

    async def put_task(self, task: Task) -> None:
        self._tasks[task.id] = task.snapshot()

    async def delete_task(self, task_id: str) -> bool:
        return self._tasks.pop(task_id, None) is not None

    async def list_tasks(self) -> list[Task]:
        return [task.snapshot() for task in list(self._tasks.values())]

    def cleanup(self) -> None:
        self._tasks.clear()

    def __len__(self) -> int:
        return len(self._tasks)
