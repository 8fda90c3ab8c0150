"""TaskStore - Abstract interface for task state storage."""

from abc import ABC, abstractmethod

from a2a_tasks.types import Task


class TaskStore(ABC):
    """Abstract interface for task state storage.

    This is a pure storage interface - it doesn't enforce the lifecycle or know
    about listeners. The TaskManager is the only component that writes to it.

    Implementations must make each operation atomic per task id and must never
    hand out the record they hold internally: callers get snapshots.

    All methods are async to support various backends.
    """

    @abstractmethod
    async def create_task(self, task_id: str) -> Task:
        """Create a new task in the SUBMITTED state.

        Args:
            task_id: The task identifier

        Returns:
            The created Task

        Raises:
            ValueError: If task_id already exists
        """

    @abstractmethod
    async def get_task(self, task_id: str) -> Task | None:
        """Get a task by ID.

        Returns:
            The Task, or None if not found.
        """

    @abstractmethod
    async def put_task(self, task: Task) -> None:
        """Overwrite the record for `task.id` with the given task."""

    @abstractmethod
    async def delete_task(self, task_id: str) -> bool:
        """Delete a task.

        Returns:
            True if deleted, False if not found.
        """

    @abstractmethod
    async def list_tasks(self) -> list[Task]:
        """Return snapshots of every stored task."""
