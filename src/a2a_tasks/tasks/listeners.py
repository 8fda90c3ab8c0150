"""Single-subscriber listener registry for task notifications."""

import logging
from collections.abc import Callable

from a2a_tasks.tasks.store import TaskStore
from a2a_tasks.types import TaskEvent

logger = logging.getLogger(__name__)

TaskListener = Callable[[TaskEvent], None]


class ListenerRegistry:
    """Binds at most one listener per task id.

    The single-subscriber rule lives here rather than in a transport so every caller
    gets the same guarantee. Listeners are invoked synchronously from `notify`, on
    whatever coroutine performed the transition, so they must return quickly and
    never block; the streaming bridge queues events and does its I/O elsewhere.
    """

    def __init__(self, store: TaskStore) -> None:
        self._store = store
        self._listeners: dict[str, TaskListener] = {}

    async def subscribe(self, task_id: str, listener: TaskListener) -> bool:
        """Bind `listener` to `task_id`.

        Returns False without binding if the id is unknown or already has a listener.
        """
        if await self._store.get_task(task_id) is None:
            logger.debug("Refusing listener for unknown task %s", task_id)
            return False
        # No await between the check and the bind, so two concurrent callers cannot both win.
        if task_id in self._listeners:
            logger.debug("Refusing second listener for task %s", task_id)
            return False
        self._listeners[task_id] = listener
        logger.debug("Listener bound for task %s", task_id)
        return True

    def unsubscribe(self, task_id: str, listener: TaskListener | None = None) -> None:
        """Release the listener bound to `task_id`.

        With `listener` given, only that listener is released, so a stale handle
        cannot unbind a newer subscriber. Unknown ids are ignored.
        """
        current = self._listeners.get(task_id)
        if current is None or (listener is not None and current != listener):
            return
        del self._listeners[task_id]
        logger.debug("Listener released for task %s", task_id)

    def is_subscribed(self, task_id: str) -> bool:
        return task_id in self._listeners

    def notify(self, event: TaskEvent) -> None:
        listener = self._listeners.get(event.task_id)
        if listener is None:
            return
        try:
            listener(event)
        except Exception:
            logger.exception("Listener for task %s failed, releasing it", event.task_id)
            self.unsubscribe(event.task_id)

    def __len__(self) -> int:
        return len(self._listeners)
