"""
Streaming bridge: turns task notifications into an ordered, demand-driven event stream.

Three pieces cooperate for every stream:

- a Subscription, bound in the ListenerRegistry, whose listener only queues events
  (it is called synchronously from the lifecycle controller and must not block);
- a pump that pulls queued events one at a time and pushes them into an
  EventChannel;
- the EventChannel, a zero-capacity memory stream: a send completes only once the
  consumer is waiting in `receive()`. Each receive is one credit, and the pump never
  holds more than one event in flight, so a slow consumer throttles the pump instead
  of being overrun.

Usage:
    stream = await bridge.stream_message("task-1", "hello")
    async with stream:
        async for event in stream:
            ...
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Literal

import anyio
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream

from a2a_tasks.exceptions import A2AError, InternalError
from a2a_tasks.tasks.executor import TaskExecutor
from a2a_tasks.tasks.helpers import generate_task_id
from a2a_tasks.tasks.listeners import ListenerRegistry
from a2a_tasks.tasks.manager import TaskManager
from a2a_tasks.types import INTERNAL_ERROR, INVALID_REQUEST, TASK_NOT_FOUND, ErrorData, TaskEvent
from a2a_tasks.worker_pool import WorkerPool

logger = logging.getLogger(__name__)

DEFAULT_IDLE_TIMEOUT_SECONDS = 30.0

StreamEventKind = Literal["message", "error", "timeout"]


@dataclass(frozen=True)
class StreamEvent:
    """One outbound event. `message` carries a TaskEvent, `error` and `timeout` an ErrorData."""

    kind: StreamEventKind
    payload: TaskEvent | ErrorData
    final: bool = False

    @classmethod
    def message(cls, event: TaskEvent) -> "StreamEvent":
        return cls(kind="message", payload=event, final=event.final)

    @classmethod
    def error(cls, error: ErrorData) -> "StreamEvent":
        return cls(kind="error", payload=error, final=True)

    @classmethod
    def timeout(cls, seconds: float) -> "StreamEvent":
        return cls(
            kind="timeout",
            payload=ErrorData(code=INTERNAL_ERROR, message=f"Stream timed out after {seconds:g}s without events"),
            final=True,
        )


class StreamState(str, Enum):
    OPEN = "open"
    COMPLETED = "completed"
    ERROR = "error"
    TIMEOUT = "timeout"
    CANCELED = "canceled"


class Subscription:
    """Per-stream state shared by the listener callback, the pump and the consumer.

    Attributes:
        subscribed: True while the listener is bound in the registry.
        completed: True once the terminal event has been claimed for sending.
        cancelled: True once the consumer asked to stop.

    Each flag is flipped by a test-and-set with no await in between, so under the
    event loop `release` and `complete` take effect exactly once however many
    callers race on them.
    """

    def __init__(self, task_id: str, registry: ListenerRegistry) -> None:
        self.task_id = task_id
        self.subscribed = False
        self.completed = False
        self.cancelled = False
        self._registry = registry
        self._cancel_scope: anyio.CancelScope | None = None
        self._inbox_send, self._inbox = anyio.create_memory_object_stream[StreamEvent](math.inf)

    def on_event(self, event: TaskEvent) -> None:
        """Listener bound in the registry. Never blocks."""
        self.push(StreamEvent.message(event))

    def push(self, event: StreamEvent) -> None:
        try:
            self._inbox_send.send_nowait(event)
        except (anyio.ClosedResourceError, anyio.BrokenResourceError):
            logger.debug("Dropping %s event for closed stream of task %s", event.kind, self.task_id)

    async def next_event(self) -> StreamEvent:
        return await self._inbox.receive()

    def release(self) -> bool:
        """Unbind the listener. Returns True only for the call that actually released it."""
        if not self.subscribed:
            return False
        self.subscribed = False
        self._registry.unsubscribe(self.task_id, self.on_event)
        self._inbox_send.close()
        return True

    def complete(self) -> bool:
        """Claim the single terminal signal. Returns True exactly once."""
        if self.completed:
            return False
        self.completed = True
        return True

    def cancel(self) -> None:
        """Stop the pump on behalf of the consumer."""
        self.cancelled = True
        if self._cancel_scope is not None:
            self._cancel_scope.cancel()

    def attach_scope(self, scope: anyio.CancelScope) -> None:
        self._cancel_scope = scope
        if self.cancelled:
            scope.cancel()

    def close(self) -> None:
        self._inbox_send.close()
        self._inbox.close()


class EventChannel:
    """Producer end of an outbound stream.

    `send` waits for one unit of consumer demand before it returns. `close` is a
    single-use latch: the first call fixes the final state and closes the stream,
    later calls do nothing.
    """

    def __init__(self, send_stream: MemoryObjectSendStream[StreamEvent]) -> None:
        self._send = send_stream
        self.state = StreamState.OPEN

    @property
    def closed(self) -> bool:
        return self.state is not StreamState.OPEN

    async def send(self, event: StreamEvent) -> None:
        await self._send.send(event)

    async def close(self, state: StreamState) -> bool:
        if self.closed:
            return False
        self.state = state
        with anyio.CancelScope(shield=True):
            await self._send.aclose()
        return True


class EventStream:
    """Consumer end handed to the transport.

    Closing it early (client disconnect) cancels the pump, which releases the
    listener so a later resubscribe can bind again.
    """

    def __init__(
        self,
        receive_stream: MemoryObjectReceiveStream[StreamEvent],
        subscription: Subscription | None = None,
    ) -> None:
        self._receive = receive_stream
        self._subscription = subscription

    def __aiter__(self) -> "EventStream":
        return self

    async def __anext__(self) -> StreamEvent:
        try:
            return await self._receive.receive()
        except anyio.EndOfStream:
            raise StopAsyncIteration from None

    async def receive(self) -> StreamEvent:
        return await self._receive.receive()

    async def aclose(self) -> None:
        self._receive.close()
        if self._subscription is not None:
            self._subscription.cancel()

    async def __aenter__(self) -> "EventStream":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()


class StreamingBridge:
    def __init__(
        self,
        manager: TaskManager,
        executor: TaskExecutor,
        pool: WorkerPool,
        *,
        idle_timeout: float = DEFAULT_IDLE_TIMEOUT_SECONDS,
    ) -> None:
        self.manager = manager
        self.executor = executor
        self.pool = pool
        self.idle_timeout = idle_timeout

    def _open_channel(self) -> tuple[EventChannel, MemoryObjectReceiveStream[StreamEvent]]:
        send_stream, receive_stream = anyio.create_memory_object_stream[StreamEvent](0)
        return EventChannel(send_stream), receive_stream

    async def stream_message(self, task_id: str | None, text: str) -> EventStream:
        """Submit and start a task, then stream its events while the work runs on the pool.

        The task is SUBMITTED and WORKING before this returns. Failures to get there
        come back as a stream holding a single error event.
        """
        channel, receive_stream = self._open_channel()
        task_id = task_id or generate_task_id()

        try:
            await self.manager.submit(task_id)
        except A2AError as err:
            self._reject(channel, err.error)
            return EventStream(receive_stream)

        subscription = Subscription(task_id, self.manager.listeners)
        if await self.manager.subscribe(task_id, subscription.on_event) is None:
            self._reject(channel, self._refusal(task_id))
            return EventStream(receive_stream)
        subscription.subscribed = True

        try:
            await self.manager.start_work(task_id)
        except A2AError as err:
            subscription.release()
            self._reject(channel, err.error)
            return EventStream(receive_stream)

        self.pool.spawn(self._pump, subscription, channel, name=f"stream-{task_id}")
        self.pool.submit(self._work, subscription, text, name=f"work-{task_id}")
        return EventStream(receive_stream, subscription)

    async def subscribe(self, task_id: str) -> EventStream:
        """Attach to an existing task, replaying its current state first.

        A terminal task yields its final state and closes. An unknown id, or one that
        already has a listener, yields a single error event and no listener is created.
        """
        channel, receive_stream = self._open_channel()
        subscription = Subscription(task_id, self.manager.listeners)

        task = await self.manager.subscribe(task_id, subscription.on_event, replay=True)
        if task is None:
            error = self._refusal(task_id)
            logger.warning("Subscription to task %s refused: %s", task_id, error.message)
            self._reject(channel, error)
            return EventStream(receive_stream)
        subscription.subscribed = True

        self.pool.spawn(self._pump, subscription, channel, name=f"subscribe-{task_id}")
        return EventStream(receive_stream, subscription)

    def _refusal(self, task_id: str) -> ErrorData:
        if self.manager.listeners.is_subscribed(task_id):
            return ErrorData(code=INVALID_REQUEST, message=f"Task {task_id} already has a subscriber")
        return ErrorData(code=TASK_NOT_FOUND, message=f"Task not found: {task_id}")

    def _reject(self, channel: EventChannel, error: ErrorData) -> None:
        self.pool.spawn(self._send_rejection, channel, error, name="stream-rejection")

    async def _send_rejection(self, channel: EventChannel, error: ErrorData) -> None:
        try:
            with anyio.move_on_after(self.idle_timeout):
                await channel.send(StreamEvent.error(error))
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            logger.debug("Consumer left before the rejection was delivered")
        finally:
            await channel.close(StreamState.ERROR)

    async def _work(self, subscription: Subscription, text: str) -> None:
        task_id = subscription.task_id
        try:
            await self.executor.execute(task_id, text)
        except A2AError as err:
            # Typically the task was canceled mid-work; its final event already went out.
            logger.info("Work for task %s stopped: %s", task_id, err.error.message)
            subscription.push(StreamEvent.error(err.error))
        except Exception:
            logger.exception("Work for task %s failed", task_id)
            subscription.push(StreamEvent.error(InternalError(f"Task {task_id} failed").error))
            try:
                await self.manager.cancel(task_id)
            except A2AError:
                logger.debug("Task %s already terminal after failure", task_id)

    async def _pump(self, subscription: Subscription, channel: EventChannel) -> None:
        task_id = subscription.task_id
        state = StreamState.CANCELED
        try:
            with anyio.CancelScope() as scope:
                subscription.attach_scope(scope)
                state = await self._forward(subscription, channel)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            logger.info("Consumer of task %s stream went away", task_id)
            state = StreamState.ERROR
        finally:
            subscription.release()
            subscription.close()
            await channel.close(state)
        logger.debug("Stream for task %s closed: %s", task_id, channel.state.value)

    async def _forward(self, subscription: Subscription, channel: EventChannel) -> StreamState:
        while True:
            event: StreamEvent | None = None
            with anyio.move_on_after(self.idle_timeout):
                event = await subscription.next_event()

            if event is None:
                logger.warning("Stream for task %s idle for %gs, closing", subscription.task_id, self.idle_timeout)
                subscription.release()
                if subscription.complete():
                    with anyio.move_on_after(self.idle_timeout):
                        await channel.send(StreamEvent.timeout(self.idle_timeout))
                return StreamState.TIMEOUT

            if not event.final:
                await channel.send(event)
                continue

            if subscription.complete():
                await channel.send(event)
            return StreamState.COMPLETED if event.kind == "message" else StreamState.ERROR
