"""Wires the task components together for the lifetime of a server."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from a2a_tasks.clock import Clock, SystemClock
from a2a_tasks.handlers import TaskService
from a2a_tasks.responder import EchoResponder, Responder
from a2a_tasks.server import RpcServer
from a2a_tasks.settings import Settings
from a2a_tasks.streaming import StreamingBridge
from a2a_tasks.tasks import InMemoryTaskStore, ListenerRegistry, TaskManager
from a2a_tasks.tasks.executor import TaskExecutor
from a2a_tasks.worker_pool import WorkerPool, open_worker_pool

logger = logging.getLogger(__name__)

SERVER_NAME = "a2a-tasks"
SERVER_VERSION = "0.1.0"


@dataclass
class Runtime:
    settings: Settings
    store: InMemoryTaskStore
    listeners: ListenerRegistry
    manager: TaskManager
    executor: TaskExecutor
    bridge: StreamingBridge
    pool: WorkerPool
    server: RpcServer


def build_server(service: TaskService) -> RpcServer:
    server = RpcServer(name=SERVER_NAME, version=SERVER_VERSION)
    service.register(server)
    server.freeze()
    return server


@asynccontextmanager
async def open_runtime(
    settings: Settings | None = None,
    *,
    responder: Responder | None = None,
    clock: Clock | None = None,
) -> AsyncIterator[Runtime]:
    """Build every component, start the sweeper, and tear it all down on exit."""
    settings = settings or Settings()
    clock = clock or SystemClock()

    async with open_worker_pool(settings.max_workers) as pool:
        store = InMemoryTaskStore(clock=clock)
        listeners = ListenerRegistry(store)
        manager = TaskManager(store, listeners, clock=clock, max_age=settings.task_max_age)
        executor = TaskExecutor(manager, responder or EchoResponder(), clock=clock, emit_delay=settings.emit_delay)
        bridge = StreamingBridge(manager, executor, pool, idle_timeout=settings.stream_timeout)
        server = build_server(TaskService(manager, executor, bridge))

        await pool.task_group.start(manager.run_sweeper, settings.sweep_interval)
        logger.info(
            "Task runtime started (max_workers=%d, stream_timeout=%gs, sweep every %gs)",
            settings.max_workers,
            settings.stream_timeout,
            settings.sweep_interval,
        )
        yield Runtime(
            settings=settings,
            store=store,
            listeners=listeners,
            manager=manager,
            executor=executor,
            bridge=bridge,
            pool=pool,
            server=server,
        )
        logger.info("Task runtime stopping")
