from datetime import datetime, timedelta, timezone

import anyio
import anyio.lowlevel
import pytest
import sse_starlette
from packaging import version

from a2a_tasks.tasks import InMemoryTaskStore, ListenerRegistry, TaskManager


@pytest.fixture
def anyio_backend():
    return "asyncio"


SSE_STARLETTE_VERSION = version.parse(sse_starlette.__version__)
NEEDS_RESET = SSE_STARLETTE_VERSION < version.parse("3.0.0")


@pytest.fixture(autouse=True)
def reset_sse_app_status():
    """Reset sse-starlette's global AppStatus singleton before each test.

    AppStatus.should_exit_event is a global asyncio.Event that gets bound to
    an event loop. This ensures each test gets a fresh Event.

    NOTE: This fixture is only necessary for sse-starlette < 3.0.0.
    """
    if not NEEDS_RESET:
        yield
        return

    # lazy import to avoid import errors
    from sse_starlette.sse import AppStatus

    AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]

    yield

    AppStatus.should_exit_event = anyio.Event()  # type: ignore[attr-defined]


class FakeClock:
    """Manually driven clock. `sleep` blocks until `advance` moves time past the deadline."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = start or datetime(2026, 1, 1, tzinfo=timezone.utc)
        self._sleepers: list[tuple[datetime, anyio.Event]] = []

    def now(self) -> datetime:
        return self._now

    async def sleep(self, seconds: float) -> None:
        if seconds <= 0:
            await anyio.lowlevel.checkpoint()
            return
        wake = anyio.Event()
        self._sleepers.append((self._now + timedelta(seconds=seconds), wake))
        await wake.wait()

    def advance(self, seconds: float) -> None:
        self._now += timedelta(seconds=seconds)
        due = [(deadline, wake) for deadline, wake in self._sleepers if deadline <= self._now]
        self._sleepers = [entry for entry in self._sleepers if entry not in due]
        for _, wake in due:
            wake.set()

    @property
    def sleepers(self) -> int:
        return len(self._sleepers)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> InMemoryTaskStore:
    return InMemoryTaskStore(clock=clock)


@pytest.fixture
def listeners(store: InMemoryTaskStore) -> ListenerRegistry:
    return ListenerRegistry(store)


@pytest.fixture
def manager(store: InMemoryTaskStore, listeners: ListenerRegistry, clock: FakeClock) -> TaskManager:
    return TaskManager(store, listeners, clock=clock)
