"""Tests for the bounded worker pool."""

import logging

import anyio
import pytest

from a2a_tasks.worker_pool import WorkerPool, open_worker_pool

pytestmark = pytest.mark.anyio


async def test_run_returns_result() -> None:
    async def double(value: int) -> int:
        return value * 2

    async with open_worker_pool(2) as pool:
        assert await pool.run(double, 21) == 42


async def test_run_propagates_errors() -> None:
    async def fail() -> None:
        raise ValueError("bad")

    async with open_worker_pool(2) as pool:
        with pytest.raises(ValueError, match="bad"):
            await pool.run(fail)


async def test_concurrency_is_bounded_and_backlog_waits() -> None:
    release = anyio.Event()
    running = 0
    peak = 0
    finished = 0

    async def job() -> None:
        nonlocal running, peak, finished
        running += 1
        peak = max(peak, running)
        await release.wait()
        running -= 1
        finished += 1

    async with open_worker_pool(3) as pool:
        for _ in range(10):
            pool.submit(job)
        await anyio.wait_all_tasks_blocked()

        assert pool.active == 3
        assert pool.waiting == 7

        release.set()
        with anyio.fail_after(5):
            while finished < 10:
                await anyio.sleep(0.01)

    assert peak == 3


async def test_background_failure_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    async def fail() -> None:
        raise RuntimeError("boom")

    with caplog.at_level(logging.ERROR):
        async with open_worker_pool(1) as pool:
            pool.submit(fail, name="failing-job")
            await anyio.wait_all_tasks_blocked()

            assert await pool.run(anyio.sleep, 0) is None

    assert "Background job" in caplog.text


async def test_max_workers_must_be_positive() -> None:
    async with anyio.create_task_group() as tg:
        with pytest.raises(ValueError):
            WorkerPool(tg, max_workers=0)


async def test_spawn_does_not_take_a_worker_slot(caplog: pytest.LogCaptureFixture) -> None:
    release = anyio.Event()

    async def wait() -> None:
        await release.wait()

    async def fail() -> None:
        raise RuntimeError("boom")

    with caplog.at_level(logging.ERROR):
        async with open_worker_pool(1) as pool:
            for _ in range(5):
                pool.spawn(wait)
            pool.spawn(fail, name="failing-spawn")
            await anyio.wait_all_tasks_blocked()

            assert pool.active == 0
            assert pool.waiting == 0
            with anyio.fail_after(1):
                assert await pool.run(anyio.sleep, 0) is None
            release.set()

    assert "Background job" in caplog.text
