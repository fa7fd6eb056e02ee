from __future__ import annotations

import asyncio
import logging
import time

from curlbench.config import RequestSpec, RunPolicy
from curlbench.loadgen.executor import Executor
from curlbench.metrics import Sample

logger = logging.getLogger(__name__)

SampleQueue = asyncio.Queue[Sample]


async def schedule(
    spec: RequestSpec,
    policy: RunPolicy,
    executor: Executor,
    queue: SampleQueue,
) -> None:
    """Issue every request the policy asks for and feed the samples to ``queue``.

    Pooled workers (``concurrency >= 1``) loop on their own and always finish
    the request they have in flight. With ``concurrency == 0`` every request is
    its own task; under a time budget the tasks still outstanding at the
    deadline are cancelled and their samples are lost.

    The queue is shut down gracefully once all work is done, so the collector
    can tell an exhausted channel from a slow one.
    """
    started = time.perf_counter()
    deadline = None
    if policy.time_budget_sec is not None:
        deadline = started + policy.time_budget_sec

    try:
        if policy.concurrency > 0:
            await _pooled(spec, policy, executor, queue, deadline)
        elif deadline is None:
            await _one_shot_count(spec, policy, executor, queue)
        else:
            await _one_shot_deadline(spec, policy, executor, queue, deadline)
    finally:
        queue.shutdown()
    logger.info("scheduler finished after %.3fs", time.perf_counter() - started)


async def _pooled(
    spec: RequestSpec,
    policy: RunPolicy,
    executor: Executor,
    queue: SampleQueue,
    deadline: float | None,
) -> None:
    async def worker(worker_id: int) -> None:
        if deadline is None:
            for _ in range(policy.repeat):
                await _issue_one(spec, policy, executor, queue)
        else:
            while time.perf_counter() < deadline:
                await _issue_one(spec, policy, executor, queue)
        logger.debug("worker %d done", worker_id)

    tasks = [asyncio.create_task(worker(i)) for i in range(policy.concurrency)]
    await _gather_or_cancel(tasks)


async def _one_shot_count(
    spec: RequestSpec,
    policy: RunPolicy,
    executor: Executor,
    queue: SampleQueue,
) -> None:
    tasks = [
        asyncio.create_task(_issue_one(spec, policy, executor, queue))
        for _ in range(policy.repeat)
    ]
    await _gather_or_cancel(tasks)


async def _one_shot_deadline(
    spec: RequestSpec,
    policy: RunPolicy,
    executor: Executor,
    queue: SampleQueue,
    deadline: float,
) -> None:
    tasks: set[asyncio.Task[None]] = set()
    spawned = 0
    try:
        while time.perf_counter() < deadline:
            task = asyncio.create_task(_issue_one(spec, policy, executor, queue))
            tasks.add(task)
            task.add_done_callback(tasks.discard)
            spawned += 1
            # let the spawned tasks start before spawning more
            await asyncio.sleep(0)
    finally:
        outstanding = list(tasks)
        for task in outstanding:
            task.cancel()
        await asyncio.gather(*outstanding, return_exceptions=True)
    logger.info("spawned %d one-shot tasks, cancelled %d at the deadline", spawned, len(outstanding))


async def _gather_or_cancel(tasks: list[asyncio.Task[None]]) -> None:
    """Wait for every task; on the first failure cancel the rest and re-raise."""
    try:
        await asyncio.gather(*tasks)
    finally:
        pending = [task for task in tasks if not task.done()]
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)


async def _issue_one(
    spec: RequestSpec,
    policy: RunPolicy,
    executor: Executor,
    queue: SampleQueue,
) -> None:
    sample = await executor.execute(spec)
    try:
        await queue.put(sample)
    except asyncio.QueueShutDown:
        logger.warning("receiver closed, dropping sample")
    await asyncio.sleep(policy.delay_sec)
