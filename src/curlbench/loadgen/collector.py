from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from curlbench.config import RunPolicy
from curlbench.metrics import Sample

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, float], Awaitable[None]]


async def collect(
    queue: asyncio.Queue[Sample],
    policy: RunPolicy,
    progress: ProgressCallback | None = None,
) -> list[Sample]:
    """Drain ``queue`` until the policy's stopping rule is met.

    Count-bounded runs stop after the expected number of samples or when the
    queue is shut down and empty. Time-bounded runs stop at the deadline
    whatever has arrived by then.
    """
    started = time.perf_counter()
    samples: list[Sample] = []
    if policy.time_budget_sec is None:
        expected = policy.expected_samples() or 0
        while len(samples) < expected:
            try:
                sample = await queue.get()
            except asyncio.QueueShutDown:
                logger.warning("channel exhausted after %d of %d samples", len(samples), expected)
                break
            samples.append(sample)
            if progress:
                await progress(len(samples), time.perf_counter() - started)
        return samples

    loop = asyncio.get_running_loop()
    deadline = loop.time() + policy.time_budget_sec
    while loop.time() < deadline:
        try:
            async with asyncio.timeout_at(deadline):
                sample = await queue.get()
        except TimeoutError:
            break
        except asyncio.QueueShutDown:
            logger.info("channel exhausted before the deadline")
            break
        samples.append(sample)
        if progress:
            await progress(len(samples), time.perf_counter() - started)
    return samples
