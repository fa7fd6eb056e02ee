from __future__ import annotations

import asyncio
import logging

from curlbench.config import RequestSpec, RunPolicy
from curlbench.loadgen.collector import ProgressCallback, collect
from curlbench.loadgen.executor import Executor
from curlbench.loadgen.scheduler import schedule
from curlbench.metrics import Report, Sample, summarize

logger = logging.getLogger(__name__)

QUEUE_CAPACITY = 1024


async def run(
    spec: RequestSpec,
    policy: RunPolicy,
    executor: Executor,
    progress: ProgressCallback | None = None,
) -> Report:
    samples = await run_samples(spec, policy, executor, progress)
    logger.debug("samples: %s", samples)
    report = summarize(samples)
    logger.debug("report: %s", report)
    return report


async def run_samples(
    spec: RequestSpec,
    policy: RunPolicy,
    executor: Executor,
    progress: ProgressCallback | None = None,
) -> list[Sample]:
    queue: asyncio.Queue[Sample] = asyncio.Queue(maxsize=QUEUE_CAPACITY)
    scheduler = asyncio.create_task(schedule(spec, policy, executor, queue))
    try:
        samples = await collect(queue, policy, progress)
    except BaseException:
        scheduler.cancel()
        raise
    finally:
        # senders still running from here on drop their samples
        queue.shutdown(immediate=True)
        await asyncio.wait([scheduler])
    # surface worker failures that are not captured into samples
    scheduler.result()
    logger.info("collected %d samples", len(samples))
    return samples
