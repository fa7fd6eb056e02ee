from __future__ import annotations

from curlbench.loadgen.collector import ProgressCallback, collect
from curlbench.loadgen.executor import CurlExecutor, Executor, HttpxExecutor, httpx_client
from curlbench.loadgen.runner import run, run_samples
from curlbench.loadgen.scheduler import schedule

__all__ = [
    "CurlExecutor",
    "Executor",
    "HttpxExecutor",
    "ProgressCallback",
    "collect",
    "httpx_client",
    "run",
    "run_samples",
    "schedule",
]
