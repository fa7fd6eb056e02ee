from __future__ import annotations

from collections import Counter
from typing import Sequence

import numpy as np

from curlbench.metrics.models import Report, Sample


class NoSamplesError(ValueError):
    """Raised when a run finished without a single sample to summarize."""


def summarize(samples: Sequence[Sample]) -> Report:
    """Reduce the collected samples into one :class:`Report`.

    Latency figures use the sub-second millisecond part of each sample and
    integer division throughout. Quartiles are plain order statistics at
    ``n // 4`` and ``3n // 4`` of the sorted values, not interpolated.
    """
    n = len(samples)
    if n == 0:
        msg = "No samples were collected, nothing to summarize"
        raise NoSamplesError(msg)

    times = np.fromiter((s.millis for s in samples), dtype=np.int64, count=n)
    mean_time = int(times.sum()) // n
    deviation = int(np.abs(times - mean_time).sum()) // n
    ordered = np.sort(times)

    return Report(
        mean_time=mean_time,
        max_time=int(times.max()),
        min_time=int(times.min()),
        deviation_time=deviation,
        quartile_25=int(ordered[n * 1 // 4]),
        quartile_75=int(ordered[n * 3 // 4]),
        status_count=dict(Counter(s.status for s in samples)),
        error_count=sum(1 for s in samples if s.failed),
    )
