from __future__ import annotations

from curlbench.metrics.aggregator import NoSamplesError, summarize
from curlbench.metrics.models import CLIENT_ERROR, Report, Sample

__all__ = ["CLIENT_ERROR", "NoSamplesError", "Report", "Sample", "summarize"]
