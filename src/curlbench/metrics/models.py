from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

CLIENT_ERROR = "client error"

NANOS_PER_SEC = 1_000_000_000
NANOS_PER_MILLI = 1_000_000


@dataclass(frozen=True, slots=True)
class Sample:
    latency_ns: int
    status: str
    exit_code: int
    error: str = ""

    @property
    def millis(self) -> int:
        """Millisecond part of the latency below one second."""
        return (self.latency_ns % NANOS_PER_SEC) // NANOS_PER_MILLI

    @property
    def failed(self) -> bool:
        return self.exit_code != 0


@dataclass(frozen=True, slots=True)
class Report:
    mean_time: int
    max_time: int
    min_time: int
    deviation_time: int
    quartile_25: int
    quartile_75: int
    status_count: Mapping[str, int]
    error_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "mean_time": self.mean_time,
            "max_time": self.max_time,
            "min_time": self.min_time,
            # mean absolute deviation, published under its historical key
            "variance_time": self.deviation_time,
            "quartile_25": self.quartile_25,
            "quartile_75": self.quartile_75,
            "status_count": dict(self.status_count),
            "error_count": self.error_count,
        }
