from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class ConfigError(ValueError):
    """Raised for configuration that cannot be executed."""


class TlsVersion(str, Enum):
    DEFAULT = "default"
    TLS_1_0 = "1.0"
    TLS_1_1 = "1.1"
    TLS_1_2 = "1.2"
    TLS_1_3 = "1.3"

    @classmethod
    def parse(cls, value: str) -> TlsVersion:
        try:
            return cls(value)
        except ValueError:
            accepted = ", ".join(v.value for v in cls)
            msg = f"Invalid TLS version {value!r} (accepted: {accepted})"
            raise ConfigError(msg) from None


@dataclass(frozen=True, slots=True)
class RunPolicy:
    repeat: int = 1
    time_budget_sec: float | None = None
    concurrency: int = 1
    delay_sec: float = 0.0

    def __post_init__(self) -> None:
        if self.repeat < 1:
            msg = f"repeat must be >= 1, got {self.repeat}"
            raise ConfigError(msg)
        if self.time_budget_sec is not None and self.time_budget_sec <= 0:
            msg = f"time budget must be > 0 seconds, got {self.time_budget_sec}"
            raise ConfigError(msg)
        if self.concurrency < 0:
            msg = f"concurrency must be >= 0, got {self.concurrency}"
            raise ConfigError(msg)
        if self.delay_sec < 0:
            msg = f"delay must be >= 0, got {self.delay_sec}"
            raise ConfigError(msg)

    @property
    def time_bounded(self) -> bool:
        return self.time_budget_sec is not None

    def expected_samples(self) -> int | None:
        """Samples a count-bounded run produces; ``None`` when time-bounded."""
        if self.time_bounded:
            return None
        if self.concurrency == 0:
            return self.repeat
        return self.concurrency * self.repeat


@dataclass(frozen=True, slots=True)
class RequestSpec:
    curl_args: tuple[str, ...]
    url: str = ""
    method: str = "GET"
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes | None = None
    timeout_sec: float | None = None
    tls_max: TlsVersion = TlsVersion.DEFAULT
    insecure: bool = False
    follow_redirects: bool = False
