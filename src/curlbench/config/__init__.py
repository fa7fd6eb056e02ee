from __future__ import annotations

from curlbench.config.curl_args import curl_command, parse_request, request_spec
from curlbench.config.models import ConfigError, RequestSpec, RunPolicy, TlsVersion

__all__ = [
    "ConfigError",
    "RequestSpec",
    "RunPolicy",
    "TlsVersion",
    "curl_command",
    "parse_request",
    "request_spec",
]
