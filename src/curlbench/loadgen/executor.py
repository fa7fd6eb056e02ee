from __future__ import annotations

import asyncio
import logging
import ssl
import time
from dataclasses import dataclass
from typing import Protocol

import httpx

from curlbench.config import RequestSpec, TlsVersion
from curlbench.metrics import CLIENT_ERROR, Sample

logger = logging.getLogger(__name__)

# exit codes reported when the curl binary cannot be started at all
COMMAND_NOT_FOUND = 127
SPAWN_FAILED = 126
BUILTIN_FAILURE = 1

_TLS_VERSIONS = {
    TlsVersion.TLS_1_0: ssl.TLSVersion.TLSv1,
    TlsVersion.TLS_1_1: ssl.TLSVersion.TLSv1_1,
    TlsVersion.TLS_1_2: ssl.TLSVersion.TLSv1_2,
    TlsVersion.TLS_1_3: ssl.TLSVersion.TLSv1_3,
}


class Executor(Protocol):
    async def execute(self, spec: RequestSpec) -> Sample:
        ...


@dataclass(frozen=True, slots=True)
class CurlExecutor:
    binary: str = "curl"

    async def execute(self, spec: RequestSpec) -> Sample:
        logger.debug("exec %s %s", self.binary, spec.curl_args)
        start = time.perf_counter_ns()
        try:
            process = await asyncio.create_subprocess_exec(
                self.binary,
                *spec.curl_args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            latency_ns = time.perf_counter_ns() - start
            logger.debug("failed to start %s: %s", self.binary, exc)
            code = COMMAND_NOT_FOUND if isinstance(exc, FileNotFoundError) else SPAWN_FAILED
            return Sample(latency_ns, CLIENT_ERROR, code, str(exc))
        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            raise
        latency_ns = time.perf_counter_ns() - start

        exit_code = process.returncode if process.returncode is not None else -1
        error = stderr.decode("utf-8", errors="replace").strip()
        logger.debug("curl exited with %s, stdout=%r stderr=%r", exit_code, stdout, error)
        if exit_code != 0:
            return Sample(latency_ns, CLIENT_ERROR, exit_code, error)
        status = stdout.decode("utf-8", errors="replace").strip()
        return Sample(latency_ns, status, 0, error)


@dataclass(frozen=True, slots=True)
class HttpxExecutor:
    client: httpx.AsyncClient

    async def execute(self, spec: RequestSpec) -> Sample:
        logger.debug("%s %s headers=%s", spec.method, spec.url, dict(spec.headers))
        start = time.perf_counter_ns()
        try:
            resp = await self.client.request(
                spec.method,
                spec.url,
                headers=spec.headers,
                content=spec.body,
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            latency_ns = time.perf_counter_ns() - start
            logger.debug("request failed: %r", exc)
            return Sample(latency_ns, CLIENT_ERROR, BUILTIN_FAILURE, str(exc))
        latency_ns = time.perf_counter_ns() - start
        logger.debug("response %s", resp)
        return Sample(latency_ns, str(resp.status_code), 0)


def ssl_context(spec: RequestSpec) -> ssl.SSLContext:
    ctx = ssl.create_default_context()
    if spec.insecure:
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    version = _TLS_VERSIONS.get(spec.tls_max)
    if version is not None:
        if ctx.minimum_version > version:
            ctx.minimum_version = version
        ctx.maximum_version = version
    return ctx


def httpx_client(
    spec: RequestSpec,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    # no pool cap, in-flight requests never queue for a connection
    return httpx.AsyncClient(
        verify=ssl_context(spec),
        follow_redirects=spec.follow_redirects,
        timeout=spec.timeout_sec,
        limits=httpx.Limits(max_connections=None, max_keepalive_connections=None),
        transport=transport,
    )
