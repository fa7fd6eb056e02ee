from __future__ import annotations

import asyncio
import ssl
from pathlib import Path

import httpx
import pytest

from curlbench.config import RequestSpec, RunPolicy, TlsVersion, parse_request
from curlbench.loadgen import run_samples
from curlbench.loadgen.executor import (
    BUILTIN_FAILURE,
    COMMAND_NOT_FOUND,
    SPAWN_FAILED,
    CurlExecutor,
    HttpxExecutor,
    httpx_client,
    ssl_context,
)
from curlbench.metrics import CLIENT_ERROR, Sample


def _send(spec: RequestSpec, handler) -> Sample:
    async def scenario() -> Sample:
        async with httpx_client(spec, transport=httpx.MockTransport(handler)) as client:
            return await HttpxExecutor(client).execute(spec)

    return asyncio.run(scenario())


def test_builtin_success_reports_status_code() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(404)

    spec = parse_request(
        ["http://example.test/items", "-d", "a=1", "-d", "b=2", "-H", "X-Trace: abc"],
        strict=True,
    )
    sample = _send(spec, handler)
    assert sample.status == "404"
    assert sample.exit_code == 0
    assert sample.latency_ns >= 0
    assert seen[0].method == "POST"
    assert seen[0].content == b"a=1&b=2"
    assert seen[0].headers["x-trace"] == "abc"


def test_builtin_transport_failure_is_captured() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    spec = parse_request(["http://example.test/"], strict=True)
    sample = _send(spec, handler)
    assert sample.status == CLIENT_ERROR
    assert sample.exit_code == BUILTIN_FAILURE
    assert "connection refused" in sample.error


def test_curl_success_uses_stdout_as_status() -> None:
    spec = RequestSpec(curl_args=("-c", "printf 201"))
    sample = asyncio.run(CurlExecutor(binary="sh").execute(spec))
    assert sample == Sample(sample.latency_ns, "201", 0, "")


def test_curl_failure_is_client_error() -> None:
    spec = RequestSpec(curl_args=("-c", "echo refused >&2; exit 7"))
    sample = asyncio.run(CurlExecutor(binary="sh").execute(spec))
    assert sample.status == CLIENT_ERROR
    assert sample.exit_code == 7
    assert sample.error == "refused"


def test_missing_binary_is_captured() -> None:
    spec = RequestSpec(curl_args=("http://example.test/",))
    sample = asyncio.run(CurlExecutor(binary="curlbench-no-such-binary").execute(spec))
    assert sample.status == CLIENT_ERROR
    assert sample.exit_code == COMMAND_NOT_FOUND


def test_ssl_context_applies_tls_max_and_insecure() -> None:
    spec = RequestSpec(curl_args=(), tls_max=TlsVersion.TLS_1_2, insecure=True)
    ctx = ssl_context(spec)
    assert ctx.maximum_version == ssl.TLSVersion.TLSv1_2
    assert ctx.verify_mode == ssl.CERT_NONE
    assert not ctx.check_hostname


def test_ssl_context_defaults_verify() -> None:
    ctx = ssl_context(RequestSpec(curl_args=()))
    assert ctx.verify_mode == ssl.CERT_REQUIRED
    assert ctx.maximum_version == ssl.TLSVersion.MAXIMUM_SUPPORTED


def test_unexecutable_binary_is_not_reported_as_missing(tmp_path: Path) -> None:
    binary = tmp_path / "curl"
    binary.write_text("#!/bin/sh\nprintf 200\n")
    binary.chmod(0o644)
    spec = RequestSpec(curl_args=("http://example.test/",))
    sample = asyncio.run(CurlExecutor(binary=str(binary)).execute(spec))
    assert sample.status == CLIENT_ERROR
    assert sample.exit_code == SPAWN_FAILED


HELD_RESPONSE = b"HTTP/1.1 200 OK\r\nContent-Length: 0\r\nConnection: close\r\n\r\n"


def test_builtin_client_does_not_cap_in_flight_requests(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"):
        monkeypatch.delenv(name, raising=False)
    state = {"active": 0, "peak": 0}

    async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        await reader.readuntil(b"\r\n\r\n")
        state["active"] += 1
        state["peak"] = max(state["peak"], state["active"])
        await asyncio.sleep(0.5)
        state["active"] -= 1
        writer.write(HELD_RESPONSE)
        await writer.drain()
        writer.close()
        await writer.wait_closed()

    async def scenario() -> list[Sample]:
        server = await asyncio.start_server(handle, "127.0.0.1", 0, backlog=512)
        port = server.sockets[0].getsockname()[1]
        spec = parse_request([f"http://127.0.0.1:{port}/"], strict=True)
        async with server:
            async with httpx_client(spec) as client:
                return await run_samples(spec, RunPolicy(repeat=150, concurrency=0), HttpxExecutor(client))

    samples = asyncio.run(scenario())
    assert len(samples) == 150
    assert {s.status for s in samples} == {"200"}
    assert state["peak"] > 100
