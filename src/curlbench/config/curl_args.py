from __future__ import annotations

import argparse
from dataclasses import replace
from typing import Mapping, Sequence

from curlbench.config.models import ConfigError, RequestSpec, TlsVersion

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"

# flag aliases -> arguments appended when none of them is present
_CURL_DEFAULTS: tuple[tuple[tuple[str, ...], tuple[str, ...]], ...] = (
    (("-s", "--silent"), ("-s",)),
    (("-o", "--output"), ("-o", "/dev/null")),
    (("-w", "--write-out"), ("-w", "%{http_code}")),
)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="curl",
        add_help=False,
        allow_abbrev=False,
        exit_on_error=False,
    )
    parser.add_argument("url", nargs="?")
    parser.add_argument("-X", "--request", dest="method")
    parser.add_argument("-H", "--header", dest="headers", action="append", default=[])
    parser.add_argument("-d", "--data", dest="data", action="append", default=[])
    parser.add_argument("-A", "--user-agent", dest="user_agent")
    parser.add_argument("-m", "--max-time", dest="max_time", type=float)
    parser.add_argument("-k", "--insecure", action="store_true")
    parser.add_argument("-L", "--location", dest="follow", action="store_true")
    parser.add_argument("--tls-max", dest="tls_max", default=TlsVersion.DEFAULT.value)
    return parser


def curl_command(args: Sequence[str]) -> tuple[str, ...]:
    """Append the flags that make curl print only the status code."""
    command = list(args)
    for aliases, defaults in _CURL_DEFAULTS:
        if not any(alias in command for alias in aliases):
            command.extend(defaults)
    return tuple(command)


def _parse_headers(raw: Sequence[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in raw:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            msg = f"Invalid header {item!r}, expected 'Name: value'"
            raise ConfigError(msg)
        headers[name.strip()] = value.strip()
    return headers


def _check_ascii(headers: Mapping[str, str]) -> None:
    for name, value in headers.items():
        if not (name + value).isascii():
            msg = f"Header {name!r} must be ASCII for the built-in client, got {value!r}"
            raise ConfigError(msg)


def parse_request(args: Sequence[str], strict: bool) -> RequestSpec:
    """Parse curl-style flags into a :class:`RequestSpec`.

    With ``strict`` every flag must be understood and a URL is required, which
    is what the built-in client needs. Otherwise unknown flags are left for
    curl, but the known ones are still validated.
    """
    try:
        ns, unknown = _parser().parse_known_args(list(args))
    except argparse.ArgumentError as exc:
        raise ConfigError(str(exc)) from None
    if strict:
        if unknown:
            msg = f"Unsupported curl options for the built-in client: {' '.join(unknown)}"
            raise ConfigError(msg)
        if not ns.url:
            msg = "No URL given in curl arguments"
            raise ConfigError(msg)

    tls_max = TlsVersion.parse(ns.tls_max)
    if ns.max_time is not None and ns.max_time <= 0:
        msg = f"--max-time must be > 0, got {ns.max_time}"
        raise ConfigError(msg)
    headers = _parse_headers(ns.headers)
    if ns.user_agent is not None:
        headers["User-Agent"] = ns.user_agent
    if strict:
        _check_ascii(headers)

    body = None
    if ns.data:
        body = "&".join(ns.data).encode()
        if not any(name.lower() == "content-type" for name in headers):
            headers["Content-Type"] = FORM_CONTENT_TYPE
    method = ns.method or ("POST" if body is not None else "GET")

    return RequestSpec(
        curl_args=tuple(args),
        url=ns.url or "",
        method=method.upper(),
        headers=headers,
        body=body,
        timeout_sec=ns.max_time,
        tls_max=tls_max,
        insecure=ns.insecure,
        follow_redirects=ns.follow,
    )


def request_spec(args: Sequence[str], builtin: bool) -> RequestSpec:
    if builtin:
        return parse_request(args, strict=True)
    spec = parse_request(args, strict=False)
    return replace(spec, curl_args=curl_command(args))
