from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Sequence

from curlbench.config import ConfigError, RequestSpec, RunPolicy, request_spec
from curlbench.loadgen import CurlExecutor, HttpxExecutor, ProgressCallback, httpx_client, run
from curlbench.metrics import NoSamplesError, Report

LOG_ENV = "CURLBENCH_LOG"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="curlbench",
        description="Repeat an HTTP request with curl and report latency statistics.",
        usage="%(prog)s [options] -- <curl args>",
    )
    parser.add_argument("-r", "--repeat", type=int, default=1, help="Requests issued by each worker.")
    parser.add_argument(
        "-t",
        "--time",
        type=float,
        help="Keep repeating for this many seconds. Overrides --repeat.",
    )
    parser.add_argument(
        "-w",
        "--wait",
        type=int,
        default=0,
        help="Milliseconds a worker waits after each request.",
    )
    parser.add_argument(
        "-p",
        "--parallel",
        type=int,
        default=1,
        help="Number of parallel workers. 0 runs every request as its own task.",
    )
    parser.add_argument(
        "--use-builtin",
        dest="builtin",
        action="store_true",
        help="Use the built-in HTTP client instead of curl. Only some curl options are supported.",
    )
    parser.add_argument("--no-progress", dest="progress", action="store_false")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    return parser


def _split_curl_args(argv: Sequence[str]) -> tuple[list[str], list[str]]:
    argv = list(argv)
    if "--" not in argv:
        return argv, []
    idx = argv.index("--")
    return argv[:idx], argv[idx + 1 :]


def _configure_logging(verbose: int) -> None:
    if verbose >= 2:
        level: int | str = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = os.environ.get(LOG_ENV, "WARNING").upper()
        if level not in logging.getLevelNamesMapping():
            level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr)


def _progress_printer(policy: RunPolicy) -> ProgressCallback:
    total = policy.expected_samples()

    async def progress(count: int, elapsed: float) -> None:
        if total is None:
            line = f"elapsed: {elapsed:.2f}s, count: {count}, running..."
        else:
            line = f"[{count}/{total}] running..."
        sys.stderr.write(f"{line}\r")
        sys.stderr.flush()

    return progress


async def _run(
    spec: RequestSpec,
    policy: RunPolicy,
    builtin: bool,
    progress: ProgressCallback | None,
) -> Report:
    if builtin:
        async with httpx_client(spec) as client:
            return await run(spec, policy, HttpxExecutor(client), progress)
    return await run(spec, policy, CurlExecutor(), progress)


def main(argv: Sequence[str] | None = None) -> None:
    parser = _build_parser()
    own_args, curl_args = _split_curl_args(sys.argv[1:] if argv is None else argv)
    args = parser.parse_args(own_args)
    _configure_logging(args.verbose)
    logging.getLogger(__name__).debug("args: %s, curl args: %s", args, curl_args)

    try:
        policy = RunPolicy(
            repeat=args.repeat,
            time_budget_sec=args.time,
            concurrency=args.parallel,
            delay_sec=args.wait / 1000.0,
        )
        spec = request_spec(curl_args, builtin=args.builtin)
    except ConfigError as exc:
        parser.exit(2, f"{parser.prog}: error: {exc}\n")

    progress = _progress_printer(policy) if args.progress else None
    try:
        report = asyncio.run(_run(spec, policy, args.builtin, progress))
    except NoSamplesError as exc:
        parser.exit(1, f"\n{parser.prog}: error: {exc}\n")
    if progress:
        sys.stderr.write("\n")
    print(json.dumps(report.to_dict(), separators=(",", ":")))


if __name__ == "__main__":
    main()
