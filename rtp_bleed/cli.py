from __future__ import annotations

import argparse
import contextlib

from tqdm import tqdm
from tqdm.contrib.logging import logging_redirect_tqdm

from .logger import create_logger
from .models import (
    DEFAULT_CAPTURE_WINDOW,
    DEFAULT_DISCOVERY_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_THREADS,
    ScanConfig,
)
from .output import default_output_prefix, print_results, save_summary
from .ports import parse_port_range
from .scanner import ScanAborted, scan
from .targets import resolve_target

BANNER = """RTP Bleed scanner

Finds media relays that echo RTP to any source and records what leaks.
"""


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Scan a host's RTP ports for RTP Bleed")
    p.add_argument("-H", "--target", required=True, help="IP or hostname of the SBC/relay")
    p.add_argument(
        "-p",
        "--ports",
        help="Port or inclusive range: 18554 or 18554-18560 (default: 16384-32767)",
    )
    p.add_argument(
        "-t", "--threads", type=int, default=DEFAULT_THREADS,
        help=f"Ports probed at once (default: {DEFAULT_THREADS})",
    )
    p.add_argument("-o", "--output", help="Capture file prefix (default: scan-<host>-<utc date>)")
    p.add_argument(
        "--discovery-timeout", type=float, default=DEFAULT_DISCOVERY_TIMEOUT,
        help=f"Seconds to wait for a first reply (default: {DEFAULT_DISCOVERY_TIMEOUT})",
    )
    p.add_argument(
        "--capture-window", type=float, default=DEFAULT_CAPTURE_WINDOW,
        help=f"Seconds to keep capturing from a live port (default: {DEFAULT_CAPTURE_WINDOW})",
    )
    p.add_argument(
        "--poll-interval", type=float, default=DEFAULT_POLL_INTERVAL,
        help=f"Seconds between probes while capturing (default: {DEFAULT_POLL_INTERVAL})",
    )
    p.add_argument(
        "--keep-going", action="store_true",
        help="Log local socket/file errors and move on instead of aborting",
    )
    p.add_argument("--summary", choices=["txt", "csv", "json"], help="Save a summary of live ports")
    p.add_argument("--log-file", help="Also write JSON event lines to this file")
    p.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    p.add_argument("-v", "--verbose", action="store_true")
    return p


def build_config(args: argparse.Namespace) -> ScanConfig:
    host = resolve_target(args.target)
    start, end = parse_port_range(args.ports)
    return ScanConfig(
        host=host,
        start_port=start,
        end_port=end,
        output_prefix=args.output or default_output_prefix(host),
        threads=args.threads,
        discovery_timeout=args.discovery_timeout,
        capture_window=args.capture_window,
        poll_interval=args.poll_interval,
        abort_on_error=not args.keep_going,
    )


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ValueError as e:
        raise SystemExit(f"error: {e}")

    logger = create_logger(log_file=args.log_file, verbose=args.verbose)

    print(BANNER)
    print(f"Host: {config.host}")
    if config.start_port == config.end_port:
        print(f"Port: {config.start_port}")
    else:
        print(f"Port Range: {config.start_port}-{config.end_port}")
    print()

    show_bar = not args.no_progress
    bar = tqdm(
        total=config.port_count,
        unit="port",
        desc="ports scanned",
        disable=not show_bar,
    )
    redirect = logging_redirect_tqdm(loggers=[logger]) if show_bar else contextlib.nullcontext()

    try:
        with bar, redirect:
            results = scan(config, progress=bar)
    except ScanAborted as e:
        logger.error(f"Stopped after {len(e.results)} ports; captures so far are kept")
        return 1
    except KeyboardInterrupt:
        logger.error("Interrupted")
        return 130

    print_results(config.host, results)

    if args.summary:
        path = save_summary(config.host, results, fmt=args.summary, prefix=config.output_prefix)
        print(f"Saved summary to {path}")

    return 0
