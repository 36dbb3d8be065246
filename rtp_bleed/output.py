from __future__ import annotations

import csv
import json
from datetime import datetime, timezone
from typing import List, Optional

from .models import ProbeResult


def capture_path(prefix: str, port: int) -> str:
    return f"{prefix}-{port}.raw"


def default_output_prefix(host: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"scan-{host}-{now.strftime('%Y-%m-%d-%H-%M-%S')}"


def format_row(host: str, r: ProbeResult) -> str:
    line = (
        f"{host}:{r.port} | {r.datagrams} datagrams | {r.bytes_written} bytes"
        f" | discarded {r.discarded} | {r.elapsed_s:.2f}s | {r.capture_path}"
    )
    if r.error:
        line += f" | error: {r.error}"
    return line


def print_results(host: str, results: List[ProbeResult]) -> None:
    live = [r for r in results if r.live]
    print(f"Found {len(live)} live ports")
    for r in sorted(live, key=lambda x: x.port):
        print(format_row(host, r))


def save_summary(host: str, results: List[ProbeResult], fmt: str, prefix: str) -> str:
    """Writes the live ports of a run to <prefix>-summary.<fmt>."""
    if fmt not in ("txt", "csv", "json"):
        raise ValueError(f"Unsupported format: {fmt}")

    path = f"{prefix}-summary.{fmt}"
    live = sorted((r for r in results if r.live), key=lambda x: x.port)

    if fmt == "txt":
        with open(path, "w", encoding="utf-8") as f:
            f.write(f"Found {len(live)} live ports on {host}\n")
            for r in live:
                f.write(format_row(host, r) + "\n")

    elif fmt == "csv":
        with open(path, "w", newline="", encoding="utf-8") as f:
            w = csv.writer(f)
            w.writerow(["host", "port", "datagrams", "discarded", "bytes", "elapsed_s", "capture", "error"])
            for r in live:
                w.writerow([
                    host,
                    r.port,
                    r.datagrams,
                    r.discarded,
                    r.bytes_written,
                    r.elapsed_s,
                    r.capture_path or "",
                    r.error or "",
                ])

    else:
        payload = [
            {
                "host": host,
                "port": r.port,
                "datagrams": r.datagrams,
                "discarded": r.discarded,
                "bytes": r.bytes_written,
                "elapsed_s": r.elapsed_s,
                "capture": r.capture_path,
                "error": r.error,
            }
            for r in live
        ]
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2)

    return path
