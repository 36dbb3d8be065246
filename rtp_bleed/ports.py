from __future__ import annotations

from typing import Iterator, List, Optional, Tuple

# Default dynamic RTP range used by most SBCs and PBXes.
RTP_PORT_RANGE = (16384, 32767)


def parse_port_range(spec: Optional[str]) -> Tuple[int, int]:
    """
    Parses a port specification into an inclusive (start, end) pair.
    Supports:
    - Single port: "18554" -> (18554, 18554)
    - Range: "18554-18560"
    - None / empty: the default RTP range
    """
    if spec is None or not spec.strip():
        return RTP_PORT_RANGE

    spec = spec.strip()
    try:
        if "-" in spec:
            start_s, end_s = spec.split("-", 1)
            start, end = int(start_s), int(end_s)
        else:
            start = end = int(spec)
    except ValueError as e:
        raise ValueError(f"Invalid port spec: {spec}") from e

    if start < 1 or end > 65535 or start > end:
        raise ValueError(f"Invalid port range: {spec}")
    return start, end


def iter_batches(ports: List[int], size: int) -> Iterator[List[int]]:
    """
    Yields consecutive batches of at most `size` ports.
    Lower ports go first; relays tend to hand out the bottom of their range.
    """
    if size < 1:
        raise ValueError("batch size must be >= 1")

    remaining = sorted(ports, reverse=True)
    while remaining:
        batch: List[int] = []
        while remaining and len(batch) < size:
            batch.append(remaining.pop())
        yield batch
