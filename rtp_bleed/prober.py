from __future__ import annotations

import logging
import socket
import threading
import time
from typing import BinaryIO, Optional

from .logger import log_event
from .models import ProbeResult, ScanConfig
from .output import capture_path
from .packet import MAX_UDP_PAYLOAD, PROBE_PACKET, looks_like_rtp, rtp_payload

log = logging.getLogger(__name__)


class ProbeError(Exception):
    """
    Environment failure while probing one port (bind, send, open, write).
    These point at the local host, not the target.
    """

    def __init__(self, port: int, stage: str, message: str, path: Optional[str] = None):
        super().__init__(f"port {port}: {stage} failed: {message}")
        self.port = port
        self.stage = stage
        # capture file involved, if any
        self.path = path


def _send(sock: socket.socket, packet: bytes, addr, port: int) -> None:
    try:
        sock.sendto(packet, addr)
    except OSError as e:
        raise ProbeError(port, "send", str(e)) from e


def _write(fh: BinaryIO, data: bytes, port: int) -> int:
    try:
        return fh.write(data)
    except OSError as e:
        raise ProbeError(port, "write", str(e), path=fh.name) from e


def _capture(
    sock: socket.socket,
    fh: BinaryIO,
    addr,
    config: ScanConfig,
    packet: bytes,
    stop: Optional[threading.Event],
):
    """
    Keeps poking the relay for capture_window seconds and appends every
    RTP-looking payload it sends back. Returns (datagrams, discarded, bytes).
    """
    port = addr[1]
    datagrams = discarded = written = 0

    sock.setblocking(False)
    start = time.monotonic()
    while True:
        time.sleep(config.poll_interval)
        if time.monotonic() - start >= config.capture_window:
            break
        if stop is not None and stop.is_set():
            break

        _send(sock, packet, addr, port)

        try:
            data = sock.recv(MAX_UDP_PAYLOAD)
        except OSError:
            # nothing queued (EAGAIN) or a stray ICMP error
            continue

        if not looks_like_rtp(data):
            discarded += 1
            continue

        written += _write(fh, rtp_payload(data), port)
        datagrams += 1

    return datagrams, discarded, written


def probe_port(
    config: ScanConfig,
    port: int,
    packet: bytes = PROBE_PACKET,
    stop: Optional[threading.Event] = None,
) -> ProbeResult:
    """
    Probe one UDP port for RTP bleed.

    Sends the probe and waits discovery_timeout for anything at all. A port
    that answers is live: its first payload goes to <prefix>-<port>.raw and
    the capture loop runs for capture_window seconds.

    Raises ProbeError on local failures; a silent port is not an error.
    """
    start = time.perf_counter()
    addr = (config.host, port)

    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        sock.bind(("0.0.0.0", 0))
    except OSError as e:
        raise ProbeError(port, "bind", str(e)) from e

    with sock:
        _send(sock, packet, addr, port)

        sock.settimeout(config.discovery_timeout)
        try:
            first = sock.recv(MAX_UDP_PAYLOAD)
        except OSError:
            # timeout or port unreachable: nothing here
            return ProbeResult(
                port=port,
                live=False,
                elapsed_s=round(time.perf_counter() - start, 4),
            )

        log_event(
            log,
            "port_live",
            f"Found something on port: {config.host}:{port}",
            host=config.host,
            port=port,
            first_len=len(first),
        )

        path = capture_path(config.output_prefix, port)
        try:
            # unbuffered: a full disk fails inside _write, not at close
            fh = open(path, "wb", buffering=0)
        except OSError as e:
            raise ProbeError(port, "open", f"{path}: {e}", path=path) from e

        with fh:
            written = _write(fh, rtp_payload(first), port)
            datagrams, discarded, more = _capture(sock, fh, addr, config, packet, stop)

    log.debug("port %d: %d datagrams captured, %d discarded", port, datagrams + 1, discarded)
    return ProbeResult(
        port=port,
        live=True,
        elapsed_s=round(time.perf_counter() - start, 4),
        datagrams=datagrams + 1,
        discarded=discarded,
        bytes_written=written + more,
        capture_path=path,
    )
