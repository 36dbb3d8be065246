import os
import threading
import time

import pytest

from rtp_bleed import prober
from rtp_bleed.prober import ProbeError, probe_port


def rtp(payload: bytes, first: int = 0x80) -> bytes:
    return bytes([first, 0x00]) + b"\x00" * 10 + payload


def test_silent_port_is_not_live(responder, make_config, tmp_path):
    svc = responder()
    config = make_config(svc.port)

    start = time.monotonic()
    r = probe_port(config, svc.port)
    elapsed = time.monotonic() - start

    assert not r.live
    assert r.capture_path is None
    assert elapsed < config.discovery_timeout + 1.0
    assert svc.received == 1
    assert list(tmp_path.iterdir()) == []


def test_single_reply_writes_payload_without_header(responder, make_config, tmp_path):
    reply = rtp(b"12345678")
    assert len(reply) == 20
    svc = responder([reply])
    config = make_config(svc.port)

    start = time.monotonic()
    r = probe_port(config, svc.port)
    elapsed = time.monotonic() - start

    path = tmp_path / f"scan-{svc.port}.raw"
    assert r.live
    assert r.capture_path == str(path)
    assert path.read_bytes() == b"12345678"
    assert r.bytes_written == 8
    assert r.datagrams == 1
    # the capture window runs in full even when the relay goes quiet
    assert elapsed >= config.capture_window
    assert elapsed < config.discovery_timeout + config.capture_window + 1.0
    # kept probing during capture
    assert svc.received > 2


def test_capture_drops_non_rtp(responder, make_config, tmp_path):
    svc = responder([rtp(b"first"), rtp(b"noise", first=0x00), rtp(b"-second")])
    config = make_config(svc.port, capture_window=0.5)

    r = probe_port(config, svc.port)

    data = (tmp_path / f"scan-{svc.port}.raw").read_bytes()
    assert data == b"first-second"
    assert b"noise" not in data
    assert r.datagrams == 2
    assert r.discarded == 1


def test_capture_window_bounds_chatty_relay(responder, make_config, tmp_path):
    svc = responder([rtp(b"x" * 160)] * 500)
    config = make_config(svc.port, capture_window=0.4)

    start = time.monotonic()
    r = probe_port(config, svc.port)
    elapsed = time.monotonic() - start

    assert r.live
    assert r.datagrams > 1
    assert elapsed < config.capture_window + 1.0
    assert (tmp_path / f"scan-{svc.port}.raw").stat().st_size == r.bytes_written


def test_stop_event_ends_capture_early(responder, make_config):
    svc = responder([rtp(b"abc")])
    config = make_config(svc.port, capture_window=5.0)
    stop = threading.Event()
    stop.set()

    start = time.monotonic()
    r = probe_port(config, svc.port, stop=stop)

    assert r.live
    assert time.monotonic() - start < 2.0


def test_unwritable_capture_file_raises(responder, make_config, tmp_path):
    svc = responder([rtp(b"abc")])
    config = make_config(svc.port, output_prefix=str(tmp_path / "missing" / "scan"))

    with pytest.raises(ProbeError) as exc:
        probe_port(config, svc.port)

    assert exc.value.stage == "open"
    assert exc.value.port == svc.port


def test_send_failure_raises(make_config):
    # broadcast without SO_BROADCAST is refused by the local stack
    config = make_config(5004, host="255.255.255.255")

    with pytest.raises(ProbeError) as exc:
        probe_port(config, 5004)

    assert exc.value.stage == "send"
    assert isinstance(exc.value.__cause__, OSError)


def test_discovery_reply_is_kept_whatever_its_first_byte(responder, make_config, tmp_path):
    svc = responder([rtp(b"payload", first=0x00)])
    config = make_config(svc.port)

    r = probe_port(config, svc.port)

    assert r.live
    assert (tmp_path / f"scan-{svc.port}.raw").read_bytes().startswith(b"payload")
    assert r.discarded == 0


@pytest.mark.skipif(not os.path.exists("/dev/full"), reason="needs /dev/full")
def test_full_disk_raises_write_error(responder, make_config, monkeypatch):
    svc = responder([rtp(b"abc")])
    config = make_config(svc.port)
    monkeypatch.setattr(prober, "capture_path", lambda prefix, port: "/dev/full")

    with pytest.raises(ProbeError) as exc:
        probe_port(config, svc.port)

    assert exc.value.stage == "write"
    assert exc.value.path == "/dev/full"
    assert isinstance(exc.value.__cause__, OSError)
