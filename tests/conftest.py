import socket
import threading

import pytest

from rtp_bleed.models import ScanConfig


class UdpResponder:
    """
    Loopback UDP service. Answers each datagram it receives with the next
    scripted reply, then stays silent once the script runs out.
    """

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.received = 0
        self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        self.sock.bind(("127.0.0.1", 0))
        self.sock.settimeout(0.05)
        self.port = self.sock.getsockname()[1]
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def _serve(self):
        while not self._stop.is_set():
            try:
                _, addr = self.sock.recvfrom(65535)
            except socket.timeout:
                continue
            except OSError:
                return
            self.received += 1
            if self.replies:
                self.sock.sendto(self.replies.pop(0), addr)

    def start(self):
        self._thread.start()
        return self

    def close(self):
        self._stop.set()
        self._thread.join(timeout=2)
        self.sock.close()


@pytest.fixture
def responder():
    started = []

    def make(replies=None):
        r = UdpResponder(replies).start()
        started.append(r)
        return r

    yield make
    for r in started:
        r.close()


@pytest.fixture
def make_config(tmp_path):
    def make(port, **overrides):
        fields = dict(
            host="127.0.0.1",
            start_port=port,
            end_port=port,
            output_prefix=str(tmp_path / "scan"),
            threads=1,
            discovery_timeout=0.3,
            capture_window=0.3,
            poll_interval=0.01,
        )
        fields.update(overrides)
        return ScanConfig(**fields)

    return make
