from dataclasses import dataclass
from typing import List, Optional

DEFAULT_THREADS = 8
DEFAULT_DISCOVERY_TIMEOUT = 4.0
DEFAULT_CAPTURE_WINDOW = 10.0
DEFAULT_POLL_INTERVAL = 0.01


@dataclass(frozen=True)
class ScanConfig:
    host: str
    start_port: int
    end_port: int
    output_prefix: str
    threads: int = DEFAULT_THREADS
    discovery_timeout: float = DEFAULT_DISCOVERY_TIMEOUT
    capture_window: float = DEFAULT_CAPTURE_WINDOW
    poll_interval: float = DEFAULT_POLL_INTERVAL
    abort_on_error: bool = True

    def __post_init__(self) -> None:
        for p in (self.start_port, self.end_port):
            if p < 1 or p > 65535:
                raise ValueError(f"Invalid port: {p}")
        if self.start_port > self.end_port:
            raise ValueError(f"Invalid port range: {self.start_port}-{self.end_port}")
        if self.threads < 1:
            raise ValueError("threads must be >= 1")
        if self.discovery_timeout <= 0 or self.capture_window <= 0 or self.poll_interval <= 0:
            raise ValueError("timings must be positive")

    @property
    def port_count(self) -> int:
        return self.end_port - self.start_port + 1

    def ports(self) -> List[int]:
        """Ports in dispatch order. The range is inclusive of end_port."""
        return list(range(self.start_port, self.end_port + 1))


@dataclass(frozen=True)
class ProbeResult:
    port: int
    live: bool
    elapsed_s: float
    datagrams: int = 0
    discarded: int = 0
    bytes_written: int = 0
    capture_path: Optional[str] = None
    error: Optional[str] = None
